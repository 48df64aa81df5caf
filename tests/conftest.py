"""
Pytest fixtures and configuration for virtnet tests.
"""
import uuid as uuid_lib
from dataclasses import dataclass
from typing import Dict, List, Optional
from unittest.mock import MagicMock, patch

import pytest

from virtnet import network_xml
from virtnet.config import ReconcilerSettings
from virtnet.errors import ExternalServiceError, NotFoundError
from virtnet.interfaces.virtualization import VirtualizationService
from virtnet.reconciler import NetworkReconciler


@dataclass
class FakeNetwork:
    """A network as stored by the fake service."""

    uuid: str
    xml: str
    active: bool = False
    autostart: bool = False
    # is_active() keeps reporting False this many times after activate()
    activation_lag: int = 0


class FakeVirtualizationService(VirtualizationService):
    """In-memory stand-in for a libvirt host."""

    def __init__(self, activation_lag: int = 0, assigned_bridge: str = "virbr1"):
        self.networks: Dict[str, FakeNetwork] = {}
        self.calls: List[tuple] = []
        self.activation_lag = activation_lag
        self.assigned_bridge = assigned_bridge
        self.lookup_error: Optional[Exception] = None
        self.never_activates = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return None

    def define_network(self, xml: str):
        self.calls.append(("define", xml))
        name = network_xml.decode(xml).name
        for net in self.networks.values():
            if network_xml.decode(net.xml).name == name:
                raise ExternalServiceError(
                    f"operation failed: network '{name}' already exists with uuid {net.uuid}"
                )
        net = FakeNetwork(uuid=str(uuid_lib.uuid4()), xml=xml)
        self.networks[net.uuid] = net
        return net

    def activate(self, handle: FakeNetwork) -> None:
        self.calls.append(("activate", handle.uuid))
        if not handle.active:
            handle.activation_lag = self.activation_lag
        handle.active = True

    def deactivate(self, handle: FakeNetwork) -> None:
        self.calls.append(("deactivate", handle.uuid))
        handle.active = False

    def undefine(self, handle: FakeNetwork) -> None:
        self.calls.append(("undefine", handle.uuid))
        self.networks.pop(handle.uuid, None)

    def lookup_by_uuid(self, uuid: str):
        self.calls.append(("lookup", uuid))
        if self.lookup_error is not None:
            raise self.lookup_error
        if uuid not in self.networks:
            raise NotFoundError(f"Network not found: no network with matching uuid '{uuid}'")
        return self.networks[uuid]

    def is_active(self, handle: FakeNetwork) -> bool:
        self.calls.append(("is_active", handle.uuid))
        if self.never_activates:
            return False
        if handle.active and handle.activation_lag > 0:
            handle.activation_lag -= 1
            return False
        return handle.active

    def get_autostart(self, handle: FakeNetwork) -> bool:
        return handle.autostart

    def set_autostart(self, handle: FakeNetwork, autostart: bool) -> None:
        self.calls.append(("set_autostart", handle.uuid, autostart))
        handle.autostart = autostart

    def get_uuid(self, handle: FakeNetwork) -> str:
        return handle.uuid

    def get_definition(self, handle: FakeNetwork):
        definition = network_xml.decode(handle.xml)
        definition.uuid = handle.uuid
        if not definition.bridge.name:
            definition.bridge.name = self.assigned_bridge
        return definition

    def mutations(self) -> List[tuple]:
        """Calls that change host state."""
        mutating = {"define", "activate", "deactivate", "undefine", "set_autostart"}
        return [c for c in self.calls if c[0] in mutating]


class FakeClock:
    """Monotonic clock advanced only by sleep()."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_service():
    return FakeVirtualizationService()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def reconciler(fake_service, fake_clock):
    return NetworkReconciler(
        fake_service,
        settings=ReconcilerSettings(),
        sleep=fake_clock.sleep,
        clock=fake_clock,
    )


class FakeLibvirtError(Exception):
    """Mimics libvirt.libvirtError."""

    def __init__(self, message: str, code: int = 1):
        super().__init__(message)
        self._code = code

    def get_error_code(self) -> int:
        return self._code


@pytest.fixture
def mock_libvirt():
    """Patch the libvirt module used by the libvirt backend."""
    with patch("virtnet.backends.libvirt_network.libvirt") as mocked:
        mocked.libvirtError = FakeLibvirtError
        mocked.VIR_ERR_NO_NETWORK = 43
        mocked.VIR_ERR_OPERATION_INVALID = 55
        mocked.open.return_value = MagicMock()
        yield mocked
