#!/usr/bin/env python3
"""
Lifecycle reconciler for libvirt networks.

Drives create/read/update/delete against a VirtualizationService and
waits for libvirt to report the target state:

    ABSENT -> DEFINED -> BUILD -> ACTIVE -> DESTROYING -> NOT_EXISTS

Nothing is rolled back on failure. A create that times out leaves the
network defined but inactive; the caller retries or cleans up.
"""

import time
from enum import Enum
from typing import Any, Callable, Optional

from virtnet import network_xml
from virtnet.builder import build
from virtnet.config import ReconcilerSettings
from virtnet.drift import read_observed
from virtnet.errors import MissingIdError, NotFoundError
from virtnet.interfaces.resource import Resource
from virtnet.interfaces.virtualization import VirtualizationService
from virtnet.logging import get_logger, log_operation, network_context
from virtnet.models import NetworkSpec, NetworkState
from virtnet.polling import poll_until

log = get_logger(__name__)


class NetworkLifecycleState(Enum):
    ABSENT = "ABSENT"
    DEFINED = "DEFINED"
    BUILD = "BUILD"
    ACTIVE = "ACTIVE"
    DESTROYING = "DESTROYING"
    NOT_EXISTS = "NOT_EXISTS"


class NetworkReconciler(Resource[NetworkSpec, NetworkState]):
    """Reconcile one network resource against a virtualization host.

    Usage:
        with LibvirtNetworkService("qemu:///system") as service:
            reconciler = NetworkReconciler(service)
            state = reconciler.create(NetworkSpec(name="k8snet", addresses=["10.17.3.0/24"]))
    """

    def __init__(
        self,
        service: VirtualizationService,
        settings: Optional[ReconcilerSettings] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.service = service
        self.settings = settings or ReconcilerSettings()
        self._sleep = sleep
        self._clock = clock

    def create(self, spec: NetworkSpec) -> NetworkState:
        """Define, start and wait for a new network, then read it back."""
        # validation errors surface here, before libvirt is touched
        definition = build(spec)
        xml = network_xml.encode(definition)

        with network_context(name=spec.name), log_operation(
            log, "network_create", uri=self.settings.uri
        ) as op_log:
            op_log.debug("Submitting network definition", xml=xml)
            handle = self.service.define_network(xml)
            uuid = self.service.get_uuid(handle)
            self._transition(NetworkLifecycleState.DEFINED, uuid)

            self.service.activate(handle)
            self._transition(NetworkLifecycleState.BUILD, uuid)
            self._wait(lambda: self.service.is_active(handle), f"network {uuid} to become ACTIVE")
            self._transition(NetworkLifecycleState.ACTIVE, uuid)

            if spec.autostart is not None:
                self.service.set_autostart(handle, spec.autostart)

            state = NetworkState(id=uuid, **spec.model_dump(exclude={"id"}))
            return read_observed(self.service, handle).apply_to(state)

    def read(self, state: NetworkState) -> NetworkState:
        """Refresh ``state`` from the live network definition."""
        handle = self.service.lookup_by_uuid(self._require_id(state))
        return read_observed(self.service, handle).apply_to(state)

    def update(self, state: NetworkState, desired: NetworkSpec) -> NetworkState:
        """Apply ``desired.autostart``; restart the network first if it stopped."""
        uuid = self._require_id(state)
        with network_context(name=state.name, uuid=uuid), log_operation(
            log, "network_update"
        ) as op_log:
            handle = self.service.lookup_by_uuid(uuid)
            self._ensure_active(handle, uuid)

            if desired.autostart is not None and desired.autostart != state.autostart:
                op_log.info("Updating autostart", autostart=desired.autostart)
                self.service.set_autostart(handle, desired.autostart)

            return read_observed(self.service, handle).apply_to(state)

    def delete(self, state: NetworkState) -> None:
        """Stop and undefine the network, then wait until lookups fail."""
        uuid = self._require_id(state)
        with network_context(name=state.name, uuid=uuid), log_operation(
            log, "network_delete"
        ) as op_log:
            try:
                handle = self.service.lookup_by_uuid(uuid)
            except NotFoundError:
                op_log.warning("Network already absent")
                return

            # libvirt refuses to tear down some inactive networks
            self._ensure_active(handle, uuid)

            self._transition(NetworkLifecycleState.DESTROYING, uuid)
            self.service.deactivate(handle)
            self.service.undefine(handle)

            self._wait(lambda: not self.exists(state), f"network {uuid} to reach NOT_EXISTS")
            self._transition(NetworkLifecycleState.NOT_EXISTS, uuid)

    def exists(self, state: NetworkState) -> bool:
        """True while libvirt can look the network up; other lookup errors propagate."""
        if not state.id:
            return False
        try:
            self.service.lookup_by_uuid(state.id)
        except NotFoundError:
            return False
        return True

    def import_network(self, uuid: str) -> NetworkState:
        """Build a full state for an existing network from its live definition."""
        with network_context(uuid=uuid), log_operation(log, "network_import"):
            handle = self.service.lookup_by_uuid(uuid)
            definition = self.service.get_definition(handle)
            mode = definition.forward.mode if definition.forward else "isolated"
            state = NetworkState(id=uuid, name=definition.name, mode=mode)
            state = read_observed(self.service, handle).apply_to(state)
            # a network without any DHCP range was created with DHCP off
            if definition.ips and not any(ip.dhcp_range for ip in definition.ips):
                state = state.model_copy(update={"dhcp_enabled": False})
            return state

    def _ensure_active(self, handle: Any, uuid: str) -> None:
        if not self.service.is_active(handle):
            log.info("Activating inactive network", uuid=uuid)
            self.service.activate(handle)

    def _wait(self, check: Callable[[], bool], description: str) -> int:
        return poll_until(
            check,
            self.settings.poll_settings(),
            description,
            sleep=self._sleep,
            clock=self._clock,
        )

    @staticmethod
    def _require_id(state: NetworkState) -> str:
        if not state.id:
            raise MissingIdError(f"Network '{state.name}' has no id; create or import it first")
        return state.id

    @staticmethod
    def _transition(target: NetworkLifecycleState, uuid: str) -> None:
        log.info(f"Network {uuid} is {target.value}", state=target.value)
