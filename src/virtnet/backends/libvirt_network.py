"""libvirt implementation of the virtualization service."""

from contextlib import contextmanager
from typing import Optional

try:
    import libvirt
except ImportError:
    libvirt = None

from virtnet import network_xml
from virtnet.definition import NetworkDefinition
from virtnet.errors import ExternalServiceError, NotFoundError
from virtnet.interfaces.virtualization import VirtualizationService
from virtnet.logging import get_logger

log = get_logger(__name__)


class LibvirtNetworkService(VirtualizationService):
    """Network operations against a libvirt daemon."""

    def __init__(self, uri: str = "qemu:///system", conn=None):
        self.uri = uri
        self._conn = conn

    def connect(self) -> None:
        """Establish connection to libvirt."""
        if libvirt is None:
            raise RuntimeError("libvirt-python is required. Install with: pip install libvirt-python")

        if self._conn is not None:
            try:
                if self._conn.isAlive():
                    return
            except libvirt.libvirtError:
                pass

        try:
            self._conn = libvirt.open(self.uri)
        except libvirt.libvirtError as e:
            raise ConnectionError(f"Failed to connect to libvirt at {self.uri}: {e}")
        log.debug(f"Connected to libvirt at {self.uri}")

    def disconnect(self) -> None:
        """Close connection."""
        if self._conn:
            try:
                self._conn.close()
            except libvirt.libvirtError:
                pass
            self._conn = None

    def __enter__(self) -> "LibvirtNetworkService":
        self.connect()
        return self

    def __exit__(self, *exc_info) -> None:
        self.disconnect()

    @property
    def conn(self):
        """Get active libvirt connection."""
        if self._conn is None:
            self.connect()
        return self._conn

    def define_network(self, xml: str):
        with _libvirt_errors("Error defining libvirt network"):
            return self.conn.networkDefineXML(xml)

    def activate(self, handle) -> None:
        try:
            handle.create()
        except libvirt.libvirtError as e:
            # create() on a running network fails; treat it as done
            if _error_code(e) == libvirt.VIR_ERR_OPERATION_INVALID and _is_active(handle):
                log.debug("Network already active", error=str(e))
                return
            raise _wrap("Error activating libvirt network", e) from e

    def deactivate(self, handle) -> None:
        with _libvirt_errors("When destroying libvirt network"):
            handle.destroy()

    def undefine(self, handle) -> None:
        with _libvirt_errors("Couldn't undefine libvirt network"):
            handle.undefine()

    def lookup_by_uuid(self, uuid: str):
        with _libvirt_errors(f"Error retrieving libvirt network '{uuid}'"):
            return self.conn.networkLookupByUUIDString(uuid)

    def is_active(self, handle) -> bool:
        with _libvirt_errors("Couldn't determine if network is active"):
            return bool(handle.isActive())

    def get_autostart(self, handle) -> bool:
        with _libvirt_errors("Error reading network autostart setting"):
            return bool(handle.autostart())

    def set_autostart(self, handle, autostart: bool) -> None:
        with _libvirt_errors("Error setting autostart for network"):
            handle.setAutostart(1 if autostart else 0)

    def get_uuid(self, handle) -> str:
        with _libvirt_errors("Error retrieving libvirt network id"):
            return handle.UUIDString()

    def get_definition(self, handle) -> NetworkDefinition:
        with _libvirt_errors("Error reading libvirt network XML description"):
            xml = handle.XMLDesc(0)
        return network_xml.decode(xml)


def _is_active(handle) -> bool:
    try:
        return bool(handle.isActive())
    except libvirt.libvirtError:
        return False


def _error_code(error) -> Optional[int]:
    try:
        return error.get_error_code()
    except AttributeError:
        return None


def _wrap(message: str, error) -> ExternalServiceError:
    code = _error_code(error)
    if code == libvirt.VIR_ERR_NO_NETWORK:
        return NotFoundError(f"{message}: {error}", code=code)
    return ExternalServiceError(f"{message}: {error}", code=code)


@contextmanager
def _libvirt_errors(message: str):
    """Re-raise libvirt failures as ExternalServiceError (NotFoundError for missing networks)."""
    try:
        yield
    except libvirt.libvirtError as e:
        raise _wrap(message, e) from e
