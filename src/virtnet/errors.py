"""Error taxonomy for virtnet."""

from typing import Optional


class VirtNetError(Exception):
    """Base class for every error raised by virtnet."""


class InvalidAddressError(VirtNetError, ValueError):
    """Malformed CIDR block or IP literal."""


class RangeTooSmallError(InvalidAddressError):
    """Address block leaves no room for host, broadcast and DHCP."""


class UnsupportedModeError(VirtNetError, ValueError):
    pass


class MissingBridgeError(VirtNetError, ValueError):
    pass


class ExternalServiceError(VirtNetError, RuntimeError):
    """Failure reported by the virtualization service.

    The service's message is kept verbatim; ``code`` holds the libvirt
    error code when one was available.
    """

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class NotFoundError(ExternalServiceError):
    """Lookup reported that the network does not exist."""


class ConvergenceTimeoutError(VirtNetError, TimeoutError):
    """Polling deadline exceeded before the target state was observed."""

    def __init__(self, description: str, timeout: float, attempts: int):
        super().__init__(
            f"Timed out after {timeout:g}s waiting for {description} ({attempts} checks)"
        )
        self.description = description
        self.timeout = timeout
        self.attempts = attempts


class InvalidDefinitionError(VirtNetError, ValueError):
    """Network XML that cannot be read back into a definition."""


class MissingIdError(VirtNetError, ValueError):
    """Operation needs a network UUID but the state carries none."""
