"""Interface of the virtualization service that hosts networks."""

from abc import ABC, abstractmethod
from typing import Any

from virtnet.definition import NetworkDefinition


class VirtualizationService(ABC):
    """Abstract interface for network operations on a virtualization host.

    Handles are opaque objects returned by ``define_network`` and
    ``lookup_by_uuid``; they stay valid for the connection's lifetime.
    Implementations raise ``ExternalServiceError`` for any failure and
    ``NotFoundError`` when a lookup finds nothing.
    """

    @abstractmethod
    def define_network(self, xml: str) -> Any:
        """Define a persistent network from serialized XML. Returns its handle."""
        pass

    @abstractmethod
    def activate(self, handle: Any) -> None:
        """Start a network. Starting an active network is a no-op."""
        pass

    @abstractmethod
    def deactivate(self, handle: Any) -> None:
        """Stop a network."""
        pass

    @abstractmethod
    def undefine(self, handle: Any) -> None:
        """Remove the persistent network definition."""
        pass

    @abstractmethod
    def lookup_by_uuid(self, uuid: str) -> Any:
        """Find a network handle by UUID."""
        pass

    @abstractmethod
    def is_active(self, handle: Any) -> bool:
        pass

    @abstractmethod
    def get_autostart(self, handle: Any) -> bool:
        pass

    @abstractmethod
    def set_autostart(self, handle: Any, autostart: bool) -> None:
        pass

    @abstractmethod
    def get_uuid(self, handle: Any) -> str:
        pass

    @abstractmethod
    def get_definition(self, handle: Any) -> NetworkDefinition:
        """Fetch and decode the live definition of a network."""
        pass
