"""
Project a live network's definition back onto user-facing fields.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from virtnet.addressing import network_cidr
from virtnet.interfaces.virtualization import VirtualizationService
from virtnet.logging import get_logger
from virtnet.models import DnsForwarder, NetworkState

log = get_logger(__name__)


@dataclass
class ObservedState:
    """Subset of a network's attributes observable after creation.

    ``None`` means the live definition says nothing about that field, so
    the caller's current value must be kept.
    """

    uuid: str
    name: str
    bridge: str
    autostart: bool
    domain: Optional[str] = None
    dns_local_only: Optional[bool] = None
    addresses: List[str] = field(default_factory=list)
    dns_forwarders: Optional[List[DnsForwarder]] = None

    def apply_to(self, state: NetworkState) -> NetworkState:
        """Return a copy of ``state`` refreshed with what was observed."""
        update: Dict[str, Any] = {
            "id": self.uuid,
            "name": self.name,
            "bridge": self.bridge,
            "autostart": self.autostart,
        }
        if self.domain is not None:
            update["domain"] = self.domain
            update["dns_local_only"] = self.dns_local_only
        if self.addresses:
            update["addresses"] = list(self.addresses)
        if self.dns_forwarders is not None:
            merged = list(state.dns_forwarders)
            for index, forwarder in enumerate(self.dns_forwarders):
                if index < len(merged):
                    merged[index] = forwarder
                else:
                    merged.append(forwarder)
            update["dns_forwarders"] = merged
        return state.model_copy(update=update)


def read_observed(service: VirtualizationService, handle: Any) -> ObservedState:
    """Fetch the live definition behind ``handle`` and project it."""
    definition = service.get_definition(handle)
    observed = ObservedState(
        uuid=definition.uuid or service.get_uuid(handle),
        name=definition.name,
        bridge=definition.bridge.name,
        autostart=service.get_autostart(handle),
    )

    # bridged networks have no domain block
    if definition.domain is not None:
        observed.domain = definition.domain.name
        observed.dns_local_only = definition.domain.local_only

    # libvirt stores the host address (10.0.0.1/24), users asked for 10.0.0.0/24
    observed.addresses = [network_cidr(ip.address, ip.prefix) for ip in definition.ips]

    if definition.dns is not None:
        observed.dns_forwarders = [
            DnsForwarder(address=f.address or None, domain=f.domain or None)
            for f in definition.dns.forwarders
        ]

    log.debug(f"Network {observed.uuid} successfully read", name=observed.name)
    return observed
