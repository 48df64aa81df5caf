#!/usr/bin/env python3
"""Data model of a complete libvirt network definition."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class NetworkMode(Enum):
    """Forwarding mode requested by the user."""

    ISOLATED = "isolated"  # No forwarding at all
    NAT = "nat"  # Forward with address translation
    ROUTE = "route"  # Forward without translation
    BRIDGE = "bridge"  # Attach to an existing host bridge


class AddressFamily(Enum):
    IPV4 = "ipv4"
    IPV6 = "ipv6"


@dataclass
class BridgeConfig:
    """Host bridge; an empty name lets libvirt pick one."""

    name: str = ""
    stp: str = "on"


@dataclass
class ForwardConfig:
    mode: str
    nat: bool = False


@dataclass
class DomainBlock:
    name: str
    local_only: bool = False


@dataclass
class DhcpRange:
    start: str
    end: str


@dataclass
class IpBlock:
    """Host interface address of one subnet plus its optional DHCP range."""

    address: str
    prefix: int
    family: AddressFamily
    dhcp_range: Optional[DhcpRange] = None


@dataclass
class DnsForwarderDef:
    address: str = ""
    domain: str = ""


@dataclass
class DnsBlock:
    forwarders: List[DnsForwarderDef] = field(default_factory=list)


@dataclass
class NetworkDefinition:
    """Everything submitted to (or reported by) the virtualization service."""

    name: str
    bridge: BridgeConfig = field(default_factory=BridgeConfig)
    forward: Optional[ForwardConfig] = None
    domain: Optional[DomainBlock] = None
    ips: List[IpBlock] = field(default_factory=list)
    dns: Optional[DnsBlock] = None

    # Assigned by the service, only present on reported definitions
    uuid: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for display or serialization."""
        return {
            "name": self.name,
            "uuid": self.uuid,
            "bridge": {"name": self.bridge.name, "stp": self.bridge.stp},
            "forward": (
                {"mode": self.forward.mode, "nat": self.forward.nat} if self.forward else None
            ),
            "domain": (
                {"name": self.domain.name, "local_only": self.domain.local_only}
                if self.domain
                else None
            ),
            "ips": [
                {
                    "address": ip.address,
                    "prefix": ip.prefix,
                    "family": ip.family.value,
                    "dhcp_range": (
                        {"start": ip.dhcp_range.start, "end": ip.dhcp_range.end}
                        if ip.dhcp_range
                        else None
                    ),
                }
                for ip in self.ips
            ],
            "dns": (
                {
                    "forwarders": [
                        {"address": f.address, "domain": f.domain} for f in self.dns.forwarders
                    ]
                }
                if self.dns
                else None
            ),
        }
