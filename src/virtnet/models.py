#!/usr/bin/env python3
"""
Pydantic models for user-facing network specifications.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from virtnet.addressing import normalize_ip, parse_cidr
from virtnet.errors import InvalidAddressError, UnsupportedModeError

# Fields that can change on a live network without recreating it
MUTABLE_FIELDS = frozenset({"autostart"})


class DnsForwarder(BaseModel):
    """Upstream DNS server, optionally scoped to a domain."""

    address: Optional[str] = Field(default=None, description="Forwarder IP address")
    domain: Optional[str] = Field(default=None, description="Domain served by this forwarder")


class NetworkSpec(BaseModel):
    """Declarative description of a libvirt virtual network."""

    name: str = Field(description="Network name, unique on the host")
    domain: Optional[str] = Field(default=None, description="DNS domain of the network")
    mode: str = Field(default="nat", description="Forwarding mode: isolated|nat|route|bridge")
    bridge: Optional[str] = Field(default=None, description="Host bridge name")
    addresses: List[str] = Field(
        default_factory=list, description="At most one IPv4 and one IPv6 CIDR block"
    )
    dhcp_enabled: bool = Field(default=True, description="Serve DHCP on the address blocks")
    dns_local_only: bool = Field(default=False, description="Answer domain queries locally only")
    dns_forwarders: List[DnsForwarder] = Field(default_factory=list)
    autostart: Optional[bool] = Field(default=None, description="Start with the host")

    @field_validator("name")
    @classmethod
    def name_must_be_valid(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Network name cannot be empty")
        return v.strip()

    @model_validator(mode="before")
    @classmethod
    def handle_nested_blocks(cls, data: Any) -> Any:
        """Accept the nested ``dns:`` and ``dhcp:`` blocks as well as flat fields."""
        if not isinstance(data, dict):
            return data
        data = dict(data)

        dns = data.pop("dns", None)
        if isinstance(dns, list):
            dns = dns[0] if dns else None
        if isinstance(dns, dict):
            if "local_only" in dns:
                data.setdefault("dns_local_only", dns["local_only"])
            if "forwarders" in dns:
                data.setdefault("dns_forwarders", dns["forwarders"] or [])

        dhcp = data.pop("dhcp", None)
        if isinstance(dhcp, list):
            dhcp = dhcp[0] if dhcp else None
        if isinstance(dhcp, dict) and "enabled" in dhcp:
            data.setdefault("dhcp_enabled", dhcp["enabled"])

        return data

    def save(self, path: Path) -> None:
        """Save specification to YAML file."""
        import yaml

        path.write_text(
            yaml.dump(self.model_dump(exclude_none=True), default_flow_style=False, sort_keys=False)
        )

    @classmethod
    def load(cls, path: Path) -> "NetworkSpec":
        """Load specification from YAML file."""
        import yaml

        if not path.exists():
            raise FileNotFoundError(f"Network file not found: {path}")
        data = yaml.safe_load(path.read_text())
        return cls.model_validate(data)


class NetworkState(NetworkSpec):
    """What the orchestrator remembers about a created network.

    ``id`` is the UUID assigned by libvirt; every other field is the last
    known view, refreshed by reads.
    """

    id: Optional[str] = Field(default=None, description="libvirt network UUID")

    def spec(self) -> NetworkSpec:
        return NetworkSpec.model_validate(self.model_dump(exclude={"id"}))


def _comparable(spec: NetworkSpec) -> Dict[str, Any]:
    """Field values in the form libvirt reports them back."""
    # builder imports this module
    from virtnet.builder import normalize_mode

    values = spec.model_dump()
    try:
        values["mode"] = normalize_mode(spec.mode).value
    except UnsupportedModeError:
        pass

    addresses = []
    for cidr in spec.addresses:
        try:
            addresses.append(str(parse_cidr(cidr)))
        except InvalidAddressError:
            addresses.append(cidr)
    values["addresses"] = addresses

    for forwarder in values["dns_forwarders"]:
        if forwarder["address"]:
            try:
                forwarder["address"] = normalize_ip(forwarder["address"])
            except InvalidAddressError:
                pass
    return values


def requires_replacement(prior: NetworkSpec, desired: NetworkSpec) -> List[str]:
    """Names of changed fields that cannot be applied to a live network.

    Both sides are compared after the rewrites the builder applies, so
    ``10.0.0.77/24`` equals ``10.0.0.0/24`` and mode ``none`` equals
    ``isolated``.
    """
    before = _comparable(prior)
    after = _comparable(desired)
    changed = []
    for name in NetworkSpec.model_fields:
        if name in MUTABLE_FIELDS or before[name] == after[name]:
            continue
        # libvirt assigns a bridge name when none was requested
        if name == "bridge" and not desired.bridge:
            continue
        changed.append(name)
    return changed
