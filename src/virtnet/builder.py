"""
Build a complete libvirt network definition from a NetworkSpec.

See https://libvirt.org/formatnetwork.html for the resulting document.
"""

from typing import List, Optional

from virtnet.addressing import normalize_ip, plan
from virtnet.definition import (
    BridgeConfig,
    DnsBlock,
    DnsForwarderDef,
    DomainBlock,
    ForwardConfig,
    IpBlock,
    NetworkDefinition,
    NetworkMode,
)
from virtnet.errors import MissingBridgeError, UnsupportedModeError
from virtnet.logging import get_logger
from virtnet.models import DnsForwarder, NetworkSpec

log = get_logger(__name__)

# "none" is libvirt's own spelling of an isolated network
MODE_ALIASES = {"none": NetworkMode.ISOLATED}


def normalize_mode(mode: Optional[str]) -> NetworkMode:
    """Map a user supplied mode string onto a NetworkMode, ignoring case."""
    value = (mode or NetworkMode.NAT.value).strip().lower()
    if value in MODE_ALIASES:
        return MODE_ALIASES[value]
    try:
        return NetworkMode(value)
    except ValueError:
        raise UnsupportedModeError(f"unsupported network mode '{mode}'")


def build(spec: NetworkSpec) -> NetworkDefinition:
    """Assemble the network definition for ``spec``.

    Validation is all-or-nothing: any invalid mode, bridge, address or
    forwarder raises before a definition is returned.
    """
    mode = normalize_mode(spec.mode)

    bridge_name = spec.bridge or ""
    definition = NetworkDefinition(
        name=spec.name,
        bridge=BridgeConfig(name=bridge_name, stp="on"),
    )

    if spec.domain:
        definition.domain = DomainBlock(name=spec.domain, local_only=spec.dns_local_only)

    if mode == NetworkMode.BRIDGE:
        if not bridge_name.strip():
            raise MissingBridgeError(
                "'bridge' must be provided when using the bridged network mode"
            )
        # bridged networks neither forward nor own any addressing
        return definition

    if mode == NetworkMode.NAT:
        definition.forward = ForwardConfig(mode=NetworkMode.NAT.value, nat=True)
    elif mode == NetworkMode.ROUTE:
        definition.forward = ForwardConfig(mode=NetworkMode.ROUTE.value, nat=False)

    definition.ips = plan_addresses(spec.addresses, spec.dhcp_enabled)

    if spec.dns_forwarders:
        definition.dns = DnsBlock(forwarders=build_forwarders(spec.dns_forwarders))

    log.debug(
        f"Built definition for network '{spec.name}'",
        mode=mode.value,
        ip_blocks=len(definition.ips),
    )
    return definition


def plan_addresses(addresses: List[str], dhcp_enabled: bool) -> List[IpBlock]:
    return [plan(cidr, dhcp_enabled) for cidr in addresses]


def build_forwarders(forwarders: List[DnsForwarder]) -> List[DnsForwarderDef]:
    result = []
    for forwarder in forwarders:
        entry = DnsForwarderDef()
        if forwarder.address:
            entry.address = normalize_ip(forwarder.address)
        if forwarder.domain:
            entry.domain = forwarder.domain
        result.append(entry)
    return result
