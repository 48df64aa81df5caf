#!/usr/bin/env python3
"""
Network XML serialization for libvirt.
"""

import ipaddress
import xml.etree.ElementTree as ET
from typing import Optional

from virtnet.definition import (
    AddressFamily,
    BridgeConfig,
    DhcpRange,
    DnsBlock,
    DnsForwarderDef,
    DomainBlock,
    ForwardConfig,
    IpBlock,
    NetworkDefinition,
)
from virtnet.errors import InvalidAddressError, InvalidDefinitionError


def encode(definition: NetworkDefinition) -> str:
    """Generate libvirt network XML for a definition."""
    network = ET.Element("network")
    ET.SubElement(network, "name").text = definition.name
    if definition.uuid:
        ET.SubElement(network, "uuid").text = definition.uuid

    if definition.forward:
        ET.SubElement(network, "forward", mode=definition.forward.mode)

    bridge = ET.SubElement(network, "bridge")
    if definition.bridge.name:
        bridge.set("name", definition.bridge.name)
    bridge.set("stp", definition.bridge.stp)

    if definition.domain:
        domain = ET.SubElement(network, "domain", name=definition.domain.name)
        # libvirt wants yes|no here, not a boolean
        if definition.domain.local_only:
            domain.set("localOnly", "yes")

    if definition.dns:
        dns = ET.SubElement(network, "dns")
        for forwarder in definition.dns.forwarders:
            elem = ET.SubElement(dns, "forwarder")
            if forwarder.address:
                elem.set("addr", forwarder.address)
            if forwarder.domain:
                elem.set("domain", forwarder.domain)

    for block in definition.ips:
        ip = ET.SubElement(
            network,
            "ip",
            family=block.family.value,
            address=block.address,
            prefix=str(block.prefix),
        )
        if block.dhcp_range:
            dhcp = ET.SubElement(ip, "dhcp")
            ET.SubElement(dhcp, "range", start=block.dhcp_range.start, end=block.dhcp_range.end)

    ET.indent(network, space="  ")
    return ET.tostring(network, encoding="unicode")


def decode(text: str) -> NetworkDefinition:
    """Parse libvirt network XML (as returned by ``XMLDesc``)."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise InvalidDefinitionError(f"Invalid network XML: {e}")
    if root.tag != "network":
        raise InvalidDefinitionError(f"Expected <network> document, got <{root.tag}>")

    definition = NetworkDefinition(
        name=root.findtext("name", default=""),
        uuid=root.findtext("uuid"),
    )

    bridge = root.find("bridge")
    if bridge is not None:
        definition.bridge = BridgeConfig(
            name=bridge.get("name", ""),
            stp=bridge.get("stp", "on"),
        )

    forward = root.find("forward")
    if forward is not None:
        mode = forward.get("mode", "nat")
        definition.forward = ForwardConfig(mode=mode, nat=mode == "nat")

    domain = root.find("domain")
    if domain is not None:
        definition.domain = DomainBlock(
            name=domain.get("name", ""),
            local_only=domain.get("localOnly", "no").lower() == "yes",
        )

    dns = root.find("dns")
    if dns is not None:
        definition.dns = DnsBlock(
            forwarders=[
                DnsForwarderDef(address=f.get("addr", ""), domain=f.get("domain", ""))
                for f in dns.findall("forwarder")
            ]
        )

    for ip in root.findall("ip"):
        definition.ips.append(_decode_ip(ip))

    return definition


def _decode_ip(ip: ET.Element) -> IpBlock:
    address = ip.get("address", "")
    try:
        parsed = ipaddress.ip_address(address)
    except ValueError:
        raise InvalidAddressError(f"Error parsing IP '{address}'")

    family = ip.get("family")
    if family:
        try:
            family = AddressFamily(family.lower())
        except ValueError:
            raise InvalidDefinitionError(f"Unknown address family '{family}' for IP '{address}'")
    else:
        family = AddressFamily.IPV4 if parsed.version == 4 else AddressFamily.IPV6

    block = IpBlock(address=address, prefix=_prefix_of(ip, parsed.max_prefixlen), family=family)

    dhcp_range = ip.find("dhcp/range")
    if dhcp_range is not None:
        block.dhcp_range = DhcpRange(start=dhcp_range.get("start", ""), end=dhcp_range.get("end", ""))
    return block


def _prefix_of(ip: ET.Element, max_prefixlen: int) -> int:
    prefix: Optional[str] = ip.get("prefix")
    netmask = ip.get("netmask")
    try:
        if prefix is not None:
            value = int(prefix)
            if not 0 <= value <= max_prefixlen:
                raise ValueError(f"prefix out of range 0-{max_prefixlen}")
            return value
        if netmask:
            return ipaddress.ip_network(f"0.0.0.0/{netmask}").prefixlen
    except ValueError as e:
        raise InvalidAddressError(f"Error parsing prefix of IP '{ip.get('address')}': {e}")
    return max_prefixlen
