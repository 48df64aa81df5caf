"""
Address planning for virtual networks.

Turns a user CIDR block into the host interface address libvirt listens on
and the DHCP range it serves. For ``192.168.121.0/24`` the host gets
``192.168.121.1`` and DHCP hands out ``192.168.121.2`` - ``192.168.121.254``.
"""

import ipaddress
from typing import Union

from virtnet.definition import AddressFamily, DhcpRange, IpBlock
from virtnet.errors import InvalidAddressError, RangeTooSmallError

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

# below this the host interface and a DHCP range no longer fit
MIN_USABLE_ADDRESSES = 4


def parse_cidr(cidr: str) -> IPNetwork:
    """Parse a CIDR block, accepting host bits (``10.0.0.5/24`` -> ``10.0.0.0/24``)."""
    if not isinstance(cidr, str) or "/" not in cidr:
        raise InvalidAddressError(f"Error parsing addresses definition '{cidr}': not a CIDR block")
    try:
        return ipaddress.ip_network(cidr.strip(), strict=False)
    except ValueError as e:
        raise InvalidAddressError(f"Error parsing addresses definition '{cidr}': {e}")


def usable_addresses(network: IPNetwork) -> int:
    """Addresses in the block minus the network and broadcast addresses."""
    return 2 ** (network.max_prefixlen - network.prefixlen) - 2


def address_family(network: IPNetwork) -> AddressFamily:
    return AddressFamily.IPV4 if network.max_prefixlen == 32 else AddressFamily.IPV6


def plan(cidr: str, dhcp_enabled: bool = True) -> IpBlock:
    """Plan the interface address and DHCP range for one CIDR block.

    Args:
        cidr: Subnet in CIDR notation (IPv4 or IPv6)
        dhcp_enabled: When False no range is produced at all, so a
            previously served range is cleared rather than kept

    Raises:
        InvalidAddressError: ``cidr`` is not a valid block
        RangeTooSmallError: fewer than 4 usable addresses
    """
    network = parse_cidr(cidr)
    family = address_family(network)

    available = usable_addresses(network)
    if available < MIN_USABLE_ADDRESSES:
        raise RangeTooSmallError(
            f"Netmask seems to be too strict: only {max(available, 0)} IPs available "
            f"({family.value})"
        )

    first = network.network_address
    last = network.broadcast_address

    block = IpBlock(address=str(first + 1), prefix=network.prefixlen, family=family)
    if dhcp_enabled:
        block.dhcp_range = DhcpRange(start=str(first + 2), end=str(last - 1))
    return block


def network_cidr(address: str, prefix: int) -> str:
    """Mask an interface address back down to the CIDR block it belongs to.

    Inverse of :func:`plan`: ``network_cidr("10.0.0.1", 24) == "10.0.0.0/24"``.
    """
    try:
        interface = ipaddress.ip_interface(f"{address}/{prefix}")
    except ValueError as e:
        raise InvalidAddressError(f"Error parsing IP '{address}': {e}")
    return str(interface.network)


def normalize_ip(address: str) -> str:
    """Validate an IP literal and return its canonical text form."""
    try:
        return str(ipaddress.ip_address(address.strip()))
    except (ValueError, AttributeError):
        raise InvalidAddressError(f"Could not parse address '{address}'")
