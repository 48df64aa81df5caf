#!/usr/bin/env python3
"""Tests for libvirt network XML encoding and decoding."""

import xml.etree.ElementTree as ET

import pytest

from virtnet import network_xml
from virtnet.builder import build
from virtnet.definition import AddressFamily
from virtnet.errors import InvalidAddressError, InvalidDefinitionError
from virtnet.models import DnsForwarder, NetworkSpec

LIBVIRT_DEFAULT_XML = """
<network>
  <name>default</name>
  <uuid>9a05da11-e96b-47f3-8253-a3a482e445f5</uuid>
  <forward mode='nat'>
    <nat>
      <port start='1024' end='65535'/>
    </nat>
  </forward>
  <bridge name='virbr0' stp='on' delay='0'/>
  <mac address='52:54:00:0a:cd:21'/>
  <ip address='192.168.122.1' netmask='255.255.255.0'>
    <dhcp>
      <range start='192.168.122.2' end='192.168.122.254'/>
    </dhcp>
  </ip>
</network>
"""


class TestEncode:
    """Test XML generation."""

    def test_nat_network_document(self):
        spec = NetworkSpec(
            name="k8snet",
            domain="k8s.local",
            dns_local_only=True,
            addresses=["10.17.3.0/24"],
            dns_forwarders=[DnsForwarder(address="8.8.8.8", domain="example.com")],
        )
        root = ET.fromstring(network_xml.encode(build(spec)))

        assert root.tag == "network"
        assert root.findtext("name") == "k8snet"
        assert root.find("forward").get("mode") == "nat"
        assert root.find("bridge").get("stp") == "on"
        assert root.find("bridge").get("name") is None
        assert root.find("domain").get("name") == "k8s.local"
        assert root.find("domain").get("localOnly") == "yes"

        forwarder = root.find("dns/forwarder")
        assert forwarder.get("addr") == "8.8.8.8"
        assert forwarder.get("domain") == "example.com"

        ip = root.find("ip")
        assert ip.get("address") == "10.17.3.1"
        assert ip.get("prefix") == "24"
        assert ip.get("family") == "ipv4"
        dhcp_range = ip.find("dhcp/range")
        assert dhcp_range.get("start") == "10.17.3.2"
        assert dhcp_range.get("end") == "10.17.3.254"

    def test_local_only_omitted_when_false(self):
        root = ET.fromstring(network_xml.encode(build(NetworkSpec(name="n", domain="d.local"))))
        assert root.find("domain").get("localOnly") is None

    def test_isolated_and_bridge_have_no_forward(self):
        isolated = ET.fromstring(
            network_xml.encode(build(NetworkSpec(name="i", mode="isolated", addresses=["10.0.0.0/24"])))
        )
        bridged = ET.fromstring(
            network_xml.encode(build(NetworkSpec(name="b", mode="bridge", bridge="br0")))
        )

        assert isolated.find("forward") is None
        assert isolated.find("ip/dhcp") is not None
        assert bridged.find("forward") is None
        assert bridged.find("bridge").get("name") == "br0"

    def test_dhcp_disabled_has_no_dhcp_element(self):
        spec = NetworkSpec(name="n", addresses=["10.0.0.0/24"], dhcp_enabled=False)
        root = ET.fromstring(network_xml.encode(build(spec)))

        assert root.find("ip") is not None
        assert root.find("ip/dhcp") is None


class TestDecode:
    """Test parsing XML reported by libvirt."""

    def test_libvirt_default_network(self):
        definition = network_xml.decode(LIBVIRT_DEFAULT_XML)

        assert definition.name == "default"
        assert definition.uuid == "9a05da11-e96b-47f3-8253-a3a482e445f5"
        assert definition.bridge.name == "virbr0"
        assert definition.forward.mode == "nat"
        assert definition.forward.nat is True
        assert definition.domain is None
        assert definition.dns is None

        ip = definition.ips[0]
        assert ip.address == "192.168.122.1"
        assert ip.prefix == 24
        assert ip.family == AddressFamily.IPV4
        assert ip.dhcp_range.start == "192.168.122.2"

    def test_roundtrip_preserves_definition(self):
        spec = NetworkSpec(
            name="dual",
            mode="route",
            domain="dual.local",
            dns_local_only=True,
            addresses=["10.9.0.0/24", "fd00:9::/64"],
            dns_forwarders=[DnsForwarder(address="1.1.1.1"), DnsForwarder(domain="corp")],
        )
        definition = build(spec)

        assert network_xml.decode(network_xml.encode(definition)) == definition

    def test_ipv6_without_family_attribute(self):
        definition = network_xml.decode(
            "<network><name>v6</name><ip address='fd00::1' prefix='64'/></network>"
        )
        assert definition.ips[0].family == AddressFamily.IPV6
        assert definition.ips[0].prefix == 64

    def test_local_only_is_case_insensitive(self):
        definition = network_xml.decode(
            "<network><name>n</name><domain name='x' localOnly='YES'/></network>"
        )
        assert definition.domain.local_only is True

    def test_rejects_non_network_document(self):
        with pytest.raises(InvalidDefinitionError):
            network_xml.decode("<domain type='kvm'><name>vm</name></domain>")

    def test_rejects_broken_xml(self):
        with pytest.raises(InvalidDefinitionError):
            network_xml.decode("<network><name>")

    @pytest.mark.parametrize(
        "attrs",
        ["prefix='abc'", "prefix='33'", "netmask='255.0.255.0'", "netmask='bogus'"],
    )
    def test_rejects_malformed_prefix(self, attrs):
        with pytest.raises(InvalidAddressError, match="Error parsing prefix"):
            network_xml.decode(f"<network><name>n</name><ip address='10.0.0.1' {attrs}/></network>")

    def test_rejects_unknown_family(self):
        with pytest.raises(InvalidDefinitionError, match="Unknown address family"):
            network_xml.decode(
                "<network><name>n</name><ip family='ipx' address='10.0.0.1' prefix='24'/></network>"
            )
