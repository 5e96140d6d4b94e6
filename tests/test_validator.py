import socket
from unittest import mock

import pytest

from photonmgmt import validator as v


@pytest.mark.parametrize("text", ["1", "true", "Yes", "y", "ON", "0", "False", "NO", "n", "Off"])
def test_is_bool_accepts(text):
    assert v.is_bool(text) is True


@pytest.mark.parametrize("text", ["", "yEs", "2", "maybe"])
def test_is_bool_rejects(text):
    assert v.is_bool(text) is False


def test_bool_to_string():
    assert v.bool_to_string("TRUE") == "yes"
    assert v.bool_to_string("off") == "no"
    assert v.bool_to_string("maybe") == "n/a"


def test_is_empty_and_array_empty():
    assert v.is_empty("") is True
    assert v.is_empty(" ") is False
    assert v.is_array_empty([]) is True
    assert v.is_array_empty(["a"]) is False


def test_uint_widths():
    assert v.is_uint8("255") and not v.is_uint8("256")
    assert v.is_uint16("65535") and not v.is_uint16("65536")
    assert v.is_uint32("4294967295") and not v.is_uint32("4294967296")
    assert not v.is_uint32("-1")
    assert not v.is_uint32("")
    assert not v.is_uint32("+5")


def test_is_uint_or_max():
    assert v.is_uint_or_max("MAX")
    assert v.is_uint_or_max("12")
    assert not v.is_uint_or_max("maximum")


def test_is_int():
    assert v.is_int("-42") == -42
    assert v.is_int("+7") == 7
    with pytest.raises(ValueError):
        v.is_int("4.2")
    with pytest.raises(ValueError):
        v.is_int("9223372036854775808")


def test_is_port():
    assert v.is_port("0")
    assert v.is_port("65535")
    assert not v.is_port("65536")
    assert not v.is_port("http")


def test_is_host_with_lookup():
    infos = [(socket.AF_INET, socket.SOCK_STREAM, 6, "", ("10.0.0.9", 0))]
    with mock.patch("socket.getaddrinfo", return_value=infos):
        assert v.is_host("somehost") is True
    with mock.patch("socket.getaddrinfo", side_effect=socket.gaierror("nope")):
        assert v.is_host("somehost") is False
    assert v.is_host("") is False


def test_ip_validation():
    assert v.is_valid_ip("192.168.1.1")
    assert v.is_valid_ip("fe80::1")
    assert not v.is_valid_ip("192.168.1.256")
    assert not v.is_valid_ip("10.0.0.0/8")
    assert v.is_ip("10.0.0.0/8")
    assert v.is_ip("10.0.0.1")
    assert v.is_ip("2001:db8::/32")
    assert not v.is_ip("10.0.0.0/33")
    assert not v.is_ip("10.0.0.0/255.0.0.0")
    assert v.is_ips(["10.0.0.1", "::1"])
    assert not v.is_ips(["10.0.0.1", "bogus"])


def test_is_vsock_host():
    assert v.is_vsock_host("3:5208")
    assert not v.is_vsock_host("3")
    assert not v.is_vsock_host("x:5208")
    assert not v.is_vsock_host("3:70000")


def test_dhcp_predicates():
    assert v.is_dhcp_duid_type("link-layer-time")
    assert not v.is_dhcp_duid_type("mac")
    assert v.is_dhcpv4_client_identifier("duid-only")
    assert v.is_dhcpv4_send_option("12,string,myhost")
    assert not v.is_dhcpv4_send_option("300,string,myhost")
    assert not v.is_dhcpv4_send_option("12,string")
    assert not v.is_dhcpv4_send_option("12,text,myhost")
    assert v.is_dhcpv6_without_ra("solicit")
    assert v.is_dhcpv6_send_vendor_option("1234,12,string,x")
    assert not v.is_dhcpv6_send_vendor_option("1234,12,string")
    assert not v.is_dhcpv6_send_vendor_option("1234,999,string,x")
    assert v.is_dhcp("ipv4")
    assert v.is_link_local_addressing("ipv6")
    assert not v.is_dhcp("true")


@pytest.mark.parametrize(
    "mac", ["02:00:00:00:00:01", "02-00-00-00-00-01", "0200.0000.0001", "02:00:00:00:00:00:00:01"]
)
def test_is_not_mac_valid(mac):
    assert v.is_not_mac(mac) is False


@pytest.mark.parametrize("mac", ["", "02:00:00:00:00", "zz:00:00:00:00:01", "02:00-00:00:00:01"])
def test_is_not_mac_invalid(mac):
    assert v.is_not_mac(mac) is True


def test_is_scope():
    assert v.is_scope("link")
    assert v.is_scope("255")
    assert not v.is_scope("256")
    assert not v.is_scope("site")


def test_is_multicast_dns():
    assert v.is_multicast_dns("resolve")
    assert v.is_multicast_dns("yes")
    assert not v.is_multicast_dns("ipv4")


def test_bond_predicates():
    assert v.is_bond_mode("802.3ad")
    assert not v.is_bond_mode("round-robin")
    assert v.is_bond_transmit_hash_policy("balance-xor", "layer3+4")
    assert not v.is_bond_transmit_hash_policy("active-backup", "layer3+4")
    assert not v.is_bond_transmit_hash_policy("802.3ad", "layer4")
    assert v.is_bond_lacp_transmit_rate("fast")


def test_vlan_predicates():
    assert v.is_macvlan_mode("passthru")
    assert v.is_ipvlan_mode("l3s")
    assert v.is_ipvlan_flags("vepa")
    assert not v.is_ipvlan_mode("l4")
    assert v.is_vxlan_vni("16777215")
    assert not v.is_vxlan_vni("16777216")


def test_wireguard():
    assert v.is_wireguard_listen_port("auto")
    assert v.is_wireguard_listen_port("51820")
    assert not v.is_wireguard_listen_port("none")
    assert v.is_wireguard_peer_endpoint("192.0.2.1:51820")
    assert v.is_wireguard_peer_endpoint("[2001:db8::1]:51820")
    assert not v.is_wireguard_peer_endpoint("192.0.2.1")
    assert not v.is_wireguard_peer_endpoint("192.0.2.1:70000")


def test_link_policies_and_names():
    assert v.is_link_mac_address_policy("random")
    assert v.is_link_name_policy("keep")
    assert v.is_link_alternative_names_policy("mac")
    assert not v.is_link_alternative_names_policy("kernel")
    assert v.is_link_name("wan0")
    assert not v.is_link_name("eth0")
    assert not v.is_link_name("ens33")
    assert not v.is_link_name("lo")
    assert v.is_link_activation_policy("always-down")


def test_link_numbers():
    assert v.is_link_queue("4096") and not v.is_link_queue("4097")
    assert v.is_link_queue_length("4294967294") and not v.is_link_queue_length("4294967295")
    assert v.is_link_mtu("9K") and v.is_link_mtu("1500") and not v.is_link_mtu("big")
    assert v.is_link_bits_per_second("10G") and not v.is_link_bits_per_second("-1")
    assert v.is_link_gso("65536") and not v.is_link_gso("65537") and v.is_link_gso("64K")
    assert v.is_link_group("2147483647") and not v.is_link_group("2147483648")


def test_link_settings():
    assert v.is_link_duplex("half")
    assert v.is_link_wake_on_lan("magic")
    assert v.is_link_port("fibre")
    assert v.is_link_advertise("1000baset-full")
    assert not v.is_link_advertise("1000baset")
    assert v.is_address_family("both")


def test_link_exists():
    with mock.patch("socket.if_nametoindex", return_value=2):
        assert v.link_exists("wan0") is True
    with mock.patch("socket.if_nametoindex", side_effect=OSError("no device")):
        assert v.link_exists("wan0") is False


def test_routing_predicates():
    assert v.is_routing_type_of_service("255") and not v.is_routing_type_of_service("256")
    assert v.is_routing_firewall_mark("1/2")
    assert not v.is_routing_firewall_mark("1/2/3")
    assert not v.is_routing_firewall_mark("1/x")
    assert v.is_routing_port("100-200")
    assert not v.is_routing_port("200-100")
    assert not v.is_routing_port("1-2-3")
    assert v.is_routing_ip_protocol("17")
    assert v.is_routing_user("1000-2000")
    assert not v.is_routing_user("2000-1000")
    assert v.is_routing_suppress_prefix_length("128")
    assert not v.is_routing_suppress_prefix_length("129")
    assert v.is_routing_type("prohibit")
    assert v.is_router_preference("medium")


def test_nft_and_proc_predicates():
    assert v.is_nft_family("netdev")
    assert not v.is_nft_family("arp")
    assert v.is_nft_chain_hook("ingress")
    assert v.is_nft_chain_type("nat")
    assert v.is_nft_chain_policy("drop")
    assert not v.is_nft_chain_policy("reject")
    assert v.is_proc_sys_net_path("core")


def test_sriov_predicates():
    assert v.is_sriov_virtual_function("2147483646")
    assert not v.is_sriov_virtual_function("2147483647")
    assert v.is_sriov_vlan_id("4095") and not v.is_sriov_vlan_id("0")
    assert not v.is_sriov_vlan_id("4096")
    assert v.is_sriov_quality_of_service("1") and not v.is_sriov_quality_of_service("0")
    assert v.is_sriov_vlan_protocol("802.1ad")
    assert v.is_sriov_link_state("auto") and v.is_sriov_link_state("no")
    assert not v.is_sriov_link_state("up")


def test_package_names():
    assert v.is_valid_pkg_name("vim-enhanced")
    assert v.is_valid_pkg_name("libstdc++")
    assert v.is_valid_pkg_name("py*")
    assert not v.is_valid_pkg_name("")
    assert not v.is_valid_pkg_name("bad name")
    assert v.is_valid_pkg_name_list("vim,curl")
    assert not v.is_valid_pkg_name_list("vim,,curl")
    assert not v.is_valid_pkg_name_list("vim;curl")