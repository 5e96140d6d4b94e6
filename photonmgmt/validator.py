"""Validation predicates for configuration values."""

from __future__ import annotations

import ipaddress
import re
import socket

from photonmgmt.parser import split_host_port

_DIGITS = re.compile(r"[0-9]+")
_SIGNED_DIGITS = re.compile(r"[+-]?[0-9]+")
_HEX2 = re.compile(r"[0-9A-Fa-f]{2}")
_HEX4 = re.compile(r"[0-9A-Fa-f]{4}")

_TRUE_WORDS = {"1", "t", "T", "true", "TRUE", "True", "YES", "yes", "Yes", "y", "ON", "on", "On"}
_FALSE_WORDS = {"0", "f", "F", "false", "FALSE", "False", "NO", "no", "No", "n", "OFF", "off", "Off"}

_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


def _parse_uint(value: str, bits: int) -> int | None:
    if not _DIGITS.fullmatch(value):
        return None
    number = int(value)
    if number >= 1 << bits:
        return None
    return number


def _ip_literal(value: str):
    if "%" in value:
        return None
    try:
        return ipaddress.ip_address(value)
    except ValueError:
        return None


def _has_size_suffix(value: str) -> bool:
    return value.endswith(("K", "M", "G"))


def is_bool(value: str) -> bool:
    return value in _TRUE_WORDS or value in _FALSE_WORDS


def bool_to_string(value: str) -> str:
    """Map a boolean word to "yes" or "no", anything else to "n/a"."""
    if value in _TRUE_WORDS:
        return "yes"
    if value in _FALSE_WORDS:
        return "no"
    return "n/a"


def is_array_empty(items) -> bool:
    return len(items) == 0


def is_empty(value: str) -> bool:
    return len(value) == 0


def is_uint_or_max(value: str) -> bool:
    return value.casefold() == "max" or _parse_uint(value, 32) is not None


def is_uint32(value: str) -> bool:
    return _parse_uint(value, 32) is not None


def is_uint16(value: str) -> bool:
    return _parse_uint(value, 16) is not None


def is_uint8(value: str) -> bool:
    return _parse_uint(value, 8) is not None


def is_int(value: str) -> int:
    """Return the signed decimal integer in value, raising ValueError if it is not one."""
    if not _SIGNED_DIGITS.fullmatch(value):
        raise ValueError(f"invalid integer: '{value}'")
    number = int(value)
    if not _INT64_MIN <= number <= _INT64_MAX:
        raise ValueError(f"integer out of range: '{value}'")
    return number


def is_port(port: str) -> bool:
    return _parse_uint(port, 16) is not None


def is_host(host: str) -> bool:
    if not host:
        return False
    try:
        return bool(socket.getaddrinfo(host, None))
    except (OSError, UnicodeError):
        return False


def is_valid_ip(ip: str) -> bool:
    return _ip_literal(ip) is not None


def is_ip(value: str) -> bool:
    """Accept a plain IP address or one in CIDR notation."""
    address, slash, prefix = value.partition("/")
    ip = _ip_literal(address)
    if ip is None:
        return False
    if not slash:
        return True
    return bool(_DIGITS.fullmatch(prefix)) and int(prefix) <= ip.max_prefixlen


def is_ips(items) -> bool:
    return all(is_valid_ip(ip) for ip in items)


def is_vsock_host(host: str) -> bool:
    parts = host.split(":")
    if len(parts) < 2:
        return False
    return is_uint32(parts[0]) and is_port(parts[1])


def is_dhcp_duid_type(value: str) -> bool:
    return value in ("vendor", "uuid", "link-layer-time", "link-layer")


def is_dhcp_option_type(value: str) -> bool:
    return value in ("uint8", "uint16", "uint32", "ipv4address", "ipv6address", "string")


def is_dhcpv4_client_identifier(value: str) -> bool:
    return value in ("mac", "duid", "duid-only")


def is_dhcpv4_send_option(value: str) -> bool:
    parts = value.split(",")
    if len(parts) < 3:
        return False
    return is_uint8(parts[0]) and is_dhcp_option_type(parts[1])


def is_dhcpv6_without_ra(value: str) -> bool:
    return value in ("no", "solicit", "information-request")


def is_dhcpv6_send_vendor_option(value: str) -> bool:
    parts = value.split(",")
    if len(parts) < 4:
        return False
    return is_uint32(parts[0]) and is_uint8(parts[1]) and is_dhcp_option_type(parts[2])


def _is_mac(mac: str) -> bool:
    for sep in (":", "-"):
        groups = mac.split(sep)
        if len(groups) in (6, 8, 20) and all(_HEX2.fullmatch(g) for g in groups):
            return True
    groups = mac.split(".")
    return len(groups) in (3, 4, 10) and all(_HEX4.fullmatch(g) for g in groups)


def is_not_mac(mac: str) -> bool:
    return not _is_mac(mac)


def is_scope(value: str) -> bool:
    if value in ("global", "link", "host"):
        return True
    scope = _parse_uint(value, 32)
    return scope is not None and scope < 256


def is_bool_with_ip(value: str) -> bool:
    return value in ("yes", "no", "ipv4", "ipv6")


def is_dhcp(value: str) -> bool:
    return is_bool_with_ip(value)


def is_link_local_addressing(value: str) -> bool:
    return is_bool_with_ip(value)


def is_multicast_dns(value: str) -> bool:
    return is_bool(value) or value == "resolve"


def is_bond_mode(mode: str) -> bool:
    return mode in (
        "balance-rr", "active-backup", "balance-xor", "broadcast",
        "802.3ad", "balance-tlb", "balance-alb",
    )


def is_bond_transmit_hash_policy(mode: str, policy: str) -> bool:
    return policy in ("layer2", "layer3+4", "layer2+3", "encap2+3", "encap3+4") and mode in (
        "balance-xor", "802.3ad", "balance-tlb",
    )


def is_bond_lacp_transmit_rate(value: str) -> bool:
    return value in ("slow", "fast")


def is_macvlan_mode(mode: str) -> bool:
    return mode in ("private", "vepa", "bridge", "passthru", "source")


def is_ipvlan_mode(mode: str) -> bool:
    return mode in ("l2", "l3", "l3s")


def is_ipvlan_flags(flags: str) -> bool:
    return flags in ("bridge", "private", "vepa")


def is_vxlan_vni(value: str) -> bool:
    vni = _parse_uint(value, 32)
    return vni is not None and vni <= 16777215


def is_wireguard_listen_port(port: str) -> bool:
    return port == "auto" or is_port(port)


def is_wireguard_peer_endpoint(endpoint: str) -> bool:
    try:
        host, port = split_host_port(endpoint)
    except ValueError:
        return False
    if not is_valid_ip(host) and not is_host(host):
        return False
    return is_port(port)


def is_link_mac_address_policy(policy: str) -> bool:
    return policy in ("persistent", "random", "none")


def is_link_name_policy(policy: str) -> bool:
    return policy in ("kernel", "database", "onboard", "slot", "path", "mac", "keep")


def is_link_name(name: str) -> bool:
    return not name.startswith(("eth", "ens", "lo"))


def is_link_alternative_names_policy(policy: str) -> bool:
    return policy in ("database", "onboard", "slot", "path", "mac")


def is_link_queue(value: str) -> bool:
    queue = _parse_uint(value, 32)
    return queue is not None and queue <= 4096


def is_link_queue_length(value: str) -> bool:
    length = _parse_uint(value, 32)
    return length is not None and length <= 4294967294


def is_link_mtu(value: str) -> bool:
    return _has_size_suffix(value) or is_uint32(value)


def is_link_bits_per_second(value: str) -> bool:
    return _has_size_suffix(value) or is_uint32(value)


def is_link_duplex(value: str) -> bool:
    return value in ("full", "half")


def is_link_wake_on_lan(value: str) -> bool:
    return value in (
        "off", "phy", "unicast", "multicast", "broadcast", "arp", "magic", "secureon",
    )


def is_link_port(value: str) -> bool:
    return value in ("tp", "aui", "bnc", "mii", "fibre")


def is_link_advertise(value: str) -> bool:
    return value in (
        "10baset-half", "10baset-full", "100baset-half", "100baset-full",
        "1000baset-half", "1000baset-full", "10000baset-full", "2500basex-full",
        "1000basekx-full", "10000basekx4-full", "10000basekr-full", "10000baser-fec",
        "20000basemld2-full", "20000basekr2-full",
    )


def is_link_gso(value: str) -> bool:
    if _has_size_suffix(value):
        return True
    size = _parse_uint(value, 32)
    return size is not None and size <= 65536


def is_link_group(value: str) -> bool:
    group = _parse_uint(value, 32)
    return group is not None and group <= 2147483647


def is_address_family(value: str) -> bool:
    return value in ("ipv4", "ipv6", "both", "any")


def is_link_activation_policy(policy: str) -> bool:
    return policy in ("up", "always-up", "down", "always-down", "manual", "bound")


def link_exists(link: str) -> bool:
    try:
        socket.if_nametoindex(link)
    except (OSError, ValueError):
        return False
    return True


def is_routing_type_of_service(value: str) -> bool:
    return is_uint8(value)


def is_routing_firewall_mark(value: str) -> bool:
    parts = value.split("/")
    if len(parts) > 2:
        return False
    return all(is_uint32(part) for part in parts)


def is_routing_port(value: str) -> bool:
    parts = value.split("-")
    if len(parts) > 2:
        return False
    if not all(is_port(part) for part in parts):
        return False
    # The range bounds are compared as text.
    return not (len(parts) == 2 and parts[0] > parts[1])


def is_routing_ip_protocol(value: str) -> bool:
    return value in ("tcp", "udp", "sctp", "6", "17")


def is_routing_user(value: str) -> bool:
    parts = value.split("-")
    if len(parts) > 2:
        return False
    if not all(is_uint32(part) for part in parts):
        return False
    return not (len(parts) == 2 and parts[0] > parts[1])


def is_routing_suppress_prefix_length(value: str) -> bool:
    length = _parse_uint(value, 8)
    return length is not None and length <= 128


def is_routing_type(value: str) -> bool:
    return value in ("blackhole", "unreachable", "prohibit")


def is_router_preference(value: str) -> bool:
    return value in ("high", "low", "medium", "normal", "default")


def is_nft_family(value: str) -> bool:
    return value in ("inet", "ipv4", "ipv6", "netdev", "bridge")


def is_nft_chain_hook(value: str) -> bool:
    return value in ("prerouting", "postrouting", "ingress", "input", "forward", "output")


def is_nft_chain_type(value: str) -> bool:
    return value in ("filter", "route", "nat")


def is_nft_chain_policy(value: str) -> bool:
    return value in ("drop", "accept")


def is_proc_sys_net_path(value: str) -> bool:
    return value in ("core", "ipv4", "ipv6")


def is_sriov_virtual_function(value: str) -> bool:
    vf = _parse_uint(value, 32)
    return vf is not None and vf <= 2147483646


def is_sriov_vlan_id(value: str) -> bool:
    vlan = _parse_uint(value, 32)
    return vlan is not None and 1 <= vlan <= 4095


def is_sriov_quality_of_service(value: str) -> bool:
    qos = _parse_uint(value, 32)
    return qos is not None and 1 <= qos <= 4294967294


def is_sriov_vlan_protocol(value: str) -> bool:
    return value in ("802.1Q", "802.1ad")


def is_sriov_link_state(value: str) -> bool:
    return value == "auto" or is_bool(value)


_PKG_EXTRA = set("-._+*?")


def _is_pkg_char(c: str) -> bool:
    return ("A" <= c <= "Z") or ("a" <= c <= "z") or ("0" <= c <= "9") or c in _PKG_EXTRA


def is_valid_pkg_name(name: str) -> bool:
    """Accept package names made of letters, digits, -._+ and the globs * and ?."""
    if is_empty(name):
        return False
    return all(_is_pkg_char(c) for c in name)


def is_valid_pkg_name_list(names: str) -> bool:
    """Accept a comma-separated list of package names."""
    return all(is_valid_pkg_name(name) for name in names.split(","))