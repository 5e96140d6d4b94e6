"""Parsing helpers for booleans, addresses, ports and byte-encoded values."""

from __future__ import annotations

import ipaddress
import re
import socket

_DIGITS = re.compile(r"[0-9]+")

_TRUE_WORDS = {"1", "t", "T", "true", "TRUE", "True"}
_FALSE_WORDS = {"0", "f", "F", "false", "FALSE", "False"}


def parse_bool(value: str) -> bool:
    """Parse a boolean, also accepting yes/y/on and no/n/off in any case."""
    if value in _TRUE_WORDS:
        return True
    if value in _FALSE_WORDS:
        return False
    folded = value.casefold()
    if folded in ("yes", "y", "on"):
        return True
    if folded in ("no", "n", "off"):
        return False
    raise ValueError("failed to parse")


def _ip_literal(addr: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    if "%" in addr:
        return None
    try:
        return ipaddress.ip_address(addr)
    except ValueError:
        return None


def parse_ip(addr: str) -> ipaddress.IPv4Address | ipaddress.IPv6Address:
    """Parse an IP literal, falling back to a host name lookup."""
    ip = _ip_literal(addr)
    if ip is not None:
        return ip
    if not addr:
        raise ValueError("no such host")
    try:
        infos = socket.getaddrinfo(addr, None)
    except (OSError, UnicodeError) as exc:
        raise ValueError(f"failed to look up host '{addr}': {exc}") from exc
    if not infos:
        raise ValueError(f"no addresses for host '{addr}'")
    found = infos[0][4][0]
    return ipaddress.ip_address(found.split("%", 1)[0])


def parse_port(port: str) -> int:
    """Parse a decimal port number in the range 0..65535."""
    if not _DIGITS.fullmatch(port) or int(port) > 0xFFFF:
        raise ValueError(f"invalid port: '{port}'")
    return int(port)


def split_host_port(hostport: str) -> tuple[str, str]:
    """Split "host:port" or "[host]:port" into host and port."""
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise ValueError(f"missing ']' in address '{hostport}'")
        rest = hostport[end + 1:]
        if not rest:
            raise ValueError(f"missing port in address '{hostport}'")
        if rest[0] != ":":
            raise ValueError(f"missing port in address '{hostport}'")
        if ":" in rest[1:]:
            raise ValueError(f"too many colons in address '{hostport}'")
        host, port = hostport[1:end], rest[1:]
        if "[" in host or "]" in host:
            raise ValueError(f"unexpected bracket in address '{hostport}'")
    else:
        index = hostport.rfind(":")
        if index < 0:
            raise ValueError(f"missing port in address '{hostport}'")
        host, port = hostport[:index], hostport[index + 1:]
        if ":" in host:
            raise ValueError(f"too many colons in address '{hostport}'")
        if "[" in host or "]" in host:
            raise ValueError(f"unexpected bracket in address '{hostport}'")
    if "[" in port or "]" in port:
        raise ValueError(f"unexpected bracket in address '{hostport}'")
    return host, port


def parse_ip_port(value: str) -> tuple[str, str]:
    """Split and validate "ip:port", returning both parts as strings."""
    ip, port = split_host_port(value)
    parse_ip(ip)
    parse_port(port)
    return ip, port


def build_ip_from_bytes(data) -> str:
    """Join byte values as dotted decimal."""
    return ".".join(str(b) for b in data)


def build_ipv6_from_bytes(data) -> str:
    """Concatenate byte values as decimal numbers with no separator."""
    return "".join(str(b) for b in data)


def build_hex_from_bytes(data) -> str:
    """Concatenate byte values as unpadded lower-case hex."""
    return "".join(format(b, "x") for b in data)


def build_ipv6(value: str) -> str:
    """Insert colons after the first four characters and then every two."""
    if len(value) <= 4:
        return value
    head, rest = value[:4], value[4:]
    chunks = [rest[i:i + 2] for i in range(0, len(rest), 2)]
    return ":".join([head, *chunks])