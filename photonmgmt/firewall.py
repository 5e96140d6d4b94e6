"""nftables tables and chains, managed through the nft command line tool."""

from __future__ import annotations

import json
import logging
import os
import re
import subprocess
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Callable

from photonmgmt.system import exec_and_capture
from photonmgmt.validator import (
    is_empty,
    is_nft_chain_hook,
    is_nft_chain_policy,
    is_nft_chain_type,
    is_nft_family,
)
from photonmgmt.web import Reply, Request, Router, json_error, json_response

logger = logging.getLogger("photonmgmt")

NFT_FILE_PATH = "/etc/nftables-pmd-nextgen.conf"

HOOK_PRE_ROUTING = 0
HOOK_LOCAL_IN = 1
HOOK_FORWARD = 2
HOOK_LOCAL_OUT = 3
HOOK_POST_ROUTING = 4
HOOK_NETDEV_INGRESS = 0

POLICY_DROP = 0
POLICY_ACCEPT = 1

_INT64 = re.compile(r"[+-]?[0-9]+")
_HANDLED = (ValueError, LookupError, OSError, RuntimeError)

Runner = Callable[..., str]


class Family(IntEnum):
    """Netfilter protocol families."""

    INET = 1
    IPV4 = 2
    ARP = 3
    NETDEV = 5
    BRIDGE = 7
    IPV6 = 10


_FAMILIES = {
    "inet": Family.INET,
    "ipv4": Family.IPV4,
    "ipv6": Family.IPV6,
    "arp": Family.ARP,
    "netdev": Family.NETDEV,
    "bridge": Family.BRIDGE,
}
_FAMILY_NAMES = {family: name for name, family in _FAMILIES.items()}

_NFT_KEYWORDS = {
    Family.INET: "inet",
    Family.IPV4: "ip",
    Family.IPV6: "ip6",
    Family.ARP: "arp",
    Family.NETDEV: "netdev",
    Family.BRIDGE: "bridge",
}
_FROM_KEYWORD = {keyword: family for family, keyword in _NFT_KEYWORDS.items()}

_HOOKS = {
    "prerouting": HOOK_PRE_ROUTING,
    "postrouting": HOOK_POST_ROUTING,
    "input": HOOK_LOCAL_IN,
    "output": HOOK_LOCAL_OUT,
    "forward": HOOK_FORWARD,
    "ingress": HOOK_NETDEV_INGRESS,
}

_POLICIES = {"drop": POLICY_DROP, "accept": POLICY_ACCEPT}


def convert_to_unix_family(family: str) -> Family | None:
    """Return the protocol family for a name, or None when it is unknown."""
    return _FAMILIES.get(family)


def convert_to_string_family(family: int | None) -> str:
    """Return the name of a protocol family, or "" when it is unknown."""
    try:
        return _FAMILY_NAMES.get(Family(family), "")
    except (ValueError, TypeError):
        return ""


def convert_to_unix_hook(hook: str) -> int | None:
    """Return the hook number for a hook name, or None when it is unknown."""
    return _HOOKS.get(hook)


def convert_to_unix_policy(policy: str) -> int:
    """Return the verdict for a chain policy; unknown names give drop."""
    return _POLICIES.get(policy, POLICY_DROP)


def create_table_map_key(name: str, family: int | None) -> str:
    return f"{name}_{convert_to_string_family(family)}"


def create_chain_map_key(table: str, chain: str, family: int | None) -> str:
    return f"{table}_{chain}_{convert_to_string_family(family)}"


def _atoi(value: str) -> int:
    if not _INT64.fullmatch(value):
        raise ValueError(f"invalid syntax: '{value}'")
    number = int(value)
    if not -(1 << 63) <= number < (1 << 63):
        raise ValueError(f"value out of range: '{value}'")
    return number


def _string_fields(data: Any, names: tuple[str, ...]) -> dict[str, str]:
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    values: dict[str, str] = {}
    for key, item in data.items():
        lowered = key.lower()
        if lowered not in names or item is None:
            continue
        if not isinstance(item, str):
            raise ValueError(f"field '{key}' must be a string")
        values[lowered] = item
    return values


@dataclass
class Table:
    name: str = ""
    family: str = ""


@dataclass
class Chain:
    name: str = ""
    family: str = ""
    table: str = ""
    hook: str = ""
    priority: str = ""
    type: str = ""
    policy: str = ""


@dataclass
class Nft:
    """A firewall request; runner(cmd, *args) runs a program and returns its output."""

    table: Table = field(default_factory=Table)
    chain: Chain = field(default_factory=Chain)
    command: list[str] = field(default_factory=list)
    runner: Runner = field(default=exec_and_capture, repr=False)

    @classmethod
    def from_json(cls, body: bytes | str, runner: Runner = exec_and_capture) -> Nft:
        """Build a request from a JSON object, matching field names without case."""
        data = json.loads(body)
        if not isinstance(data, dict):
            raise ValueError("request body is not a JSON object")
        nft = cls(runner=runner)
        for key, item in data.items():
            lowered = key.lower()
            if item is None:
                continue
            if lowered == "table":
                nft.table = Table(**_string_fields(item, ("name", "family")))
            elif lowered == "chain":
                nft.chain = Chain(
                    **_string_fields(
                        item, ("name", "family", "table", "hook", "priority", "type", "policy")
                    )
                )
            elif lowered == "command":
                if not isinstance(item, list) or not all(isinstance(x, str) for x in item):
                    raise ValueError("field 'Command' must be a list of strings")
                nft.command = list(item)
        return nft

    def _run(self, cmd: str, *args: str) -> str:
        try:
            return self.runner(cmd, *args)
        except subprocess.CalledProcessError as exc:
            raise RuntimeError(f"{exc.output or ''} ({exc})") from exc
        except OSError as exc:
            raise RuntimeError(str(exc)) from exc

    def _list(self, kind: str) -> list[dict[str, Any]]:
        output = self._run("nft", "-j", "list", kind + "s")
        try:
            document = json.loads(output) if output.strip() else {}
        except ValueError as exc:
            raise RuntimeError(f"failed to decode nft output: {exc}") from exc
        entries = document.get("nftables", []) if isinstance(document, dict) else []
        return [e[kind] for e in entries if isinstance(e, dict) and isinstance(e.get(kind), dict)]

    def _tables(self) -> dict[str, dict[str, Any]]:
        try:
            listed = self._list("table")
        except RuntimeError as exc:
            logger.error("Failed to acquire nft tables: %s", exc)
            raise
        tables = {}
        for entry in listed:
            family = _FROM_KEYWORD.get(entry.get("family", ""))
            table = {"Name": entry.get("name", ""), "Family": family, "Handle": entry.get("handle", 0)}
            tables[create_table_map_key(table["Name"], family)] = table
        return tables

    def _chains(self) -> dict[str, dict[str, Any]]:
        try:
            listed = self._list("chain")
        except RuntimeError as exc:
            logger.error("Failed to acquire nft chains: %s", exc)
            raise
        chains = {}
        for entry in listed:
            family = _FROM_KEYWORD.get(entry.get("family", ""))
            hook = entry.get("hook")
            policy = entry.get("policy")
            chain = {
                "Name": entry.get("name", ""),
                "Table": {"Name": entry.get("table", ""), "Family": family},
                "Hooknum": convert_to_unix_hook(hook) if hook else None,
                "Priority": entry.get("prio"),
                "Type": entry.get("type", ""),
                "Policy": convert_to_unix_policy(policy) if policy else None,
                "Handle": entry.get("handle", 0),
            }
            key = create_chain_map_key(chain["Table"]["Name"], chain["Name"], family)
            chains[key] = chain
        return chains

    def parse_table(self) -> dict[str, Any]:
        """Validate the table request, defaulting the family to ipv4."""
        if is_empty(self.table.name):
            logger.error("Failed to add nft table, Missing table name")
            raise ValueError("missing table name")
        if not is_empty(self.table.family):
            if not is_nft_family(self.table.family):
                logger.error("Failed to add nft table, Invalid family")
                raise ValueError("Invalid family")
        else:
            self.table.family = "ipv4"
        return {"Name": self.table.name, "Family": convert_to_unix_family(self.table.family)}

    def parse_chain(self) -> dict[str, Any]:
        """Validate the chain request, defaulting the family to ipv4."""
        chain = self.chain
        if is_empty(chain.name):
            logger.error("Failed to add nft chain, Missing chain name")
            raise ValueError("missing chain name")
        if is_empty(chain.table):
            logger.error("Failed to add nft chain, Missing table name")
            raise ValueError("missing table name")
        if not is_empty(chain.family):
            if not is_nft_family(chain.family):
                raise ValueError(f"invalid family: '{chain.family}'")
        else:
            chain.family = "ipv4"

        parsed: dict[str, Any] = {
            "Name": chain.name,
            "Table": None,
            "Hooknum": None,
            "Priority": None,
            "Type": "",
            "Policy": None,
        }
        if not is_empty(chain.hook):
            if not is_nft_chain_hook(chain.hook):
                raise ValueError(f"invalid hook: '{chain.hook}'")
            parsed["Hooknum"] = convert_to_unix_hook(chain.hook)
        if not is_empty(chain.type):
            if not is_nft_chain_type(chain.type):
                raise ValueError(f"invalid type: '{chain.type}'")
            parsed["Type"] = chain.type
        if not is_empty(chain.priority):
            try:
                parsed["Priority"] = _atoi(chain.priority)
            except ValueError:
                raise ValueError(f"invalid priority: '{chain.priority}'") from None
        if not is_empty(chain.policy):
            if not is_nft_chain_policy(chain.policy):
                raise ValueError(f"invalid policy: '{chain.policy}'")
            parsed["Policy"] = convert_to_unix_policy(chain.policy)
        return parsed

    def add_table(self) -> str:
        table = self.parse_table()
        self._run("nft", "add", "table", _NFT_KEYWORDS[table["Family"]], table["Name"])
        return "added"

    def remove_table(self) -> str:
        table = self.parse_table()
        self._run("nft", "delete", "table", _NFT_KEYWORDS[table["Family"]], table["Name"])
        return "removed"

    def show_table(self) -> dict[str, dict[str, Any]]:
        """Return all tables by key, or only the one named when name and family are given."""
        try:
            tables = self._tables()
        except RuntimeError as exc:
            raise RuntimeError(f"failed to get nft tables: {exc}") from exc
        if not is_empty(self.table.name) and not is_empty(self.table.family):
            key = create_table_map_key(self.table.name, convert_to_unix_family(self.table.family))
            if key not in tables:
                raise LookupError(f"Table not found='{self.table.name}'")
            return {self.table.name: tables[key]}
        return tables

    def _chain_body(self, parsed: dict[str, Any]) -> list[str]:
        if parsed["Hooknum"] is None and parsed["Policy"] is None:
            return []
        body = ["{"]
        if parsed["Hooknum"] is not None:
            priority = parsed["Priority"] if parsed["Priority"] is not None else 0
            body += [
                "type", parsed["Type"] or "filter",
                "hook", self.chain.hook,
                "priority", str(priority), ";",
            ]
        if parsed["Policy"] is not None:
            body += ["policy", self.chain.policy, ";"]
        return body + ["}"]

    def add_chain(self) -> str:
        parsed = self.parse_chain()
        try:
            tables = self._tables()
        except RuntimeError as exc:
            raise RuntimeError(f"failed to acquire nft tables: {exc}") from exc
        key = create_table_map_key(self.chain.table, convert_to_unix_family(self.chain.family))
        table = tables.get(key)
        if table is None:
            logger.error("Failed to add chain='%s', table_family not found='%s'", parsed["Name"], key)
            raise LookupError(f"table family not found='{key}'")
        parsed["Table"] = table
        self._run(
            "nft", "add", "chain", _NFT_KEYWORDS[table["Family"]], table["Name"], parsed["Name"],
            *self._chain_body(parsed),
        )
        return "added"

    def remove_chain(self) -> str:
        parsed = self.parse_chain()
        try:
            chains = self._chains()
        except RuntimeError as exc:
            raise RuntimeError(f"failed to acquire nft chains: {exc}") from exc
        key = create_chain_map_key(
            self.chain.table, self.chain.name, convert_to_unix_family(self.chain.family)
        )
        found = chains.get(key)
        if found is None:
            logger.error("Failed to delete chain, table_chain_family not found='%s'", key)
            raise LookupError(f"table chain family not found='{key}'")
        table = found["Table"]
        self._run("nft", "delete", "chain", _NFT_KEYWORDS[table["Family"]], table["Name"], parsed["Name"])
        return "removed"

    def show_chain(self) -> dict[str, dict[str, Any]]:
        """Return all chains by key, or only the one named when name, table and family are given."""
        try:
            chains = self._chains()
        except RuntimeError as exc:
            raise RuntimeError(f"failed to acquire nft chains: {exc}") from exc
        chain = self.chain
        if not is_empty(chain.name) and not is_empty(chain.table) and not is_empty(chain.family):
            key = create_chain_map_key(chain.table, chain.name, convert_to_unix_family(chain.family))
            if key not in chains:
                raise LookupError(f"chain not found='{chain.name}'")
            return {chain.name: chains[key]}
        return chains

    def save_nft(self, path: str = NFT_FILE_PATH) -> str:
        """Write the current ruleset to path."""
        try:
            ruleset = self._run("nft", "list", "ruleset")
        except RuntimeError as exc:
            logger.error("Failed to acquire command output=%s", exc)
            raise RuntimeError(f"Failed to acquire command output={exc}") from exc
        with open(path, "w", encoding="utf-8") as handle:
            handle.write(ruleset)
        os.chmod(path, 0o644)
        return "saved"

    def run_nft(self) -> str:
        """Run the first word of the command with the rest joined as one argument."""
        if not self.command:
            raise ValueError("missing command")
        cmd, self.command = self.command[0], self.command[1:]
        args = " ".join(self.command)
        try:
            return self._run(cmd, args)
        except RuntimeError as exc:
            logger.error("Failed to run command='%s %s', command output=%s", cmd, args, exc)
            raise RuntimeError(f"Failed to acquire command output={exc}") from exc


def _bad_request() -> Reply:
    return Reply(
        status=400,
        headers={"Content-Type": "text/plain; charset=utf-8"},
        body=b"Error decoding request\n",
    )


def _route(action: Callable[[Nft], Any]) -> Callable[[Request], Reply]:
    def handler(request: Request) -> Reply:
        try:
            nft = Nft.from_json(request.body)
        except ValueError:
            return _bad_request()
        try:
            return json_response(action(nft))
        except _HANDLED as exc:
            return json_error(exc)

    return handler


def register_router_nft(router: Router) -> None:
    sub = router.subrouter("/firewall/nft")
    sub.add_route("/table/add", _route(Nft.add_table), ["POST"])
    sub.add_route("/table/remove", _route(Nft.remove_table), ["DELETE"])
    sub.add_route("/table/show", _route(Nft.show_table), ["GET"])
    sub.add_route("/chain/add", _route(Nft.add_chain), ["POST"])
    sub.add_route("/chain/remove", _route(Nft.remove_chain), ["DELETE"])
    sub.add_route("/chain/show", _route(Nft.show_chain), ["GET"])
    sub.add_route("/save", _route(Nft.save_nft), ["PUT"])
    sub.add_route("/run", _route(Nft.run_nft), ["POST"])