"""Local groups: listing from /etc/group and changes through the shadow tools."""

from __future__ import annotations

import grp
import json
import logging
import subprocess
from dataclasses import dataclass, field
from typing import Any

from photonmgmt.system import exec_and_capture, get_group_credentials, read_full_file
from photonmgmt.web import Reply, Request, Router, json_error, json_response

logger = logging.getLogger("photonmgmt")

GROUP_INFO_PATH = "/etc/group"

_JSON_FIELDS = {"gid": "gid", "name": "name", "newname": "new_name"}
_HANDLED = (ValueError, LookupError, OSError, RuntimeError)


def read_group_info_list(path: str = GROUP_INFO_PATH) -> list[Group]:
    """Return the name and gid of every group listed in a group file."""
    groups = []
    for line in read_full_file(path):
        fields = [part for part in line.split(":") if part]
        if fields:
            groups.append(Group(name=fields[0], gid=fields[2] if len(fields) > 2 else ""))
    return groups


def _run_tool(*argv: str) -> None:
    try:
        exec_and_capture(*argv)
    except subprocess.CalledProcessError as exc:
        raise RuntimeError(f"{exc.output or ''} ({exc})") from exc
    except OSError as exc:
        raise RuntimeError(f" ({exc})") from exc


@dataclass
class Group:
    """A group request: its gid, its name and, for renames, the new name."""

    gid: str = ""
    name: str = ""
    new_name: str = ""
    info_path: str = field(default=GROUP_INFO_PATH, repr=False)

    @classmethod
    def from_json(cls, body: bytes | str) -> Group:
        data = json.loads(body)
        if not isinstance(data, dict):
            raise ValueError("request body is not a JSON object")
        values: dict[str, Any] = {}
        for key, item in data.items():
            attribute = _JSON_FIELDS.get(key.lower())
            if attribute is None or item is None:
                continue
            if not isinstance(item, str):
                raise ValueError(f"field '{key}' must be a string")
            values[attribute] = item
        return cls(**values)

    def to_json(self) -> dict[str, str]:
        return {"Gid": self.gid, "Name": self.name, "NewName": self.new_name}

    def add(self) -> str:
        """Create the group, refusing names and gids that already exist."""
        try:
            existing = grp.getgrnam(self.name)
        except KeyError:
            existing = None
        if existing is not None:
            raise ValueError(f"group {existing.gr_name} already exists")

        if self.gid:
            try:
                gid = int(self.gid)
            except ValueError:
                raise ValueError(f"invalid gid '{self.gid}'") from None
            try:
                taken = grp.getgrgid(gid)
            except (KeyError, OverflowError):
                taken = None
            if taken is not None:
                raise ValueError(f" gid '{taken.gr_gid}' already exists")
            _run_tool("groupadd", self.name, "-g", self.gid)
        else:
            _run_tool("groupadd", self.name)
        return "group added"

    def remove(self) -> str:
        get_group_credentials(self.name)
        try:
            _run_tool("groupdel", self.name)
        except RuntimeError as exc:
            logger.error("Failed to remove group '%s': %s", self.name, exc)
            raise
        return "group removed"

    def modify(self) -> str:
        get_group_credentials(self.name)
        try:
            _run_tool("groupmod", "-n", self.new_name, self.name)
        except RuntimeError as exc:
            logger.error("Failed to modify group '%s': %s", self.name, exc)
            raise
        return "group modified"

    def view(self) -> list[Group]:
        """Return all groups, or only the one named, raising LookupError if it is unknown."""
        try:
            groups = read_group_info_list(self.info_path)
        except OSError as exc:
            logger.error("Failed to get group info from '%s' : (%s)", self.info_path, exc)
            raise

        if not self.name:
            return groups
        for candidate in groups:
            if candidate.name == self.name:
                return [candidate]
        logger.error("Group does not exist on system '%s'", self.name)
        raise LookupError(f"Unknown group '{self.name}'")


def _bad_request() -> Reply:
    return Reply(
        status=400,
        headers={"Content-Type": "text/plain; charset=utf-8"},
        body=b"Error decoding request\n",
    )


def _handle(request: Request, method: str) -> Reply:
    try:
        group = Group.from_json(request.body)
    except ValueError:
        return _bad_request()
    try:
        return json_response(getattr(group, method)())
    except _HANDLED as exc:
        return json_error(exc)


def _add(request: Request) -> Reply:
    return _handle(request, "add")


def _modify(request: Request) -> Reply:
    return _handle(request, "modify")


def _remove(request: Request) -> Reply:
    return _handle(request, "remove")


def _view(request: Request) -> Reply:
    group = Group(name=request.vars.get("groupname", ""))
    try:
        return json_response([g.to_json() for g in group.view()])
    except _HANDLED as exc:
        return json_error(exc)


def register_router_group(router: Router) -> None:
    sub = router.subrouter("/group")
    sub.add_route("/add", _add, ["POST"])
    sub.add_route("/remove", _remove, ["DELETE"])
    sub.add_route("/modify", _modify, ["PUT"])
    sub.add_route("/view", _view, ["GET"])
    sub.add_route("/view/{groupname}", _view, ["GET"])