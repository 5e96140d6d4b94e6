"""Kernel parameters read from sysctl configuration files and /proc/sys."""

from __future__ import annotations

import json
import logging
import os
import re
import stat
import subprocess
from dataclasses import dataclass, field
from typing import Any, Iterator

from photonmgmt.system import exec_and_capture, read_full_file, write_full_file
from photonmgmt.validator import is_array_empty, is_empty
from photonmgmt.web import Reply, Request, Router, json_error, json_response

logger = logging.getLogger("photonmgmt")

SYSCTL_DIR_PATH = "/etc/sysctl.d"
SYSCTL_PATH = "/etc/sysctl.conf"
PROC_SYS_PATH = "/proc/sys"

DELETE_VALUE = "Delete"

_JSON_FIELDS: dict[str, tuple[str, type]] = {
    "key": ("key", str),
    "value": ("value", str),
    "apply": ("apply", bool),
    "pattern": ("pattern", str),
    "filename": ("file_name", str),
    "files": ("files", list),
}

_HANDLED = (ValueError, LookupError, OSError, RuntimeError)


def path_from_key(key: str, proc_path: str = PROC_SYS_PATH) -> str:
    """Return the /proc/sys file that holds a dotted key."""
    return os.path.join(proc_path, key.replace(".", "/"))


def key_from_path(path: str, proc_path: str = PROC_SYS_PATH) -> str:
    """Return the dotted key for a file below /proc/sys."""
    prefix = proc_path + "/"
    sub_path = path[len(prefix):] if path.startswith(prefix) else path
    return sub_path.replace("/", ".")


def read_sysctl_config_from_file(path: str, mapping: dict[str, str]) -> dict[str, str]:
    """Add the key=value lines of a configuration file to mapping and return it."""
    try:
        lines = read_full_file(path)
    except OSError as exc:
        logger.error("Failed to read file='%s': %s", path, exc)
        raise

    for line in lines:
        tokens = line.split("=")
        if len(tokens) != 2:
            logger.debug("Could not parse line: '%s'", line)
            continue
        mapping[tokens[0].strip()] = tokens[1].strip()
    return mapping


def write_sysctl_config_in_file(path: str, mapping: dict[str, str]) -> None:
    """Write mapping as key=value lines, replacing the file."""
    write_full_file(path, (f"{key}={value}" for key, value in mapping.items()))


def _walk(path: str) -> Iterator[str]:
    """Yield the non-directory entries below path in lexical order."""
    try:
        info = os.lstat(path)
        if not stat.S_ISDIR(info.st_mode):
            yield path
            return
        names = sorted(os.listdir(path))
    except OSError as exc:
        raise OSError(f"Failed to access sysctl path: {exc}") from exc
    for name in names:
        yield from _walk(os.path.join(path, name))


def _read_stripped(path: str) -> str:
    with open(path, encoding="utf-8", errors="replace") as handle:
        return handle.read().strip()


@dataclass
class Sysctl:
    """A sysctl request; the paths point at the files it reads and writes."""

    key: str = ""
    value: str = ""
    apply: bool = False
    pattern: str = ""
    file_name: str = ""
    files: list[str] = field(default_factory=list)
    sysctl_path: str = field(default=SYSCTL_PATH, repr=False)
    sysctl_dir_path: str = field(default=SYSCTL_DIR_PATH, repr=False)
    proc_sys_path: str = field(default=PROC_SYS_PATH, repr=False)

    @classmethod
    def from_json(cls, body: bytes | str) -> Sysctl:
        """Build a request from a JSON object, matching field names without case."""
        data = json.loads(body)
        if not isinstance(data, dict):
            raise ValueError("request body is not a JSON object")
        values: dict[str, Any] = {}
        for name, item in data.items():
            target = _JSON_FIELDS.get(name.lower())
            if target is None or item is None:
                continue
            attribute, kind = target
            if not isinstance(item, kind):
                raise ValueError(f"field '{name}' has the wrong type")
            if kind is list and not all(isinstance(entry, str) for entry in item):
                raise ValueError(f"field '{name}' must hold strings")
            values[attribute] = item
        return cls(**values)

    def _map_from_conf_file(self, mapping: dict[str, str]) -> None:
        read_sysctl_config_from_file(self.sysctl_path, mapping)

    def _map_from_dir(self, base: str, mapping: dict[str, str]) -> None:
        from_proc = base == self.proc_sys_path
        for path in _walk(base):
            if from_proc:
                try:
                    mapping[key_from_path(path, self.proc_sys_path)] = _read_stripped(path)
                except OSError as exc:
                    logger.error("Failed to read file='%s': %s", path, exc)
            else:
                try:
                    read_sysctl_config_from_file(path, mapping)
                except OSError as exc:
                    logger.debug("%s", exc)

    def _apply(self, path: str) -> None:
        try:
            exec_and_capture("sysctl", "-p", path)
        except subprocess.CalledProcessError as exc:
            message = f"Failed to apply sysctl configuration file='{path}' {exc.output or ''}"
            logger.error("%s", message)
            raise RuntimeError(message) from exc
        except OSError as exc:
            message = f"Failed to apply sysctl configuration file='{path}' {exc}"
            logger.error("%s", message)
            raise RuntimeError(message) from exc

    def acquire(self) -> str:
        """Return the key's value from sysctl.conf, sysctl.d or /proc/sys, in that order."""
        if len(self.key) == 0:
            raise ValueError("Failed to acquire sysctl parameter. Input key missing")

        mapping: dict[str, str] = {}
        try:
            self._map_from_conf_file(mapping)
        except OSError:
            pass
        if self.key in mapping:
            return mapping[self.key]

        try:
            self._map_from_dir(self.sysctl_dir_path, mapping)
        except OSError:
            pass
        if self.key in mapping:
            return mapping[self.key]

        try:
            return _read_stripped(path_from_key(self.key, self.proc_sys_path))
        except OSError as exc:
            logger.debug(
                "Failed to determine sysctl key[%s] value from all configs: %s", self.key, exc
            )
            raise

    def get_pattern(self) -> dict[str, str]:
        """Return every known key matching the pattern; an empty pattern matches all."""
        if is_empty(self.pattern):
            logger.info("Input pattern is empty return all system configuration")
        try:
            regex = re.compile(self.pattern)
        except re.error as exc:
            raise ValueError(
                f"Failed to acquire sysctl parameter, Invalid pattern='{self.pattern}': {exc}"
            ) from exc

        mapping: dict[str, str] = {}
        try:
            self._map_from_conf_file(mapping)
        except OSError as exc:
            logger.debug("Failed to read configuration from '%s': %s", self.sysctl_path, exc)
        try:
            self._map_from_dir(self.sysctl_dir_path, mapping)
        except OSError as exc:
            logger.debug("Failed to read configuration from '%s': %s", self.sysctl_dir_path, exc)
        try:
            self._map_from_dir(self.proc_sys_path, mapping)
        except OSError as exc:
            logger.error("Failed to read configuration from '%s': %s", self.proc_sys_path, exc)
            raise

        return {key: value for key, value in mapping.items() if regex.search(key)}

    def update(self) -> str:
        """Set, or with the value "Delete" remove, a key in a configuration file."""
        if is_empty(self.file_name):
            self.file_name = self.sysctl_path
        else:
            self.file_name = os.path.join(self.sysctl_dir_path, self.file_name)

        if is_empty(self.key):
            logger.error("input Key is missing in json data")
            raise ValueError("input Key is missing in json data")
        if is_empty(self.value):
            logger.error("input Value is missing in json data")
            raise ValueError("input Value is missing in json data")

        mapping = read_sysctl_config_from_file(self.file_name, {})

        if self.value == DELETE_VALUE:
            if self.key not in mapping:
                message = f"Failed to remove sysctl parameter '{self.key}'. Key not found"
                logger.error("%s", message)
                raise LookupError(message)
            del mapping[self.key]
        else:
            mapping[self.key] = self.value

        try:
            write_sysctl_config_in_file(self.file_name, mapping)
        except OSError as exc:
            logger.error("Failed to update file='%s': %s", self.file_name, exc)
            raise
        if self.apply:
            self._apply(self.file_name)
        return "Configuration updated"

    def load(self) -> str:
        """Merge the listed files into sysctl.conf and optionally apply it."""
        if is_array_empty(self.files):
            self.files = [self.sysctl_path]

        mapping: dict[str, str] = {}
        for name in self.files:
            path = name if name == self.sysctl_path else os.path.join(self.sysctl_dir_path, name)
            try:
                read_sysctl_config_from_file(path, mapping)
            except OSError as exc:
                logger.error("Failed to load sysctl configuration from file='%s': %s", path, exc)
                raise

        write_sysctl_config_in_file(self.sysctl_path, mapping)
        if self.apply:
            self._apply(self.sysctl_path)
        return "Configuration loaded"


def _bad_request() -> Reply:
    return Reply(
        status=400,
        headers={"Content-Type": "text/plain; charset=utf-8"},
        body=b"Error decoding request\n",
    )


def _decode(request: Request) -> Sysctl | None:
    try:
        return Sysctl.from_json(request.body)
    except ValueError:
        return None


def _run(action) -> Reply:
    try:
        return json_response(action())
    except _HANDLED as exc:
        return json_error(exc)


def _acquire(request: Request) -> Reply:
    sysctl = _decode(request)
    return _bad_request() if sysctl is None else _run(sysctl.acquire)


def _acquire_pattern(request: Request) -> Reply:
    sysctl = _decode(request)
    return _bad_request() if sysctl is None else _run(sysctl.get_pattern)


def _acquire_all(request: Request) -> Reply:
    return _run(Sysctl(pattern="").get_pattern)


def _update(request: Request) -> Reply:
    sysctl = _decode(request)
    return _bad_request() if sysctl is None else _run(sysctl.update)


def _remove(request: Request) -> Reply:
    sysctl = _decode(request)
    if sysctl is None:
        return _bad_request()
    sysctl.value = DELETE_VALUE
    return _run(sysctl.update)


def _load(request: Request) -> Reply:
    sysctl = _decode(request)
    return _bad_request() if sysctl is None else _run(sysctl.load)


def register_router_sysctl(router: Router) -> None:
    sub = router.subrouter("/sysctl")
    sub.add_route("/status", _acquire, ["GET"])
    sub.add_route("/statusall", _acquire_all, ["GET"])
    sub.add_route("/statuspattern", _acquire_pattern, ["GET"])
    sub.add_route("/update", _update, ["POST"])
    sub.add_route("/remove", _remove, ["DELETE"])
    sub.add_route("/load", _load, ["POST"])