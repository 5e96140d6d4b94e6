"""Daemon configuration: defaults, TOML loading and log level setup."""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, field
from typing import Any

from photonmgmt.parser import parse_ip_port

VERSION = "0.1"
CONF_PATH = "/etc/photon-mgmt"
CONF_FILE = "mgmt"
TLS_CERT = "cert/server.crt"
TLS_KEY = "cert/server.key"

DEFAULT_LOG_LEVEL = "info"
USE_AUTHENTICATION = "true"

DEFAULT_IP = "127.0.0.1"
DEFAULT_PORT = "5208"
LISTEN_UNIX_SOCKET = "true"

UNIX_DOMAIN_SOCKET_PATH = "/run/photon-mgmt/mgmt.sock"

logger = logging.getLogger("photonmgmt")

_LEVELS = {
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": logging.DEBUG,
}

_TRUE = {"1", "t", "T", "true", "TRUE", "True"}
_FALSE = {"", "0", "f", "F", "false", "FALSE", "False"}


@dataclass
class SystemConfig:
    log_level: str = DEFAULT_LOG_LEVEL
    use_authentication: bool = False


@dataclass
class NetworkConfig:
    listen: str = ""
    listen_unix_socket: bool = False
    listen_vsock: bool = False


@dataclass
class Config:
    system: SystemConfig = field(default_factory=SystemConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)


def _lower_keys(data: dict[str, Any]) -> dict[str, Any]:
    return {
        key.lower(): _lower_keys(value) if isinstance(value, dict) else value
        for key, value in data.items()
    }


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        if value in _TRUE:
            return True
        if value in _FALSE:
            return False
    raise ValueError(f"cannot decode {value!r} as a boolean")


def _as_str(value: Any) -> str:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (str, int, float)):
        return str(value)
    raise ValueError(f"cannot decode {value!r} as a string")


def _read(path: str) -> dict[str, Any]:
    try:
        with open(path, "rb") as handle:
            return _lower_keys(tomllib.load(handle))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.error("Failed to parse config file. Using defaults: %s", exc)
        return {}


def _decode(data: dict[str, Any]) -> Config:
    config = Config()
    system = data.get("system", {})
    network = data.get("network", {})
    if not isinstance(system, dict):
        system = {}
    if not isinstance(network, dict):
        network = {}

    fields = (
        (config.system, "log_level", system, "loglevel", _as_str),
        (config.system, "use_authentication", system, "useauthentication", _as_bool),
        (config.network, "listen", network, "listen", _as_str),
        (config.network, "listen_unix_socket", network, "listenunixsocket", _as_bool),
        (config.network, "listen_vsock", network, "listenvsock", _as_bool),
    )
    for target, attribute, section, key, convert in fields:
        if key not in section:
            continue
        try:
            setattr(target, attribute, convert(section[key]))
        except ValueError as exc:
            logger.error("Failed to decode config into struct, %s", exc)
    return config


def parse(path: str | None = None) -> Config:
    """Load the configuration, falling back to defaults for what is missing.

    Raises ValueError when the configured listen address is not "ip:port".
    """
    if path is None:
        path = os.path.join(CONF_PATH, CONF_FILE + ".toml")

    config = _decode(_read(path))

    level = _LEVELS.get(config.system.log_level.lower())
    if level is None:
        logger.warning(
            "Failed to parse log level='%s', falling back to 'info'", config.system.log_level
        )
        config.system.log_level = DEFAULT_LOG_LEVEL
    else:
        logger.setLevel(level)

    logger.debug("Log level set to '%s'", logging.getLevelName(logger.getEffectiveLevel()))

    if config.network.listen:
        try:
            parse_ip_port(config.network.listen)
        except ValueError:
            logger.error("Failed to parse Listen=%s", config.network.listen)
            raise

    return config