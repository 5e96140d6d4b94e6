"""Authentication middleware: session tokens and local peer credentials."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any

import jwt

from photonmgmt.system import get_user_credentials, get_user_credentials_by_uid
from photonmgmt.validator import is_empty
from photonmgmt.web import Handler, Reply, Request, json_error

logger = logging.getLogger("photonmgmt")

SERVICE_USER = "pmd-nextgen"
_HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]


@dataclass(frozen=True)
class PeerCredentials:
    pid: int
    uid: int
    gid: int


def _timestamp(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)


def active(nbf: Any, exp: Any) -> bool:
    """Tell whether now lies inside the not-before and expiry claims that are numbers."""
    now = time.time()
    start = _timestamp(nbf)
    if start is not None and now < start:
        return False
    end = _timestamp(exp)
    if end is not None and now > end:
        return False
    return True


def verify_token(token: str, secret: str) -> dict[str, Any]:
    """Check an HMAC-signed token and return its claims, raising ValueError if it fails."""
    try:
        claims = jwt.decode(token, secret, algorithms=_HMAC_ALGORITHMS)
    except jwt.PyJWTError as exc:
        logger.error("Invalid token='%s': %s", token, exc)
        raise ValueError("invalid token") from exc
    if not isinstance(claims, dict):
        raise ValueError("invalid token claims")
    if not active(claims.get("nbf"), claims.get("exp")):
        logger.error("expired token='%s'", token)
        raise ValueError("expired token")
    return claims


def auth_middleware(handler: Handler) -> Handler:
    """Require a valid X-Session-Token signed with the JWT_SECRET environment value."""

    def wrapped(request: Request) -> Reply:
        token = request.headers.get("x-session-token", "")
        if is_empty(token):
            logger.error("Could not parse authentication token")
            return json_error("invalid token")
        try:
            verify_token(token, os.environ.get("JWT_SECRET", ""))
        except ValueError as exc:
            return json_error(exc)
        return handler(request)

    return wrapped


def authenticate_local_user(credentials: PeerCredentials) -> None:
    """Allow root, or a user in the service user's primary group; raise otherwise."""
    if credentials.uid == 0:
        logger.debug(
            "Connection credentials: pid='%d', user='root' uid='%d', gid='%d'",
            credentials.pid, credentials.uid, credentials.gid,
        )
        return

    service = get_user_credentials(SERVICE_USER)
    user = get_user_credentials_by_uid(credentials.uid)
    groups = set(os.getgrouplist(user.pw_name, user.pw_gid))
    if service.gid not in groups:
        raise PermissionError(f"user's gid not same as {SERVICE_USER}'s gid")

    logger.debug(
        "Connection credentials: pid='%d', user='%s' uid='%d', gid='%d' belongs to groups='%s'",
        credentials.pid, user.pw_name, credentials.uid, credentials.gid, sorted(groups),
    )


def unix_domain_peer_credential(handler: Handler) -> Handler:
    """Authorise requests by the peer credentials stored in request.context["credentials"]."""

    def wrapped(request: Request) -> Reply:
        credentials = request.context.get("credentials")
        if not isinstance(credentials, PeerCredentials):
            return json_error("missing peer credentials")
        try:
            authenticate_local_user(credentials)
        except (LookupError, PermissionError, OSError) as exc:
            logger.info(
                "Unauthorized connection. Credentials: pid='%d', uid='%d', gid='%d': %s",
                credentials.pid, credentials.uid, credentials.gid, exc,
            )
            return json_error(exc)
        return handler(request)

    return wrapped