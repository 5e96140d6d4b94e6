"""JSON replies, a small request router and the HTTP client used by the tools."""

from __future__ import annotations

import dataclasses
import enum
import http.client
import json
import os
import re
import socket
import time
import urllib.parse
from dataclasses import dataclass, field
from typing import Any, Callable

from photonmgmt.conf import UNIX_DOMAIN_SOCKET_PATH
from photonmgmt.validator import is_empty, is_vsock_host

DEFAULT_REQUEST_TIMEOUT = 5.0


@dataclass
class Request:
    """An incoming request; header names are kept in lower case."""

    method: str
    path: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    vars: dict[str, str] = field(default_factory=dict)
    context: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.headers = {name.lower(): value for name, value in self.headers.items()}


@dataclass
class Reply:
    """A reply produced by a handler."""

    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


@dataclass
class Response:
    """A reply received by the client."""

    body: bytes
    status: str
    status_code: int
    headers: Any


Handler = Callable[[Request], Reply]
Middleware = Callable[[Handler], Handler]


def _default(obj: Any) -> Any:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, enum.Enum):
        return obj.value
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    raise TypeError(f"json: unsupported type: {type(obj).__name__}")


def _dumps(obj: Any) -> str:
    return json.dumps(obj, default=_default)


def _json_reply(success: bool, message: Any, errors: str) -> Reply:
    try:
        body = _dumps({"success": success, "message": message, "errors": errors})
    except (TypeError, ValueError) as exc:
        return Reply(
            status=500,
            headers={"Content-Type": "text/plain; charset=utf-8"},
            body=f"{exc}\n".encode(),
        )
    return Reply(status=200, headers={"Content-Type": "application/json"}, body=body.encode())


def json_response(message: Any) -> Reply:
    """Wrap message in a successful JSON envelope."""
    return _json_reply(True, message, "")


def json_error(error: Any) -> Reply:
    """Wrap an error in a failed JSON envelope."""
    return _json_reply(False, None, str(error))


def json_unmarshal(data: bytes | str) -> dict[str, Any]:
    """Decode a JSON object, raising ValueError for anything else."""
    decoded = json.loads(data)
    if not isinstance(decoded, dict):
        raise ValueError("json: cannot unmarshal non-object into a map")
    return decoded


def _compile(template: str) -> re.Pattern[str]:
    parts = re.split(r"\{(\w+)\}", template)
    regex = "".join(
        re.escape(part) if index % 2 == 0 else f"(?P<{part}>[^/]+)"
        for index, part in enumerate(parts)
    )
    return re.compile(regex)


@dataclass
class _Route:
    pattern: re.Pattern[str]
    handler: Handler
    methods: frozenset[str]
    owner: "Router"


class Router:
    """Routes requests by path template and method, with nested prefixes and middleware."""

    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix
        self._parent: Router | None = None
        self._routes: list[_Route] = []
        self._middlewares: list[Middleware] = []

    def _root(self) -> Router:
        router = self
        while router._parent is not None:
            router = router._parent
        return router

    def add_route(self, path: str, handler: Handler, methods=None) -> None:
        allowed = frozenset(m.upper() for m in methods) if methods else frozenset()
        self._root()._routes.append(
            _Route(_compile(self.prefix + path), handler, allowed, self)
        )

    def subrouter(self, prefix: str) -> Router:
        child = Router(self.prefix + prefix)
        child._parent = self
        return child

    def use(self, middleware: Middleware) -> None:
        self._middlewares.append(middleware)

    def _chain(self, route: _Route) -> Handler:
        owners = []
        router: Router | None = route.owner
        while router is not None:
            owners.append(router)
            router = router._parent
        middlewares = [mw for owner in reversed(owners) for mw in owner._middlewares]
        handler = route.handler
        for middleware in reversed(middlewares):
            handler = middleware(handler)
        return handler

    def dispatch(self, request: Request) -> Reply:
        """Run the handler matching the request, or answer 404 or 405."""
        path_matched = False
        for route in self._root()._routes:
            match = route.pattern.fullmatch(request.path)
            if match is None:
                continue
            if route.methods and request.method.upper() not in route.methods:
                path_matched = True
                continue
            routed = dataclasses.replace(request, vars=match.groupdict())
            return self._chain(route)(routed)
        if path_matched:
            return Reply(status=405)
        return Reply(
            status=404,
            headers={"Content-Type": "text/plain; charset=utf-8"},
            body=b"404 page not found\n",
        )


class _UnixHTTPConnection(http.client.HTTPConnection):
    def __init__(self, path: str, timeout: float) -> None:
        super().__init__("localhost", timeout=timeout)
        self._socket_path = path

    def connect(self) -> None:
        sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        sock.settimeout(self.timeout)
        try:
            sock.connect(self._socket_path)
        except OSError:
            sock.close()
            raise
        self.sock = sock


class _VSockHTTPConnection(http.client.HTTPConnection):
    def __init__(self, cid: int, port: int, timeout: float) -> None:
        super().__init__("localhost", timeout=timeout)
        self._cid = cid
        self._vsock_port = port

    def connect(self) -> None:
        family = getattr(socket, "AF_VSOCK", None)
        if family is None:
            raise OSError("vsock is not supported on this system")
        sock = socket.socket(family, socket.SOCK_STREAM)
        sock.settimeout(self.timeout)
        try:
            sock.connect((self._cid, self._vsock_port))
        except OSError:
            sock.close()
            raise
        self.sock = sock


def _open(host: str, url: str) -> tuple[http.client.HTTPConnection, str]:
    if is_empty(host):
        return _UnixHTTPConnection(UNIX_DOMAIN_SOCKET_PATH, DEFAULT_REQUEST_TIMEOUT), url
    if is_vsock_host(host):
        cid, port = host.split(":")[:2]
        return _VSockHTTPConnection(int(cid), int(port), DEFAULT_REQUEST_TIMEOUT), url
    parts = urllib.parse.urlsplit(host + url)
    target = parts.path or "/"
    if parts.query:
        target += "?" + parts.query
    if parts.scheme == "http":
        return http.client.HTTPConnection(parts.netloc, timeout=DEFAULT_REQUEST_TIMEOUT), target
    if parts.scheme == "https":
        return http.client.HTTPSConnection(parts.netloc, timeout=DEFAULT_REQUEST_TIMEOUT), target
    raise ConnectionError(
        f"could not complete HTTP request: unsupported protocol scheme '{parts.scheme}'"
    )


def dispatch_socket_with_status(method: str, host: str, url: str, headers, data) -> Response:
    """Send a JSON request over the local socket, vsock or HTTP and return the reply.

    The body is read only for status 200. Raises ConnectionError when the request fails.
    """
    body = (_dumps(data) + "\n").encode()
    request_headers = {"Content-Type": "application/json", **(headers or {})}
    connection, target = _open(host, url)
    try:
        connection.request(method, target, body=body, headers=request_headers)
        reply = connection.getresponse()
        payload = reply.read() if reply.status == 200 else b""
    except (OSError, http.client.HTTPException) as exc:
        raise ConnectionError(f"could not complete HTTP request: {exc}") from exc
    finally:
        connection.close()
    return Response(
        body=payload,
        status=f"{reply.status} {reply.reason}",
        status_code=reply.status,
        headers=reply.headers,
    )


def dispatch_socket(method: str, host: str, url: str, headers, data) -> bytes:
    """Send a request and return its body, raising RuntimeError unless the status is 200."""
    response = dispatch_socket_with_status(method, host, url, headers, data)
    if response.status_code != 200:
        raise RuntimeError(response.status)
    return response.body


def dispatch_and_wait(method: str, host: str, url: str, headers, data) -> bytes | None:
    """Send a request and, when it is accepted as a job, poll until its result is ready.

    Returns None when the first reply is neither 200 nor 202.
    """
    response = dispatch_socket_with_status(method, host, url, headers, data)
    if response.status_code == 200:
        return response.body
    if response.status_code != 202:
        return None

    location = response.headers.get("Location", "")
    if not location:
        raise RuntimeError("no location in headers")

    while True:
        try:
            raw = dispatch_socket("GET", host, location, headers, None)
        except (ConnectionError, RuntimeError) as exc:
            print(f"retrieving job status failed: {exc}")
            raise
        try:
            status = json.loads(raw)
            message = status.get("message") or {}
            state = message.get("Status", "")
        except (ValueError, AttributeError) as exc:
            print(f"Failed to decode json message: {exc}")
            raise ValueError(f"failed to decode json message: {exc}") from exc
        if state == "complete":
            try:
                result = dispatch_socket("GET", host, message.get("Link", ""), headers, None)
            except (ConnectionError, RuntimeError) as exc:
                print(f"retrieving result failed: {exc}")
                raise
            print()
            return result
        if state != "inprogress":
            raise RuntimeError("unexpected status")
        time.sleep(1)
        print(".", end="", flush=True)


def build_auth_token_from_env() -> dict[str, str]:
    """Build the session header from PHOTON_MGMT_AUTH_TOKEN, raising LookupError if unset."""
    token = os.environ.get("PHOTON_MGMT_AUTH_TOKEN", "")
    if not token:
        raise LookupError("authentication token not found")
    return {"X-Session-Token": token}