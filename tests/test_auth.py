import json
import time

import jwt
import pytest

from photonmgmt.auth import (
    PeerCredentials,
    active,
    auth_middleware,
    unix_domain_peer_credential,
    verify_token,
)
from photonmgmt.web import Request, json_response

SECRET = "secret"


def _handler(request):
    return json_response("passed")


def _body(reply):
    return json.loads(reply.body)


def _token(claims, key=SECRET, algorithm="HS256"):
    return jwt.encode(claims, key, algorithm=algorithm)


def test_active_without_claims():
    assert active(None, None) is True


def test_active_not_yet_valid():
    assert active(time.time() + 3600, None) is False


def test_active_expired():
    assert active(None, time.time() - 3600) is False


def test_active_inside_window():
    assert active(time.time() - 10, time.time() + 10) is True


def test_active_ignores_non_numbers():
    assert active("later", True) is True


def test_verify_token_returns_claims():
    exp = int(time.time()) + 60
    claims = verify_token(_token({"sub": "admin", "exp": exp}), SECRET)
    assert claims == {"sub": "admin", "exp": exp}


def test_verify_token_wrong_key():
    with pytest.raises(ValueError, match="invalid token"):
        verify_token(_token({"sub": "admin"}, key="other"), SECRET)


def test_verify_token_expired():
    with pytest.raises(ValueError, match="invalid token"):
        verify_token(_token({"exp": int(time.time()) - 60}), SECRET)


def test_verify_token_rejects_unsigned():
    unsigned = jwt.encode({"sub": "admin"}, None, algorithm="none")
    with pytest.raises(ValueError, match="invalid token"):
        verify_token(unsigned, SECRET)


def test_verify_token_malformed():
    with pytest.raises(ValueError, match="invalid token"):
        verify_token("not-a-jwt", SECRET)


def test_auth_middleware_accepts_valid_token(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", SECRET)
    token = _token({"exp": int(time.time()) + 60})
    reply = auth_middleware(_handler)(Request("GET", "/", headers={"X-Session-Token": token}))
    assert _body(reply)["message"] == "passed"


def test_auth_middleware_missing_header(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", SECRET)
    reply = auth_middleware(_handler)(Request("GET", "/"))
    assert _body(reply) == {"success": False, "message": None, "errors": "invalid token"}


def test_auth_middleware_bad_signature(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", SECRET)
    token = _token({"sub": "admin"}, key="different")
    reply = auth_middleware(_handler)(Request("GET", "/", headers={"X-Session-Token": token}))
    assert _body(reply)["errors"] == "invalid token"


def test_peer_credential_root_passes():
    request = Request("GET", "/", context={"credentials": PeerCredentials(pid=1, uid=0, gid=0)})
    reply = unix_domain_peer_credential(_handler)(request)
    assert _body(reply)["message"] == "passed"


def test_peer_credential_missing():
    reply = unix_domain_peer_credential(_handler)(Request("GET", "/"))
    assert _body(reply)["success"] is False
    assert _body(reply)["errors"] == "missing peer credentials"