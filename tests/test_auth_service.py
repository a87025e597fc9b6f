"""AuthService tests against a mocked PBX."""
import hashlib
import json

import httpx
import pytest

from core.exceptions import ChallengeUnavailable, LoginRejected, RemoteUnavailable
from core.sessions import LoginMethod
from models.ucm import ChallengeFailure, ChallengeSuccess
from services.auth import AuthService, challenge_token, password_digest
from services.ucm_client import UcmClient


def _md5(text: str) -> str:
    return hashlib.md5(text.encode()).hexdigest()


class FakePbx:
    """Records envelopes and answers them with scripted handlers per action."""

    def __init__(self, **handlers):
        self.handlers = handlers
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)["request"]
        self.requests.append(body)
        return self.handlers[body["action"]](body)


def _challenge_ok(body):
    return httpx.Response(200, json={"status": 0, "response": {"challenge": "abc123"}})


def _auth(settings, store, pbx) -> AuthService:
    client = UcmClient(settings, transport=httpx.MockTransport(pbx))
    return AuthService(client, store, settings)


def test_digest_helpers():
    assert password_digest("alice", "abc123", "secret") == _md5("alice:abc123:secret")
    assert challenge_token("abc123", "cdrapi123") == _md5("abc123cdrapi123")


@pytest.mark.asyncio
async def test_password_login_stores_session(settings, store):
    pbx = FakePbx(
        challenge=_challenge_ok,
        login=lambda body: httpx.Response(
            200, json={"status": 0}, headers={"Set-Cookie": "sid=xyz; Path=/"}
        ),
    )
    result = await _auth(settings, store, pbx).login("alice", "secret")

    assert result.cookie == "sid=xyz; Path=/"
    assert result.session_stored is True
    assert pbx.requests[0] == {"action": "challenge", "user": "alice", "version": "1.0"}
    assert pbx.requests[1]["password"] == _md5("alice:abc123:secret")
    assert pbx.requests[1]["version"] == "1.0"

    record = store.get("alice")
    assert record.cookie == "sid=xyz; Path=/"
    assert record.login_method is LoginMethod.PASSWORD


@pytest.mark.asyncio
async def test_password_login_rejected_leaves_no_session(settings, store):
    pbx = FakePbx(
        challenge=_challenge_ok,
        login=lambda body: httpx.Response(200, json={"status": -37}),
    )
    with pytest.raises(LoginRejected) as exc_info:
        await _auth(settings, store, pbx).login("alice", "wrong")

    assert exc_info.value.remote_status == -37
    assert str(exc_info.value) == "Login failed with status -37"
    assert store.get("alice") is None


@pytest.mark.asyncio
async def test_password_login_without_challenge(settings, store):
    pbx = FakePbx(challenge=lambda body: httpx.Response(200, json={"status": -1}))
    with pytest.raises(ChallengeUnavailable):
        await _auth(settings, store, pbx).login("alice", "secret")

    assert len(pbx.requests) == 1
    assert len(store) == 0


@pytest.mark.asyncio
async def test_password_login_without_cookie_is_soft_failure(settings, store):
    pbx = FakePbx(
        challenge=_challenge_ok,
        login=lambda body: httpx.Response(200, json={"status": 0}),
    )
    result = await _auth(settings, store, pbx).login("alice", "secret")

    assert result.cookie is None
    assert result.session_stored is False
    assert len(store) == 0


@pytest.mark.asyncio
async def test_transport_failure_raises_remote_unavailable(settings, store):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = UcmClient(settings, transport=httpx.MockTransport(refuse))
    with pytest.raises(RemoteUnavailable):
        await AuthService(client, store, settings).login("alice", "secret")
    assert len(store) == 0


@pytest.mark.asyncio
async def test_challenge_auto_login_stores_session(settings, store):
    pbx = FakePbx(
        challenge=_challenge_ok,
        login=lambda body: httpx.Response(200, json={"status": 0, "response": {"cookie": "sid=tok"}}),
    )
    result = await _auth(settings, store, pbx).challenge("cdrapi")

    assert isinstance(result, ChallengeSuccess)
    assert result.token == _md5("abc123cdrapi123")
    assert result.login.success is True
    assert result.session_cookie == "sid=tok"
    assert result.session_stored is True
    assert result.cookie_length == 7
    assert "version" not in pbx.requests[1]
    assert pbx.requests[1]["token"] == result.token
    assert store.get("cdrapi").login_method is LoginMethod.CHALLENGE_AUTO_LOGIN


@pytest.mark.asyncio
async def test_challenge_failure_is_data(settings, store):
    pbx = FakePbx(challenge=lambda body: httpx.Response(200, json={"status": 0, "response": {}}))
    result = await _auth(settings, store, pbx).challenge("cdrapi")

    assert isinstance(result, ChallengeFailure)
    assert result.success is False
    assert result.error == "Challenge failed"
    assert len(store) == 0


@pytest.mark.asyncio
async def test_auto_login_rejection_nested_in_success(settings, store):
    pbx = FakePbx(
        challenge=_challenge_ok,
        login=lambda body: httpx.Response(200, json={"status": -37}),
    )
    result = await _auth(settings, store, pbx).challenge("cdrapi")

    assert result.success is True
    assert result.login.success is False
    assert result.login.status == -37
    assert result.session_stored is False
    assert len(store) == 0


@pytest.mark.asyncio
async def test_auto_login_transport_failure_nested(settings, store):
    def handler(body):
        if body["action"] == "challenge":
            return _challenge_ok(body)
        return httpx.Response(502)

    pbx = FakePbx(challenge=handler, login=handler)
    result = await _auth(settings, store, pbx).challenge("cdrapi")

    assert result.success is True
    assert result.login.success is False
    assert result.login.status == -1


@pytest.mark.asyncio
async def test_token_login_stores_cookie_from_body(settings, store):
    pbx = FakePbx(login=lambda body: httpx.Response(
        200, json={"status": 0, "response": {"cookie": "sid=t"}}
    ))
    payload = await _auth(settings, store, pbx).token_login("alice", "deadbeef")

    assert payload["response"]["cookie"] == "sid=t"
    assert pbx.requests[0] == {"action": "login", "user": "alice", "token": "deadbeef", "version": "1.0"}
    assert store.get("alice").login_method is LoginMethod.TOKEN


@pytest.mark.asyncio
async def test_token_login_rejected(settings, store):
    pbx = FakePbx(login=lambda body: httpx.Response(200, json={"status": -6}))
    with pytest.raises(LoginRejected):
        await _auth(settings, store, pbx).token_login("alice", "deadbeef")
    assert len(store) == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("malformed", ["error", ["x"], 42])
async def test_challenge_with_non_object_response_is_failure(settings, store, malformed):
    pbx = FakePbx(challenge=lambda body: httpx.Response(200, json={"status": -37, "response": malformed}))
    result = await _auth(settings, store, pbx).challenge("bob")

    assert isinstance(result, ChallengeFailure)
    assert result.code == "challenge_unavailable"
    assert len(store) == 0


@pytest.mark.asyncio
async def test_password_login_with_non_object_response(settings, store):
    pbx = FakePbx(challenge=lambda body: httpx.Response(200, json={"status": 0, "response": ["x"]}))
    with pytest.raises(ChallengeUnavailable):
        await _auth(settings, store, pbx).login("bob", "pw")
    assert len(store) == 0


@pytest.mark.asyncio
async def test_auto_login_with_non_object_response_stores_nothing(settings, store):
    pbx = FakePbx(
        challenge=_challenge_ok,
        login=lambda body: httpx.Response(200, json={"status": 0, "response": "ok"}),
    )
    result = await _auth(settings, store, pbx).challenge("bob")

    assert result.success is True
    assert result.login.success is True
    assert result.session_stored is False
    assert len(store) == 0


@pytest.mark.asyncio
async def test_token_login_with_non_object_response(settings, store):
    pbx = FakePbx(login=lambda body: httpx.Response(200, json={"status": 0, "response": "ok"}))
    payload = await _auth(settings, store, pbx).token_login("bob", "deadbeef")

    assert payload["response"] == "ok"
    assert len(store) == 0
