"""CallService and SessionService helper tests."""
import json

import httpx
import pytest

from core.exceptions import NoActiveSession, RemoteUnavailable
from core.sessions import LoginMethod, SessionRecord
from services.calls import CallService
from services.sessions import SessionService
from services.ucm_client import UcmClient


def _calls(settings, cache, store, handler):
    client = UcmClient(settings, transport=httpx.MockTransport(handler))
    return CallService(client, SessionService(store, cache, settings), settings)


@pytest.mark.asyncio
async def test_make_call_sends_cookie_and_numbers(settings, cache, store):
    seen = []

    def handler(request):
        seen.append((request.headers["Cookie"], json.loads(request.content)["request"]))
        return httpx.Response(200, json={"status": 0})

    payload = await _calls(settings, cache, store, handler).make_call("sid", "1000", "5551234")
    assert payload == {"status": 0}
    assert seen == [("sid", {"action": "call", "ext": "1000", "number": "5551234"})]


@pytest.mark.asyncio
async def test_logout_user_deletes_session(settings, cache, store):
    store.store("alice", SessionRecord.create("alice", "sid", LoginMethod.PASSWORD))
    handler = lambda request: httpx.Response(200, json={"status": 0})

    await _calls(settings, cache, store, handler).logout_user("alice")
    assert store.get("alice") is None


@pytest.mark.asyncio
async def test_logout_user_without_session(settings, cache, store):
    with pytest.raises(NoActiveSession):
        await _calls(settings, cache, store, lambda r: httpx.Response(200)).logout_user("alice")


@pytest.mark.asyncio
async def test_logout_http_error_keeps_session(settings, cache, store):
    store.store("alice", SessionRecord.create("alice", "sid", LoginMethod.PASSWORD))
    with pytest.raises(RemoteUnavailable):
        await _calls(settings, cache, store, lambda r: httpx.Response(503)).logout_user("alice")
    assert store.get("alice") is not None


def test_validate_session_cookie(settings, cache, store):
    sessions = SessionService(store, cache, settings)
    assert sessions.validate_session_cookie("alice", "sid").message == "No active session found"

    sessions.store_simple_session("alice", "sid")
    valid = sessions.validate_session_cookie("alice", "sid")
    assert valid.is_valid is True
    assert valid.session_status == "active"
    assert valid.remaining_ttl == 900
    assert sessions.validate_session_cookie("alice", "other").is_valid is False


def test_simple_session_and_active_cookies(settings, cache, store):
    sessions = SessionService(store, cache, settings)
    record = sessions.store_simple_session("alice", "sid=a")

    assert record.login_method is LoginMethod.SIMPLE_STORAGE
    active = sessions.active_cookies()
    assert active.active_count == 1
    assert active.cookies[0].login_method == "simple_storage"


def test_cdr_cookie_cache_and_user_purge(settings, cache, store, clock):
    sessions = SessionService(store, cache, settings)
    sessions.store_cookie_for_cdr("alice", "sid=a")
    sessions.store_cookie_for_cdr("alice2", "sid=b")

    assert sessions.get_cookie_for_cdr("alice") == "sid=a"
    assert sessions.clear_cache_for_user("alice") == 1
    assert sessions.get_cookie_for_cdr("alice") is None
    assert sessions.get_cookie_for_cdr("alice2") == "sid=b"

    clock.advance(settings.cdr_cookie_ttl)
    assert sessions.get_cookie_for_cdr("alice2") is None


def test_validate_reports_expired_session(settings, cache, store, clock):
    sessions = SessionService(store, cache, settings)
    sessions.store_simple_session("alice", "sid")
    clock.advance(900)

    result = sessions.validate_session_cookie("alice", "sid")
    assert result.is_valid is False
    assert result.cookie_match is True
    assert result.session_status == "expired"
    assert result.remaining_ttl == 0
