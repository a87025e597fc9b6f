"""Unit tests for the session store and session records."""
from core.sessions import LoginMethod, SessionRecord


def _record(user="alice", cookie="sid=abc", method=LoginMethod.PASSWORD):
    return SessionRecord.create(user, cookie, method, login_status=0)


def test_session_id_carries_login_method_prefix(store):
    assert store.store("a", _record()).session_id.startswith("pwd_sess_")
    assert store.store("b", _record(method=LoginMethod.CHALLENGE_AUTO_LOGIN)).session_id.startswith("chal_sess_")
    assert store.store("c", _record(method=LoginMethod.TOKEN)).session_id.startswith("token_sess_")
    assert store.store("d", _record(method=LoginMethod.SIMPLE_STORAGE)).session_id.startswith("simple_sess_")


def test_session_id_follows_store_clock(store, clock):
    stored = store.store("alice", _record())
    assert stored.session_id.split("_")[2] == str(int(clock.now * 1000))


def test_peek_keeps_expired_record(store, clock):
    store.store("alice", _record())
    clock.advance(900)

    assert store.peek("alice").cookie == "sid=abc"
    assert len(store) == 1
    assert store.get("alice") is None


def test_store_assigns_lifetime(store, clock):
    stored = store.store("alice", _record())
    assert stored.created_at == clock.now
    assert stored.expires_at == clock.now + 900
    assert store.get_cookie("alice") == "sid=abc"


def test_session_expires_and_is_dropped_on_read(store, clock):
    store.store("alice", _record())
    clock.advance(899)
    assert store.get("alice") is not None

    clock.advance(1)
    assert store.get("alice") is None
    assert len(store) == 0


def test_store_is_last_write_wins_and_restarts_ttl(store, clock):
    store.store("alice", _record(cookie="first"))
    clock.advance(600)
    store.store("alice", _record(cookie="second", method=LoginMethod.TOKEN))
    clock.advance(600)

    record = store.get("alice")
    assert record.cookie == "second"
    assert record.login_method is LoginMethod.TOKEN
    assert len(store) == 1


def test_list_all_includes_expired_without_deleting(store, clock):
    store.store("alice", _record())
    clock.advance(1000)
    store.store("bob", _record(user="bob"))

    listing = store.list_all()
    assert listing["alice"]["is_expired"] is True
    assert listing["alice"]["remaining_ttl_seconds"] == 0
    assert listing["bob"]["is_expired"] is False
    assert listing["bob"]["remaining_ttl_seconds"] == 900
    assert len(store) == 2


def test_active_skips_expired(store, clock):
    store.store("alice", _record())
    clock.advance(500)
    store.store("bob", _record(user="bob"))
    clock.advance(500)

    assert [r.user for r in store.active()] == ["bob"]


def test_sweep_and_delete(store, clock):
    store.store("alice", _record())
    store.store("bob", _record(user="bob"))
    assert store.delete("bob") is True
    assert store.delete("bob") is False

    clock.advance(900)
    assert store.sweep() == 1
    assert len(store) == 0


def test_to_dict_exposes_cookie_length_and_details():
    record = SessionRecord.create("alice", "sid=abc", LoginMethod.PASSWORD, challenge="c123")
    data = record.to_dict()
    assert data["cookie_length"] == 7
    assert data["login_method"] == "password"
    assert data["challenge"] == "c123"
    assert "is_expired" not in data
