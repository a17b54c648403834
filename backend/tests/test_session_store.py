"""In-memory session store: expiry and per-user invalidation."""
from __future__ import annotations

import pytest

from backend.identity_access import stores
from backend.identity_access.stores import SessionStore


def test_create_and_get_session():
    store = SessionStore()
    rec = store.create(user_id="1", ttl_seconds=60)
    assert store.get(rec.session_id) == rec
    assert rec.user_id == "1"
    assert len(rec.session_id) >= 32


def test_expired_sessions_are_dropped(monkeypatch: pytest.MonkeyPatch):
    store = SessionStore()
    rec = store.create(user_id="1", ttl_seconds=10)
    monkeypatch.setattr(stores, "_now", lambda: rec.expires_at + 1)
    assert store.get(rec.session_id) is None
    assert rec.session_id not in store._data


def test_delete_is_idempotent():
    store = SessionStore()
    rec = store.create(user_id="1")
    store.delete(rec.session_id)
    store.delete(rec.session_id)
    assert store.get(rec.session_id) is None


def test_delete_for_user_only_touches_that_user():
    store = SessionStore()
    a1 = store.create(user_id="a")
    a2 = store.create(user_id="a")
    b = store.create(user_id="b")
    store.delete_for_user("a")
    assert store.get(a1.session_id) is None
    assert store.get(a2.session_id) is None
    assert store.get(b.session_id) == b


def test_create_purges_abandoned_sessions(monkeypatch: pytest.MonkeyPatch):
    store = SessionStore()
    stale = store.create(user_id="a", ttl_seconds=10)
    monkeypatch.setattr(stores, "_now", lambda: stale.expires_at + 1)
    fresh = store.create(user_id="b", ttl_seconds=10)
    assert set(store._data) == {fresh.session_id}


def test_wiring_uses_postgres_sessions_when_database_is_reachable(monkeypatch: pytest.MonkeyPatch):
    from backend.identity_access.stores_db import DBSessionStore
    from backend.web import wiring

    monkeypatch.setattr(wiring, "_database_dsn", lambda: "postgresql://fw:pw@db.example.com:5432/fw")
    wiring.set_session_store(None)
    assert isinstance(wiring.get_session_store(), DBSessionStore)


def test_wiring_falls_back_to_memory_sessions_without_database():
    from backend.web import wiring

    wiring.set_session_store(None)
    assert isinstance(wiring.get_session_store(), SessionStore)
