"""Tests for session persistence across reloads."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from tablesync.models import SessionState, UserRole
from tablesync.session_store import (
    SESSION_KEY,
    MemoryStorage,
    RedisStorage,
    SessionStatus,
    SessionStore,
)


def _player_state(**overrides) -> SessionState:
    data = {"role": UserRole.PLAYER, "player_id": "p1", "game_id": "G1"}
    data.update(overrides)
    return SessionState(**data)


# ── SessionStore ─────────────────────────────────────────────────────

class TestSessionStore:
    def test_unknown_until_loaded(self):
        store = SessionStore(MemoryStorage())
        assert store.status == SessionStatus.UNKNOWN
        assert store.state is None

    def test_load_empty_is_anonymous(self):
        store = SessionStore(MemoryStorage())
        assert store.load() is None
        assert store.status == SessionStatus.ANONYMOUS

    def test_survives_reload(self):
        storage = MemoryStorage()
        SessionStore(storage).save(_player_state())

        reloaded = SessionStore(storage)
        state = reloaded.load()
        assert state == _player_state()
        assert reloaded.status == SessionStatus.AUTHENTICATED

    def test_clear_then_load(self):
        storage = MemoryStorage()
        store = SessionStore(storage)
        store.save(_player_state())
        store.clear()
        assert store.state is None
        assert store.status == SessionStatus.ANONYMOUS
        assert SessionStore(storage).load() is None

    def test_save_writes_through(self):
        storage = MemoryStorage()
        SessionStore(storage).save(_player_state(screen_reader_enabled=True))
        record = json.loads(storage.get(SESSION_KEY))
        assert record == {
            "role": "PLAYER",
            "playerId": "p1",
            "gameId": "G1",
            "screenReaderEnabled": True,
        }

    def test_corrupt_record_yields_none(self):
        storage = MemoryStorage({SESSION_KEY: "{not json"})
        store = SessionStore(storage)
        assert store.load() is None
        assert store.status == SessionStatus.ANONYMOUS

    def test_invalid_role_yields_none(self):
        storage = MemoryStorage({SESSION_KEY: json.dumps({"role": "SPECTATOR"})})
        assert SessionStore(storage).load() is None

    def test_storage_failure_yields_none(self):
        storage = MagicMock()
        storage.get.side_effect = ConnectionError("redis down")
        store = SessionStore(storage)
        assert store.load() is None
        assert store.status == SessionStatus.ANONYMOUS

    def test_dealer_without_player_id(self):
        storage = MemoryStorage()
        SessionStore(storage).save(SessionState(role=UserRole.DEALER, game_id="G1"))
        state = SessionStore(storage).load()
        assert state.role == UserRole.DEALER
        assert state.player_id is None

    def test_update(self):
        storage = MemoryStorage()
        store = SessionStore(storage)
        store.save(_player_state())
        updated = store.update(screen_reader_enabled=True)
        assert updated.screen_reader_enabled
        assert SessionStore(storage).load().screen_reader_enabled

    def test_update_without_session(self):
        with pytest.raises(ValueError):
            SessionStore(MemoryStorage()).update(game_id="G2")

    def test_custom_key(self):
        storage = MemoryStorage()
        SessionStore(storage, key="other").save(_player_state())
        assert storage.get(SESSION_KEY) is None
        assert storage.get("other") is not None


# ── Storage collaborators ────────────────────────────────────────────

class TestMemoryStorage:
    def test_roundtrip(self):
        s = MemoryStorage()
        s.set("k", "v")
        assert s.get("k") == "v"
        s.remove("k")
        assert s.get("k") is None

    def test_remove_missing_is_noop(self):
        MemoryStorage().remove("nothing")


class TestRedisStorage:
    def _make_storage(self, ttl: int = 60):
        client = MagicMock()
        return RedisStorage("sess-1", client=client, ttl=ttl), client

    def test_set_namespaces_key_with_ttl(self):
        storage, client = self._make_storage(ttl=120)
        storage.set("userRole", "{}")
        client.set.assert_called_once_with("session:sess-1:userRole", "{}", ex=120)

    def test_get(self):
        storage, client = self._make_storage()
        client.get.return_value = "stored"
        assert storage.get("userRole") == "stored"
        client.get.assert_called_once_with("session:sess-1:userRole")

    def test_remove(self):
        storage, client = self._make_storage()
        storage.remove("userRole")
        client.delete.assert_called_once_with("session:sess-1:userRole")

    def test_session_store_over_redis(self):
        storage, client = self._make_storage()
        store = SessionStore(storage)
        store.save(_player_state())
        key, raw = client.set.call_args.args
        assert key == "session:sess-1:userRole"

        client.get.return_value = raw
        assert SessionStore(storage).load() == _player_state()

    def test_close(self):
        storage, client = self._make_storage()
        storage.close()
        client.close.assert_called_once()
