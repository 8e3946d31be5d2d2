"""Session store: persists who the local user is across restarts.

The record lives in a storage collaborator scoped to one browsing session.
``save`` and ``clear`` write through synchronously; ``load`` never raises.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

import redis
from pydantic import ValidationError

from tablesync.models import SessionState

logger = logging.getLogger(__name__)

REDIS_URL = os.getenv("TABLESYNC_REDIS_URL", "redis://localhost:6379/0")
SESSION_TTL = int(os.getenv("TABLESYNC_SESSION_TTL", "86400"))

SESSION_KEY = "userRole"


class SessionStatus(str, Enum):
    UNKNOWN = "unknown"
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


# ------------------------------------------------------------------
# Storage collaborators
# ------------------------------------------------------------------


class SessionStorage(ABC):
    """Key/value storage scoped to one browsing session."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def set(self, key: str, value: str) -> None: ...

    @abstractmethod
    def remove(self, key: str) -> None: ...


class MemoryStorage(SessionStorage):
    """Process-local storage.  Share one instance to simulate a reload."""

    def __init__(self, data: Optional[dict[str, str]] = None) -> None:
        self._data: dict[str, str] = dict(data or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class RedisStorage(SessionStorage):
    """Redis-backed storage namespaced by a browsing-session id.

    Keys expire after ``ttl`` seconds without a write, so a record outlives
    restarts within the session but not an abandoned session.
    """

    def __init__(
        self,
        session_id: str,
        client: Optional[redis.Redis] = None,
        url: str = REDIS_URL,
        ttl: int = SESSION_TTL,
    ) -> None:
        self.session_id = session_id
        self.ttl = ttl
        self._redis = client if client is not None else redis.Redis.from_url(url, decode_responses=True)

    def _key(self, key: str) -> str:
        return f"session:{self.session_id}:{key}"

    def get(self, key: str) -> Optional[str]:
        return self._redis.get(self._key(key))

    def set(self, key: str, value: str) -> None:
        self._redis.set(self._key(key), value, ex=self.ttl)

    def remove(self, key: str) -> None:
        self._redis.delete(self._key(key))

    def close(self) -> None:
        self._redis.close()


# ------------------------------------------------------------------
# Session store
# ------------------------------------------------------------------


class SessionStore:
    """Owns the SessionState record.  Inject one per client."""

    def __init__(self, storage: SessionStorage, key: str = SESSION_KEY) -> None:
        self._storage = storage
        self._key = key
        self._state: Optional[SessionState] = None
        self._loaded = False

    @property
    def status(self) -> SessionStatus:
        if not self._loaded:
            return SessionStatus.UNKNOWN
        return SessionStatus.AUTHENTICATED if self._state else SessionStatus.ANONYMOUS

    @property
    def state(self) -> Optional[SessionState]:
        return self._state

    def load(self) -> Optional[SessionState]:
        """Read the stored session.  Missing or corrupt records yield None."""
        state: Optional[SessionState] = None
        try:
            raw = self._storage.get(self._key)
            if raw is not None:
                state = SessionState.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding corrupt session record under %r", self._key)
        except Exception:
            logger.warning("Session storage unavailable", exc_info=True)
        self._state = state
        self._loaded = True
        return state

    def save(self, state: SessionState) -> None:
        self._storage.set(self._key, state.model_dump_json(by_alias=True))
        self._state = state
        self._loaded = True
        logger.info(
            "Session saved: role=%s player=%s game=%s",
            state.role.value,
            state.player_id,
            state.game_id,
        )

    def update(self, **changes: Any) -> SessionState:
        """Save a copy of the current state with ``changes`` applied."""
        if self._state is None:
            raise ValueError("No session to update")
        state = self._state.model_copy(update=changes)
        self.save(state)
        return state

    def clear(self) -> None:
        self._storage.remove(self._key)
        self._state = None
        self._loaded = True
        logger.info("Session cleared")
