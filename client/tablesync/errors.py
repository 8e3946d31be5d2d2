"""Exception hierarchy for the table client."""

from __future__ import annotations

from typing import Optional


class TableSyncError(Exception):
    """Base exception."""


class TransportError(TableSyncError):
    """The publish-subscribe connection failed or dropped."""


class StaleSessionError(TableSyncError):
    """The saved session points at a room or seat that no longer exists."""


class IllegalActionError(TableSyncError, ValueError):
    """A local action was rejected before reaching the transport."""


class UnrecognizedCommandError(TableSyncError):
    """A transcript did not resolve to any poker action."""

    def __init__(self, transcript: str) -> None:
        super().__init__(f"Unrecognized command: {transcript!r}")
        self.transcript = transcript


class GameServiceError(TableSyncError):
    """The game service answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RoomNotFoundError(GameServiceError):
    """The requested room does not exist (HTTP 404)."""
