"""Publish-subscribe transport for room channels.

The synchronizer only needs: open a connection, publish to a destination,
subscribe to a destination, and iterate inbound ``(destination, body)``
messages.  ``WebSocketTransport`` carries these as small JSON envelopes over
a single websocket and answers the server's heartbeat pings.
"""

from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Optional

import websockets
from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.protocol import State

from tablesync.errors import TransportError

logger = logging.getLogger(__name__)

Message = tuple[str, Any]


class Transport(ABC):
    """One connection to the publish-subscribe broker."""

    @property
    @abstractmethod
    def connected(self) -> bool: ...

    @abstractmethod
    async def open(self) -> None: ...

    @abstractmethod
    async def close(self) -> None:
        """Close the connection.  Must not raise if already closed."""

    @abstractmethod
    async def publish(self, destination: str, body: dict[str, Any]) -> None: ...

    @abstractmethod
    async def subscribe(self, destination: str) -> None: ...

    @abstractmethod
    def messages(self) -> AsyncIterator[Message]:
        """Inbound messages in arrival order; ends when the connection drops."""


class WebSocketTransport(Transport):
    """JSON envelopes over a websocket.

    Outbound: ``{"command": "SEND"|"SUBSCRIBE", "destination": ..., "body": ...}``
    Inbound:  ``{"destination": ..., "body": ...}`` or ``{"type": "ping"}``
    """

    def __init__(self, url: str, open_timeout: float = 10.0) -> None:
        self.url = url
        self.open_timeout = open_timeout
        self._ws: Optional[Any] = None

    @property
    def connected(self) -> bool:
        return self._ws is not None and self._ws.state is State.OPEN

    async def open(self) -> None:
        try:
            self._ws = await websockets.connect(self.url, open_timeout=self.open_timeout)
        except (OSError, asyncio.TimeoutError, WebSocketException) as exc:
            raise TransportError(f"Cannot connect to {self.url}: {exc}") from exc
        logger.info("WS connected: %s", self.url)

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        if ws is None:
            return
        try:
            await ws.close()
        except Exception:
            logger.debug("Error closing websocket %s", self.url, exc_info=True)

    async def _send(self, envelope: dict[str, Any]) -> None:
        if self._ws is None:
            raise TransportError("Not connected")
        try:
            await self._ws.send(json.dumps(envelope))
        except (ConnectionClosed, OSError) as exc:
            self._ws = None
            raise TransportError(f"Send failed: {exc}") from exc

    async def publish(self, destination: str, body: dict[str, Any]) -> None:
        await self._send({"command": "SEND", "destination": destination, "body": body})

    async def subscribe(self, destination: str) -> None:
        await self._send({"command": "SUBSCRIBE", "destination": destination})

    async def messages(self) -> AsyncIterator[Message]:
        ws = self._ws
        if ws is None:
            raise TransportError("Not connected")
        try:
            async for raw in ws:
                try:
                    msg = json.loads(raw)
                except (json.JSONDecodeError, TypeError):
                    logger.debug("Ignoring malformed frame from %s", self.url)
                    continue
                if not isinstance(msg, dict):
                    continue
                if msg.get("type") == "ping":
                    await ws.send(json.dumps({"type": "pong"}))
                    continue
                destination = msg.get("destination")
                if destination:
                    yield destination, msg.get("body")
        except ConnectionClosed as exc:
            raise TransportError(f"Connection closed: {exc}") from exc
