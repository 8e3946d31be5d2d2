"""Snapshot synchronizer: keeps one live subscription to a room channel.

A single asyncio background task owns the connection: it opens the
transport, publishes the join command, subscribes to the room topic and
hands every snapshot to the callback in arrival order.  When the connection
drops it waits ``reconnect_delay`` seconds and starts over, forever, until
``disconnect()`` is called.  Commands are never queued across reconnects.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Any, Callable, Optional

from pydantic import ValidationError

from tablesync.errors import TransportError
from tablesync.models import GameCommand, RoomSnapshot
from tablesync.transport import Transport

logger = logging.getLogger(__name__)

# Fixed delay between reconnect attempts (seconds)
RECONNECT_DELAY = float(os.getenv("TABLESYNC_RECONNECT_DELAY", "5"))

SnapshotCallback = Callable[[RoomSnapshot], None]
TransportFactory = Callable[[str], Transport]


def topic_destination(game_id: str) -> str:
    return f"/topic/game/{game_id}"


def join_destination(game_id: str) -> str:
    return f"/app/game/{game_id}/join"


def action_destination(game_id: str) -> str:
    return f"/app/game/{game_id}/action"


class SnapshotSynchronizer:
    """At most one connection (and one reconnect loop) at a time."""

    def __init__(
        self,
        transport_factory: TransportFactory,
        reconnect_delay: float = RECONNECT_DELAY,
    ) -> None:
        self._transport_factory = transport_factory
        self.reconnect_delay = reconnect_delay
        self._task: Optional[asyncio.Task] = None
        # Serializes connect/disconnect so only one loop is ever started
        self._lock = asyncio.Lock()
        self._transport: Optional[Transport] = None
        self._subscribed = False
        self.game_id: Optional[str] = None
        self.snapshot: Optional[RoomSnapshot] = None

    @property
    def connected(self) -> bool:
        return self._subscribed and self._transport is not None and self._transport.connected

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def connect(self, game_id: str, on_snapshot: SnapshotCallback) -> None:
        """Replace any existing connection with one for ``game_id``."""
        async with self._lock:
            await self._teardown()
            self.game_id = game_id
            self.snapshot = None
            self._task = asyncio.create_task(self._run(game_id, on_snapshot))
            logger.info("Synchronizer started for game %s", game_id)

    async def disconnect(self) -> None:
        """Tear down the subscription and transport.  Safe to call anytime."""
        async with self._lock:
            await self._teardown()

    async def _teardown(self) -> None:
        # Caller holds self._lock
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            if task is not asyncio.current_task():
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        transport, self._transport = self._transport, None
        self._subscribed = False
        if transport is not None:
            await transport.close()
        if task is not None:
            logger.info("Synchronizer stopped for game %s", self.game_id)

    async def send(self, game_id: str, command: GameCommand) -> bool:
        """Publish a command.  Dropped (and logged) while disconnected."""
        transport = self._transport
        if transport is None or not self.connected:
            logger.warning(
                "WebSocket not connected; dropping %s for game %s",
                command.type.value,
                game_id,
            )
            return False
        try:
            await transport.publish(action_destination(game_id), command.to_wire())
        except TransportError as exc:
            logger.warning("Failed to send %s for game %s: %s", command.type.value, game_id, exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Background loop
    # ------------------------------------------------------------------

    async def _run(self, game_id: str, on_snapshot: SnapshotCallback) -> None:
        topic = topic_destination(game_id)
        attempt = 0
        try:
            while True:
                transport = self._transport_factory(game_id)
                self._transport = transport
                try:
                    await transport.open()
                    await transport.publish(join_destination(game_id), {})
                    await transport.subscribe(topic)
                    self._subscribed = True
                    attempt = 0
                    logger.info("Joined game %s", game_id)

                    async for destination, body in transport.messages():
                        if destination == topic:
                            self._deliver(game_id, body, on_snapshot)
                    logger.warning("Connection for game %s closed by server", game_id)
                except TransportError as exc:
                    logger.warning("Transport error for game %s: %s", game_id, exc)
                except Exception:
                    logger.exception("Synchronizer error for game %s", game_id)
                finally:
                    self._subscribed = False
                    if self._transport is transport:
                        self._transport = None
                    await transport.close()

                attempt += 1
                logger.info(
                    "Reconnecting to game %s in %.1fs (attempt %d)",
                    game_id,
                    self.reconnect_delay,
                    attempt,
                )
                await asyncio.sleep(self.reconnect_delay)
        except asyncio.CancelledError:
            pass

    def _deliver(self, game_id: str, body: Any, on_snapshot: SnapshotCallback) -> None:
        try:
            snapshot = RoomSnapshot.model_validate(body)
        except ValidationError as exc:
            logger.warning("Dropping invalid snapshot for game %s: %s", game_id, exc)
            return
        self.snapshot = snapshot
        try:
            on_snapshot(snapshot)
        except Exception:
            logger.exception("Snapshot handler failed for game %s", game_id)
