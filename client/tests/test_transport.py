"""Tests for the websocket transport against a local websockets server."""

from __future__ import annotations

import asyncio
import json

import pytest
from websockets.asyncio.server import serve

from fakes import wait_until
from tablesync.errors import TransportError
from tablesync.transport import WebSocketTransport


def _port(server) -> int:
    return server.sockets[0].getsockname()[1]


class TestWebSocketTransport:
    async def test_publish_subscribe_and_receive(self):
        received: list = []

        async def handler(ws):
            async for raw in ws:
                msg = json.loads(raw)
                received.append(msg)
                if msg.get("command") == "SUBSCRIBE":
                    await ws.send(json.dumps({"type": "ping"}))
                    await ws.send("not json")
                    await ws.send(json.dumps(["not", "an", "envelope"]))
                    await ws.send(json.dumps({"destination": msg["destination"], "body": {"pot": 5}}))

        async with serve(handler, "127.0.0.1", 0) as server:
            transport = WebSocketTransport(f"ws://127.0.0.1:{_port(server)}")
            await transport.open()
            assert transport.connected

            await transport.publish("/app/game/G1/join", {})
            await transport.subscribe("/topic/game/G1")

            messages = transport.messages()
            item = await asyncio.wait_for(messages.__anext__(), timeout=2)
            assert item == ("/topic/game/G1", {"pot": 5})

            await wait_until(lambda: {"type": "pong"} in received, timeout=2)
            await messages.aclose()
            await transport.close()
            assert not transport.connected

        assert received[:2] == [
            {"command": "SEND", "destination": "/app/game/G1/join", "body": {}},
            {"command": "SUBSCRIBE", "destination": "/topic/game/G1"},
        ]

    async def test_messages_end_when_server_closes(self):
        async def handler(ws):
            await ws.close()

        async with serve(handler, "127.0.0.1", 0) as server:
            transport = WebSocketTransport(f"ws://127.0.0.1:{_port(server)}")
            await transport.open()
            items = [m async for m in transport.messages()]
            assert items == []
            await transport.close()
            assert not transport.connected

    async def test_open_refused(self):
        transport = WebSocketTransport("ws://127.0.0.1:1", open_timeout=1)
        with pytest.raises(TransportError, match="Cannot connect"):
            await transport.open()
        assert not transport.connected

    async def test_publish_before_open(self):
        transport = WebSocketTransport("ws://127.0.0.1:1")
        with pytest.raises(TransportError):
            await transport.publish("/app/game/G1/join", {})

    async def test_messages_before_open(self):
        transport = WebSocketTransport("ws://127.0.0.1:1")
        with pytest.raises(TransportError):
            async for _ in transport.messages():
                pass

    async def test_close_twice(self):
        transport = WebSocketTransport("ws://127.0.0.1:1")
        await transport.close()
        await transport.close()
