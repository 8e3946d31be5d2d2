"""Command-line entry point: a headless, voice-driven table client.

Each stdin line is treated as one finalized speech transcript ("raise 50",
"czech") unless it starts with "/", which selects a client command:

    /leave           leave the room (dealer: disband) and exit
    /quit            exit, keeping the session for a later rejoin
    /start           dealer: start the game
    /deal            dealer: start a new hand
    /scan Ah         dealer: scan a card
    /kick <id>       dealer: remove a player
    /raise <size>    player: raise by third_pot, half_pot, pot or all_in
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from typing import Optional

from tablesync.api_client import BACKEND_URL, GameServiceClient
from tablesync.cards import Card
from tablesync.errors import (
    GameServiceError,
    IllegalActionError,
    StaleSessionError,
    UnrecognizedCommandError,
)
from tablesync.session_store import MemoryStorage, RedisStorage, SessionStorage, SessionStore
from tablesync.speech import LoggingSynthesizer, SpeechQueue
from tablesync.sync import SnapshotSynchronizer
from tablesync.table import TableClient
from tablesync.transport import WebSocketTransport
from tablesync.voice import Transcript

logger = logging.getLogger(__name__)

LOG_LEVEL = os.getenv("TABLESYNC_LOG_LEVEL", "INFO")


def websocket_url(backend_url: str) -> str:
    """http(s)://host -> ws(s)://host/ws-poker"""
    if backend_url.startswith("https://"):
        base = "wss://" + backend_url[len("https://"):]
    elif backend_url.startswith("http://"):
        base = "ws://" + backend_url[len("http://"):]
    else:
        base = backend_url
    return base.rstrip("/") + "/ws-poker"


def build_client(
    backend_url: str,
    storage: SessionStorage,
    speech: Optional[SpeechQueue] = None,
) -> TableClient:
    ws_url = websocket_url(backend_url)
    return TableClient(
        session=SessionStore(storage),
        api=GameServiceClient(backend_url),
        synchronizer=SnapshotSynchronizer(lambda _game_id: WebSocketTransport(ws_url)),
        speech=speech,
        announce_storage=storage,
    )


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="tablesync",
        description="Voice-driven poker table client with spoken announcements",
    )
    parser.add_argument("--backend", default=BACKEND_URL, help="Game service base URL")
    parser.add_argument("--game", help="Game code to join as a player")
    parser.add_argument("--name", help="Player name (with --game)")
    parser.add_argument("--dealer", action="store_true", help="Create a room as the dealer")
    parser.add_argument("--screen-reader", action="store_true", help="Speak table events")
    parser.add_argument(
        "--session",
        default=os.getenv("TABLESYNC_SESSION_ID"),
        help="Browsing-session id; enables Redis-backed session persistence",
    )
    return parser.parse_args(argv)


async def _handle_line(client: TableClient, line: str) -> bool:
    """Run one input line.  Returns False when the client should exit."""
    if line.startswith("/"):
        cmd, _, arg = line[1:].partition(" ")
        arg = arg.strip()
        if cmd == "quit":
            return False
        if cmd == "leave":
            await client.leave()
            return False
        if cmd == "start":
            await client.start_game()
        elif cmd == "deal":
            await client.start_new_hand()
        elif cmd == "scan":
            await client.scan_card(Card.from_str(arg))
        elif cmd == "kick":
            await client.kick(arg)
        elif cmd == "raise":
            await client.raise_preset(arg)
        else:
            print(f"Unknown command: /{cmd}")
        return True

    await client.on_transcript(Transcript(line))
    return True


async def _stdin_reader() -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


async def _next_line(reader: asyncio.StreamReader, ended: asyncio.Event) -> Optional[str]:
    """Next input line, or None at EOF or as soon as ``ended`` is set."""
    read = asyncio.ensure_future(reader.readline())
    wait_ended = asyncio.ensure_future(ended.wait())
    try:
        await asyncio.wait({read, wait_ended}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for fut in (read, wait_ended):
            if not fut.done():
                fut.cancel()
    if not read.done() or read.cancelled() or ended.is_set():
        return None
    data = read.result()
    if not data:
        return None
    return data.decode(errors="replace")


async def run(args: argparse.Namespace) -> int:
    storage: SessionStorage
    if args.session:
        storage = RedisStorage(args.session)
    else:
        storage = MemoryStorage()

    speech = SpeechQueue(LoggingSynthesizer())
    client = build_client(args.backend, storage, speech)
    logger.info("Game service at %s, session storage %s", args.backend, type(storage).__name__)

    try:
        try:
            state = await client.start()
        except StaleSessionError as exc:
            print(exc)
            state = None

        if state is None or not state.game_id:
            if args.dealer:
                room = await client.create_as_dealer()
                print(f"Created room {room.id}")
            elif args.game and args.name:
                player = await client.join_as_player(
                    args.game, args.name, screen_reader=args.screen_reader
                )
                print(f"Joined {args.game} as {player.name} ({player.id})")
            else:
                print("Nothing to do: pass --dealer or --game and --name")
                return 2
        elif args.screen_reader:
            client.set_screen_reader(True)

        reader = await _stdin_reader()
        while not client.ended.is_set():
            line = await _next_line(reader, client.ended)
            if line is None:
                break
            line = line.strip()
            if not line:
                continue
            try:
                if not await _handle_line(client, line):
                    break
            except UnrecognizedCommandError:
                print("Sorry, that command was not recognised.")
            except (IllegalActionError, GameServiceError, ValueError) as exc:
                print(exc)

        if client.ended.is_set():
            print("You are no longer in this game.")
        return 0
    except GameServiceError as exc:
        print(f"Game service error: {exc}")
        return 1
    finally:
        await client.close()
        await client.api.close()
        if isinstance(storage, RedisStorage):
            storage.close()


def main(argv: Optional[list[str]] = None) -> None:
    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = _parse_args(argv)
    sys.exit(asyncio.run(run(args)))
