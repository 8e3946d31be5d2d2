"""Table client: wires session, game service, synchronizer, speech and validation.

One ``TableClient`` per local user.  Collaborators are injected so tests can
swap any of them; nothing here is a module-level singleton.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from tablesync import validator
from tablesync.announcer import AnnouncedEventSet, AnnouncementEngine
from tablesync.api_client import GameServiceClient
from tablesync.cards import Card
from tablesync.errors import IllegalActionError, RoomNotFoundError, StaleSessionError
from tablesync.fuzzy_match import FUZZY_THRESHOLD
from tablesync.models import ActionType, GameCommand, GameStatus, Player, RoomSnapshot, SessionState, UserRole
from tablesync.session_store import SessionStorage, SessionStore
from tablesync.speech import SpeechQueue
from tablesync.sync import SnapshotSynchronizer
from tablesync.validator import TurnAction, TurnOptions
from tablesync.voice import Transcript, VoiceIntent, parse_command

logger = logging.getLogger(__name__)


class TableClient:
    def __init__(
        self,
        session: SessionStore,
        api: GameServiceClient,
        synchronizer: SnapshotSynchronizer,
        speech: Optional[SpeechQueue] = None,
        announce_storage: Optional[SessionStorage] = None,
        fuzzy_threshold: int = FUZZY_THRESHOLD,
    ) -> None:
        self.session = session
        self.api = api
        self.sync = synchronizer
        self.speech = speech
        self.fuzzy_threshold = fuzzy_threshold
        self._announce_storage = announce_storage
        self.announcer = AnnouncementEngine(speak=self._speak, enabled=False)
        self.snapshot: Optional[RoomSnapshot] = None
        self.options = TurnOptions()
        # Set when the server disbands the room or removes our seat
        self.ended = asyncio.Event()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> Optional[SessionState]:
        """Load the saved session and rejoin its room, if any."""
        state = self.session.load()
        if state is None or not state.game_id:
            return state
        await self.rejoin()
        return self.session.state

    async def rejoin(self) -> RoomSnapshot:
        state = self.session.state
        if state is None or not state.game_id:
            raise StaleSessionError("No saved game to rejoin")

        try:
            room = await self.api.get_room(state.game_id)
        except RoomNotFoundError:
            self.session.clear()
            raise StaleSessionError("Game no longer exists. Please join a new game.") from None

        if state.role == UserRole.PLAYER and room.find_player(state.player_id) is None:
            self.session.clear()
            raise StaleSessionError(
                "Your player is no longer in this game. Please join as a new player."
            )

        await self._connect(state)
        return room

    async def join_as_player(
        self,
        game_code: str,
        name: str,
        online: bool = True,
        screen_reader: bool = False,
    ) -> Player:
        player = await self.api.join_player(
            game_code, name, online=online, visually_impaired=screen_reader
        )
        state = SessionState(
            role=UserRole.PLAYER,
            player_id=player.id,
            game_id=game_code,
            screen_reader_enabled=screen_reader,
        )
        self.session.save(state)
        await self._connect(state)
        return player

    async def create_as_dealer(self) -> RoomSnapshot:
        room = await self.api.create_room()
        if not room.id:
            raise StaleSessionError("Game service did not return a room code")
        state = SessionState(role=UserRole.DEALER, game_id=room.id)
        self.session.save(state)
        await self._connect(state)
        return room

    async def leave(self) -> None:
        """Leave (player) or disband (dealer), then forget the session."""
        state = self.session.state
        if state is None or not state.game_id:
            await self.close()
            return
        try:
            if state.role == UserRole.DEALER:
                await self.api.disband(state.game_id)
            else:
                await self.api.leave(state.game_id, state.player_id or "")
        except RoomNotFoundError:
            logger.info("Game %s already gone while leaving", state.game_id)
        await self.close()
        self.session.clear()
        if self._announce_storage is not None:
            self.announcer.announced.clear()

    async def close(self) -> None:
        """Stop speech and the connection; the saved session is kept."""
        if self.speech is not None:
            self.speech.stop()
        await self.sync.disconnect()

    def set_screen_reader(self, enabled: bool) -> None:
        if self.session.state is not None:
            self.session.update(screen_reader_enabled=enabled)
        self.announcer.enabled = enabled
        if not enabled and self.speech is not None:
            self.speech.stop()

    async def _connect(self, state: SessionState) -> None:
        self.ended.clear()
        self.snapshot = None
        self.options = TurnOptions()
        self.announcer.reset()
        self.announcer.actor_id = state.player_id
        self.announcer.enabled = state.screen_reader_enabled
        if self._announce_storage is not None:
            self.announcer.announced = AnnouncedEventSet(
                self._announce_storage, key=f"announced:{state.game_id}"
            )
        else:
            self.announcer.announced = AnnouncedEventSet()
        await self.sync.connect(state.game_id, self.on_snapshot)

    def _speak(self, text: str) -> None:
        if self.speech is not None:
            self.speech.enqueue(text)

    # ------------------------------------------------------------------
    # Inbound snapshots
    # ------------------------------------------------------------------

    def on_snapshot(self, snapshot: RoomSnapshot) -> None:
        self.snapshot = snapshot
        state = self.session.state

        if snapshot.game_state == GameStatus.DISBANDED:
            logger.info("Game %s was disbanded", snapshot.id)
            self._end_session()
            return
        if (
            state is not None
            and state.role == UserRole.PLAYER
            and snapshot.find_player(state.player_id) is None
        ):
            logger.info("Player %s is no longer seated in %s", state.player_id, state.game_id)
            self._end_session()
            return

        self.announcer.on_snapshot(snapshot)
        if state is not None and state.player_id:
            self.options = validator.evaluate(snapshot, state.player_id)

    def _end_session(self) -> None:
        self.options = TurnOptions()
        if self.session.state is not None:
            self.session.clear()
        self.ended.set()

    # ------------------------------------------------------------------
    # Player actions
    # ------------------------------------------------------------------

    def _require_role(self, role: UserRole) -> SessionState:
        state = self.session.state
        if state is None or state.role != role or not state.game_id:
            raise IllegalActionError(f"Only a {role.value.lower()} can do that.")
        return state

    async def act(self, action: TurnAction | str, amount: Optional[int] = None) -> bool:
        """Validate and send a betting action.  Returns whether it was sent."""
        state = self._require_role(UserRole.PLAYER)
        snapshot = self.snapshot
        if snapshot is None:
            raise IllegalActionError("Waiting for the game state.")
        if not validator.is_actor_turn(snapshot, state.player_id):
            raise IllegalActionError("It is not your turn.")

        command = validator.build_command(snapshot, state.player_id, action, amount)
        return await self.sync.send(state.game_id, command)

    def raise_presets(self) -> dict[str, int]:
        """Quick raise sizes for the current snapshot; empty when not our turn."""
        state = self.session.state
        if self.snapshot is None or state is None or not self.options.is_turn:
            return {}
        return validator.pot_fraction_amounts(self.snapshot, self.options.max_amount)

    async def raise_preset(self, preset: str) -> bool:
        """Bet or raise by a named pot fraction ("half_pot", "pot", ...)."""
        amounts = self.raise_presets()
        if preset not in amounts:
            raise IllegalActionError(f"No {preset.replace('_', ' ')} raise available right now.")
        if preset == "all_in":
            return await self.act(TurnAction.ALL_IN)
        action = TurnAction.RAISE if self.snapshot.current_bet > 0 else TurnAction.BET
        return await self.act(action, amounts[preset])

    async def handle_transcript(self, text: str, is_final: bool = True) -> Optional[VoiceIntent]:
        """Act on a finalized voice transcript; partial ones are ignored."""
        if not is_final:
            return None
        intent = parse_command(text, threshold=self.fuzzy_threshold)
        logger.info("Voice command %r -> %s %s", text, intent.action.value, intent.amount or "")
        await self.act(intent.action, intent.amount)
        return intent

    async def on_transcript(self, transcript: Transcript) -> Optional[VoiceIntent]:
        return await self.handle_transcript(transcript.text, transcript.is_final)

    # ------------------------------------------------------------------
    # Dealer actions
    # ------------------------------------------------------------------

    async def start_game(self) -> None:
        state = self._require_role(UserRole.DEALER)
        await self.api.start_game(state.game_id)

    async def start_new_hand(self) -> None:
        state = self._require_role(UserRole.DEALER)
        await self.api.start_new_hand(state.game_id)

    async def kick(self, player_id: str) -> None:
        state = self._require_role(UserRole.DEALER)
        await self.api.leave(state.game_id, player_id)

    async def scan_card(self, card: Card) -> bool:
        state = self._require_role(UserRole.DEALER)
        command = GameCommand(type=ActionType.SCAN_CARD, card=card)
        return await self.sync.send(state.game_id, command)
