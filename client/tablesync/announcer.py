"""Announcement engine: turns snapshot deltas into spoken lines.

Each inbound snapshot is compared with the previous one.  New facts (hole
cards dealt, community cards, logged actions, showdown, winners) become
utterances pushed to a sink, normally ``SpeechQueue.enqueue``.  Per-hand
flags and the AnnouncedEventSet guarantee nothing is said twice, even when a
snapshot arrives with several new actions at once after a reconnect.
"""

from __future__ import annotations

import json
import logging
from typing import Callable, Iterable, Optional

from tablesync.cards import speak_cards
from tablesync.models import ActionType, GameAction, GameStatus, RoomSnapshot
from tablesync.positions import poker_position
from tablesync.session_store import SessionStorage

logger = logging.getLogger(__name__)

# Action types that are never spoken
SILENT_ACTIONS = frozenset({ActionType.LOG.value, ActionType.SCAN_CARD.value})

_HAND_OVER = frozenset({GameStatus.SHOWDOWN, GameStatus.ENDED})


class AnnouncedEventSet:
    """Deduplication keys ``(type, player_id, timestamp)`` already spoken.

    When ``storage`` is given the set is mirrored under ``key`` so a restart
    does not repeat announcements for history already heard.
    """

    def __init__(self, storage: Optional[SessionStorage] = None, key: str = "announced") -> None:
        self._storage = storage
        self._key = key
        self._keys: set[tuple] = set()
        if storage is not None:
            self._restore()

    def _restore(self) -> None:
        try:
            raw = self._storage.get(self._key)
            if raw:
                self._keys = {tuple(k) for k in json.loads(raw)}
        except Exception:
            logger.warning("Ignoring unreadable announced-event record", exc_info=True)
            self._keys = set()

    def _persist(self) -> None:
        if self._storage is not None:
            self._storage.set(self._key, json.dumps(sorted(self._keys, key=repr)))

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def add_all(self, keys: Iterable[tuple]) -> None:
        before = len(self._keys)
        self._keys.update(keys)
        if len(self._keys) != before:
            self._persist()

    def retain(self, keys: Iterable[tuple]) -> None:
        """Forget every key not in ``keys``."""
        kept = self._keys & set(keys)
        if kept != self._keys:
            self._keys = kept
            self._persist()

    def clear(self) -> None:
        self._keys = set()
        if self._storage is not None:
            self._storage.remove(self._key)


def describe_action(action: GameAction, label: str) -> str:
    """One spoken line for a logged action, e.g. 'SB calls 40'."""
    you = label == "You"
    amount = action.amount or 0

    def verb(third_person: str, base: str) -> str:
        return base if you else third_person

    t = action.type
    if t == ActionType.FOLD:
        return f"{label} {verb('folds', 'fold')}"
    if t == ActionType.CHECK:
        return f"{label} {verb('checks', 'check')}"
    if t == ActionType.CALL:
        return f"{label} {verb('calls', 'call')} {amount}"
    if t == ActionType.BET:
        return f"{label} {verb('bets', 'bet')} {amount}"
    if t == ActionType.RAISE:
        return f"{label} {verb('raises', 'raise')} {amount}"
    if t == ActionType.SMALL_BLIND:
        return f"{label} {verb('posts', 'post')} small blind {amount}"
    if t == ActionType.BIG_BLIND:
        return f"{label} {verb('posts', 'post')} big blind {amount}"
    if t == ActionType.JOIN:
        return f"{label} joined the game"
    if t == ActionType.LEAVE:
        return f"{label} left the game"
    if t == ActionType.START_HAND:
        return "New hand started"
    if t == ActionType.DEAL_CARDS:
        return "Cards are being dealt"
    return f"{label} {t.lower().replace('_', ' ')}".strip()


class AnnouncementEngine:
    """Diffs consecutive snapshots into utterances for one actor."""

    def __init__(
        self,
        speak: Callable[[str], None],
        actor_id: Optional[str] = None,
        enabled: bool = True,
        announced: Optional[AnnouncedEventSet] = None,
    ) -> None:
        self._speak = speak
        self.actor_id = actor_id
        self.enabled = enabled
        self.announced = announced if announced is not None else AnnouncedEventSet()
        self._prev_state: Optional[GameStatus] = None
        self._hand_announced = False
        self._flop_announced = False
        self._turn_announced = False
        self._river_announced = False
        self._showdown_announced = False
        self._winner_announced = False

    def reset(self) -> None:
        """Forget per-hand flags and the previous state (new room)."""
        self._prev_state = None
        self._hand_announced = False
        self._reset_board_flags()
        self._showdown_announced = False
        self._winner_announced = False

    def _reset_board_flags(self) -> None:
        self._flop_announced = False
        self._turn_announced = False
        self._river_announced = False

    # ------------------------------------------------------------------
    # Snapshot handling
    # ------------------------------------------------------------------

    def on_snapshot(self, snapshot: RoomSnapshot) -> list[str]:
        """Process one snapshot; returns the utterances it produced."""
        if not self.enabled:
            return []

        lines: list[str] = []
        state = snapshot.game_state
        prev = self._prev_state
        entered = state != prev

        if entered and state == GameStatus.PREFLOP:
            self._showdown_announced = False
            self._winner_announced = False
            if prev in _HAND_OVER:
                # New hand: drop keys for actions no longer in the log
                self.announced.retain(a.key for a in snapshot.actions)

        if state != GameStatus.PREFLOP:
            self._hand_announced = False
        if not snapshot.community_cards:
            self._reset_board_flags()

        lines.extend(self._hand_dealt(snapshot))
        lines.extend(self._board(snapshot))
        lines.extend(self._actions(snapshot))
        if entered and state == GameStatus.SHOWDOWN:
            lines.extend(self._showdown(snapshot))
        lines.extend(self._winners(snapshot))

        self._prev_state = state
        for line in lines:
            self._speak(line)
        return lines

    def _label(self, snapshot: RoomSnapshot, player_id: Optional[str], fallback: str = "") -> str:
        if player_id is not None and player_id == self.actor_id:
            return "You"
        idx = snapshot.player_index(player_id)
        if idx < 0:
            return fallback or "Someone"
        position = poker_position(idx, len(snapshot.players), snapshot.small_blind_position)
        return position or snapshot.players[idx].name or fallback

    def _hand_dealt(self, snapshot: RoomSnapshot) -> list[str]:
        if (
            self._hand_announced
            or snapshot.game_state != GameStatus.PREFLOP
            or snapshot.waiting_for_cards
        ):
            return []
        actor = snapshot.find_player(self.actor_id)
        if actor is None or not actor.hole_cards:
            return []
        self._hand_announced = True
        cards = actor.hole_cards
        line = f"Your hand is: {cards[0].spoken()}"
        if len(cards) > 1:
            line += f" and {cards[1].spoken()}"
        return [line]

    def _board(self, snapshot: RoomSnapshot) -> list[str]:
        if snapshot.waiting_for_cards:
            return []
        board = snapshot.community_cards
        state = snapshot.game_state

        if state == GameStatus.FLOP and len(board) == 3 and not self._flop_announced:
            self._flop_announced = True
            return [f"Flop is: {speak_cards(board)}"]
        if (
            state == GameStatus.TURN
            and len(board) == 4
            and self._flop_announced
            and not self._turn_announced
        ):
            self._turn_announced = True
            return [f"Turn is: {board[3].spoken()}"]
        if (
            state == GameStatus.RIVER
            and len(board) == 5
            and self._turn_announced
            and not self._river_announced
        ):
            self._river_announced = True
            return [f"River is: {board[4].spoken()}"]
        return []

    def _actions(self, snapshot: RoomSnapshot) -> list[str]:
        lines: list[str] = []
        new_keys: list[tuple] = []
        for action in snapshot.actions:
            key = action.key
            if action.type in SILENT_ACTIONS or key in self.announced or key in new_keys:
                continue
            label = self._label(snapshot, action.player_id, fallback=action.player_name or "")
            lines.append(describe_action(action, label))
            new_keys.append(key)
        if new_keys:
            self.announced.add_all(new_keys)
        return lines

    def _showdown(self, snapshot: RoomSnapshot) -> list[str]:
        if self._showdown_announced:
            return []
        self._showdown_announced = True
        contenders = [p for p in snapshot.players if not p.folded]
        parts = [
            f"{self._label(snapshot, p.id)} {'have' if p.id == self.actor_id else 'has'} {p.hand_ranking}"
            for p in contenders
            if p.hand_ranking
        ]
        if len(contenders) < 2 or not parts:
            return []
        return ["Showdown: " + ", ".join(parts)]

    def _winners(self, snapshot: RoomSnapshot) -> list[str]:
        if self._winner_announced or not snapshot.winner_ids:
            return []
        winners = [p for p in snapshot.players if p.id in snapshot.winner_ids]
        if not winners:
            return []
        self._winner_announced = True
        names = []
        for w in winners:
            name = self._label(snapshot, w.id)
            if w.hand_ranking:
                name += f" with {w.hand_ranking}"
            names.append(name)
        prefix = "Winner is " if len(winners) == 1 else "Winners are "
        return [prefix + ", ".join(names)]
