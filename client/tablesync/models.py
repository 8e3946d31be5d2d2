"""Pydantic models for room snapshots, commands and the local session."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from tablesync.cards import Card


class GameStatus(str, Enum):
    WAITING = "WAITING"
    STARTED = "STARTED"
    PREFLOP = "PREFLOP"
    FLOP = "FLOP"
    TURN = "TURN"
    RIVER = "RIVER"
    SHOWDOWN = "SHOWDOWN"
    ENDED = "ENDED"
    DISBANDED = "DISBANDED"


BETTING_STAGES = frozenset(
    {GameStatus.PREFLOP, GameStatus.FLOP, GameStatus.TURN, GameStatus.RIVER}
)


class ActionType(str, Enum):
    JOIN = "JOIN"
    LEAVE = "LEAVE"
    CHECK = "CHECK"
    BET = "BET"
    CALL = "CALL"
    RAISE = "RAISE"
    FOLD = "FOLD"
    SCAN_CARD = "SCAN_CARD"
    DEAL_CARDS = "DEAL_CARDS"
    START_HAND = "START_HAND"
    SMALL_BLIND = "SMALL_BLIND"
    BIG_BLIND = "BIG_BLIND"
    LOG = "LOG"


class UserRole(str, Enum):
    PLAYER = "PLAYER"
    DEALER = "DEALER"


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


# --- Snapshot models ---


class PlayerHand(WireModel):
    cards: tuple[Card, ...] = ()


class Player(WireModel):
    id: str
    name: str = ""
    chips: int = Field(default=0, ge=0)
    folded: bool = False
    active: bool = True
    online: bool = True
    visually_impaired: bool = False
    hand: Optional[PlayerHand] = None
    hand_ranking: Optional[str] = None
    last_action: Optional[str] = None
    last_action_amount: Optional[int] = None

    @property
    def hole_cards(self) -> tuple[Card, ...]:
        return self.hand.cards if self.hand else ()


class GameAction(WireModel):
    """One entry of the room's append-only action log."""

    type: str
    player_id: Optional[str] = None
    player_name: Optional[str] = None
    amount: Optional[int] = None
    card: Optional[Card] = None
    timestamp: Optional[str] = None
    message: Optional[str] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _flatten_timestamp(cls, value: Any) -> Any:
        # Jackson may emit LocalDateTime as [2025, 3, 15, 10, 0, 0, 123]
        if isinstance(value, (list, tuple)):
            return "-".join(str(v) for v in value)
        return value

    @property
    def key(self) -> tuple[str, Optional[str], Optional[str]]:
        """Deduplication key: (type, player_id, timestamp)."""
        return (self.type, self.player_id, self.timestamp)


class RoomSnapshot(WireModel):
    """Full, authoritative room state; replaced wholesale on every update."""

    id: Optional[str] = None
    players: tuple[Player, ...] = ()
    game_state: GameStatus = GameStatus.WAITING
    waiting_for_cards: bool = False
    community_cards: tuple[Card, ...] = Field(default=(), max_length=5)
    pot: int = Field(default=0, ge=0)
    current_bet: int = Field(default=0, ge=0)
    bets: dict[str, int] = Field(default_factory=dict)
    current_player_index: int = 0
    actions: tuple[GameAction, ...] = ()
    winner_ids: tuple[str, ...] = ()
    small_blind_position: int = 0
    dealer_id: Optional[str] = None

    @field_validator("players", "community_cards", "actions", "winner_ids", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return () if value is None else value

    @field_validator("bets", mode="before")
    @classmethod
    def _none_as_empty_map(cls, value: Any) -> Any:
        return {} if value is None else value

    @property
    def is_betting_stage(self) -> bool:
        return self.game_state in BETTING_STAGES

    @property
    def current_player(self) -> Optional[Player]:
        if 0 <= self.current_player_index < len(self.players):
            return self.players[self.current_player_index]
        return None

    def player_index(self, player_id: Optional[str]) -> int:
        """Seat index of a player, or -1."""
        for idx, p in enumerate(self.players):
            if p.id == player_id:
                return idx
        return -1

    def find_player(self, player_id: Optional[str]) -> Optional[Player]:
        idx = self.player_index(player_id)
        return self.players[idx] if idx >= 0 else None

    def bet_of(self, player_id: str) -> int:
        return self.bets.get(player_id, 0)


# --- Outbound ---


class GameCommand(WireModel):
    """Command published on the room's action channel."""

    type: ActionType
    player_id: Optional[str] = None
    player_name: Optional[str] = None
    amount: Optional[int] = None
    card: Optional[Card] = None

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# --- Local session ---


class SessionState(WireModel):
    """Who the local user is; survives restarts of the same session."""

    role: UserRole
    player_id: Optional[str] = None
    game_id: Optional[str] = None
    screen_reader_enabled: bool = False


# --- Game service requests ---


class JoinPlayerRequest(WireModel):
    name: str = Field(..., min_length=1, max_length=20)
    game_code: str = Field(..., min_length=1)
    online: bool = True
    visually_impaired: bool = False
