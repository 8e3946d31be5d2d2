"""Turn-action validation.

Computes which betting actions are legal for the local actor from a room
snapshot and builds commands only for legal ones.  This is a client-side
fast fail: the game service stays the final authority.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from tablesync.errors import IllegalActionError
from tablesync.models import ActionType, GameCommand, Player, RoomSnapshot


class TurnAction(str, Enum):
    FOLD = "FOLD"
    CHECK = "CHECK"
    CALL = "CALL"
    BET = "BET"
    RAISE = "RAISE"
    ALL_IN = "ALL_IN"


@dataclass(frozen=True)
class TurnOptions:
    """What the actor may do right now."""

    legal_actions: frozenset[TurnAction] = field(default_factory=frozenset)
    call_amount: int = 0
    is_turn: bool = False
    max_amount: int = 0

    @property
    def enabled(self) -> bool:
        """Controls are live only on the actor's turn."""
        return self.is_turn and bool(self.legal_actions)

    def allows(self, action: TurnAction) -> bool:
        return self.is_turn and action in self.legal_actions


def call_amount(snapshot: RoomSnapshot, actor_id: str) -> int:
    return max(0, snapshot.current_bet - snapshot.bet_of(actor_id))


def is_actor_turn(snapshot: RoomSnapshot, actor_id: Optional[str]) -> bool:
    if snapshot.waiting_for_cards or actor_id is None:
        return False
    current = snapshot.current_player
    return current is not None and current.id == actor_id


def _all_in_as(snapshot: RoomSnapshot) -> TurnAction:
    return TurnAction.RAISE if snapshot.current_bet > 0 else TurnAction.BET


def legal_actions(snapshot: RoomSnapshot, actor_id: str) -> frozenset[TurnAction]:
    """Legal actions for the actor, ignoring whose turn it is."""
    actor = snapshot.find_player(actor_id)
    if actor is None or actor.folded:
        return frozenset()

    to_call = call_amount(snapshot, actor_id)
    legal: set[TurnAction] = {TurnAction.FOLD}

    if to_call == 0:
        legal.add(TurnAction.CHECK)
    if 0 < to_call <= actor.chips:
        legal.add(TurnAction.CALL)
    if snapshot.current_bet == 0 and actor.chips > 0:
        legal.add(TurnAction.BET)
    if snapshot.current_bet > 0 and actor.chips > to_call:
        legal.add(TurnAction.RAISE)
    if _all_in_as(snapshot) in legal:
        legal.add(TurnAction.ALL_IN)

    return frozenset(legal)


def evaluate(snapshot: RoomSnapshot, actor_id: str) -> TurnOptions:
    actor = snapshot.find_player(actor_id)
    to_call = call_amount(snapshot, actor_id)
    return TurnOptions(
        legal_actions=legal_actions(snapshot, actor_id),
        call_amount=to_call,
        is_turn=is_actor_turn(snapshot, actor_id),
        max_amount=max(0, actor.chips - to_call) if actor else 0,
    )


def pot_fraction_amounts(snapshot: RoomSnapshot, chips: int) -> dict[str, int]:
    """Quick raise sizes offered next to the custom amount field.

    Sizes that exceed the actor's chips are left out; all-in is always
    offered.
    """
    pot = snapshot.pot
    presets = {
        "third_pot": int(pot * 0.33),
        "half_pot": int(pot * 0.5),
        "pot": pot,
    }
    amounts = {name: amt for name, amt in presets.items() if 0 < amt <= chips}
    amounts["all_in"] = chips
    return amounts


def _check_amount(actor: Player, amount: Optional[int], to_call: int) -> int:
    if amount is None or amount <= 0:
        raise IllegalActionError("Raise amount must be positive.")
    if amount + to_call > actor.chips:
        raise IllegalActionError("You cannot raise more than your available chips.")
    return amount


def build_command(
    snapshot: RoomSnapshot,
    actor_id: str,
    action: TurnAction | str,
    amount: Optional[int] = None,
) -> GameCommand:
    """Build the outbound command for an action, or raise IllegalActionError.

    BET and RAISE amounts are the chips added on top of the call amount.
    ALL_IN becomes a BET or RAISE of everything the actor has left.
    """
    try:
        action = TurnAction(action.upper())
    except ValueError:
        raise IllegalActionError(f"Unknown action: {action}") from None

    actor = snapshot.find_player(actor_id)
    if actor is None:
        raise IllegalActionError("You are not seated at this table.")

    legal = legal_actions(snapshot, actor_id)
    if action not in legal:
        raise IllegalActionError(f"{action.value.replace('_', ' ').title()} is not allowed right now.")

    to_call = call_amount(snapshot, actor_id)

    if action == TurnAction.ALL_IN:
        action = _all_in_as(snapshot)
        amount = actor.chips - to_call if action == TurnAction.RAISE else actor.chips

    command_type = ActionType(action.value)
    if action in (TurnAction.BET, TurnAction.RAISE):
        amount = _check_amount(actor, amount, to_call)
    elif action == TurnAction.CALL:
        amount = to_call
    else:
        amount = None

    return GameCommand(
        type=command_type,
        player_id=actor.id,
        player_name=actor.name,
        amount=amount,
    )
