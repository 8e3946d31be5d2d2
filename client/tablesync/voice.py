"""Turn finalized speech transcripts into action intents."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from tablesync.errors import UnrecognizedCommandError
from tablesync.fuzzy_match import FUZZY_THRESHOLD, PokerAction, extract_amount, match
from tablesync.validator import TurnAction

_TURN_ACTIONS = {
    PokerAction.FOLD: TurnAction.FOLD,
    PokerAction.CHECK: TurnAction.CHECK,
    PokerAction.CALL: TurnAction.CALL,
    PokerAction.RAISE: TurnAction.RAISE,
    PokerAction.BET: TurnAction.BET,
    PokerAction.ALLIN: TurnAction.ALL_IN,
}


@dataclass(frozen=True)
class Transcript:
    """One result from the speech recognizer."""

    text: str
    is_final: bool = True


@dataclass(frozen=True)
class VoiceIntent:
    action: TurnAction
    amount: Optional[int] = None


def parse_command(text: str, threshold: int = FUZZY_THRESHOLD) -> VoiceIntent:
    """Parse 'raise 50' into VoiceIntent(RAISE, 50).

    Amounts are only kept for bet and raise.
    """
    action = match(text, threshold=threshold)
    if action is None:
        raise UnrecognizedCommandError(text)
    turn_action = _TURN_ACTIONS[action]
    amount = None
    if turn_action in (TurnAction.BET, TurnAction.RAISE):
        amount = extract_amount(text)
    return VoiceIntent(turn_action, amount)
