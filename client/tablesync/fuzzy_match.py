"""Fuzzy matching of spoken poker commands.

Voice transcripts are noisy: "check" comes back as "czech", "fold" as
"hold".  Matching runs in two passes: an exact lookup of every token against
the known variants, then a Levenshtein pass that accepts the closest variant
below ``threshold``.
"""

from __future__ import annotations

import os
import re
from enum import Enum
from typing import Optional

FUZZY_THRESHOLD = int(os.getenv("TABLESYNC_FUZZY_THRESHOLD", "3"))


class PokerAction(str, Enum):
    FOLD = "fold"
    CHECK = "check"
    CALL = "call"
    RAISE = "raise"
    BET = "bet"
    ALLIN = "allin"


# Order matters: it breaks ties when a token is a variant of several actions.
ACTION_VARIANTS: dict[PokerAction, tuple[str, ...]] = {
    PokerAction.FOLD: (
        "fold", "folds", "folding", "hold", "holds", "old", "olds", "fault",
        "faults", "foul", "fouls", "fould", "foulds", "cold",
    ),
    PokerAction.CHECK: (
        "check", "checks", "checking", "czech", "czechs", "cheque", "cheques",
        "chalk", "chalks", "chuck", "chucks", "deck", "decks", "chick", "chicks",
    ),
    PokerAction.CALL: (
        "call", "calls", "calling", "cold", "colds", "coal", "coals", "paul",
        "pauls", "tall", "talls", "col", "cols", "fall", "falls", "hall", "halls",
    ),
    PokerAction.RAISE: (
        "raise", "raises", "raising", "rays", "ray", "race", "races", "erase",
        "erases", "rice", "rices", "rose", "roses", "raised",
    ),
    PokerAction.BET: (
        "bet", "bets", "betting", "bed", "beds", "bent", "bents", "beat",
        "beats", "best", "bests", "bat", "bats",
    ),
    PokerAction.ALLIN: (
        "allin", "all", "ollie", "olin", "allen", "allens", "online", "hauling",
    ),
}

_PUNCTUATION = re.compile(r"[^\w\s]")
_WHITESPACE = re.compile(r"\s+")
_DIGITS = re.compile(r"\d+")


def normalize(text: str) -> str:
    """Lowercase, drop punctuation, collapse whitespace."""
    text = _PUNCTUATION.sub("", text.lower())
    return _WHITESPACE.sub(" ", text).strip()


def tokenize(text: str) -> list[str]:
    normalized = normalize(text)
    return normalized.split(" ") if normalized else []


def levenshtein(a: str, b: str) -> int:
    """Edit distance with unit cost insert/delete/substitute."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    prev = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        cur = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            cur.append(min(prev[j] + 1, cur[j - 1] + 1, prev[j - 1] + cost))
        prev = cur
    return prev[-1]


def match(text: str, threshold: int = FUZZY_THRESHOLD) -> Optional[PokerAction]:
    """Resolve a transcript to a poker action, or None."""
    words = tokenize(text)
    if not words:
        return None

    for word in words:
        for action, variants in ACTION_VARIANTS.items():
            if word in variants:
                return action

    best: Optional[PokerAction] = None
    best_distance = threshold
    for word in words:
        for action, variants in ACTION_VARIANTS.items():
            for variant in variants:
                distance = levenshtein(word, variant)
                if distance < best_distance:
                    best_distance = distance
                    best = action
    return best


def extract_amount(text: str) -> Optional[int]:
    """First run of decimal digits in the text, or None."""
    m = _DIGITS.search(text)
    if m is None:
        return None
    return int(m.group(0))
