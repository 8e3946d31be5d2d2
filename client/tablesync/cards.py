"""Card representation and spoken card names."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class Suit(str, Enum):
    HEARTS = "HEARTS"
    DIAMONDS = "DIAMONDS"
    CLUBS = "CLUBS"
    SPADES = "SPADES"


class Rank(str, Enum):
    TWO = "TWO"
    THREE = "THREE"
    FOUR = "FOUR"
    FIVE = "FIVE"
    SIX = "SIX"
    SEVEN = "SEVEN"
    EIGHT = "EIGHT"
    NINE = "NINE"
    TEN = "TEN"
    JACK = "JACK"
    QUEEN = "QUEEN"
    KING = "KING"
    ACE = "ACE"


RANK_SYMBOLS = {
    Rank.TWO: "2",
    Rank.THREE: "3",
    Rank.FOUR: "4",
    Rank.FIVE: "5",
    Rank.SIX: "6",
    Rank.SEVEN: "7",
    Rank.EIGHT: "8",
    Rank.NINE: "9",
    Rank.TEN: "T",
    Rank.JACK: "J",
    Rank.QUEEN: "Q",
    Rank.KING: "K",
    Rank.ACE: "A",
}

SUIT_SYMBOLS = {
    Suit.HEARTS: "h",
    Suit.DIAMONDS: "d",
    Suit.CLUBS: "c",
    Suit.SPADES: "s",
}


class Card(BaseModel):
    """A single playing card as the game service serialises it."""

    model_config = ConfigDict(frozen=True)

    rank: Rank
    suit: Suit

    def __str__(self) -> str:
        return f"{RANK_SYMBOLS[self.rank]}{SUIT_SYMBOLS[self.suit]}"

    def spoken(self) -> str:
        """'Ace of Spades', 'Ten of Hearts'."""
        return f"{self.rank.value.capitalize()} of {self.suit.value.capitalize()}"

    @classmethod
    def from_str(cls, s: str) -> Card:
        """Parse 'Ah', 'Ts', '2c' etc."""
        if len(s) != 2:
            raise ValueError(f"Invalid card: {s!r}")
        rank_map = {v: k for k, v in RANK_SYMBOLS.items()}
        suit_map = {v: k for k, v in SUIT_SYMBOLS.items()}
        try:
            return cls(rank=rank_map[s[0].upper()], suit=suit_map[s[1].lower()])
        except KeyError:
            raise ValueError(f"Invalid card: {s!r}") from None


def speak_cards(cards) -> str:
    """Join spoken card names with commas: 'Two of Clubs, Five of Hearts'."""
    return ", ".join(c.spoken() for c in cards)
