"""Tests for Card parsing and spoken card names."""

import pytest
from pydantic import ValidationError

from tablesync.cards import Card, Rank, Suit, speak_cards


# ── Card basics ──────────────────────────────────────────────────────

class TestCard:
    def test_from_wire(self):
        c = Card.model_validate({"rank": "ACE", "suit": "SPADES"})
        assert c.rank == Rank.ACE
        assert c.suit == Suit.SPADES

    def test_str(self):
        assert str(Card(rank=Rank.ACE, suit=Suit.HEARTS)) == "Ah"
        assert str(Card(rank=Rank.TEN, suit=Suit.CLUBS)) == "Tc"
        assert str(Card(rank=Rank.TWO, suit=Suit.DIAMONDS)) == "2d"

    def test_equality_and_hash(self):
        a = Card(rank=Rank.QUEEN, suit=Suit.DIAMONDS)
        b = Card.from_str("Qd")
        assert a == b
        assert len({a, b}) == 1

    def test_frozen(self):
        c = Card.from_str("Ks")
        with pytest.raises(ValidationError):
            c.rank = Rank.TWO

    def test_unknown_rank_rejected(self):
        with pytest.raises(ValidationError):
            Card.model_validate({"rank": "ONE", "suit": "SPADES"})


class TestFromStr:
    def test_parses_each_suit(self):
        assert Card.from_str("Ah").suit == Suit.HEARTS
        assert Card.from_str("Ad").suit == Suit.DIAMONDS
        assert Card.from_str("Ac").suit == Suit.CLUBS
        assert Card.from_str("As").suit == Suit.SPADES

    def test_case_insensitive(self):
        assert Card.from_str("tS") == Card(rank=Rank.TEN, suit=Suit.SPADES)

    @pytest.mark.parametrize("bad", ["", "A", "Ahh", "1h", "Ax"])
    def test_invalid(self, bad):
        with pytest.raises(ValueError):
            Card.from_str(bad)


# ── Spoken names ─────────────────────────────────────────────────────

class TestSpoken:
    def test_spoken(self):
        assert Card.from_str("As").spoken() == "Ace of Spades"
        assert Card.from_str("Th").spoken() == "Ten of Hearts"
        assert Card.from_str("2c").spoken() == "Two of Clubs"

    def test_speak_cards(self):
        cards = [Card.from_str(s) for s in ("2c", "5h", "9s")]
        assert speak_cards(cards) == "Two of Clubs, Five of Hearts, Nine of Spades"

    def test_speak_no_cards(self):
        assert speak_cards([]) == ""
