"""Table position labels (BTN, SB, BB, UTG, MP, HJ, CO)."""

from __future__ import annotations


def poker_position(player_index: int, player_count: int, small_blind_position: int) -> str:
    """Position label for a seat, or "" for heads-up and empty tables."""
    if player_count < 3 or not 0 <= player_index < player_count:
        return ""

    # Button sits one seat before the small blind
    button = (small_blind_position - 1 + player_count) % player_count

    if player_index == button:
        return "BTN"
    if player_index == small_blind_position % player_count:
        return "SB"
    if player_index == (small_blind_position + 1) % player_count:
        return "BB"

    from_button = (player_index - button + player_count) % player_count
    if from_button == 3:
        return "UTG"
    if from_button == player_count - 1:
        return "CO"
    if from_button == player_count - 2:
        return "HJ" if player_count > 4 else "UTG"
    return "MP"
