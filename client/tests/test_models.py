"""Tests for snapshot, command and session models."""

import pytest
from pydantic import ValidationError

from fakes import action_payload, card_payload, make_snapshot, player_payload, snapshot_payload
from tablesync.cards import Card
from tablesync.models import (
    ActionType,
    GameAction,
    GameCommand,
    GameStatus,
    JoinPlayerRequest,
    Player,
    RoomSnapshot,
    SessionState,
    UserRole,
)


class TestRoomSnapshot:
    def test_parses_camel_case(self):
        snap = make_snapshot(
            state="FLOP",
            current_bet=40,
            bets={"p1": 10},
            current_player_index=1,
            community=("2c", "5h", "9s"),
            pot=120,
            small_blind_position=1,
        )
        assert snap.game_state == GameStatus.FLOP
        assert snap.current_bet == 40
        assert snap.bets == {"p1": 10}
        assert snap.current_player_index == 1
        assert [str(c) for c in snap.community_cards] == ["2c", "5h", "9s"]
        assert snap.small_blind_position == 1

    def test_null_collections_become_empty(self):
        data = snapshot_payload()
        data.update(players=None, actions=None, communityCards=None, winnerIds=None, bets=None)
        snap = RoomSnapshot.model_validate(data)
        assert snap.players == ()
        assert snap.actions == ()
        assert snap.community_cards == ()
        assert snap.winner_ids == ()
        assert snap.bets == {}

    def test_unknown_fields_ignored(self):
        data = snapshot_payload()
        data["dealerName"] = "Dana"
        snap = RoomSnapshot.model_validate(data)
        assert snap.id == "G1"

    def test_too_many_community_cards(self):
        data = snapshot_payload()
        data["communityCards"] = [card_payload(c) for c in ("2c", "3c", "4c", "5c", "6c", "7c")]
        with pytest.raises(ValidationError):
            RoomSnapshot.model_validate(data)

    def test_negative_pot_rejected(self):
        data = snapshot_payload(pot=-1)
        with pytest.raises(ValidationError):
            RoomSnapshot.model_validate(data)

    def test_immutable(self):
        snap = make_snapshot()
        with pytest.raises(ValidationError):
            snap.pot = 10

    def test_is_betting_stage(self):
        assert make_snapshot(state="TURN").is_betting_stage
        assert not make_snapshot(state="SHOWDOWN").is_betting_stage
        assert not make_snapshot(state="WAITING").is_betting_stage

    def test_current_player(self):
        snap = make_snapshot(current_player_index=1)
        assert snap.current_player.id == "p2"

    def test_current_player_out_of_range(self):
        assert make_snapshot(current_player_index=5).current_player is None
        assert make_snapshot(current_player_index=-1).current_player is None

    def test_player_lookup(self):
        snap = make_snapshot()
        assert snap.player_index("p2") == 1
        assert snap.player_index("nope") == -1
        assert snap.player_index(None) == -1
        assert snap.find_player("p1").name == "Alice"
        assert snap.find_player("nope") is None

    def test_bet_of_defaults_to_zero(self):
        snap = make_snapshot(bets={"p1": 20})
        assert snap.bet_of("p1") == 20
        assert snap.bet_of("p2") == 0


class TestPlayer:
    def test_hole_cards(self):
        p = Player.model_validate(player_payload("p1", cards=["Ah", "Kd"]))
        assert [str(c) for c in p.hole_cards] == ["Ah", "Kd"]

    def test_no_hand(self):
        p = Player.model_validate(player_payload("p1"))
        assert p.hole_cards == ()

    def test_negative_chips_rejected(self):
        with pytest.raises(ValidationError):
            Player.model_validate(player_payload("p1", chips=-5))


class TestGameAction:
    def test_key(self):
        a = GameAction.model_validate(action_payload("CALL", "p1", 40, ts="2025-03-15T10:00:00"))
        assert a.key == ("CALL", "p1", "2025-03-15T10:00:00")

    def test_array_timestamp_flattened(self):
        a = GameAction.model_validate({"type": "FOLD", "playerId": "p2", "timestamp": [2025, 3, 15, 10, 0, 0]})
        assert a.timestamp == "2025-3-15-10-0-0"

    def test_unknown_type_kept(self):
        a = GameAction.model_validate({"type": "TIP_DEALER", "timestamp": "9"})
        assert a.type == "TIP_DEALER"


class TestGameCommand:
    def test_to_wire_omits_missing_fields(self):
        cmd = GameCommand(type=ActionType.CALL, player_id="p1", player_name="Alice", amount=20)
        assert cmd.to_wire() == {"type": "CALL", "playerId": "p1", "playerName": "Alice", "amount": 20}

    def test_fold_has_no_amount(self):
        cmd = GameCommand(type=ActionType.FOLD, player_id="p1")
        assert cmd.to_wire() == {"type": "FOLD", "playerId": "p1"}

    def test_scan_card(self):
        cmd = GameCommand(type=ActionType.SCAN_CARD, card=Card.from_str("As"))
        assert cmd.to_wire() == {"type": "SCAN_CARD", "card": {"rank": "ACE", "suit": "SPADES"}}


class TestSessionState:
    def test_json_uses_camel_case(self):
        state = SessionState(role=UserRole.PLAYER, player_id="p1", game_id="G1")
        raw = state.model_dump_json(by_alias=True)
        assert '"playerId":"p1"' in raw
        assert '"screenReaderEnabled":false' in raw
        assert SessionState.model_validate_json(raw) == state

    def test_role_required(self):
        with pytest.raises(ValidationError):
            SessionState.model_validate({"playerId": "p1"})


class TestJoinPlayerRequest:
    def test_dump(self):
        req = JoinPlayerRequest(name="Alice", game_code="G1", visually_impaired=True)
        assert req.model_dump(by_alias=True) == {
            "name": "Alice",
            "gameCode": "G1",
            "online": True,
            "visuallyImpaired": True,
        }

    def test_name_too_long(self):
        with pytest.raises(ValidationError):
            JoinPlayerRequest(name="x" * 21, game_code="G1")

    def test_empty_name(self):
        with pytest.raises(ValidationError):
            JoinPlayerRequest(name="", game_code="G1")
