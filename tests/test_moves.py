"""Tests for move resolution.

Critical scenarios tested:
- Bounce off square 100 for every overshooting position/roll pair
- Snakes and ladders are followed after the bounce
- Landing on the opponent sends them back to square 1
- Winning freezes the turn and never grants an extra turn
- Rolling a 6 keeps the turn, anything else passes it on
"""

import pytest

from app.schemas.game_engine import GameStatus, PlayerState
from app.services.game.engine import (
    SessionInvariantError,
    apply_board_features,
    bounce,
    resolve_move,
)

from .conftest import PLAYER_1_ID, PLAYER_2_ID, TEST_BOARD, make_session


class TestBounce:
    """Overshooting square 100 reflects back by the excess."""

    def test_bounce_reflects_every_overshoot(self):
        for position in range(0, 101):
            for die in range(1, 7):
                if position + die > 100:
                    target = bounce(position + die)
                    assert target == 200 - position - die
                    assert 94 <= target <= 100

    def test_bounce_leaves_reachable_targets_alone(self):
        assert bounce(57) == 57
        assert bounce(100) == 100

    def test_overshoot_lands_on_reflected_square(self):
        session = make_session(positions=(98, 0))

        result = resolve_move(session, PLAYER_1_ID, 4)

        assert result.session.players[PLAYER_1_ID].position == 98
        assert result.session.status == GameStatus.PLAYING


class TestBoardFeatures:
    def test_ladder_climbs(self, fresh_session):
        result = resolve_move(fresh_session, PLAYER_1_ID, 3)
        assert result.session.players[PLAYER_1_ID].position == 22

    def test_snake_descends(self):
        session = make_session(positions=(36, 0))

        result = resolve_move(session, PLAYER_1_ID, 4)

        assert result.session.players[PLAYER_1_ID].position == 10

    def test_plain_square_is_unchanged(self):
        assert apply_board_features(TEST_BOARD, 57) == 57

    def test_bounce_then_snake_keeps_extra_turn(self):
        """95 + 6 = 101 bounces to 99, a snake head down to 80."""
        session = make_session(positions=(95, 0))

        result = resolve_move(session, PLAYER_1_ID, 6)

        assert result.session.players[PLAYER_1_ID].position == 80
        assert result.session.status == GameStatus.PLAYING
        assert result.session.winner is None
        assert result.extra_turn is True
        assert result.session.current_player == PLAYER_1_ID


class TestDisplacement:
    """Landing on the opponent sends them to square 1."""

    def test_opponent_on_target_goes_to_square_one(self):
        session = make_session(positions=(10, 14))

        result = resolve_move(session, PLAYER_1_ID, 4)

        assert result.session.players[PLAYER_1_ID].position == 14
        assert result.session.players[PLAYER_2_ID].position == 1
        assert result.displaced_player_ids == [PLAYER_2_ID]

    def test_collision_is_checked_after_ladder(self):
        session = make_session(positions=(0, 22))

        result = resolve_move(session, PLAYER_1_ID, 3)

        assert result.session.players[PLAYER_1_ID].position == 22
        assert result.session.players[PLAYER_2_ID].position == 1
        assert result.displaced_player_ids == [PLAYER_2_ID]

    def test_opponent_already_on_square_one_is_still_reported(self):
        session = make_session(positions=(0, 1))

        result = resolve_move(session, PLAYER_1_ID, 1)

        assert result.session.players[PLAYER_1_ID].position == 1
        assert result.session.players[PLAYER_2_ID].position == 1
        assert result.displaced_player_ids == [PLAYER_2_ID]

    def test_no_displacement_on_different_square(self):
        session = make_session(positions=(10, 20))

        result = resolve_move(session, PLAYER_1_ID, 2)

        assert result.session.players[PLAYER_2_ID].position == 20
        assert result.displaced_player_ids == []


class TestWin:
    def test_reaching_100_wins(self):
        session = make_session(positions=(97, 0))

        result = resolve_move(session, PLAYER_1_ID, 3)

        assert result.session.players[PLAYER_1_ID].position == 100
        assert result.session.status == GameStatus.WON
        assert result.session.winner == PLAYER_1_ID
        assert result.extra_turn is False
        assert result.session.current_player == PLAYER_1_ID

    def test_winning_six_grants_no_extra_turn(self):
        session = make_session(positions=(94, 0))

        result = resolve_move(session, PLAYER_1_ID, 6)

        assert result.session.status == GameStatus.WON
        assert result.extra_turn is False
        assert result.session.current_player == PLAYER_1_ID


class TestTurnAdvance:
    def test_non_six_passes_turn(self, fresh_session):
        result = resolve_move(fresh_session, PLAYER_1_ID, 2)

        assert result.extra_turn is False
        assert result.session.current_player == PLAYER_2_ID

    def test_six_keeps_turn(self, fresh_session):
        result = resolve_move(fresh_session, PLAYER_1_ID, 6)

        assert result.extra_turn is True
        assert result.session.current_player == PLAYER_1_ID

    def test_second_player_passes_back(self):
        session = make_session(positions=(5, 5), current_player=PLAYER_2_ID)

        result = resolve_move(session, PLAYER_2_ID, 1)

        assert result.session.current_player == PLAYER_1_ID

    def test_records_last_dice_value(self, fresh_session):
        result = resolve_move(fresh_session, PLAYER_1_ID, 5)
        assert result.session.last_dice_value == 5


class TestPurity:
    def test_input_session_is_not_mutated(self):
        session = make_session(positions=(10, 14))
        before = session.model_dump()

        resolve_move(session, PLAYER_1_ID, 4)

        assert session.model_dump() == before


class TestInvariantViolations:
    def test_single_player_session_raises(self, fresh_session):
        del fresh_session.players[PLAYER_2_ID]

        with pytest.raises(SessionInvariantError):
            resolve_move(fresh_session, PLAYER_1_ID, 3)

    def test_unknown_player_raises(self, fresh_session):
        with pytest.raises(SessionInvariantError):
            resolve_move(fresh_session, "stranger", 3)

    def test_die_out_of_range_raises(self, fresh_session):
        with pytest.raises(SessionInvariantError):
            resolve_move(fresh_session, PLAYER_1_ID, 7)

    def test_position_bounds_are_enforced_by_model(self):
        with pytest.raises(ValueError):
            PlayerState(id="x", name="x", position=101, player_number=1)
