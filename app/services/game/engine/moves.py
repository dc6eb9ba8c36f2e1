"""Move resolution: bounce, snakes and ladders, displacement, win detection."""

import logging

logger = logging.getLogger(__name__)

from app.schemas.game_engine import (
    BOARD_FINAL_SQUARE,
    BOARD_START,
    DISPLACED_POSITION,
    BoardDescriptor,
    GameStatus,
    Session,
)

from .validation import MoveResult, SessionInvariantError

EXTRA_TURN_ROLL = 6


def bounce(target: int) -> int:
    """Reflect an overshoot past the final square back toward it."""
    if target > BOARD_FINAL_SQUARE:
        return BOARD_FINAL_SQUARE - (target - BOARD_FINAL_SQUARE)
    return target


def apply_board_features(board: BoardDescriptor, position: int) -> int:
    """Follow a snake or ladder starting on ``position``, if any."""
    if position in board.snakes:
        return board.snakes[position]
    if position in board.ladders:
        return board.ladders[position]
    return position


def resolve_move(session: Session, player_id: str, die_value: int) -> MoveResult:
    """Resolve one roll for the player to move.

    Works on a copy; the given session is left untouched. The caller is
    responsible for turn validation (see validate_roll).

    Raises:
        SessionInvariantError: If the session does not hold exactly two
            players, the player is unknown, or the die value is not 1..6.
    """
    if len(session.players) != 2:
        raise SessionInvariantError(
            f"Session {session.id} has {len(session.players)} players, expected 2"
        )
    if player_id not in session.players:
        raise SessionInvariantError(f"Player {player_id} is not in session {session.id}")
    if not 1 <= die_value <= 6:
        raise SessionInvariantError(f"Die value {die_value} is out of range")

    updated = session.model_copy(deep=True)
    player = updated.players[player_id]
    start = player.position

    target = bounce(start + die_value)
    target = apply_board_features(updated.board, target)

    displaced: list[str] = []
    for other in updated.players.values():
        if other.id != player_id and other.position == target and target != BOARD_START:
            other.position = DISPLACED_POSITION
            displaced.append(other.id)
            logger.info(
                "Player %s displaced player %s at square %d",
                player_id,
                other.id,
                target,
            )

    player.position = target
    updated.last_dice_value = die_value
    logger.debug(
        "Move resolved: player=%s, roll=%d, %d -> %d",
        player_id,
        die_value,
        start,
        target,
    )

    if target == BOARD_FINAL_SQUARE:
        updated.status = GameStatus.WON
        updated.winner = player_id
        logger.info("Player %s won session %s", player_id, updated.id)
        return MoveResult(session=updated, extra_turn=False, displaced_player_ids=displaced)

    extra_turn = die_value == EXTRA_TURN_ROLL
    if not extra_turn:
        next_player = updated.other_player_id(player_id)
        if next_player is not None:
            updated.current_player = next_player

    return MoveResult(session=updated, extra_turn=extra_turn, displaced_player_ids=displaced)
