"""Main entry point for roll processing.

This module provides the primary interface for handling a roll request:
- process_roll(): Validates the request and resolves the move
- Returns ProcessResult with the resolved move or an error code
"""

import logging

logger = logging.getLogger(__name__)

from app.schemas.game_engine import Session

from .moves import resolve_move
from .validation import ProcessResult, validate_roll


def process_roll(session: Session, player_id: str, die_value: int) -> ProcessResult:
    """Process a roll and return the result.

    Args:
        session: Current session state.
        player_id: The player attempting to roll.
        die_value: The rolled value (1-6).

    Returns:
        ProcessResult containing:
        - success: Whether the roll was applied
        - move: MoveResult with the updated session (if successful)
        - error_code/error_message: Error details (if rejected)

    Example:
        >>> result = process_roll(session, player_id, roll_die())
        >>> if result.success:
        ...     registry.save(result.move.session)
        ... else:
        ...     send_error(result.error_code, result.error_message)
    """
    logger.info(
        "Processing roll: session=%s, player=%s, value=%d",
        session.id,
        player_id,
        die_value,
    )

    validation = validate_roll(session, player_id)
    if not validation.is_valid:
        return ProcessResult.failure(
            validation.error_code or "VALIDATION_ERROR",
            validation.error_message or "Invalid roll",
        )

    move = resolve_move(session, player_id, die_value)
    logger.info(
        "Roll processed: session=%s, player=%s, position=%d, extra_turn=%s, displaced=%s",
        session.id,
        player_id,
        move.session.players[player_id].position,
        move.extra_turn,
        move.displaced_player_ids,
    )
    return ProcessResult.ok(move)
