"""Validation of snake/ladder layouts before they are attached to a session."""

import logging
from dataclasses import dataclass

from app.schemas.game_engine import (
    BOARD_FINAL_SQUARE,
    BOARD_FIRST_SQUARE,
    BoardDescriptor,
    DifficultyConfig,
)

logger = logging.getLogger(__name__)

# Generated boards may miss their configured feature counts by this much
COUNT_TOLERANCE = 2

MIN_FEATURE_SQUARE = BOARD_FIRST_SQUARE + 1
MAX_FEATURE_SQUARE = BOARD_FINAL_SQUARE - 1


@dataclass
class BoardValidationResult:
    """Outcome of checking a board layout."""

    is_valid: bool = True
    reason: str | None = None

    @classmethod
    def ok(cls) -> "BoardValidationResult":
        return cls(is_valid=True)

    @classmethod
    def error(cls, reason: str) -> "BoardValidationResult":
        return cls(is_valid=False, reason=reason)


def _in_range(position: int) -> bool:
    return MIN_FEATURE_SQUARE <= position <= MAX_FEATURE_SQUARE


def validate_board(
    board: BoardDescriptor,
    config: DifficultyConfig | None = None,
) -> BoardValidationResult:
    """Check a board against the layout invariants.

    Structural checks always apply:
    - Snakes go down, ladders go up
    - Every head, tail, bottom and top lies in 2..99
    - No square is used by more than one feature endpoint

    When ``config`` is given, feature counts must also be within
    ``COUNT_TOLERANCE`` of the configured counts.
    """
    if config is not None:
        if abs(len(board.snakes) - config.snakes) > COUNT_TOLERANCE:
            return _reject(
                f"expected {config.snakes} snakes, got {len(board.snakes)}"
            )
        if abs(len(board.ladders) - config.ladders) > COUNT_TOLERANCE:
            return _reject(
                f"expected {config.ladders} ladders, got {len(board.ladders)}"
            )

    used: set[int] = set()

    for head, tail in board.snakes.items():
        if head <= tail:
            return _reject(f"snake {head}->{tail} does not go down")
        if not (_in_range(head) and _in_range(tail)):
            return _reject(f"snake {head}->{tail} is out of range")
        if head in used or tail in used:
            return _reject(f"snake {head}->{tail} overlaps another feature")
        used.update((head, tail))

    for bottom, top in board.ladders.items():
        if bottom >= top:
            return _reject(f"ladder {bottom}->{top} does not go up")
        if not (_in_range(bottom) and _in_range(top)):
            return _reject(f"ladder {bottom}->{top} is out of range")
        if bottom in used or top in used:
            return _reject(f"ladder {bottom}->{top} overlaps another feature")
        used.update((bottom, top))

    return BoardValidationResult.ok()


def _reject(reason: str) -> BoardValidationResult:
    logger.warning("Board validation failed: %s", reason)
    return BoardValidationResult.error(reason)
