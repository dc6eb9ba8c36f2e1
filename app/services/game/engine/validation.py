"""Validation layer for roll requests and the ProcessResult pattern.

Separates validation from processing logic:
- validate_roll() checks if a roll is allowed given current state
- ProcessResult replaces exceptions for control flow
"""

import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

from app.schemas.game_engine import GameStatus, Session


class SessionInvariantError(RuntimeError):
    """A session is in a state the engine must never be asked to handle."""


@dataclass
class MoveResult:
    """What a single resolved roll did to a session."""

    session: Session
    extra_turn: bool
    displaced_player_ids: list[str] = field(default_factory=list)


@dataclass
class ProcessResult:
    """Result of processing a roll request.

    Replaces exceptions for control flow, providing explicit success/failure
    with error codes suitable for client localization.
    """

    move: MoveResult | None = None
    success: bool = True
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls, move: MoveResult) -> "ProcessResult":
        """Create a successful result carrying the resolved move."""
        return cls(move=move, success=True)

    @classmethod
    def failure(cls, code: str, message: str) -> "ProcessResult":
        """Create a failure result with error details."""
        return cls(
            move=None,
            success=False,
            error_code=code,
            error_message=message,
        )


@dataclass
class ValidationResult:
    """Result of validating an action before processing."""

    is_valid: bool = True
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(is_valid=True)

    @classmethod
    def error(cls, code: str, message: str) -> "ValidationResult":
        """Create a validation failure with error details."""
        return cls(
            is_valid=False,
            error_code=code,
            error_message=message,
        )


def validate_roll(session: Session, player_id: str) -> ValidationResult:
    """Validate a roll request before resolving it.

    Checks:
    - The game is not already won
    - Both players are still in the session
    - It's the requesting player's turn
    """
    if session.status == GameStatus.WON:
        logger.warning("Validation failed: GAME_FINISHED, session=%s", session.id)
        return ValidationResult.error(
            "GAME_FINISHED",
            "Game has already finished",
        )

    if len(session.players) != 2:
        logger.warning(
            "Validation failed: WAITING_FOR_PLAYERS, session=%s, players=%d",
            session.id,
            len(session.players),
        )
        return ValidationResult.error(
            "WAITING_FOR_PLAYERS",
            "The game needs two players",
        )

    if session.current_player != player_id:
        logger.warning(
            "Validation failed: NOT_YOUR_TURN, current=%s, attempted=%s",
            session.current_player,
            player_id,
        )
        return ValidationResult.error(
            "NOT_YOUR_TURN",
            "It's not your turn",
        )

    return ValidationResult.ok()
