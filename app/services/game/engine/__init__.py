"""Game engine module - pure move resolution.

This module provides the core game engine with:
- Move resolution (bounce, snakes and ladders, displacement, win detection)
- Event types for WebSocket broadcasts
- ProcessResult pattern for error handling

Usage:
    from app.services.game.engine import process_roll, roll_die

    result = process_roll(session, player_id, roll_die())

    if result.success:
        new_session = result.move.session
        extra_turn = result.move.extra_turn
    else:
        # Handle rejection
        print(f"Error: {result.error_code} - {result.error_message}")
"""

# Events - for WebSocket broadcasts
from .events import (
    GameEvent,
    GameReset,
    GameSnapshot,
    GameStarted,
    GameUpdated,
    NotYourTurn,
    Outbound,
    PlayerDisconnected,
    PlayerReconnected,
    WaitingForOpponent,
)

# Move resolution
from .moves import apply_board_features, bounce, resolve_move

# Main processing
from .process import process_roll
from .rolling import roll_die

# Result types
from .validation import (
    MoveResult,
    ProcessResult,
    SessionInvariantError,
    ValidationResult,
    validate_roll,
)

__all__ = [
    # Events
    "GameEvent",
    "Outbound",
    "WaitingForOpponent",
    "GameStarted",
    "GameUpdated",
    "GameReset",
    "GameSnapshot",
    "PlayerDisconnected",
    "PlayerReconnected",
    "NotYourTurn",
    # Processing
    "process_roll",
    "resolve_move",
    "bounce",
    "apply_board_features",
    "roll_die",
    # Validation
    "MoveResult",
    "ProcessResult",
    "SessionInvariantError",
    "ValidationResult",
    "validate_roll",
]
