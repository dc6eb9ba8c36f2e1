"""Game service module.

Provides:
- Game engine processing (engine/)
- Event coordination between matchmaking, sessions and the engine (coordinator.py)
"""

# Re-export from engine for convenience
from .engine import (
    MoveResult,
    Outbound,
    ProcessResult,
    SessionInvariantError,
    process_roll,
    resolve_move,
    roll_die,
)

__all__ = [
    # Engine
    "MoveResult",
    "Outbound",
    "ProcessResult",
    "SessionInvariantError",
    "process_roll",
    "resolve_move",
    "roll_die",
]
