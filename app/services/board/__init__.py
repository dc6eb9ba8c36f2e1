"""Board layouts: presets, validation, generation and acquisition."""

from .generator import BoardGenerationError, BoardGenerator, generate_algorithmically
from .presets import (
    DEFAULT_BOARD,
    DIFFICULTY_CONFIGS,
    PRESET_BOARDS,
    get_difficulty_config,
    get_preset_board,
)
from .provider import BoardProvider
from .validation import BoardValidationResult, validate_board

__all__ = [
    "BoardGenerationError",
    "BoardGenerator",
    "BoardProvider",
    "BoardValidationResult",
    "DEFAULT_BOARD",
    "DIFFICULTY_CONFIGS",
    "PRESET_BOARDS",
    "generate_algorithmically",
    "get_difficulty_config",
    "get_preset_board",
    "validate_board",
]
