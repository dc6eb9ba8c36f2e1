"""Fixed board layouts used when generation fails."""

from app.schemas.game_engine import BoardDescriptor, Difficulty, DifficultyConfig

# fmt: off
DIFFICULTY_CONFIGS: dict[Difficulty, DifficultyConfig] = {
    Difficulty.EASY: DifficultyConfig(
        ladders=12, snakes=5, description="beginner-friendly with more ladders",
    ),
    Difficulty.MODERATE: DifficultyConfig(
        ladders=8, snakes=8, description="balanced gameplay",
    ),
    Difficulty.HARD: DifficultyConfig(
        ladders=5, snakes=12, description="challenging with more snakes",
    ),
}

PRESET_BOARDS: dict[Difficulty, BoardDescriptor] = {
    Difficulty.EASY: BoardDescriptor(
        snakes={25: 5, 47: 16, 72: 50, 89: 68, 98: 79},
        ladders={
             3: 22,  8: 31, 15: 44, 20: 41, 28: 56, 36: 77,
            51: 67, 62: 81, 71: 91, 74: 93, 84: 95, 87: 94,
        },
    ),
    Difficulty.MODERATE: BoardDescriptor(
        snakes={16: 6, 47: 26, 56: 34, 62: 19, 64: 39, 87: 24, 93: 55, 98: 78},
        ladders={4: 14, 9: 31, 21: 42, 28: 84, 36: 57, 51: 67, 71: 91, 80: 99},
    ),
    Difficulty.HARD: BoardDescriptor(
        snakes={
            17: 3, 22: 5, 34: 12, 42: 18, 48: 11, 54: 31,
            67: 29, 76: 25, 89: 46, 92: 73, 95: 56, 99: 68,
        },
        ladders={7: 27, 15: 35, 24: 43, 39: 58, 65: 85},
    ),
}

DEFAULT_BOARD = BoardDescriptor(
    snakes={
        16: 6, 47: 26, 49: 11, 56: 53, 62: 19,
        64: 60, 87: 24, 93: 73, 95: 75, 98: 78,
    },
    ladders={2: 38, 4: 14, 9: 31, 21: 42, 28: 84, 36: 44, 51: 67, 71: 91, 80: 99},
)
# fmt: on


def get_difficulty_config(difficulty: Difficulty | str | None) -> DifficultyConfig:
    """Feature counts for a difficulty; unknown values get the moderate config."""
    return DIFFICULTY_CONFIGS.get(
        Difficulty.parse(difficulty), DIFFICULTY_CONFIGS[Difficulty.MODERATE]
    )


def get_preset_board(difficulty: Difficulty | str | None) -> BoardDescriptor:
    return PRESET_BOARDS.get(Difficulty.parse(difficulty), DEFAULT_BOARD)
