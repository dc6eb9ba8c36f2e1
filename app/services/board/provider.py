"""Board acquisition for new sessions."""

import asyncio
import logging
from typing import Protocol

from app.config import Settings, get_settings
from app.schemas.game_engine import BoardDescriptor, Difficulty

from .generator import BoardGenerator
from .presets import DEFAULT_BOARD, get_difficulty_config, get_preset_board
from .validation import validate_board

logger = logging.getLogger(__name__)


class BoardSource(Protocol):
    async def generate_board(self, difficulty: Difficulty) -> BoardDescriptor: ...


class BoardProvider:
    """Hands out a valid board for every new session.

    Generation failures, timeouts and invalid layouts are absorbed here: the
    preset for the difficulty is used instead, then DEFAULT_BOARD.
    """

    def __init__(
        self,
        generator: BoardSource | None = None,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        self._generator = generator or BoardGenerator(self._settings)

    async def acquire(self, difficulty: Difficulty) -> BoardDescriptor:
        config = get_difficulty_config(difficulty)
        try:
            board = await asyncio.wait_for(
                self._generator.generate_board(difficulty),
                timeout=self._settings.BOARD_GENERATION_TIMEOUT,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Board generation timed out after %.1fs, using %s preset",
                self._settings.BOARD_GENERATION_TIMEOUT,
                difficulty.value,
            )
            return self.fallback(difficulty)
        except Exception as e:
            logger.error("Board generation failed, using %s preset: %s", difficulty.value, e)
            return self.fallback(difficulty)

        if not isinstance(board, BoardDescriptor) or not validate_board(board, config).is_valid:
            logger.warning("Generated board rejected, using %s preset", difficulty.value)
            return self.fallback(difficulty)

        logger.info(
            "Board generated for %s difficulty: %d ladders, %d snakes",
            difficulty.value,
            len(board.ladders),
            len(board.snakes),
        )
        return board

    def fallback(self, difficulty: Difficulty) -> BoardDescriptor:
        """Preset board for the difficulty, or the global default."""
        preset = get_preset_board(difficulty)
        if validate_board(preset).is_valid:
            return preset
        logger.error("Preset board for %s is invalid, using default board", difficulty.value)
        return DEFAULT_BOARD

    async def close(self) -> None:
        close = getattr(self._generator, "close", None)
        if close is not None:
            await close()
