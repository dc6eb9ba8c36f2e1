"""Board layout generation.

Tries the remote generator service when one is configured and falls back to
random algorithmic placement otherwise.
"""

import logging
import random

import httpx
from pydantic import ValidationError

from app.config import Settings, get_settings
from app.schemas.game_engine import BoardDescriptor, Difficulty, DifficultyConfig

from .presets import get_difficulty_config
from .validation import validate_board

logger = logging.getLogger(__name__)

MAX_PLACEMENT_ATTEMPTS = 50
MIN_FEATURE_LENGTH = 10


class BoardGenerationError(Exception):
    """Raised when no valid board could be generated."""


def generate_algorithmically(
    config: DifficultyConfig,
    rng: random.Random | None = None,
) -> BoardDescriptor:
    """Place ladders, then snakes, at random free squares.

    Squares 1 and 100 are reserved. Each feature spans at least
    MIN_FEATURE_LENGTH squares; a feature that cannot be placed within
    MAX_PLACEMENT_ATTEMPTS tries is skipped.
    """
    rng = rng or random.Random()
    used: set[int] = {1, 100}
    ladders: dict[int, int] = {}
    snakes: dict[int, int] = {}

    for _ in range(config.ladders):
        for _ in range(MAX_PLACEMENT_ATTEMPTS):
            bottom = rng.randint(2, 71)
            top = bottom + rng.randint(MIN_FEATURE_LENGTH, 34)
            if top <= 99 and bottom not in used and top not in used:
                ladders[bottom] = top
                used.update((bottom, top))
                break

    for _ in range(config.snakes):
        for _ in range(MAX_PLACEMENT_ATTEMPTS):
            head = rng.randint(25, 94)
            tail = rng.randint(2, head - MIN_FEATURE_LENGTH + 1)
            if head not in used and tail not in used:
                snakes[head] = tail
                used.update((head, tail))
                break

    logger.debug(
        "Generated board algorithmically: %d ladders, %d snakes",
        len(ladders),
        len(snakes),
    )
    return BoardDescriptor(snakes=snakes, ladders=ladders)


class BoardGenerator:
    """Produces board layouts for a difficulty.

    The remote service receives the difficulty config as JSON and must answer
    with ``{"snakes": {...}, "ladders": {...}}``.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        rng: random.Random | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._settings = settings or get_settings()
        self._rng = rng or random.Random()
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create the httpx async client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=self._settings.BOARD_GENERATION_TIMEOUT
            )
        return self._http_client

    async def generate_board(self, difficulty: Difficulty | str | None) -> BoardDescriptor:
        """Generate a board, preferring the remote generator.

        Raises:
            BoardGenerationError: If the algorithmic fallback also produced
                an invalid board.
        """
        config = get_difficulty_config(difficulty)

        if self._settings.BOARD_GENERATOR_URL:
            remote_board = await self._generate_remote(difficulty, config)
            if remote_board is not None:
                return remote_board
            logger.info("Remote board generation unavailable, using algorithmic fallback")

        board = generate_algorithmically(config, self._rng)
        validation = validate_board(board, config)
        if not validation.is_valid:
            raise BoardGenerationError(validation.reason or "Invalid generated board")
        return board

    async def _generate_remote(
        self,
        difficulty: Difficulty | str | None,
        config: DifficultyConfig,
    ) -> BoardDescriptor | None:
        """Request a board from the remote generator, or None on any failure."""
        url = self._settings.BOARD_GENERATOR_URL
        request_body = {
            "difficulty": Difficulty.parse(difficulty).value,
            "ladders": config.ladders,
            "snakes": config.snakes,
            "description": config.description,
        }

        try:
            client = await self._get_http_client()
            response = await client.post(url, json=request_body)
            response.raise_for_status()
            board = BoardDescriptor.model_validate(response.json())
        except httpx.HTTPError as e:
            logger.warning("Board generator request to %s failed: %s", url, e)
            return None
        except (ValueError, ValidationError) as e:
            logger.warning("Board generator returned a malformed board: %s", e)
            return None

        if not validate_board(board, config).is_valid:
            return None

        logger.info(
            "Remote board accepted: %d ladders, %d snakes",
            len(board.ladders),
            len(board.snakes),
        )
        return board

    async def close(self) -> None:
        """Close the httpx client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()
            self._http_client = None
