"""Shared fixtures for game engine, session and transport tests."""

import asyncio
from collections.abc import Iterable

import pytest

from app.config import Settings
from app.schemas.game_engine import (
    BoardDescriptor,
    Difficulty,
    GameStatus,
    PlayerState,
    Session,
)
from app.services.board import BoardProvider
from app.services.game.coordinator import GameCoordinator
from app.services.game.engine import GameEvent, Outbound
from app.services.session import SessionRegistry

# Fixed ids for deterministic testing
PLAYER_1_ID = "player-1"
PLAYER_2_ID = "player-2"
PLAYER_3_ID = "player-3"

# Small valid board: snakes 99->80 and 40->10, ladders 3->22 and 50->70
TEST_BOARD = BoardDescriptor(
    snakes={99: 80, 40: 10},
    ladders={3: 22, 50: 70},
)


class StaticBoardSource:
    """Board generator stand-in that always returns the same board."""

    def __init__(self, board: BoardDescriptor = TEST_BOARD):
        self.board = board
        self.calls: list[Difficulty] = []

    async def generate_board(self, difficulty: Difficulty) -> BoardDescriptor:
        self.calls.append(difficulty)
        return self.board


class FailingBoardSource:
    """Board generator stand-in that always raises."""

    async def generate_board(self, difficulty: Difficulty) -> BoardDescriptor:
        raise RuntimeError("generator unavailable")


class GatedBoardSource(StaticBoardSource):
    """Blocks the first generate_board call until ``release`` is set.

    Later calls return immediately.
    """

    def __init__(self, board: BoardDescriptor = TEST_BOARD):
        super().__init__(board)
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def generate_board(self, difficulty: Difficulty) -> BoardDescriptor:
        if not self.started.is_set():
            self.started.set()
            await self.release.wait()
        return await super().generate_board(difficulty)


class ScriptedDie:
    """Returns the given values in order."""

    def __init__(self, values: Iterable[int]):
        self._values = iter(values)

    def __call__(self) -> int:
        return next(self._values)


def make_settings(**overrides) -> Settings:
    values = {
        "BOARD_GENERATOR_URL": None,
        "BOARD_GENERATION_TIMEOUT": 1.0,
        "DISCONNECT_GRACE_SECONDS": 5.0,
    }
    values.update(overrides)
    return Settings(**values)


def make_session(
    positions: tuple[int, int] = (0, 0),
    current_player: str = PLAYER_1_ID,
    status: GameStatus = GameStatus.PLAYING,
    winner: str | None = None,
    board: BoardDescriptor = TEST_BOARD,
) -> Session:
    """Two-player session with the given positions."""
    return Session(
        id="game_test",
        players={
            PLAYER_1_ID: PlayerState(
                id=PLAYER_1_ID, name="Player 1", position=positions[0], player_number=1
            ),
            PLAYER_2_ID: PlayerState(
                id=PLAYER_2_ID, name="Player 2", position=positions[1], player_number=2
            ),
        },
        current_player=current_player,
        status=status,
        winner=winner,
        difficulty=Difficulty.MODERATE,
        board=board,
    )


def make_registry(source=None, settings: Settings | None = None) -> SessionRegistry:
    settings = settings or make_settings()
    provider = BoardProvider(generator=source or StaticBoardSource(), settings=settings)
    return SessionRegistry(board_provider=provider, settings=settings)


def make_coordinator(
    source=None,
    die_values: Iterable[int] = (),
    settings: Settings | None = None,
) -> GameCoordinator:
    settings = settings or make_settings()
    return GameCoordinator(
        registry=make_registry(source, settings),
        settings=settings,
        die=ScriptedDie(die_values),
    )


def events_for(outbound: list[Outbound], player_id: str) -> list[GameEvent]:
    """Events addressed to one player, in delivery order."""
    return [item.event for item in outbound if player_id in item.recipients]


def event_types_for(outbound: list[Outbound], player_id: str) -> list[str]:
    return [event.event_type for event in events_for(outbound, player_id)]


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def fresh_session() -> Session:
    """Both players at the start, player 1 to move."""
    return make_session()
