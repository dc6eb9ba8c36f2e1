from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

BOARD_START = 0
BOARD_FIRST_SQUARE = 1
BOARD_FINAL_SQUARE = 100
DISPLACED_POSITION = 1


class Difficulty(str, Enum):
    EASY = "easy"
    MODERATE = "moderate"
    HARD = "hard"

    @classmethod
    def parse(cls, value: "str | Difficulty | None") -> "Difficulty":
        """Map a client preference to a difficulty, defaulting to MODERATE."""
        if isinstance(value, Difficulty):
            return value
        try:
            return cls(str(value).lower()) if value else cls.MODERATE
        except ValueError:
            return cls.MODERATE


class GameStatus(str, Enum):
    PLAYING = "playing"
    WON = "won"


# Board layout, produced by the generator and attached to a session unchanged
class BoardDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    snakes: dict[int, int]
    ladders: dict[int, int]


class DifficultyConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    ladders: int
    snakes: int
    description: str


class PlayerState(BaseModel):
    id: str
    name: str
    position: int = Field(BOARD_START, ge=BOARD_START, le=BOARD_FINAL_SQUARE)
    player_number: int = Field(..., ge=1, le=2)


class Session(BaseModel):
    """Authoritative state of one two-player game.

    Player order in ``players`` follows ``player_number``; the first entry is
    the player who moves first after a reset.
    """

    id: str
    players: dict[str, PlayerState]
    current_player: str
    status: GameStatus = GameStatus.PLAYING
    winner: str | None = None
    difficulty: Difficulty
    board: BoardDescriptor
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_dice_value: int = 1

    def other_player_id(self, player_id: str) -> str | None:
        return next((pid for pid in self.players if pid != player_id), None)


class QueueEntry(BaseModel):
    player_id: str
    name: str
    difficulty: Difficulty = Difficulty.MODERATE
    joined_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("difficulty", mode="before")
    @classmethod
    def coerce_difficulty(cls, v: object) -> Difficulty:
        return Difficulty.parse(v)  # type: ignore[arg-type]


class LastMove(BaseModel):
    player_id: str
    dice_value: int
    new_position: int
    extra_turn: bool
