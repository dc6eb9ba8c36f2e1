"""Game event types - produced by the coordinator for WebSocket delivery.

Each event is addressed to a set of player ids through Outbound; the
transport layer turns ``event_type`` into the message type on the wire.
"""

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.game_engine import (
    BoardDescriptor,
    Difficulty,
    GameStatus,
    LastMove,
    PlayerState,
    Session,
)


class GameEvent(BaseModel):
    """Base class for all game events."""

    event_type: str


class WaitingForOpponent(GameEvent):
    """The player is queued and no opponent is available yet."""

    event_type: Literal["waiting_for_opponent"] = "waiting_for_opponent"


class GameStarted(GameEvent):
    """A session was created; sent once per participant."""

    event_type: Literal["game_started"] = "game_started"
    game_id: str
    players: dict[str, PlayerState]
    current_player: str
    your_player_id: str
    difficulty: Difficulty
    board: BoardDescriptor


class GameUpdated(GameEvent):
    """A roll was resolved."""

    event_type: Literal["game_update"] = "game_update"
    players: dict[str, PlayerState]
    current_player: str
    dice_value: int = Field(..., ge=1, le=6)
    game_status: GameStatus
    winner: str | None = None
    extra_turn: bool
    players_affected: list[str] = Field(
        default_factory=list, description="Players sent back to square 1 by this move"
    )
    last_move: LastMove


class GameReset(GameEvent):
    """All positions went back to the start."""

    event_type: Literal["game_reset"] = "game_reset"
    players: dict[str, PlayerState]
    current_player: str
    game_status: GameStatus


class GameSnapshot(GameEvent):
    """Full session state, sent to a player who reconnected."""

    event_type: Literal["game_state"] = "game_state"
    game_id: str
    players: dict[str, PlayerState]
    current_player: str
    your_player_id: str
    game_status: GameStatus
    winner: str | None = None
    difficulty: Difficulty
    board: BoardDescriptor


class PlayerDisconnected(GameEvent):
    """The opponent left or lost their connection."""

    event_type: Literal["player_disconnected"] = "player_disconnected"
    disconnected_player_id: str


class PlayerReconnected(GameEvent):
    """The opponent came back within the grace period."""

    event_type: Literal["player_reconnected"] = "player_reconnected"
    player_id: str


class NotYourTurn(GameEvent):
    """A roll was requested out of turn."""

    event_type: Literal["not_your_turn"] = "not_your_turn"


@dataclass
class Outbound:
    """An event and the players who should receive it."""

    recipients: list[str]
    event: GameEvent


def game_started_for(session: Session, recipient_id: str) -> GameStarted:
    return GameStarted(
        game_id=session.id,
        players=session.players,
        current_player=session.current_player,
        your_player_id=recipient_id,
        difficulty=session.difficulty,
        board=session.board,
    )


def snapshot_for(session: Session, recipient_id: str) -> GameSnapshot:
    return GameSnapshot(
        game_id=session.id,
        players=session.players,
        current_player=session.current_player,
        your_player_id=recipient_id,
        game_status=session.status,
        winner=session.winner,
        difficulty=session.difficulty,
        board=session.board,
    )
