from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.schemas.game_engine import Difficulty


class MessageType(str, Enum):
    """WebSocket message types."""

    # Core
    PING = "ping"
    PONG = "pong"
    CONNECTED = "connected"
    ERROR = "error"

    # Client -> server
    JOIN_QUEUE = "join_queue"
    ROLL_DICE = "roll_dice"
    RESET_GAME = "reset_game"
    LEAVE_GAME = "leave_game"

    # Server -> client, one per game event type
    WAITING_FOR_OPPONENT = "waiting_for_opponent"
    GAME_STARTED = "game_started"
    GAME_UPDATE = "game_update"
    GAME_RESET = "game_reset"
    GAME_STATE = "game_state"
    PLAYER_DISCONNECTED = "player_disconnected"
    PLAYER_RECONNECTED = "player_reconnected"
    NOT_YOUR_TURN = "not_your_turn"


class WSCloseCode:
    """WebSocket close codes (RFC 6455 + custom)."""

    # Standard RFC 6455 codes
    NORMAL = 1000
    GOING_AWAY = 1001
    PROTOCOL_ERROR = 1002
    UNSUPPORTED_DATA = 1003
    INVALID_DATA = 1007
    POLICY_VIOLATION = 1008
    MESSAGE_TOO_BIG = 1009
    INTERNAL_ERROR = 1011

    # Custom application codes (4000-4999)
    AUTH_FAILED = 4001
    AUTH_EXPIRED = 4002
    PLAYER_ALREADY_CONNECTED = 4009


class WSClientMessage(BaseModel):
    """Message sent from client to server."""

    type: MessageType
    request_id: str | None = None
    payload: dict[str, Any] | None = None


class WSServerMessage(BaseModel):
    """Message sent from server to client."""

    type: MessageType
    request_id: str | None = None
    payload: dict[str, Any] | None = None


# --- Payload schemas ---


class ConnectedPayload(BaseModel):
    """Payload for the 'connected' message."""

    connection_id: str
    player_id: str
    server_id: str
    resume_token: str
    reconnected: bool = False


class PongPayload(BaseModel):
    """Payload for the 'pong' message."""

    server_time: datetime = Field(default_factory=lambda: datetime.now())


class ErrorPayload(BaseModel):
    """Payload for error messages."""

    error_code: str
    message: str


class JoinQueuePayload(BaseModel):
    """Payload for the 'join_queue' message from client."""

    name: str | None = Field(None, max_length=32)
    difficulty: Difficulty | None = None

    @field_validator("difficulty", mode="before")
    @classmethod
    def coerce_difficulty(cls, v: Any) -> Difficulty | None:
        # Unknown preferences fall back to the default difficulty
        return Difficulty.parse(v) if v is not None else None
