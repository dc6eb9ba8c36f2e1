import json
import logging
import time
import uuid
from collections import defaultdict

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from app.schemas.ws import (
    ErrorPayload,
    MessageType,
    WSClientMessage,
    WSCloseCode,
    WSServerMessage,
)
from app.services.game.coordinator import get_game_coordinator
from app.services.websocket.auth import get_resume_authenticator
from app.services.websocket.handlers import HandlerContext, dispatch
from app.services.websocket.manager import get_connection_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])

# Rate limiting configuration
MAX_MESSAGE_SIZE = 64 * 1024  # 64 KB
MAX_MESSAGES_PER_SECOND = 10
RATE_LIMIT_WINDOW = 1.0  # seconds


class RateLimiter:
    """Simple token bucket rate limiter per connection."""

    def __init__(
        self, max_tokens: int = MAX_MESSAGES_PER_SECOND, window: float = RATE_LIMIT_WINDOW
    ):
        self.max_tokens = max_tokens
        self.window = window
        self._tokens: dict[str, list[float]] = defaultdict(list)

    def is_allowed(self, connection_id: str) -> bool:
        """Check if a message is allowed under rate limiting."""
        now = time.time()
        cutoff = now - self.window

        # Remove expired timestamps
        self._tokens[connection_id] = [t for t in self._tokens[connection_id] if t > cutoff]

        # Check if under limit
        if len(self._tokens[connection_id]) >= self.max_tokens:
            return False

        # Record this message
        self._tokens[connection_id].append(now)
        return True

    def remove(self, connection_id: str) -> None:
        """Remove rate limit tracking for a connection."""
        self._tokens.pop(connection_id, None)


# Global rate limiter instance
_rate_limiter = RateLimiter()


def _error_message(error_code: str, message: str) -> WSServerMessage:
    return WSServerMessage(
        type=MessageType.ERROR,
        payload=ErrorPayload(error_code=error_code, message=message).model_dump(),
    )


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    player_id: str | None = Query(
        None, max_length=64, description="Previous player id, to resume a game after a drop"
    ),
    resume_token: str | None = Query(
        None, max_length=1024, description="Token from the previous 'connected' message"
    ),
):
    """WebSocket endpoint for real-time game connections.

    Clients connect with: ws://host/api/v1/ws
    or, to resume after a dropped connection:
    ws://host/api/v1/ws?player_id=<id>&resume_token=<token>

    On successful connection, server sends a 'connected' message carrying the
    player id and the resume token to use for reconnecting. Resuming without
    a valid token for that player id is rejected, as is a player id that is
    still connected.
    """
    manager = get_connection_manager()
    coordinator = get_game_coordinator()
    authenticator = get_resume_authenticator()

    if player_id:
        auth_result = authenticator.validate_token(resume_token, player_id)
        if not auth_result.success:
            logger.warning("WS resume rejected for player %s: %s", player_id, auth_result.error)
            await websocket.close(
                code=WSCloseCode.AUTH_EXPIRED if auth_result.expired else WSCloseCode.AUTH_FAILED
            )
            return

    if player_id and manager.is_player_connected(player_id):
        logger.warning("WS connection rejected: player %s is already connected", player_id)
        await websocket.close(code=WSCloseCode.PLAYER_ALREADY_CONNECTED)
        return

    resuming = bool(player_id)
    player_id = player_id or str(uuid.uuid4())

    await websocket.accept()
    logger.info("WS connection accepted for player %s", player_id)

    connection = await manager.connect(
        websocket,
        player_id,
        resume_token=authenticator.issue_token(player_id),
        reconnected=resuming,
    )
    if connection is None:
        # Another connection for this player registered while we accepted
        await websocket.close(code=WSCloseCode.PLAYER_ALREADY_CONNECTED)
        return

    if resuming:
        await manager.deliver(coordinator.reconnect(player_id))

    try:
        while True:
            # Check if connection is still open
            if websocket.client_state != WebSocketState.CONNECTED:
                logger.debug("WebSocket no longer connected, exiting loop")
                break

            # Receive raw message with size limit check
            try:
                message_data = await websocket.receive()
            except Exception as e:
                logger.debug("Error receiving message: %s", e)
                break

            # Handle disconnect message
            if message_data.get("type") == "websocket.disconnect":
                break

            # Get raw bytes/text for size check
            raw_text = message_data.get("text")
            raw_bytes = message_data.get("bytes")

            if raw_text:
                message_size = len(raw_text.encode("utf-8"))
            elif raw_bytes:
                message_size = len(raw_bytes)
            else:
                continue

            # Check message size limit
            if message_size > MAX_MESSAGE_SIZE:
                logger.warning(
                    "Message too large from connection %s: %d bytes (max %d)",
                    connection.connection_id,
                    message_size,
                    MAX_MESSAGE_SIZE,
                )
                await manager.send_to_connection(
                    connection.connection_id,
                    _error_message(
                        "MESSAGE_TOO_LARGE",
                        f"Message exceeds maximum size of {MAX_MESSAGE_SIZE} bytes",
                    ),
                )
                continue

            # Check rate limit
            if not _rate_limiter.is_allowed(connection.connection_id):
                logger.warning(
                    "Rate limit exceeded for connection %s",
                    connection.connection_id,
                )
                await manager.send_to_connection(
                    connection.connection_id,
                    _error_message("RATE_LIMITED", "Too many messages, please slow down"),
                )
                continue

            # Parse JSON from raw text
            if not raw_text:
                continue

            try:
                data = json.loads(raw_text)
            except json.JSONDecodeError:
                logger.warning(
                    "Invalid JSON from connection %s",
                    connection.connection_id,
                )
                await manager.send_to_connection(
                    connection.connection_id,
                    _error_message("INVALID_JSON", "Invalid JSON format"),
                )
                continue

            # Parse and validate message
            try:
                message = WSClientMessage.model_validate(data)
            except ValidationError as e:
                logger.warning(
                    "Invalid message from connection %s: %s",
                    connection.connection_id,
                    e,
                )
                await manager.send_to_connection(
                    connection.connection_id,
                    _error_message("INVALID_MESSAGE", "Invalid message format"),
                )
                continue

            # Dispatch message to handler
            ctx = HandlerContext(
                connection_id=connection.connection_id,
                player_id=player_id,
                message=message,
                manager=manager,
            )

            result = await dispatch(ctx)

            if result is None:
                logger.debug(
                    "Unhandled message type %s from connection %s",
                    message.type,
                    connection.connection_id,
                )
                continue

            # Send response to requester
            if result.response:
                await manager.send_to_connection(
                    connection.connection_id,
                    result.response,
                )

            # Deliver game events to their recipients
            if result.outbound:
                await manager.deliver(result.outbound)

    except WebSocketDisconnect as e:
        logger.info(
            "WS disconnected: connection %s, code %s",
            connection.connection_id,
            e.code,
        )
    except Exception as e:
        logger.error(
            "WS error for connection %s: %s",
            connection.connection_id,
            e,
        )
    finally:
        # Clean up rate limiter for this connection
        _rate_limiter.remove(connection.connection_id)

        await manager.disconnect(connection.connection_id)

        # Tell the opponent, and start the grace period if a game was running
        if not manager.is_player_connected(player_id):
            await manager.deliver(coordinator.disconnect(player_id))
