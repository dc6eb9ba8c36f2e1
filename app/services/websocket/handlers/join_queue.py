"""Handler for JOIN_QUEUE messages."""

import logging

from app.schemas.ws import JoinQueuePayload, MessageType
from app.services.game.coordinator import get_game_coordinator

from . import handler
from .base import HandlerContext, HandlerResult, validate_payload

logger = logging.getLogger(__name__)


@handler(MessageType.JOIN_QUEUE)
async def handle_join_queue(ctx: HandlerContext) -> HandlerResult:
    """Handle JOIN_QUEUE message.

    Queues the player; when an opponent is already waiting, both receive
    GAME_STARTED, otherwise the player receives WAITING_FOR_OPPONENT.
    """
    payload, validation_error = validate_payload(
        ctx.message.payload,
        JoinQueuePayload,
        ctx.message.request_id,
        MessageType.ERROR,
    )
    if validation_error:
        return validation_error

    logger.info("Player %s joined queue", ctx.player_id)
    outbound = await get_game_coordinator().join(
        ctx.player_id,
        name=payload.name,
        difficulty=payload.difficulty,
    )
    return HandlerResult(success=True, outbound=outbound)
