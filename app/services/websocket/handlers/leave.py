"""Handler for LEAVE_GAME messages."""

import logging

from app.schemas.ws import MessageType
from app.services.game.coordinator import get_game_coordinator

from . import handler
from .base import HandlerContext, HandlerResult

logger = logging.getLogger(__name__)


@handler(MessageType.LEAVE_GAME)
async def handle_leave_game(ctx: HandlerContext) -> HandlerResult:
    """Handle LEAVE_GAME message.

    Leaving is immediate: the opponent receives PLAYER_DISCONNECTED and the
    session is deleted once nobody is left in it.
    """
    outbound = get_game_coordinator().leave(ctx.player_id)
    logger.info("Player %s left the game", ctx.player_id)
    return HandlerResult(success=True, outbound=outbound)
