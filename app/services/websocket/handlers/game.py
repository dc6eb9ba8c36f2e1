"""Handlers for in-game messages: ROLL_DICE and RESET_GAME."""

import logging

from app.schemas.ws import MessageType
from app.services.game.coordinator import get_game_coordinator

from . import handler
from .base import HandlerContext, HandlerResult

logger = logging.getLogger(__name__)


@handler(MessageType.ROLL_DICE)
async def handle_roll_dice(ctx: HandlerContext) -> HandlerResult:
    """Handle ROLL_DICE by rolling for the requesting player.

    The die is rolled server-side. Out-of-turn requests get NOT_YOUR_TURN;
    requests without a live session are ignored.
    """
    outbound = get_game_coordinator().roll(ctx.player_id)
    logger.debug("Roll from player %s produced %d notifications", ctx.player_id, len(outbound))
    return HandlerResult(success=bool(outbound), outbound=outbound)


@handler(MessageType.RESET_GAME)
async def handle_reset_game(ctx: HandlerContext) -> HandlerResult:
    """Handle RESET_GAME by restarting the player's session from square 0."""
    outbound = get_game_coordinator().reset(ctx.player_id)
    if outbound:
        logger.info("Player %s reset their game", ctx.player_id)
    return HandlerResult(success=bool(outbound), outbound=outbound)
