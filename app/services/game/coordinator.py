"""Game coordinator: turns connection events into state changes and notifications.

All matchmaking and session state is owned here. Every public method runs to
completion without suspending except ``join``, which awaits board generation
after the pair has already been taken off the queue.
"""

import logging
import random
from collections.abc import Callable
from itertools import count

from app.config import Settings, get_settings
from app.schemas.game_engine import Difficulty, LastMove, Session
from app.services.matchmaking import MatchmakingQueue, Pairing
from app.services.session import SessionRegistry

from .engine import (
    GameReset,
    GameUpdated,
    NotYourTurn,
    Outbound,
    PlayerDisconnected,
    PlayerReconnected,
    WaitingForOpponent,
    process_roll,
    roll_die,
    validate_roll,
)
from .engine.events import game_started_for, snapshot_for

logger = logging.getLogger(__name__)

# Rejections the requesting player is told about; anything else is dropped
_SIGNALLED_ROLL_ERRORS = {"NOT_YOUR_TURN", "GAME_FINISHED"}


class GameCoordinator:
    """Routes join, roll, reset, leave, disconnect and reconnect events."""

    def __init__(
        self,
        registry: SessionRegistry | None = None,
        queue: MatchmakingQueue | None = None,
        settings: Settings | None = None,
        rng: random.Random | None = None,
        die: Callable[[], int] | None = None,
    ):
        self._settings = settings or get_settings()
        self._registry = registry or SessionRegistry(settings=self._settings)
        self._queue = queue or MatchmakingQueue()
        self._die = die or (lambda: roll_die(rng))

        # Players whose pairing is waiting on board generation: player_id -> pairing token
        self._pending: dict[str, int] = {}
        # (player_id, token) -> True if they disconnected, False if they re-joined
        self._abandoned: dict[tuple[str, int], bool] = {}
        self._tokens = count(1)

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def queue(self) -> MatchmakingQueue:
        return self._queue

    async def join(
        self,
        player_id: str,
        name: str | None = None,
        difficulty: Difficulty | str | None = None,
    ) -> list[Outbound]:
        """Queue a player and start a game if an opponent is waiting.

        A player already seated in a session leaves it first.
        """
        outbound: list[Outbound] = []
        self._abandon_pending(player_id, disconnected=False)

        session = self._registry.get_for_player(player_id)
        if session is not None:
            logger.info("Player %s re-joined the queue, leaving session %s", player_id, session.id)
            outbound.extend(self._remove_from_session(session, player_id, disconnected=False))

        self._queue.enqueue(
            player_id,
            name,
            difficulty or self._settings.DEFAULT_DIFFICULTY,
        )

        pairing = self._queue.dequeue_pair()
        if player_id in self._queue:
            outbound.append(Outbound([player_id], WaitingForOpponent()))
        if pairing is not None:
            outbound.extend(await self._start_game(pairing))
        return outbound

    def roll(self, player_id: str) -> list[Outbound]:
        """Roll for the player and broadcast the resolved move."""
        session = self._registry.get_for_player(player_id)
        if session is None:
            logger.debug("Roll ignored: player %s has no session", player_id)
            return []

        validation = validate_roll(session, player_id)
        if not validation.is_valid:
            if validation.error_code in _SIGNALLED_ROLL_ERRORS:
                return [Outbound([player_id], NotYourTurn())]
            return []

        dice_value = self._die()
        result = process_roll(session, player_id, dice_value)
        if not result.success or result.move is None:
            return []

        updated = result.move.session
        self._registry.save(updated)

        event = GameUpdated(
            players=updated.players,
            current_player=updated.current_player,
            dice_value=dice_value,
            game_status=updated.status,
            winner=updated.winner,
            extra_turn=result.move.extra_turn,
            players_affected=result.move.displaced_player_ids,
            last_move=LastMove(
                player_id=player_id,
                dice_value=dice_value,
                new_position=updated.players[player_id].position,
                extra_turn=result.move.extra_turn,
            ),
        )
        return [Outbound(list(updated.players), event)]

    def reset(self, player_id: str) -> list[Outbound]:
        session = self._registry.get_for_player(player_id)
        if session is None:
            return []

        updated = self._registry.reset(session.id)
        if updated is None:
            return []

        event = GameReset(
            players=updated.players,
            current_player=updated.current_player,
            game_status=updated.status,
        )
        return [Outbound(list(updated.players), event)]

    def leave(self, player_id: str) -> list[Outbound]:
        """Voluntary exit: removal happens without a grace period."""
        self._queue.remove(player_id)
        self._abandon_pending(player_id, disconnected=False)

        session = self._registry.get_for_player(player_id)
        if session is None:
            return []
        return self._remove_from_session(session, player_id, disconnected=False)

    def disconnect(self, player_id: str) -> list[Outbound]:
        """Lost connection: the session survives the grace period."""
        if self._queue.remove(player_id):
            logger.info("Removed %s from waiting queue", player_id)
        self._abandon_pending(player_id, disconnected=True)

        session = self._registry.get_for_player(player_id)
        if session is None:
            return []
        return self._remove_from_session(session, player_id, disconnected=True)

    def reconnect(self, player_id: str) -> list[Outbound]:
        """Seat a returning player again if their session is still alive."""
        session = self._registry.restore_player(player_id)
        if session is None:
            return []

        peers = [pid for pid in session.players if pid != player_id]
        outbound = [Outbound([player_id], snapshot_for(session, player_id))]
        if peers:
            outbound.append(Outbound(peers, PlayerReconnected(player_id=player_id)))
        return outbound

    async def start(self) -> None:
        await self._registry.start_sweep_task()

    async def close(self) -> None:
        await self._registry.close()

    async def _start_game(self, pairing: Pairing) -> list[Outbound]:
        player_ids = [pairing.player1.player_id, pairing.player2.player_id]
        token = next(self._tokens)
        for player_id in player_ids:
            self._pending[player_id] = token

        try:
            session = await self._registry.create_session(
                pairing.player1, pairing.player2, pairing.difficulty
            )
        finally:
            for player_id in player_ids:
                if self._pending.get(player_id) == token:
                    del self._pending[player_id]

        departures = {
            player_id: self._abandoned.pop((player_id, token))
            for player_id in player_ids
            if (player_id, token) in self._abandoned
        }

        outbound = [
            Outbound([player_id], game_started_for(session, player_id))
            for player_id in player_ids
            if player_id not in departures
        ]
        logger.info(
            "Game started: %s between %s and %s",
            session.id,
            pairing.player1.player_id,
            pairing.player2.player_id,
        )

        for player_id, disconnected in departures.items():
            logger.info("Player %s abandoned session %s before it started", player_id, session.id)
            current = self._registry.get(session.id)
            if current is not None:
                outbound.extend(self._remove_from_session(current, player_id, disconnected))
        return outbound

    def _abandon_pending(self, player_id: str, disconnected: bool) -> None:
        token = self._pending.pop(player_id, None)
        if token is not None:
            self._abandoned[(player_id, token)] = disconnected

    def _remove_from_session(
        self,
        session: Session,
        player_id: str,
        disconnected: bool,
    ) -> list[Outbound]:
        peers = [pid for pid in session.players if pid != player_id]
        self._registry.remove_player(session.id, player_id, disconnected=disconnected)
        if not peers:
            return []
        return [Outbound(peers, PlayerDisconnected(disconnected_player_id=player_id))]


# Global coordinator instance (initialized in lifespan)
_game_coordinator: GameCoordinator | None = None


def get_game_coordinator() -> GameCoordinator:
    """Get the global GameCoordinator instance."""
    global _game_coordinator
    if _game_coordinator is None:
        _game_coordinator = GameCoordinator()
    return _game_coordinator


def set_game_coordinator(coordinator: GameCoordinator | None) -> None:
    """Set the global GameCoordinator instance."""
    global _game_coordinator
    _game_coordinator = coordinator
