"""Session registry: creation, lookup, reset and teardown of game sessions."""

import asyncio
import logging
import secrets
import string
import time
from datetime import datetime, timedelta, timezone

from app.config import Settings, get_settings
from app.schemas.game_engine import (
    BOARD_START,
    Difficulty,
    GameStatus,
    PlayerState,
    QueueEntry,
    Session,
)
from app.services.board import BoardProvider
from app.services.game.engine import SessionInvariantError

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.digits + string.ascii_lowercase


def new_session_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"game_{int(time.time() * 1000)}_{suffix}"


class SessionRegistry:
    """Owns every live session.

    Local storage:
        - _sessions: session_id -> Session
        - _player_sessions: player_id -> session_id (players currently seated)
        - _departed: player_id -> (session_id, PlayerState) for players who
          disconnected and may still reconnect during the grace period
        - _grace_tasks: session_id -> pending deletion task
    """

    def __init__(
        self,
        board_provider: BoardProvider | None = None,
        settings: Settings | None = None,
    ):
        self._settings = settings or get_settings()
        self._board_provider = board_provider or BoardProvider(settings=self._settings)

        self._sessions: dict[str, Session] = {}
        self._player_sessions: dict[str, str] = {}
        self._departed: dict[str, tuple[str, PlayerState]] = {}
        self._grace_tasks: dict[str, asyncio.Task] = {}

        self._sweep_task: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._sessions)

    async def create_session(
        self,
        player1: QueueEntry,
        player2: QueueEntry,
        difficulty: Difficulty,
    ) -> Session:
        """Create a session for two paired players.

        Player 1 moves first. The board is acquired before the session is
        stored, so nothing can reference the session while it is generated.
        """
        if player1.player_id == player2.player_id:
            raise SessionInvariantError(
                f"Cannot pair player {player1.player_id} with themselves"
            )

        logger.info("Generating %s difficulty board", difficulty.value)
        board = await self._board_provider.acquire(difficulty)

        session_id = new_session_id()
        while session_id in self._sessions:
            session_id = new_session_id()

        session = Session(
            id=session_id,
            players={
                player1.player_id: PlayerState(
                    id=player1.player_id, name=player1.name, player_number=1
                ),
                player2.player_id: PlayerState(
                    id=player2.player_id, name=player2.name, player_number=2
                ),
            },
            current_player=player1.player_id,
            difficulty=difficulty,
            board=board,
        )

        self._sessions[session_id] = session
        for player_id in session.players:
            seated = self.get_for_player(player_id)
            if seated is not None:
                # Re-joined and was paired again while this board was generated
                logger.info(
                    "Player %s already seated in session %s, not indexing %s",
                    player_id,
                    seated.id,
                    session_id,
                )
                continue
            self._player_sessions[player_id] = session_id
            self._departed.pop(player_id, None)

        logger.info(
            "Session %s created with %s difficulty: players=%s, ladders=%d, snakes=%d",
            session_id,
            difficulty.value,
            list(session.players),
            len(board.ladders),
            len(board.snakes),
        )
        return session

    def get(self, session_id: str | None) -> Session | None:
        if session_id is None:
            return None
        return self._sessions.get(session_id)

    def get_for_player(self, player_id: str) -> Session | None:
        """Session the player is currently seated in, if any."""
        session = self.get(self._player_sessions.get(player_id))
        if session is None or player_id not in session.players:
            self._player_sessions.pop(player_id, None)
            return None
        return session

    def save(self, session: Session) -> bool:
        """Store an updated copy of a live session."""
        if session.id not in self._sessions:
            logger.debug("Ignoring save for removed session %s", session.id)
            return False
        self._sessions[session.id] = session
        return True

    def reset(self, session_id: str) -> Session | None:
        """Put every player back at the start with the first player to move.

        Unknown sessions are ignored.
        """
        session = self._sessions.get(session_id)
        if session is None:
            logger.debug("Reset ignored for missing session %s", session_id)
            return None

        updated = session.model_copy(deep=True)
        for player in updated.players.values():
            player.position = BOARD_START
        updated.status = GameStatus.PLAYING
        updated.winner = None
        updated.last_dice_value = 1
        if updated.players:
            first = min(updated.players.values(), key=lambda p: p.player_number)
            updated.current_player = first.id

        self._sessions[session_id] = updated
        logger.info("Session %s reset, %s to move", session_id, updated.current_player)
        return updated

    def remove_player(
        self,
        session_id: str,
        player_id: str,
        disconnected: bool = False,
    ) -> Session | None:
        """Take a player out of a session.

        An empty session is deleted immediately. When a disconnect leaves one
        player behind, deletion is scheduled after the grace period; a
        voluntary leave never schedules it.

        Returns:
            The remaining session, or None if it was deleted or not found.
        """
        if self._player_sessions.get(player_id) == session_id:
            del self._player_sessions[player_id]
        session = self._sessions.get(session_id)
        if session is None or player_id not in session.players:
            return None

        updated = session.model_copy(deep=True)
        departed = updated.players.pop(player_id)
        if updated.current_player == player_id and updated.players:
            updated.current_player = next(iter(updated.players))
        self._sessions[session_id] = updated

        logger.info(
            "Player %s %s session %s, %d remaining",
            player_id,
            "disconnected from" if disconnected else "left",
            session_id,
            len(updated.players),
        )

        if not updated.players:
            self._delete(session_id, reason="no players left")
            return None

        if disconnected:
            self._departed[player_id] = (session_id, departed)
            if len(updated.players) < 2:
                self._schedule_deletion(session_id)

        return updated

    def restore_player(self, player_id: str) -> Session | None:
        """Seat a disconnected player again if their session still waits for them."""
        entry = self._departed.pop(player_id, None)
        if entry is None:
            return None

        session_id, player = entry
        session = self._sessions.get(session_id)
        if session is None or len(session.players) >= 2:
            return None

        updated = session.model_copy(deep=True)
        updated.players[player_id] = player
        updated.players = dict(
            sorted(updated.players.items(), key=lambda item: item[1].player_number)
        )
        self._sessions[session_id] = updated
        self._player_sessions[player_id] = session_id

        if len(updated.players) == 2:
            self._cancel_deletion(session_id)

        logger.info("Player %s restored to session %s", player_id, session_id)
        return updated

    def sweep_expired(self, now: datetime | None = None) -> list[str]:
        """Delete every session older than SESSION_MAX_AGE_SECONDS."""
        now = now or datetime.now(timezone.utc)
        max_age = timedelta(seconds=self._settings.SESSION_MAX_AGE_SECONDS)

        expired = [
            session_id
            for session_id, session in list(self._sessions.items())
            if now - session.created_at > max_age
        ]
        for session_id in expired:
            self._delete(session_id, reason="expired")

        if expired:
            logger.info("Swept %d expired sessions", len(expired))
        return expired

    def _delete(self, session_id: str, reason: str) -> None:
        session = self._sessions.pop(session_id, None)
        self._cancel_deletion(session_id)
        if session is None:
            return

        for player_id in session.players:
            if self._player_sessions.get(player_id) == session_id:
                del self._player_sessions[player_id]
        for player_id, (departed_session_id, _) in list(self._departed.items()):
            if departed_session_id == session_id:
                del self._departed[player_id]

        logger.info("Deleted session %s (%s)", session_id, reason)

    def _schedule_deletion(self, session_id: str) -> None:
        self._cancel_deletion(session_id)
        delay = self._settings.DISCONNECT_GRACE_SECONDS
        self._grace_tasks[session_id] = asyncio.create_task(
            self._delete_after_grace(session_id, delay)
        )
        logger.debug("Session %s scheduled for deletion in %.1fs", session_id, delay)

    def _cancel_deletion(self, session_id: str) -> None:
        task = self._grace_tasks.pop(session_id, None)
        if task is not None and not task.done():
            task.cancel()
            logger.debug("Cancelled pending deletion of session %s", session_id)

    async def _delete_after_grace(self, session_id: str, delay: float) -> None:
        await asyncio.sleep(delay)
        self._grace_tasks.pop(session_id, None)
        session = self._sessions.get(session_id)
        if session is not None and len(session.players) < 2:
            self._delete(session_id, reason="insufficient players after grace period")

    async def start_sweep_task(self) -> None:
        """Start the periodic sweep of expired sessions."""
        if self._sweep_task is not None:
            logger.warning("Sweep task already running")
            return

        async def sweep_loop():
            interval = self._settings.SESSION_SWEEP_INTERVAL
            logger.info("Starting session sweep task with interval %ds", interval)
            while True:
                try:
                    await asyncio.sleep(interval)
                    self.sweep_expired()
                except asyncio.CancelledError:
                    logger.info("Sweep task cancelled")
                    break
                except Exception as e:
                    logger.error("Error in sweep task: %s", e)

        self._sweep_task = asyncio.create_task(sweep_loop())

    async def stop_sweep_task(self) -> None:
        """Stop the periodic sweep task."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
            logger.info("Sweep task stopped")

    async def close(self) -> None:
        """Stop background work and release the board provider."""
        await self.stop_sweep_task()
        for session_id in list(self._grace_tasks):
            self._cancel_deletion(session_id)
        await self._board_provider.close()
