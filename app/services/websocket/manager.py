import asyncio
import logging
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastapi import WebSocket

from app.config import get_settings
from app.schemas.ws import (
    ConnectedPayload,
    MessageType,
    WSServerMessage,
)
from app.services.game.engine import Outbound

logger = logging.getLogger(__name__)


@dataclass
class Connection:
    """Represents an active WebSocket connection."""

    connection_id: str
    websocket: WebSocket
    player_id: str
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_heartbeat: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def event_to_message(outbound: Outbound) -> WSServerMessage:
    """Wrap a game event in a server message of the matching type."""
    return WSServerMessage(
        type=MessageType(outbound.event.event_type),
        payload=outbound.event.model_dump(mode="json", exclude={"event_type"}),
    )


class ConnectionManager:
    """Manages WebSocket connections for this process.

    Local storage:
        - _connections: connection_id -> Connection
        - _player_connections: player_id -> connection_id (one connection per player)
    """

    def __init__(self, server_id: str | None = None):
        self._server_id = server_id or os.getenv("HOSTNAME", str(uuid.uuid4())[:8])
        self._settings = get_settings()

        # Local storage
        self._connections: dict[str, Connection] = {}
        self._player_connections: dict[str, str] = {}

        # Cleanup task
        self._cleanup_task: asyncio.Task | None = None

        logger.info("ConnectionManager initialized with server_id: %s", self._server_id)

    @property
    def server_id(self) -> str:
        return self._server_id

    async def connect(
        self,
        websocket: WebSocket,
        player_id: str,
        resume_token: str,
        reconnected: bool = False,
    ) -> Connection | None:
        """Register a new WebSocket connection.

        The check for an existing connection and the registration happen
        without yielding to the event loop.

        Args:
            websocket: The accepted WebSocket instance.
            player_id: The player identity bound to this connection.
            resume_token: Token the client presents to reconnect later.
            reconnected: Whether the client resumed an earlier player id.

        Returns:
            The created Connection object, or None if the player already
            has a connection.
        """
        if player_id in self._player_connections:
            logger.warning("Player %s already has a connection, refusing another", player_id)
            return None

        connection_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)

        connection = Connection(
            connection_id=connection_id,
            websocket=websocket,
            player_id=player_id,
            connected_at=now,
            last_heartbeat=now,
        )

        self._connections[connection_id] = connection
        self._player_connections[player_id] = connection_id

        logger.info(
            "Connection %s established for player %s on server %s",
            connection_id,
            player_id,
            self._server_id,
        )

        # Send connected acknowledgment
        await self.send_to_connection(
            connection_id,
            WSServerMessage(
                type=MessageType.CONNECTED,
                payload=ConnectedPayload(
                    connection_id=connection_id,
                    player_id=player_id,
                    server_id=self._server_id,
                    resume_token=resume_token,
                    reconnected=reconnected,
                ).model_dump(),
            ),
        )

        return connection

    async def disconnect(self, connection_id: str) -> Connection | None:
        """Remove a WebSocket connection.

        Args:
            connection_id: The connection to remove.

        Returns:
            The removed Connection, or None if it was already gone.
        """
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            logger.debug("Connection %s not found locally for disconnect", connection_id)
            return None

        if self._player_connections.get(connection.player_id) == connection_id:
            del self._player_connections[connection.player_id]

        logger.info("Connection %s disconnected for player %s", connection_id, connection.player_id)
        return connection

    async def heartbeat(self, connection_id: str) -> None:
        """Update the last heartbeat timestamp for a connection.

        Args:
            connection_id: The connection to update.
        """
        connection = self._connections.get(connection_id)
        if connection:
            connection.last_heartbeat = datetime.now(timezone.utc)
            logger.debug("Heartbeat updated for connection %s", connection_id)

    async def cleanup_stale_connections(self) -> None:
        """Close connections that have exceeded the timeout period.

        Closing the socket ends its receive loop, which reports the
        disconnect to the game coordinator.
        """
        now = datetime.now(timezone.utc)
        timeout = self._settings.WS_CONNECTION_TIMEOUT
        stale_connections = []

        # Snapshot the connections to avoid RuntimeError if dict is modified during iteration
        for conn_id, connection in list(self._connections.items()):
            elapsed = (now - connection.last_heartbeat).total_seconds()
            if elapsed > timeout:
                stale_connections.append(conn_id)
                logger.warning(
                    "Connection %s for player %s is stale (%.1fs since heartbeat)",
                    conn_id,
                    connection.player_id,
                    elapsed,
                )

        for conn_id in stale_connections:
            connection = self._connections.get(conn_id)
            if connection:
                try:
                    await connection.websocket.close(code=1001)
                except Exception as e:
                    logger.debug("Error closing stale websocket %s: %s", conn_id, e)

        if stale_connections:
            logger.info("Closed %d stale connections", len(stale_connections))

    async def start_cleanup_task(self) -> None:
        """Start the periodic cleanup task for stale connections."""
        if self._cleanup_task is not None:
            logger.warning("Cleanup task already running")
            return

        async def cleanup_loop():
            interval = self._settings.WS_HEARTBEAT_INTERVAL
            logger.info("Starting cleanup task with interval %ds", interval)
            while True:
                try:
                    await asyncio.sleep(interval)
                    await self.cleanup_stale_connections()
                except asyncio.CancelledError:
                    logger.info("Cleanup task cancelled")
                    break
                except Exception as e:
                    logger.error("Error in cleanup task: %s", e)

        self._cleanup_task = asyncio.create_task(cleanup_loop())

    async def stop_cleanup_task(self) -> None:
        """Stop the periodic cleanup task."""
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
            logger.info("Cleanup task stopped")

    async def close_all_connections(self) -> None:
        """Close all active WebSocket connections gracefully."""
        logger.info("Closing all %d connections", len(self._connections))
        conn_ids = list(self._connections.keys())
        for conn_id in conn_ids:
            connection = self._connections.get(conn_id)
            if connection:
                try:
                    await connection.websocket.close(code=1001)
                except Exception as e:
                    logger.debug("Error closing websocket %s: %s", conn_id, e)
            await self.disconnect(conn_id)

    async def send_to_connection(
        self, connection_id: str, message: WSServerMessage
    ) -> bool:
        """Send a message to a specific connection.

        Args:
            connection_id: The target connection.
            message: The message to send.

        Returns:
            True if sent successfully, False otherwise.
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            logger.debug("Connection %s not found for sending", connection_id)
            return False

        try:
            await connection.websocket.send_json(message.model_dump(mode="json", exclude_none=True))
            return True
        except Exception as e:
            logger.warning("Failed to send to connection %s: %s", connection_id, e)
            return False

    async def send_to_player(self, player_id: str, message: WSServerMessage) -> bool:
        """Send a message to the connection a player is bound to."""
        connection_id = self._player_connections.get(player_id)
        if connection_id is None:
            logger.debug("Player %s has no connection", player_id)
            return False
        return await self.send_to_connection(connection_id, message)

    async def deliver(self, outbound: list[Outbound]) -> int:
        """Send each event to its recipients.

        Returns:
            Number of messages sent.
        """
        sent = 0
        for item in outbound:
            message = event_to_message(item)
            for player_id in item.recipients:
                if await self.send_to_player(player_id, message):
                    sent += 1
        return sent

    def is_player_connected(self, player_id: str) -> bool:
        return player_id in self._player_connections

    def get_connection(self, connection_id: str) -> Connection | None:
        """Get a connection by ID."""
        return self._connections.get(connection_id)

    def get_total_connection_count(self) -> int:
        """Get the total number of local connections."""
        return len(self._connections)


# Global manager instance (initialized in lifespan)
_connection_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    """Get the global ConnectionManager instance."""
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager


def set_connection_manager(manager: ConnectionManager | None) -> None:
    """Set the global ConnectionManager instance."""
    global _connection_manager
    _connection_manager = manager
