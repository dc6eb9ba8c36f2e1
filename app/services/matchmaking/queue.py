"""FIFO waiting list of players looking for an opponent."""

import logging
from dataclasses import dataclass

from app.schemas.game_engine import Difficulty, QueueEntry

logger = logging.getLogger(__name__)


@dataclass
class Pairing:
    """Two players taken off the queue together."""

    player1: QueueEntry
    player2: QueueEntry
    difficulty: Difficulty


def default_player_name(player_id: str) -> str:
    return f"Player {player_id[:6]}"


class MatchmakingQueue:
    """Ordered waiting list; a player id appears at most once."""

    def __init__(self) -> None:
        self._entries: list[QueueEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, player_id: object) -> bool:
        return any(entry.player_id == player_id for entry in self._entries)

    def enqueue(
        self,
        player_id: str,
        name: str | None = None,
        difficulty: Difficulty | str | None = None,
    ) -> QueueEntry:
        """Append a player, replacing any entry they already had."""
        if self.remove(player_id):
            logger.debug("Replaced existing queue entry for player %s", player_id)

        entry = QueueEntry(
            player_id=player_id,
            name=name or default_player_name(player_id),
            difficulty=Difficulty.parse(difficulty),
        )
        self._entries.append(entry)
        logger.info(
            "Player %s queued: difficulty=%s, queue_length=%d",
            player_id,
            entry.difficulty.value,
            len(self._entries),
        )
        return entry

    def dequeue_pair(self) -> Pairing | None:
        """Pop the two longest-waiting players.

        The first-popped player's difficulty preference is used for the game.
        """
        if len(self._entries) < 2:
            return None

        player1 = self._entries.pop(0)
        player2 = self._entries.pop(0)
        logger.info(
            "Paired %s with %s using %s difficulty (first in queue)",
            player1.player_id,
            player2.player_id,
            player1.difficulty.value,
        )
        return Pairing(player1=player1, player2=player2, difficulty=player1.difficulty)

    def remove(self, player_id: str) -> bool:
        """Drop a player's entry. Returns False if they were not queued."""
        for index, entry in enumerate(self._entries):
            if entry.player_id == player_id:
                del self._entries[index]
                logger.debug("Removed player %s from queue", player_id)
                return True
        return False

    def entries(self) -> list[QueueEntry]:
        return list(self._entries)
