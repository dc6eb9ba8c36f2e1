"""Tests for the session registry.

Critical scenarios tested:
- Sessions start with both players at square 0 and player 1 to move
- Reset is idempotent and restores the first player's turn
- A disconnect leaves the session alive for the grace period only
- A reconnect within the grace period cancels the deletion
- Sessions older than the maximum age are swept
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from app.schemas.game_engine import Difficulty, GameStatus, QueueEntry
from app.services.game.engine import SessionInvariantError, resolve_move
from app.services.session import new_session_id

from .conftest import (
    PLAYER_1_ID,
    PLAYER_2_ID,
    TEST_BOARD,
    StaticBoardSource,
    make_registry,
    make_settings,
)

SHORT_GRACE = 0.05


def _entries(difficulty: Difficulty = Difficulty.MODERATE) -> tuple[QueueEntry, QueueEntry]:
    return (
        QueueEntry(player_id=PLAYER_1_ID, name="Alice", difficulty=difficulty),
        QueueEntry(player_id=PLAYER_2_ID, name="Bob", difficulty=difficulty),
    )


async def _create(registry, difficulty: Difficulty = Difficulty.MODERATE):
    player1, player2 = _entries(difficulty)
    return await registry.create_session(player1, player2, difficulty)


class TestCreateSession:
    def test_initial_state(self):
        source = StaticBoardSource()
        registry = make_registry(source)

        session = asyncio.run(_create(registry, Difficulty.HARD))

        assert session.id.startswith("game_")
        assert session.current_player == PLAYER_1_ID
        assert session.status == GameStatus.PLAYING
        assert session.winner is None
        assert session.difficulty == Difficulty.HARD
        assert session.board == TEST_BOARD
        assert [p.position for p in session.players.values()] == [0, 0]
        assert [p.player_number for p in session.players.values()] == [1, 2]
        assert source.calls == [Difficulty.HARD]
        assert len(registry) == 1

    def test_players_are_indexed(self):
        registry = make_registry()

        session = asyncio.run(_create(registry))

        assert registry.get(session.id) == session
        assert registry.get_for_player(PLAYER_1_ID).id == session.id
        assert registry.get_for_player(PLAYER_2_ID).id == session.id
        assert registry.get_for_player("stranger") is None

    def test_same_player_twice_raises(self):
        registry = make_registry()
        entry = QueueEntry(player_id=PLAYER_1_ID, name="Alice")

        with pytest.raises(SessionInvariantError):
            asyncio.run(registry.create_session(entry, entry, Difficulty.MODERATE))

    def test_session_ids_are_unique(self):
        ids = {new_session_id() for _ in range(200)}
        assert len(ids) == 200


class TestSave:
    def test_save_replaces_live_session(self):
        registry = make_registry()
        session = asyncio.run(_create(registry))
        moved = resolve_move(session, PLAYER_1_ID, 4).session

        assert registry.save(moved) is True
        assert registry.get(session.id).players[PLAYER_1_ID].position == 4

    def test_save_ignores_removed_session(self):
        registry = make_registry()
        session = asyncio.run(_create(registry))
        registry.remove_player(session.id, PLAYER_1_ID)
        registry.remove_player(session.id, PLAYER_2_ID)

        assert registry.save(session) is False
        assert registry.get(session.id) is None


class TestReset:
    def test_reset_restores_start_state(self):
        registry = make_registry()
        session = asyncio.run(_create(registry))
        won = session.model_copy(deep=True)
        won.players[PLAYER_1_ID].position = 100
        won.players[PLAYER_2_ID].position = 40
        won.status = GameStatus.WON
        won.winner = PLAYER_1_ID
        won.current_player = PLAYER_2_ID
        won.last_dice_value = 5
        registry.save(won)

        reset = registry.reset(session.id)

        assert [p.position for p in reset.players.values()] == [0, 0]
        assert reset.status == GameStatus.PLAYING
        assert reset.winner is None
        assert reset.current_player == PLAYER_1_ID
        assert reset.last_dice_value == 1
        assert reset.board == session.board

    def test_reset_is_idempotent(self):
        registry = make_registry()
        session = asyncio.run(_create(registry))

        first = registry.reset(session.id)
        second = registry.reset(session.id)

        assert first.model_dump() == second.model_dump()

    def test_reset_unknown_session(self):
        assert make_registry().reset("game_missing") is None


class TestRemovePlayer:
    def test_voluntary_leave_keeps_session_without_timer(self):
        async def scenario():
            registry = make_registry(settings=make_settings(DISCONNECT_GRACE_SECONDS=SHORT_GRACE))
            session = await _create(registry)
            remaining = registry.remove_player(session.id, PLAYER_2_ID)
            await asyncio.sleep(SHORT_GRACE * 3)
            return registry, session, remaining

        registry, session, remaining = asyncio.run(scenario())

        assert list(remaining.players) == [PLAYER_1_ID]
        assert registry.get(session.id) is not None
        assert registry.get_for_player(PLAYER_2_ID) is None

    def test_turn_moves_to_remaining_player(self):
        registry = make_registry()
        session = asyncio.run(_create(registry))

        remaining = registry.remove_player(session.id, PLAYER_1_ID)

        assert remaining.current_player == PLAYER_2_ID

    def test_last_player_leaving_deletes_session(self):
        registry = make_registry()
        session = asyncio.run(_create(registry))

        registry.remove_player(session.id, PLAYER_1_ID)
        result = registry.remove_player(session.id, PLAYER_2_ID)

        assert result is None
        assert registry.get(session.id) is None
        assert len(registry) == 0

    def test_disconnect_deletes_after_grace(self):
        async def scenario():
            registry = make_registry(settings=make_settings(DISCONNECT_GRACE_SECONDS=SHORT_GRACE))
            session = await _create(registry)
            registry.remove_player(session.id, PLAYER_2_ID, disconnected=True)
            alive_during_grace = registry.get(session.id) is not None
            await asyncio.sleep(SHORT_GRACE * 3)
            return registry, session, alive_during_grace

        registry, session, alive_during_grace = asyncio.run(scenario())

        assert alive_during_grace is True
        assert registry.get(session.id) is None
        assert registry.get_for_player(PLAYER_1_ID) is None

    def test_unknown_session_is_ignored(self):
        assert make_registry().remove_player("game_missing", PLAYER_1_ID) is None


class TestRestorePlayer:
    def test_reconnect_within_grace_cancels_deletion(self):
        async def scenario():
            registry = make_registry(settings=make_settings(DISCONNECT_GRACE_SECONDS=SHORT_GRACE))
            session = await _create(registry)
            registry.remove_player(session.id, PLAYER_1_ID, disconnected=True)
            restored = registry.restore_player(PLAYER_1_ID)
            await asyncio.sleep(SHORT_GRACE * 3)
            return registry, session, restored

        registry, session, restored = asyncio.run(scenario())

        assert list(restored.players) == [PLAYER_1_ID, PLAYER_2_ID]
        assert registry.get(session.id) is not None
        assert registry.get_for_player(PLAYER_1_ID).id == session.id

    def test_reconnect_after_grace_finds_nothing(self):
        async def scenario():
            registry = make_registry(settings=make_settings(DISCONNECT_GRACE_SECONDS=SHORT_GRACE))
            session = await _create(registry)
            registry.remove_player(session.id, PLAYER_1_ID, disconnected=True)
            await asyncio.sleep(SHORT_GRACE * 3)
            return registry.restore_player(PLAYER_1_ID)

        assert asyncio.run(scenario()) is None

    def test_voluntary_leave_cannot_be_restored(self):
        registry = make_registry()
        session = asyncio.run(_create(registry))
        registry.remove_player(session.id, PLAYER_1_ID)

        assert registry.restore_player(PLAYER_1_ID) is None


class TestSweep:
    def test_old_sessions_are_swept(self):
        registry = make_registry()
        session = asyncio.run(_create(registry))
        later = datetime.now(timezone.utc) + timedelta(hours=25)

        expired = registry.sweep_expired(now=later)

        assert expired == [session.id]
        assert registry.get(session.id) is None
        assert registry.get_for_player(PLAYER_1_ID) is None

    def test_recent_sessions_survive(self):
        registry = make_registry()
        session = asyncio.run(_create(registry))

        assert registry.sweep_expired() == []
        assert registry.get(session.id) is not None

    def test_sweep_task_start_and_stop(self):
        async def scenario():
            registry = make_registry()
            await registry.start_sweep_task()
            running = registry._sweep_task is not None
            await registry.close()
            return running, registry._sweep_task

        running, task = asyncio.run(scenario())

        assert running is True
        assert task is None


class TestPlayerIndex:
    def test_second_session_does_not_steal_seated_player(self):
        registry = make_registry()
        seated = asyncio.run(_create(registry))
        other = QueueEntry(player_id="player-9", name="Dana")

        later = asyncio.run(
            registry.create_session(
                QueueEntry(player_id=PLAYER_1_ID, name="Alice"), other, Difficulty.EASY
            )
        )

        assert registry.get_for_player(PLAYER_1_ID).id == seated.id
        assert registry.get_for_player("player-9").id == later.id

    def test_removal_from_other_session_keeps_index(self):
        registry = make_registry()
        seated = asyncio.run(_create(registry))
        later = asyncio.run(
            registry.create_session(
                QueueEntry(player_id=PLAYER_1_ID, name="Alice"),
                QueueEntry(player_id="player-9", name="Dana"),
                Difficulty.EASY,
            )
        )

        registry.remove_player(later.id, PLAYER_1_ID)

        assert registry.get_for_player(PLAYER_1_ID).id == seated.id
        assert PLAYER_1_ID not in registry.get(later.id).players
