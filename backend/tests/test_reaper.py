"""
Unit tests for the stale-session reaper and its scheduler.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pairchat.core import (
    PairingTransaction, PresenceTracker, ReaperScheduler, SessionStateMachine,
    StaleSessionReaper, StoreUnavailable,
)
from pairchat.models import EndReason, SessionStatus


@pytest.fixture
def presence(store, clock):
    return PresenceTracker(store, clock, liveness_threshold=30)


@pytest.fixture
def reaper(store, feed, clock, presence):
    return StaleSessionReaper(store, presence, SessionStateMachine(store, feed, clock))


@pytest.fixture
def matched(store, feed, clock, add_seeker):
    async def _matched():
        a = await add_seeker("A")
        b = await add_seeker("B")
        session = await PairingTransaction(store, feed, clock).pair(a, b)
        return a, b, session
    return _matched


class TestSweep:
    """Tests for StaleSessionReaper.sweep."""

    @pytest.mark.asyncio
    async def test_marks_silent_seekers_offline(self, reaper, store, clock, add_seeker):
        seeker = await add_seeker("quiet")
        clock.advance(31)

        result = await reaper.sweep()

        assert result.participants_marked_offline == [seeker.id]
        stored = await store.get_participant(seeker.id)
        assert stored.is_online is False
        assert stored.is_seeking is False

    @pytest.mark.asyncio
    async def test_live_participants_untouched(self, reaper, store, clock, add_seeker):
        seeker = await add_seeker("chatty")
        clock.advance(30)

        result = await reaper.sweep()

        assert result.changed is False
        assert (await store.get_participant(seeker.id)).is_online is True

    @pytest.mark.asyncio
    async def test_ends_session_when_both_sides_silent(self, reaper, store, clock, matched):
        a, b, session = await matched()
        clock.advance(31)

        result = await reaper.sweep()

        assert set(result.participants_marked_offline) == {a.id, b.id}
        assert result.sessions_ended == [session.id]
        ended = await store.get_session(session.id)
        assert ended.status == SessionStatus.ENDED
        assert ended.end_reason == EndReason.ABANDONED
        assert await store.list_bound(session.id) == []

    @pytest.mark.asyncio
    async def test_keeps_session_while_one_side_is_live(
        self, reaper, presence, store, clock, matched
    ):
        a, b, session = await matched()
        clock.advance(20)
        await presence.heartbeat(a.id)
        clock.advance(20)

        result = await reaper.sweep()

        assert result.participants_marked_offline == [b.id]
        assert result.sessions_ended == []
        assert (await store.get_session(session.id)).status == SessionStatus.MATCHED

    @pytest.mark.asyncio
    async def test_second_sweep_is_a_no_op(self, reaper, clock, matched):
        await matched()
        clock.advance(31)

        await reaper.sweep()
        again = await reaper.sweep()

        assert again.changed is False

    @pytest.mark.asyncio
    async def test_run_once_absorbs_failures(self, reaper, store):
        with patch.object(store, "list_stale", AsyncMock(side_effect=StoreUnavailable())):
            assert await reaper.run_once() is None


class TestReaperScheduler:
    """Tests for ReaperScheduler."""

    @pytest.mark.asyncio
    async def test_runs_periodically_until_stopped(self):
        reaper = MagicMock()
        reaper.run_once = AsyncMock(return_value=None)
        scheduler = ReaperScheduler(reaper, period=0.01)

        scheduler.start()
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert reaper.run_once.await_count >= 1
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self):
        reaper = MagicMock()
        reaper.run_once = AsyncMock(return_value=None)
        scheduler = ReaperScheduler(reaper, period=10)

        scheduler.start()
        task = scheduler._task
        scheduler.start()

        assert scheduler._task is task
        await scheduler.stop()
