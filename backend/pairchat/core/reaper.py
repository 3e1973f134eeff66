"""
Stale-Session Reaper - ends sessions whose participants stopped heartbeating.
"""

import asyncio
import logging
from typing import Optional

from ..config import settings
from ..models import ReapResult, SessionStatus
from ..storage import RecordStore
from .presence import PresenceTracker
from .session_machine import SessionStateMachine

logger = logging.getLogger(__name__)


class StaleSessionReaper:
    """
    One sweep:
      1. every online participant past the liveness threshold goes offline
         and stops seeking;
      2. every matched session whose bound participants are all offline ends.
    """

    def __init__(
        self,
        store: RecordStore,
        presence: PresenceTracker,
        sessions: SessionStateMachine,
    ):
        self.store = store
        self.presence = presence
        self.sessions = sessions

    async def sweep(self) -> ReapResult:
        """Run one sweep. Safe to call repeatedly and concurrently."""
        result = ReapResult()
        cutoff = self.presence.live_since()

        for participant in await self.store.list_stale(cutoff):
            # Guard on last_seen so a heartbeat landing mid-sweep wins
            updated = await self.store.update_participant(
                participant.id,
                {"is_online": False, "is_seeking": False, "left_at": self.presence.clock()},
                expect={"is_online": True, "last_seen": participant.last_seen},
            )
            if updated is not None:
                result.participants_marked_offline.append(participant.id)
                await self.sessions.publish_participant(updated)

        for session in await self.store.list_sessions(SessionStatus.MATCHED):
            bound = await self.store.list_bound(session.id)
            if any(p.is_online for p in bound):
                continue
            if await self.sessions.end_abandoned(session.id) is not None:
                result.sessions_ended.append(session.id)

        if result.changed:
            logger.info(
                f"Reaper marked {len(result.participants_marked_offline)} participants offline, "
                f"ended {len(result.sessions_ended)} sessions"
            )
        else:
            logger.debug("Reaper sweep found nothing stale")
        return result

    async def run_once(self) -> Optional[ReapResult]:
        """Sweep, logging instead of raising. A failed sweep waits for the next period."""
        try:
            return await self.sweep()
        except Exception as e:
            logger.error(f"Reaper sweep failed: {e}", exc_info=True)
            return None


class ReaperScheduler:
    """Background task triggering the reaper on a fixed period."""

    def __init__(self, reaper: StaleSessionReaper, period: Optional[float] = None):
        self.reaper = reaper
        self.period = period if period is not None else settings.reaper_period_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="stale-session-reaper")
        logger.info(f"Reaper scheduled every {self.period}s")

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.period)
            await self.reaper.run_once()

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Reaper stopped")
