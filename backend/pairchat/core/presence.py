"""
Presence Tracker - participant liveness via periodic heartbeats.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from ..config import settings
from ..models import Participant
from ..storage import RecordStore
from .clock import Clock, utc_now
from .errors import NotFound

logger = logging.getLogger(__name__)


class PresenceTracker:
    """
    Records heartbeats and answers liveness questions.

    Clients heartbeat every ``heartbeat_interval`` seconds and on every
    outbound action; a participant stays live for ``liveness_threshold``
    seconds after its last heartbeat.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Clock = utc_now,
        liveness_threshold: Optional[float] = None,
        heartbeat_interval: Optional[float] = None,
    ):
        self.store = store
        self.clock = clock
        self.liveness_threshold = timedelta(
            seconds=liveness_threshold if liveness_threshold is not None
            else settings.liveness_threshold_seconds
        )
        self.heartbeat_interval = timedelta(
            seconds=heartbeat_interval if heartbeat_interval is not None
            else settings.heartbeat_interval_seconds
        )

    async def heartbeat(self, participant_id: str) -> Participant:
        """
        Mark a participant live now.

        A participant the reaper took offline comes back online, but does not
        resume seeking on its own. Stopped participants are gone for good.

        Raises:
            NotFound: Unknown or stopped participant
        """
        participant = await self.store.update_participant(
            participant_id,
            {"last_seen": self.clock(), "is_online": True, "left_at": None},
            expect={"stopped": False},
        )
        if participant is None:
            raise NotFound(f"Participant {participant_id} not found")
        return participant

    def live_since(self, threshold: Optional[timedelta] = None) -> datetime:
        """Oldest heartbeat time that still counts as live."""
        return self.clock() - (threshold if threshold is not None else self.liveness_threshold)

    def is_live(self, participant: Participant, threshold: Optional[timedelta] = None) -> bool:
        """True iff the participant's last heartbeat is within the threshold."""
        limit = threshold if threshold is not None else self.liveness_threshold
        return self.clock() - participant.last_seen <= limit
