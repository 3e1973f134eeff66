"""
Pairing Transaction - atomically create a session and bind two seekers to it.
"""

import logging

from ..feed import ChangeFeed
from ..models import (
    ChatMode, ChatSession, EventKind, Participant, PublicParticipant,
    SessionStatus, participant_key,
)
from ..storage import RecordStore
from .clock import Clock, utc_now
from .errors import RaceLost

logger = logging.getLogger(__name__)


class PairingTransaction:
    """
    Creates exactly one matched session bound to exactly two participants,
    or leaves the store as it found it.

    The bind is a conditional update guarded on each participant still
    seeking; that guard is what keeps a participant out of two sessions when
    searches race on the same pool.
    """

    def __init__(self, store: RecordStore, feed: ChangeFeed, clock: Clock = utc_now):
        self.store = store
        self.feed = feed
        self.clock = clock

    async def pair(
        self,
        a: Participant,
        b: Participant,
        mode: ChatMode = ChatMode.TEXT
    ) -> ChatSession:
        """
        Pair two participants.

        Returns:
            ChatSession: The new matched session

        Raises:
            RaceLost: One of the participants was claimed (or left) between the
                match decision and the bind; nothing was changed
        """
        if a.id == b.id:
            raise ValueError("Cannot pair a participant with itself")

        now = self.clock()
        session = await self.store.create_session(
            ChatSession(mode=mode, status=SessionStatus.MATCHED, created_at=now)
        )

        try:
            claimed = await self.store.claim_seekers([a.id, b.id], session.id, now)
        except Exception:
            await self._rollback(session, [a.id, b.id])
            raise

        if len(claimed) != 2:
            await self._rollback(session, claimed)
            lost = [pid for pid in (a.id, b.id) if pid not in claimed]
            logger.info(f"Pairing {a.id} with {b.id} lost the race for {', '.join(lost)}")
            raise RaceLost(f"Participant {', '.join(lost)} is no longer available")

        logger.info(f"Paired {a.id} with {b.id} in session {session.id}")
        await self._notify(session, a, b)
        return session

    async def _rollback(self, session: ChatSession, claimed: list) -> None:
        for participant_id in claimed:
            await self.store.release_claim(participant_id, session.id)
        await self.store.delete_session(session.id)

    async def _notify(self, session: ChatSession, a: Participant, b: Participant) -> None:
        for me, partner in ((a, b), (b, a)):
            try:
                await self.feed.publish(
                    participant_key(me.id),
                    EventKind.SESSION_MATCHED,
                    {
                        "participant_id": me.id,
                        "session": session.model_dump(mode="json"),
                        "partner": PublicParticipant.from_participant(partner).model_dump(mode="json"),
                    },
                )
            except Exception as e:
                logger.warning(f"Could not publish match for {me.id}: {e}", exc_info=True)
