"""
Session State Machine - session lifecycle and participant membership.

    waiting --> matched --> ended
    waiting --------------> ended

Sessions are created already matched, so ``waiting`` is never entered by
this service; it stays in the table for clients of the wire protocol.
Ended is terminal. Ending an ended session is a no-op.
"""

import logging
from typing import Dict, FrozenSet, List, Optional

from ..feed import ChangeFeed
from ..models import (
    ChatSession, EndReason, EventKind, Participant, SessionStatus,
    participant_key, session_key,
)
from ..storage import RecordStore
from .clock import Clock, utc_now
from .errors import InvalidSession, NotFound
from .logging_config import with_context

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[SessionStatus, FrozenSet[SessionStatus]] = {
    SessionStatus.WAITING: frozenset({SessionStatus.MATCHED, SessionStatus.ENDED}),
    SessionStatus.MATCHED: frozenset({SessionStatus.ENDED}),
    SessionStatus.ENDED: frozenset(),
}


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    return target in TRANSITIONS[current]


class SessionStateMachine:
    """Drives matched -> ended on stop, skip and abandonment."""

    def __init__(self, store: RecordStore, feed: ChangeFeed, clock: Clock = utc_now):
        self.store = store
        self.feed = feed
        self.clock = clock

    async def _get_participant(self, participant_id: str) -> Participant:
        participant = await self.store.get_participant(participant_id)
        if participant is None or participant.stopped:
            raise NotFound(f"Participant {participant_id} not found")
        return participant

    async def end(self, session_id: str, reason: EndReason) -> Optional[ChatSession]:
        """
        End a session and tell everyone bound to it.

        Returns:
            Optional[ChatSession]: The session if this call ended it, None if it
            was already ended (duplicate delivery, concurrent skip)

        Raises:
            NotFound: Unknown session
        """
        session = await self.store.get_session(session_id)
        if session is None:
            raise NotFound(f"Session {session_id} not found")
        if not can_transition(session.status, SessionStatus.ENDED):
            return None

        ended = await self.store.end_session(session_id, self.clock(), reason)
        if ended is None:
            return None

        with_context(logger, session_id=session_id).info(
            f"Session {session_id} ended ({reason.value})"
        )
        await self._publish(session_key(session_id), EventKind.SESSION_ENDED, {
            "session_id": session_id,
            "reason": reason.value,
        })
        return ended

    async def _release(
        self,
        session_id: str,
        participant: Participant,
        seeking: bool,
        reason: EndReason
    ) -> Optional[Participant]:
        """Unbind one participant from ``session_id`` unless it already moved on."""
        released = await self.store.update_participant(
            participant.id,
            {"session_id": None, "is_seeking": seeking and participant.is_online},
            expect={"session_id": session_id},
        )
        if released is None:
            return None
        await self._publish(participant_key(participant.id), EventKind.SESSION_ENDED, {
            "participant_id": participant.id,
            "session_id": session_id,
            "reason": reason.value,
        })
        await self.publish_participant(released)
        return released

    async def stop(self, participant_id: str) -> Participant:
        """
        Terminal exit for a participant.

        Its session (if any) ends and the partner is released without seeking.
        Stopping twice is harmless.

        The exit is written guarded on the binding just read. A pairing that
        claims the participant first makes the guard fail and the new session
        is the one that gets ended; a pairing that comes later is rejected
        because the participant no longer seeks.

        Raises:
            NotFound: Unknown participant
        """
        participant = await self.store.get_participant(participant_id)
        now = self.clock()
        while True:
            if participant is None:
                raise NotFound(f"Participant {participant_id} not found")
            if participant.stopped:
                return participant

            session_id = participant.session_id
            stopped = await self.store.update_participant(
                participant_id,
                {
                    "is_seeking": False,
                    "session_id": None,
                    "is_online": False,
                    "stopped": True,
                    "left_at": now,
                },
                expect={"session_id": session_id, "stopped": False},
            )
            if stopped is not None:
                break
            logger.debug(f"Binding of {participant_id} changed during stop, re-reading")
            participant = await self.store.get_participant(participant_id)

        if session_id:
            try:
                await self.end(session_id, EndReason.STOP)
            except NotFound:
                # Pairing rolled back and deleted the session meanwhile
                logger.debug(f"Session {session_id} vanished before stop could end it")
            for other in await self.store.list_bound(session_id):
                await self._release(session_id, other, seeking=False, reason=EndReason.STOP)

        with_context(logger, participant_id=participant_id, session_id=session_id).info(
            f"Participant {participant_id} stopped"
        )
        await self.publish_participant(stopped)
        return stopped

    async def skip(self, session_id: str, participant_id: str) -> Participant:
        """
        End the session and put both sides back in the pool.

        Only the invoker is handed back to the caller for a new search; the
        partner gets a session-ended notification and searches on its own.
        Retrying after the session already ended just returns the invoker
        to seeking.

        Returns:
            Participant: The invoker, now seeking

        Raises:
            NotFound: Unknown participant or session
            InvalidSession: The participant is bound to a different session
        """
        participant = await self._get_participant(participant_id)
        session = await self.store.get_session(session_id)
        if session is None:
            raise NotFound(f"Session {session_id} not found")

        retry = participant.session_id is None and session.status == SessionStatus.ENDED
        if participant.session_id != session_id and not retry:
            raise InvalidSession(f"Participant {participant_id} is not in session {session_id}")

        await self.end(session_id, EndReason.SKIP)

        for other in await self.store.list_bound(session_id):
            if other.id != participant_id:
                await self._release(session_id, other, seeking=True, reason=EndReason.SKIP)

        invoker = await self._release(session_id, participant, seeking=True, reason=EndReason.SKIP)
        if invoker is None:
            # Already released (partner skipped first, or a retry)
            invoker = await self.store.update_participant(
                participant_id,
                {"is_seeking": participant.is_online},
                expect={"session_id": None, "stopped": False},
            )
            if invoker is None:
                invoker = await self._get_participant(participant_id)

        with_context(logger, participant_id=participant_id, session_id=session_id).info(
            f"Participant {participant_id} skipped session {session_id}"
        )
        return invoker

    async def end_abandoned(self, session_id: str) -> Optional[ChatSession]:
        """End a session whose participants all went silent and unbind them."""
        ended = await self.end(session_id, EndReason.ABANDONED)
        for participant in await self.store.list_bound(session_id):
            await self._release(session_id, participant, seeking=False, reason=EndReason.ABANDONED)
        return ended

    async def bound_participants(self, session_id: str) -> List[Participant]:
        return await self.store.list_bound(session_id)

    async def publish_participant(self, participant: Participant) -> None:
        await self._publish(
            participant_key(participant.id),
            EventKind.PARTICIPANT_UPDATED,
            {"participant": participant.model_dump(mode="json")},
        )

    async def _publish(self, key: str, kind: EventKind, payload: dict) -> None:
        try:
            await self.feed.publish(key, kind, payload)
        except Exception as e:
            logger.warning(f"Could not publish {kind.value} to {key}: {e}", exc_info=True)
