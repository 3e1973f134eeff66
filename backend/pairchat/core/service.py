"""
Matchmaking Service - the client-facing operations over the core components.
"""

import logging
from typing import Collection, List, Optional

from ..config import settings
from ..feed import ChangeFeed
from ..models import (
    ChatMode, ChatSession, EventKind, Gender, Message, Participant,
    PublicParticipant, ReapResult, SeekResult, SessionDetail, SessionStatus,
    SkipResult, participant_key,
)
from ..storage import RecordStore
from .clock import Clock, utc_now
from .errors import InvalidContent, InvalidSession, MatchmakingError, NotFound, RaceLost
from .logging_config import with_context
from .matcher import CompatibilityMatcher
from .messages import MessageChannel
from .pairing import PairingTransaction
from .presence import PresenceTracker
from .reaper import StaleSessionReaper
from .retry import retry_store_call
from .session_machine import SessionStateMachine

logger = logging.getLogger(__name__)


class MatchmakingService:
    """
    Wires presence, matching, pairing, session lifecycle, messages and the
    reaper over one record store and one change feed.
    """

    def __init__(
        self,
        store: RecordStore,
        feed: ChangeFeed,
        clock: Clock = utc_now,
        liveness_threshold: Optional[float] = None,
        candidate_window: Optional[int] = None,
        max_name_length: Optional[int] = None,
        max_message_length: Optional[int] = None,
        search_max_attempts: Optional[int] = None,
        store_retry_attempts: Optional[int] = None,
        store_retry_base_delay: Optional[float] = None,
    ):
        self.store = store
        self.feed = feed
        self.clock = clock
        self.max_name_length = max_name_length or settings.max_name_length
        self.search_max_attempts = search_max_attempts or settings.search_max_attempts
        self.store_retry_attempts = store_retry_attempts or settings.store_retry_attempts
        self.store_retry_base_delay = (
            store_retry_base_delay if store_retry_base_delay is not None
            else settings.store_retry_base_delay
        )

        self.presence = PresenceTracker(store, clock, liveness_threshold=liveness_threshold)
        self.matcher = CompatibilityMatcher(store, self.presence, candidate_window)
        self.pairing = PairingTransaction(store, feed, clock)
        self.sessions = SessionStateMachine(store, feed, clock)
        self.messages = MessageChannel(store, feed, clock, max_message_length)
        self.reaper = StaleSessionReaper(store, self.presence, self.sessions)

    async def _retrying(self, fn, operation: str):
        return await retry_store_call(
            fn,
            attempts=self.store_retry_attempts,
            base_delay=self.store_retry_base_delay,
            operation=operation,
        )

    def _normalize_name(self, name: Optional[str]) -> str:
        text = (name or "").strip()
        if not text:
            raise InvalidContent("Display name is required")
        if len(text) > self.max_name_length:
            raise InvalidContent(f"Display name exceeds {self.max_name_length} characters")
        return text

    async def get_participant(self, participant_id: str) -> Participant:
        participant = await self.store.get_participant(participant_id)
        if participant is None:
            raise NotFound(f"Participant {participant_id} not found")
        return participant

    async def get_session(self, session_id: str) -> ChatSession:
        session = await self.store.get_session(session_id)
        if session is None:
            raise NotFound(f"Session {session_id} not found")
        return session

    async def get_session_detail(self, session_id: str) -> SessionDetail:
        session = await self.get_session(session_id)
        bound = await self.store.list_bound(session_id)
        return SessionDetail(
            session=session,
            participants=[PublicParticipant.from_participant(p) for p in bound],
        )

    async def partner_of(self, session_id: str, participant_id: str) -> Optional[PublicParticipant]:
        for participant in await self.store.list_bound(session_id):
            if participant.id != participant_id:
                return PublicParticipant.from_participant(participant)
        return None

    # Seeking

    async def start_seeking(
        self,
        name: str,
        gender: Gender,
        preferred_gender: Gender = Gender.ANY,
        mode: ChatMode = ChatMode.TEXT
    ) -> SeekResult:
        """
        Register a new seeker and run one search for it.

        Returns:
            SeekResult: session/partner set when a match was made right away
        """
        now = self.clock()
        try:
            participant = Participant(
                name=self._normalize_name(name),
                gender=Gender(gender),
                preferred_gender=Gender(preferred_gender),
                is_seeking=True,
                is_online=True,
                last_seen=now,
                joined_at=now,
            )
            mode = ChatMode(mode)
        except ValueError as e:
            raise InvalidContent(str(e)) from e

        participant = await self.store.create_participant(participant)
        with_context(logger, participant_id=participant.id).info(
            f"Participant {participant.id} started seeking "
            f"({participant.gender.value} for {participant.preferred_gender.value})"
        )
        await self._publish_participant(participant)
        return await self._search(participant, mode)

    async def search(self, participant_id: str, mode: ChatMode = ChatMode.TEXT) -> SeekResult:
        """
        Re-enter the pool (if needed) and look for a partner.

        A participant that is already bound to a matched session gets that
        session back instead of a new one.
        """
        participant = await self.get_participant(participant_id)
        if participant.stopped:
            raise NotFound(f"Participant {participant_id} not found")

        if participant.session_id:
            session = await self.store.get_session(participant.session_id)
            if session is not None and session.status == SessionStatus.MATCHED:
                return await self._converged(participant, session)
            # Binding left over from a session that already ended
            await self.store.update_participant(
                participant_id,
                {"session_id": None},
                expect={"session_id": participant.session_id},
            )

        reentered = await self.store.update_participant(
            participant_id,
            {"is_seeking": True, "is_online": True, "last_seen": self.clock(), "left_at": None},
            expect={"session_id": None, "stopped": False},
        )
        if reentered is None:
            # Bound or stopped concurrently; report whatever state won
            participant = await self.get_participant(participant_id)
            if participant.session_id:
                session = await self.get_session(participant.session_id)
                return await self._converged(participant, session)
            raise NotFound(f"Participant {participant_id} not found")

        return await self._search(reentered, mode)

    async def _converged(self, participant: Participant, session: ChatSession) -> SeekResult:
        return SeekResult(
            participant=participant,
            session=session,
            partner=await self.partner_of(session.id, participant.id),
        )

    async def _search(
        self,
        seeker: Participant,
        mode: ChatMode,
        exclude: Collection[str] = ()
    ) -> SeekResult:
        log = with_context(logger, participant_id=seeker.id)
        for attempt in range(1, self.search_max_attempts + 1):
            partner = await self.matcher.find_partner(seeker, exclude)
            if partner is None:
                return SeekResult(participant=seeker)

            try:
                session = await self.pairing.pair(seeker, partner, mode)
            except RaceLost:
                log.debug(f"Search attempt {attempt} lost the race")
                current = await self.get_participant(seeker.id)
                if current.session_id:
                    # Someone else paired us meanwhile
                    return await self._converged(current, await self.get_session(current.session_id))
                if not current.is_seeking:
                    return SeekResult(participant=current)
                seeker = current
                continue

            paired = await self.get_participant(seeker.id)
            return SeekResult(
                participant=paired,
                session=session,
                partner=PublicParticipant.from_participant(partner),
            )

        log.info(f"No pairing after {self.search_max_attempts} attempts, still searching")
        return SeekResult(participant=await self.get_participant(seeker.id))

    # Session lifecycle

    async def skip(self, session_id: str, participant_id: str) -> SkipResult:
        """
        End the session and immediately search again for the invoker, never
        offering the partner just skipped.

        Failures of that automatic search are logged and absorbed; the invoker
        just stays in the pool.
        """
        session = await self.get_session(session_id)
        previous = [p.id for p in await self.store.list_bound(session_id) if p.id != participant_id]
        invoker = await self.sessions.skip(session_id, participant_id)
        if not invoker.is_seeking:
            return SkipResult(new_search_started=False)

        try:
            result = await self._search(invoker, session.mode, exclude=previous)
        except MatchmakingError as e:
            with_context(logger, participant_id=participant_id).warning(
                f"Search after skip failed, participant stays in the pool: {e}"
            )
            return SkipResult(new_search_started=True)

        return SkipResult(new_search_started=True, session=result.session, partner=result.partner)

    async def stop(self, participant_id: str) -> Participant:
        return await self._retrying(lambda: self.sessions.stop(participant_id), "stop")

    async def heartbeat(self, participant_id: str) -> Participant:
        return await self._retrying(lambda: self.presence.heartbeat(participant_id), "heartbeat")

    # Messages

    async def send_message(
        self,
        session_id: str,
        participant_id: str,
        content: str,
        client_message_id: Optional[str] = None
    ) -> Message:
        """
        Send a chat message as ``participant_id``.

        Raises:
            InvalidSession: Session ended, or the sender is not part of it
            InvalidContent: Empty or over-long content
            NotFound: Unknown session or sender
        """
        session = await self.get_session(session_id)
        if session.status != SessionStatus.MATCHED:
            raise InvalidSession("Your chat has ended")

        sender = await self.heartbeat(participant_id)
        if sender.session_id != session_id:
            raise InvalidSession(f"Participant {participant_id} is not in session {session_id}")

        return await self.messages.send(session_id, participant_id, content, client_message_id)

    async def history(self, session_id: str) -> List[Message]:
        return await self._retrying(lambda: self.messages.history(session_id), "history")

    # Scheduled trigger

    async def reap(self) -> ReapResult:
        """Idempotent reaper entry point. Never raises; a failed sweep returns an empty result."""
        return await self.reaper.run_once() or ReapResult()

    async def _publish_participant(self, participant: Participant) -> None:
        try:
            await self.feed.publish(
                participant_key(participant.id),
                EventKind.PARTICIPANT_UPDATED,
                {"participant": participant.model_dump(mode="json")},
            )
        except Exception as e:
            logger.warning(f"Could not publish update for {participant.id}: {e}", exc_info=True)


# Global service instance
_service: Optional[MatchmakingService] = None


def init_matchmaking(service: MatchmakingService) -> MatchmakingService:
    """Install the global service instance used by the API layer."""
    global _service
    _service = service
    return service


def get_matchmaking_service() -> MatchmakingService:
    """
    Get the global service instance.

    Raises:
        RuntimeError: If init_matchmaking() has not been called
    """
    if _service is None:
        raise RuntimeError("Matchmaking service not initialized. Call init_matchmaking() first.")
    return _service
