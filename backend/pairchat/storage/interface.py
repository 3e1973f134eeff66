"""
Record Store Interface - the durable store the matchmaking core runs against.

Every method is a single store round-trip and must be atomic on its own.
Cross-participant invariants are enforced only through the conditional
methods (update_participant with ``expect``, claim_seekers, release_claim,
end_session, add_message), never by locking in the caller.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models import ChatSession, EndReason, Message, Participant, SessionStatus


class RecordStore(ABC):
    """
    Abstract record store holding the Participant, Session and Message collections.
    Implementations: InMemoryRecordStore, LocalRecordStore.
    """

    async def open(self) -> None:
        """Prepare the store (load persisted state, open connections)."""

    async def close(self) -> None:
        """Release any resources held by the store."""

    # Participants

    @abstractmethod
    async def create_participant(self, participant: Participant) -> Participant:
        """Insert a new participant. Identifiers must be unique."""
        pass

    @abstractmethod
    async def get_participant(self, participant_id: str) -> Optional[Participant]:
        pass

    @abstractmethod
    async def update_participant(
        self,
        participant_id: str,
        updates: Dict[str, Any],
        expect: Optional[Dict[str, Any]] = None
    ) -> Optional[Participant]:
        """
        Check-then-set update of one participant.

        Args:
            participant_id: Participant to update
            updates: Field values to set
            expect: Field values the current record must hold for the update to apply

        Returns:
            Optional[Participant]: The updated record, or None if the participant
            does not exist or the ``expect`` guard did not hold
        """
        pass

    @abstractmethod
    async def claim_seekers(
        self,
        participant_ids: List[str],
        session_id: str,
        claimed_at: datetime
    ) -> List[str]:
        """
        Bind seekers to a session in one conditional update.

        Each row is guarded independently on is_seeking=True, is_online=True and
        session_id=None; rows failing the guard are left untouched.

        Returns:
            List[str]: Identifiers that were actually claimed
        """
        pass

    @abstractmethod
    async def release_claim(self, participant_id: str, session_id: str) -> bool:
        """
        Undo a claim: restore seeking only if still bound to ``session_id``.

        Returns:
            bool: True if the participant was released
        """
        pass

    @abstractmethod
    async def list_seekers(
        self,
        exclude_id: str,
        seen_after: datetime,
        limit: int
    ) -> List[Participant]:
        """
        Seeking, online participants seen at or after ``seen_after``.

        Returns:
            List[Participant]: At most ``limit`` records ordered by (joined_at, id)
        """
        pass

    @abstractmethod
    async def list_stale(self, seen_before: datetime) -> List[Participant]:
        """Online participants whose last heartbeat is older than ``seen_before``."""
        pass

    @abstractmethod
    async def list_bound(self, session_id: str) -> List[Participant]:
        """Participants currently bound to a session."""
        pass

    # Sessions

    @abstractmethod
    async def create_session(self, session: ChatSession) -> ChatSession:
        pass

    @abstractmethod
    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        pass

    @abstractmethod
    async def delete_session(self, session_id: str) -> bool:
        """Physically remove a session. Only used to roll back a failed pairing."""
        pass

    @abstractmethod
    async def end_session(
        self,
        session_id: str,
        ended_at: datetime,
        reason: EndReason
    ) -> Optional[ChatSession]:
        """
        Conditional matched -> ended transition.

        Returns:
            Optional[ChatSession]: The ended session if this call performed the
            transition, None if it was already ended or does not exist
        """
        pass

    @abstractmethod
    async def list_sessions(self, status: SessionStatus) -> List[ChatSession]:
        pass

    # Messages

    @abstractmethod
    async def add_message(self, message: Message) -> Optional[Message]:
        """
        Insert a message if its session is still matched.

        A message carrying a client_message_id already stored for the same
        session and sender is not inserted again; the stored one is returned.

        Returns:
            Optional[Message]: The stored message, or None if the session is
            missing or not matched
        """
        pass

    @abstractmethod
    async def list_messages(self, session_id: str) -> List[Message]:
        """All messages of a session ordered by (sent_at, id)."""
        pass
