"""
In-Memory Record Store.
Keeps all records in dictionaries; a single asyncio.Lock makes every method
one atomic round-trip, the same guarantee a row-level conditional UPDATE gives.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models import ChatSession, EndReason, Message, Participant, SessionStatus
from .interface import RecordStore


class InMemoryRecordStore(RecordStore):
    """
    Dictionary-backed record store.
    Returned records are copies, so callers never mutate stored state directly.
    """

    def __init__(self):
        self._participants: Dict[str, Participant] = {}
        self._sessions: Dict[str, ChatSession] = {}
        self._messages: Dict[str, List[Message]] = {}
        self._lock = asyncio.Lock()

    # Persistence hooks, called with the lock held

    async def _participant_changed(self, participant: Participant) -> None:
        pass

    async def _session_changed(self, session: ChatSession) -> None:
        pass

    async def _session_deleted(self, session_id: str) -> None:
        pass

    async def _message_added(self, message: Message) -> None:
        pass

    @staticmethod
    def _matches(record: Participant, expect: Optional[Dict[str, Any]]) -> bool:
        if not expect:
            return True
        return all(getattr(record, field) == value for field, value in expect.items())

    # Participants

    async def create_participant(self, participant: Participant) -> Participant:
        async with self._lock:
            if participant.id in self._participants:
                raise ValueError(f"Participant {participant.id} already exists")
            await self._participant_changed(participant)
            self._participants[participant.id] = participant.model_copy()
            return participant.model_copy()

    async def get_participant(self, participant_id: str) -> Optional[Participant]:
        async with self._lock:
            participant = self._participants.get(participant_id)
            return participant.model_copy() if participant else None

    async def update_participant(
        self,
        participant_id: str,
        updates: Dict[str, Any],
        expect: Optional[Dict[str, Any]] = None
    ) -> Optional[Participant]:
        async with self._lock:
            current = self._participants.get(participant_id)
            if current is None or not self._matches(current, expect):
                return None
            updated = current.model_copy(update=updates)
            await self._participant_changed(updated)
            self._participants[participant_id] = updated
            return updated.model_copy()

    async def claim_seekers(
        self,
        participant_ids: List[str],
        session_id: str,
        claimed_at: datetime
    ) -> List[str]:
        async with self._lock:
            claimed = []
            for participant_id in participant_ids:
                current = self._participants.get(participant_id)
                if current is None:
                    continue
                if not (current.is_seeking and current.is_online and current.session_id is None):
                    continue
                updated = current.model_copy(update={
                    "is_seeking": False,
                    "session_id": session_id,
                    "last_seen": claimed_at,
                })
                await self._participant_changed(updated)
                self._participants[participant_id] = updated
                claimed.append(participant_id)
            return claimed

    async def release_claim(self, participant_id: str, session_id: str) -> bool:
        async with self._lock:
            current = self._participants.get(participant_id)
            if current is None or current.session_id != session_id:
                return False
            updated = current.model_copy(update={"is_seeking": True, "session_id": None})
            await self._participant_changed(updated)
            self._participants[participant_id] = updated
            return True

    async def list_seekers(
        self,
        exclude_id: str,
        seen_after: datetime,
        limit: int
    ) -> List[Participant]:
        async with self._lock:
            seekers = [
                p for p in self._participants.values()
                if p.id != exclude_id
                and p.is_seeking
                and p.is_online
                and p.last_seen >= seen_after
            ]
            seekers.sort(key=lambda p: (p.joined_at, p.id))
            return [p.model_copy() for p in seekers[:limit]]

    async def list_stale(self, seen_before: datetime) -> List[Participant]:
        async with self._lock:
            return [
                p.model_copy() for p in self._participants.values()
                if p.is_online and p.last_seen < seen_before
            ]

    async def list_bound(self, session_id: str) -> List[Participant]:
        async with self._lock:
            bound = [p for p in self._participants.values() if p.session_id == session_id]
            bound.sort(key=lambda p: (p.joined_at, p.id))
            return [p.model_copy() for p in bound]

    # Sessions

    async def create_session(self, session: ChatSession) -> ChatSession:
        async with self._lock:
            if session.id in self._sessions:
                raise ValueError(f"Session {session.id} already exists")
            await self._session_changed(session)
            self._sessions[session.id] = session.model_copy()
            return session.model_copy()

    async def get_session(self, session_id: str) -> Optional[ChatSession]:
        async with self._lock:
            session = self._sessions.get(session_id)
            return session.model_copy() if session else None

    async def delete_session(self, session_id: str) -> bool:
        async with self._lock:
            if session_id not in self._sessions:
                return False
            await self._session_deleted(session_id)
            del self._sessions[session_id]
            self._messages.pop(session_id, None)
            return True

    async def end_session(
        self,
        session_id: str,
        ended_at: datetime,
        reason: EndReason
    ) -> Optional[ChatSession]:
        async with self._lock:
            current = self._sessions.get(session_id)
            if current is None or current.status == SessionStatus.ENDED:
                return None
            ended = current.model_copy(update={
                "status": SessionStatus.ENDED,
                "ended_at": ended_at,
                "end_reason": reason,
            })
            await self._session_changed(ended)
            self._sessions[session_id] = ended
            return ended.model_copy()

    async def list_sessions(self, status: SessionStatus) -> List[ChatSession]:
        async with self._lock:
            sessions = [s for s in self._sessions.values() if s.status == status]
            sessions.sort(key=lambda s: (s.created_at, s.id))
            return [s.model_copy() for s in sessions]

    # Messages

    async def add_message(self, message: Message) -> Optional[Message]:
        async with self._lock:
            session = self._sessions.get(message.session_id)
            if session is None or session.status != SessionStatus.MATCHED:
                return None
            messages = self._messages.setdefault(message.session_id, [])
            if message.client_message_id:
                for existing in messages:
                    if (existing.participant_id == message.participant_id
                            and existing.client_message_id == message.client_message_id):
                        return existing
            await self._message_added(message)
            messages.append(message)
            return message

    async def list_messages(self, session_id: str) -> List[Message]:
        async with self._lock:
            return sorted(self._messages.get(session_id, []), key=lambda m: m.ordering_key)
