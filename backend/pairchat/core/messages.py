"""
Message Channel - append and order chat turns within a matched session.
"""

import logging
from typing import Dict, Iterable, List, Optional

from ..config import settings
from ..feed import ChangeFeed
from ..models import EventKind, Message, SessionStatus, session_key
from ..storage import RecordStore
from .clock import Clock, utc_now
from .errors import InvalidContent, InvalidSession, NotFound

logger = logging.getLogger(__name__)


def normalize_content(content: Optional[str], max_length: int) -> str:
    """
    Trim and validate message text.

    Raises:
        InvalidContent: Empty after trimming, or longer than ``max_length``
    """
    text = (content or "").strip()
    if not text:
        raise InvalidContent("Message is empty")
    if len(text) > max_length:
        raise InvalidContent(f"Message exceeds {max_length} characters")
    return text


class MessageChannel:
    """Stores messages and fans them out on the session's feed key."""

    def __init__(
        self,
        store: RecordStore,
        feed: ChangeFeed,
        clock: Clock = utc_now,
        max_length: Optional[int] = None,
    ):
        self.store = store
        self.feed = feed
        self.clock = clock
        self.max_length = max_length or settings.max_message_length

    async def send(
        self,
        session_id: str,
        participant_id: str,
        content: str,
        client_message_id: Optional[str] = None
    ) -> Message:
        """
        Append a message to a matched session.

        Args:
            session_id: Target session
            participant_id: Sender
            content: Message text, trimmed before storing
            client_message_id: Optional idempotency key; resending with the same
                key returns the original message instead of a duplicate

        Raises:
            InvalidContent: Empty or over-long content
            InvalidSession: Session is not matched
            NotFound: Unknown session
        """
        text = normalize_content(content, self.max_length)

        session = await self.store.get_session(session_id)
        if session is None:
            raise NotFound(f"Session {session_id} not found")
        if session.status != SessionStatus.MATCHED:
            raise InvalidSession("Your chat has ended")

        message = Message(
            session_id=session_id,
            participant_id=participant_id,
            content=text,
            sent_at=self.clock(),
            client_message_id=client_message_id,
        )
        stored = await self.store.add_message(message)
        if stored is None:
            # Session ended between the status check and the insert
            raise InvalidSession("Your chat has ended")

        if stored.id != message.id:
            logger.debug(f"Duplicate send {client_message_id} in session {session_id}")
            return stored

        try:
            await self.feed.publish(
                session_key(session_id),
                EventKind.MESSAGE_CREATED,
                {"message": stored.model_dump(mode="json")},
            )
        except Exception as e:
            logger.warning(f"Could not publish message {stored.id}: {e}", exc_info=True)
        return stored

    async def history(self, session_id: str) -> List[Message]:
        """All messages of the session ordered by (sent_at, id)."""
        session = await self.store.get_session(session_id)
        if session is None:
            raise NotFound(f"Session {session_id} not found")
        return await self.store.list_messages(session_id)


class Transcript:
    """
    A consumer's materialized view of a session's messages.

    Feed delivery is at-least-once, so the same message may arrive more than
    once or before the history load finishes; both collapse here.
    """

    def __init__(self):
        self._by_id: Dict[str, Message] = {}

    def hydrate(self, history: Iterable[Message]) -> None:
        for message in history:
            self.add(message)

    def add(self, message: Message) -> bool:
        """Returns False if the message was already present."""
        if message.id in self._by_id:
            return False
        self._by_id[message.id] = message
        return True

    def clear(self) -> None:
        self._by_id.clear()

    @property
    def messages(self) -> List[Message]:
        return sorted(self._by_id.values(), key=lambda m: m.ordering_key)

    def contents(self) -> List[str]:
        return [m.content for m in self.messages]

    def __len__(self) -> int:
        return len(self._by_id)
