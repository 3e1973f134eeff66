"""
Client-side view of one participant's chat.

A client learns about its own match either from its own pairing call or from
the participant feed; both paths go through apply_binding so they converge on
the same state and the second one is a no-op.
"""

import logging
from typing import Dict, Iterable, Optional

from ..models import (
    ChatSession, EventKind, FeedEvent, Message, PublicParticipant,
)
from .messages import Transcript

logger = logging.getLogger(__name__)

# Redeliveries arrive close to the original, so only recent ids are kept
MAX_SEEN_EVENTS = 1024


class ChatClientState:
    """Local state a UI keeps for one participant."""

    def __init__(self, participant_id: str, max_seen_events: int = MAX_SEEN_EVENTS):
        self.participant_id = participant_id
        self.session: Optional[ChatSession] = None
        self.partner: Optional[PublicParticipant] = None
        self.is_searching = True
        self.transcript = Transcript()
        self.max_seen_events = max_seen_events
        self._seen_events: Dict[str, None] = {}

    @property
    def session_id(self) -> Optional[str]:
        return self.session.id if self.session else None

    @property
    def is_connected(self) -> bool:
        return self.session is not None

    def apply_binding(self, session: ChatSession, partner: Optional[PublicParticipant]) -> bool:
        """
        Enter a matched session.

        Returns:
            bool: False if already in this session (nothing changed)
        """
        if self.session is not None and self.session.id == session.id:
            if partner is not None and self.partner is None:
                self.partner = partner
            return False
        if self.session is not None:
            logger.debug(f"{self.participant_id} replaces session {self.session.id} with {session.id}")
        self.session = session
        self.partner = partner
        self.is_searching = False
        self.transcript.clear()
        return True

    def hydrate(self, history: Iterable[Message]) -> None:
        """Load the stored history once after joining."""
        for message in history:
            self.apply_message(message)

    def apply_message(self, message: Message) -> bool:
        if self.session is None or message.session_id != self.session.id:
            return False
        return self.transcript.add(message)

    def apply_session_ended(self, session_id: str, searching: bool = False) -> bool:
        """Leave the session. Notifications about an older session are ignored."""
        if self.session is None or self.session.id != session_id:
            return False
        self.session = None
        self.partner = None
        self.is_searching = searching
        self.transcript.clear()
        return True

    def start_searching(self) -> None:
        if self.session is None:
            self.is_searching = True

    def apply_event(self, event: FeedEvent) -> bool:
        """Apply one feed event; redelivered events are dropped by event_id."""
        if event.event_id in self._seen_events:
            return False
        self._seen_events[event.event_id] = None
        if len(self._seen_events) > self.max_seen_events:
            del self._seen_events[next(iter(self._seen_events))]

        payload = event.payload
        if event.kind == EventKind.SESSION_MATCHED:
            partner = payload.get("partner")
            return self.apply_binding(
                ChatSession.model_validate(payload["session"]),
                PublicParticipant.model_validate(partner) if partner else None,
            )
        if event.kind == EventKind.SESSION_ENDED:
            return self.apply_session_ended(payload["session_id"])
        if event.kind == EventKind.MESSAGE_CREATED:
            return self.apply_message(Message.model_validate(payload["message"]))
        return False
