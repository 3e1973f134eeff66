"""
Change feed event model.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict
from pydantic import BaseModel, Field


class EventKind(str, Enum):
    PARTICIPANT_UPDATED = "participant_updated"
    SESSION_MATCHED = "session_matched"
    SESSION_ENDED = "session_ended"
    MESSAGE_CREATED = "message_created"


def participant_key(participant_id: str) -> str:
    return f"participant:{participant_id}"


def session_key(session_id: str) -> str:
    return f"session:{session_id}"


class FeedEvent(BaseModel):
    """One notification on a feed key. Consumers de-duplicate by event_id."""
    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    key: str
    kind: EventKind
    payload: Dict[str, Any] = Field(default_factory=dict)
    published_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
