"""
Session Models - one pairing between exactly two participants.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class ChatMode(str, Enum):
    """Requested chat mode. Only text is carried by the message channel."""
    TEXT = "text"
    AUDIO = "audio"
    VIDEO = "video"


class SessionStatus(str, Enum):
    WAITING = "waiting"
    MATCHED = "matched"
    ENDED = "ended"


class EndReason(str, Enum):
    """Why a session left the matched state."""
    SKIP = "skip"
    STOP = "stop"
    ABANDONED = "abandoned"  # reaper found every bound participant offline


class ChatSession(BaseModel):
    """Chat session record."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    mode: ChatMode = ChatMode.TEXT
    status: SessionStatus = SessionStatus.MATCHED
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    ended_at: Optional[datetime] = None
    end_reason: Optional[EndReason] = None

    @property
    def is_active(self) -> bool:
        return self.status == SessionStatus.MATCHED
