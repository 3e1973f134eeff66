"""
Message Model - one immutable chat turn inside a session.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Tuple
from pydantic import BaseModel, Field


class Message(BaseModel):
    """Chat message record."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    session_id: str
    participant_id: str
    content: str
    sent_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Optional sender-supplied key making client retries idempotent
    client_message_id: Optional[str] = None

    class Config:
        frozen = True

    @property
    def ordering_key(self) -> Tuple[datetime, str]:
        """Total order within a session; the id breaks timestamp ties."""
        return (self.sent_at, self.id)
