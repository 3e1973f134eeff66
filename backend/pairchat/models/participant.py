"""
Participant Model - one anonymous user's presence in the matching pool.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class Gender(str, Enum):
    """Declared or desired gender. ``any`` only makes sense as a preference."""
    MALE = "male"
    FEMALE = "female"
    ANY = "any"


class Participant(BaseModel):
    """Participant record as kept in the record store."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str
    gender: Gender
    preferred_gender: Gender = Gender.ANY

    # Matching state: seeking participants are never bound, bound ones never seek
    is_seeking: bool = True
    session_id: Optional[str] = None

    # Presence
    is_online: bool = True
    last_seen: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    joined_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    left_at: Optional[datetime] = None  # set on stop or reaper sweep
    stopped: bool = False  # stop is terminal, a reaped participant may come back

    def accepts(self, other: "Participant") -> bool:
        """True if ``other`` satisfies this participant's partner preference."""
        return self.preferred_gender in (Gender.ANY, other.gender)


class PublicParticipant(BaseModel):
    """What a partner is allowed to see."""
    id: str
    name: str
    gender: Gender
    is_online: bool

    @classmethod
    def from_participant(cls, participant: Participant) -> "PublicParticipant":
        return cls(
            id=participant.id,
            name=participant.name,
            gender=participant.gender,
            is_online=participant.is_online,
        )
