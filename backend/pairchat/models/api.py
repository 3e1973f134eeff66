"""
Request and response schemas for the HTTP API.
"""

from typing import List, Optional
from pydantic import BaseModel, Field

from .participant import Gender, Participant, PublicParticipant
from .session import ChatMode, ChatSession
from .message import Message


class StartSeekingRequest(BaseModel):
    """Body of POST /participants."""
    name: str = Field(..., min_length=1)
    gender: Gender
    preferred_gender: Gender = Gender.ANY
    mode: ChatMode = ChatMode.TEXT


class SendMessageRequest(BaseModel):
    participant_id: str
    content: str
    client_message_id: Optional[str] = Field(None, max_length=64)


class SkipRequest(BaseModel):
    participant_id: str


class SeekResult(BaseModel):
    """Outcome of startSeeking / search: session is None while still searching."""
    participant: Participant
    session: Optional[ChatSession] = None
    partner: Optional[PublicParticipant] = None

    @property
    def matched(self) -> bool:
        return self.session is not None


class SkipResult(BaseModel):
    new_search_started: bool
    session: Optional[ChatSession] = None
    partner: Optional[PublicParticipant] = None


class SessionDetail(BaseModel):
    session: ChatSession
    participants: List[PublicParticipant]


class MessageList(BaseModel):
    messages: List[Message]


class ReapResult(BaseModel):
    """Summary of one stale-session sweep."""
    participants_marked_offline: List[str] = Field(default_factory=list)
    sessions_ended: List[str] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.participants_marked_offline or self.sessions_ended)
