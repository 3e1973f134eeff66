"""Models module."""

from .participant import Gender, Participant, PublicParticipant
from .session import ChatMode, SessionStatus, EndReason, ChatSession
from .message import Message
from .events import EventKind, FeedEvent, participant_key, session_key
from .api import (
    StartSeekingRequest, SendMessageRequest, SkipRequest,
    SeekResult, SkipResult, SessionDetail, MessageList, ReapResult,
)

__all__ = [
    'Gender', 'Participant', 'PublicParticipant',
    'ChatMode', 'SessionStatus', 'EndReason', 'ChatSession',
    'Message',
    'EventKind', 'FeedEvent', 'participant_key', 'session_key',
    'StartSeekingRequest', 'SendMessageRequest', 'SkipRequest',
    'SeekResult', 'SkipResult', 'SessionDetail', 'MessageList', 'ReapResult',
]
