"""Core module - matchmaking and session lifecycle engine."""

from .errors import (
    MatchmakingError, RaceLost, InvalidSession, InvalidContent, NotFound, StoreUnavailable,
)
from .presence import PresenceTracker
from .matcher import CompatibilityMatcher, mutually_compatible
from .pairing import PairingTransaction
from .session_machine import SessionStateMachine, can_transition
from .messages import MessageChannel, Transcript
from .reaper import StaleSessionReaper, ReaperScheduler
from .client_state import ChatClientState
from .service import MatchmakingService, init_matchmaking, get_matchmaking_service

__all__ = [
    'MatchmakingError', 'RaceLost', 'InvalidSession', 'InvalidContent', 'NotFound',
    'StoreUnavailable',
    'PresenceTracker', 'CompatibilityMatcher', 'mutually_compatible',
    'PairingTransaction', 'SessionStateMachine', 'can_transition',
    'MessageChannel', 'Transcript', 'StaleSessionReaper', 'ReaperScheduler',
    'ChatClientState', 'MatchmakingService', 'init_matchmaking', 'get_matchmaking_service',
]
