"""
Matchmaking error taxonomy.

Every failure the core raises is a MatchmakingError with a stable ``code`` so
the API layer can map it onto an HTTP response without inspecting messages.
"""

from typing import Optional


class MatchmakingError(Exception):
    """Base class for all core failures."""

    code = "matchmaking_error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.__class__.__doc__ or self.code)
        self.message = message or self.__class__.__doc__ or self.code


class RaceLost(MatchmakingError):
    """Pairing lost the race - retry search."""

    code = "race_lost"


class InvalidSession(MatchmakingError):
    """Your chat has ended."""

    code = "invalid_session"


class InvalidContent(MatchmakingError):
    """Content failed validation."""

    code = "invalid_content"


class NotFound(MatchmakingError):
    """Unknown or stale identifier."""

    code = "not_found"


class StoreUnavailable(MatchmakingError):
    """Record store is temporarily unavailable."""

    code = "store_unavailable"
