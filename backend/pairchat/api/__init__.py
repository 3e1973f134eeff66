"""API module."""

from .participants import router as participants_router
from .sessions import router as sessions_router, admin_router
from .events import router as events_router
from .errors import register_exception_handlers

__all__ = [
    'participants_router', 'sessions_router', 'admin_router', 'events_router',
    'register_exception_handlers',
]
