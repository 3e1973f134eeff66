"""Feed module - publish/subscribe change notifications."""

from .interface import ChangeFeed, Subscription
from .memory_feed import InMemoryChangeFeed

__all__ = ['ChangeFeed', 'Subscription', 'InMemoryChangeFeed']
