"""
Change Feed Interface - publish/subscribe keyed by entity.

Keys are ``participant:<id>`` and ``session:<id>``. Delivery is at-least-once,
ordered within one key and unordered across keys; consumers de-duplicate.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, Optional

from ..models import EventKind, FeedEvent


class Subscription(ABC):
    """A live stream of events for one key."""

    key: str

    @abstractmethod
    async def get(self, timeout: Optional[float] = None) -> Optional[FeedEvent]:
        """
        Wait for the next event.

        Args:
            timeout: Seconds to wait; None waits until an event or close()

        Returns:
            Optional[FeedEvent]: The event, or None on timeout or once closed
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    def __aiter__(self) -> AsyncIterator[FeedEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[FeedEvent]:
        while True:
            event = await self.get()
            if event is None:
                return
            yield event

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class ChangeFeed(ABC):
    """Abstract change feed. Implementations: InMemoryChangeFeed."""

    @abstractmethod
    async def publish(
        self,
        key: str,
        kind: EventKind,
        payload: Optional[Dict[str, Any]] = None
    ) -> FeedEvent:
        """Publish one event to every current subscriber of ``key``."""
        pass

    @abstractmethod
    async def subscribe(self, key: str) -> Subscription:
        pass
