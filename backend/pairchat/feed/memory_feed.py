"""
In-process change feed backed by one asyncio.Queue per subscriber.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Set

from ..models import EventKind, FeedEvent
from .interface import ChangeFeed, Subscription

logger = logging.getLogger(__name__)

_CLOSED = object()


class QueueSubscription(Subscription):
    """Subscription fed by InMemoryChangeFeed."""

    def __init__(self, feed: "InMemoryChangeFeed", key: str, max_pending: int):
        self.key = key
        self._feed = feed
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_pending)
        self.closed = False

    def _deliver(self, event: FeedEvent) -> None:
        if self.closed:
            return
        if self._queue.full():
            # Slow consumer: drop the oldest event, it can rehydrate from history
            dropped = self._queue.get_nowait()
            logger.warning(
                f"Subscriber queue full for {self.key}, dropped event "
                f"{getattr(dropped, 'event_id', dropped)}"
            )
        self._queue.put_nowait(event)

    async def get(self, timeout: Optional[float] = None) -> Optional[FeedEvent]:
        if self.closed and self._queue.empty():
            return None
        try:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
        if item is _CLOSED:
            return None
        return item

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._feed._unsubscribe(self)
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)


class InMemoryChangeFeed(ChangeFeed):
    """
    Change feed living in the server process.

    Args:
        max_pending: Per-subscriber queue bound
        redeliver: How many times each event is handed to each subscriber.
            Values above 1 reproduce at-least-once duplicates.
    """

    def __init__(self, max_pending: int = 256, redeliver: int = 1):
        self.max_pending = max_pending
        self.redeliver = max(1, redeliver)
        self._subscribers: Dict[str, Set[QueueSubscription]] = {}

    async def publish(
        self,
        key: str,
        kind: EventKind,
        payload: Optional[Dict[str, Any]] = None
    ) -> FeedEvent:
        event = FeedEvent(key=key, kind=kind, payload=payload or {})
        subscribers = list(self._subscribers.get(key, ()))
        for subscription in subscribers:
            for _ in range(self.redeliver):
                subscription._deliver(event)
        logger.debug(f"Published {kind.value} to {key} ({len(subscribers)} subscribers)")
        return event

    async def subscribe(self, key: str) -> Subscription:
        subscription = QueueSubscription(self, key, self.max_pending)
        self._subscribers.setdefault(key, set()).add(subscription)
        return subscription

    def _unsubscribe(self, subscription: QueueSubscription) -> None:
        subscribers = self._subscribers.get(subscription.key)
        if not subscribers:
            return
        subscribers.discard(subscription)
        if not subscribers:
            del self._subscribers[subscription.key]

    def subscriber_count(self, key: str) -> int:
        return len(self._subscribers.get(key, ()))
