"""
Shared test fixtures and configuration.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

# Set test environment variables before importing app modules
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("STORAGE_TYPE", "memory")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("REAPER_ENABLED", "false")

from pairchat.core import MatchmakingService  # noqa: E402
from pairchat.feed import InMemoryChangeFeed  # noqa: E402
from pairchat.models import Gender, Participant  # noqa: E402
from pairchat.storage import InMemoryRecordStore  # noqa: E402


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def feed():
    return InMemoryChangeFeed()


@pytest.fixture
def service(store, feed, clock):
    return MatchmakingService(
        store,
        feed,
        clock=clock,
        liveness_threshold=30,
        candidate_window=20,
        search_max_attempts=3,
        store_retry_attempts=3,
        store_retry_base_delay=0,
    )


@pytest.fixture
def add_seeker(store, clock):
    """Insert a live seeker directly into the store, joined at the current clock time."""
    async def _add(name="anon", gender=Gender.MALE, preferred=Gender.ANY, **fields):
        fields.setdefault("last_seen", clock())
        fields.setdefault("joined_at", clock())
        participant = Participant(name=name, gender=gender, preferred_gender=preferred, **fields)
        return await store.create_participant(participant)
    return _add
