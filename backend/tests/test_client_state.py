"""
Unit tests for client-side chat state convergence.
"""

from datetime import datetime, timezone

import pytest

from pairchat.core import ChatClientState, PairingTransaction
from pairchat.models import (
    ChatSession, EventKind, FeedEvent, Message, PublicParticipant, participant_key,
)


def _session(id="s1"):
    return ChatSession(id=id)


def _partner():
    return PublicParticipant(id="p2", name="Bo", gender="female", is_online=True)


def _message(id, session_id="s1", second=0, content="hi"):
    return Message(
        id=id,
        session_id=session_id,
        participant_id="p2",
        content=content,
        sent_at=datetime(2026, 1, 1, 0, 0, second, tzinfo=timezone.utc),
    )


def _matched_event(session, partner, event_id="e1"):
    return FeedEvent(
        event_id=event_id,
        key=participant_key("p1"),
        kind=EventKind.SESSION_MATCHED,
        payload={
            "session": session.model_dump(mode="json"),
            "partner": partner.model_dump(mode="json"),
        },
    )


class TestBinding:
    """Both notification paths land on the same state."""

    def test_sync_then_event_is_no_op(self):
        state = ChatClientState("p1")
        session, partner = _session(), _partner()

        assert state.apply_binding(session, partner) is True
        state.apply_message(_message("m1"))

        assert state.apply_event(_matched_event(session, partner)) is False
        assert state.session_id == "s1"
        assert state.partner.name == "Bo"
        assert state.transcript.contents() == ["hi"]

    def test_event_then_sync_is_no_op(self):
        state = ChatClientState("p1")
        session, partner = _session(), _partner()

        assert state.apply_event(_matched_event(session, partner)) is True
        assert state.apply_binding(session, partner) is False
        assert state.is_connected is True
        assert state.is_searching is False

    def test_new_session_replaces_old(self):
        state = ChatClientState("p1")
        state.apply_binding(_session("s1"), _partner())
        state.apply_message(_message("m1"))

        assert state.apply_binding(_session("s2"), _partner()) is True
        assert state.session_id == "s2"
        assert len(state.transcript) == 0

    def test_redelivered_event_dropped(self):
        state = ChatClientState("p1")
        event = _matched_event(_session(), _partner())

        assert state.apply_event(event) is True
        state.apply_session_ended("s1")

        assert state.apply_event(event) is False
        assert state.session is None

    @pytest.mark.asyncio
    async def test_real_pairing_paths_converge(self, store, feed, clock, add_seeker):
        a = await add_seeker("A")
        b = await add_seeker("B")
        subscription = await feed.subscribe(participant_key(a.id))

        session = await PairingTransaction(store, feed, clock).pair(a, b)

        state = ChatClientState(a.id)
        state.apply_binding(session, PublicParticipant.from_participant(b))
        event = await subscription.get(timeout=1)
        assert state.apply_event(event) is False
        assert state.session_id == session.id
        assert state.partner.id == b.id


class TestMessagesAndEnd:
    """Message de-duplication and session end handling."""

    def test_duplicate_message_events_render_once(self):
        state = ChatClientState("p1")
        state.apply_binding(_session(), _partner())
        message = _message("m1")

        for event_id in ("e1", "e2"):
            state.apply_event(FeedEvent(
                event_id=event_id,
                key="session:s1",
                kind=EventKind.MESSAGE_CREATED,
                payload={"message": message.model_dump(mode="json")},
            ))

        assert state.transcript.contents() == ["hi"]

    def test_hydrate_then_live_overlap(self):
        state = ChatClientState("p1")
        state.apply_binding(_session(), _partner())
        state.apply_message(_message("m2", second=2, content="live"))

        state.hydrate([_message("m1", second=1, content="old"), _message("m2", second=2, content="live")])

        assert state.transcript.contents() == ["old", "live"]

    def test_message_for_other_session_ignored(self):
        state = ChatClientState("p1")
        state.apply_binding(_session(), _partner())

        assert state.apply_message(_message("m1", session_id="other")) is False

    def test_stale_end_notification_ignored(self):
        state = ChatClientState("p1")
        state.apply_binding(_session("s2"), _partner())

        assert state.apply_session_ended("s1") is False
        assert state.session_id == "s2"

    def test_end_via_event(self):
        state = ChatClientState("p1")
        state.apply_binding(_session(), _partner())

        changed = state.apply_event(FeedEvent(
            key=participant_key("p1"),
            kind=EventKind.SESSION_ENDED,
            payload={"session_id": "s1"},
        ))

        assert changed is True
        assert state.session is None
        assert state.partner is None

    def test_seen_event_ids_are_bounded(self):
        state = ChatClientState("p1", max_seen_events=2)
        state.apply_binding(_session(), _partner())
        events = [
            FeedEvent(
                event_id=f"e{n}",
                key="session:s1",
                kind=EventKind.MESSAGE_CREATED,
                payload={"message": _message(f"m{n}", second=n).model_dump(mode="json")},
            )
            for n in range(3)
        ]

        for event in events:
            state.apply_event(event)

        assert len(state._seen_events) == 2
        assert state.apply_event(events[2]) is False
        assert len(state.transcript) == 3

    def test_start_searching_only_when_idle(self):
        state = ChatClientState("p1")
        state.apply_binding(_session(), _partner())
        state.start_searching()
        assert state.is_searching is False

        state.apply_session_ended("s1")
        state.start_searching()
        assert state.is_searching is True
