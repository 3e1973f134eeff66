"""
Unit tests for record store backends.
"""

from types import SimpleNamespace

import pytest

from pairchat.models import ChatSession, EndReason, Message, Participant, SessionStatus
from pairchat.storage import InMemoryRecordStore, LocalRecordStore, create_record_store


class TestConditionalWrites:
    """Tests for the conditional participant operations."""

    @pytest.mark.asyncio
    async def test_update_with_expect(self, store, add_seeker):
        seeker = await add_seeker("A")

        assert await store.update_participant(seeker.id, {"is_seeking": False},
                                              expect={"session_id": "x"}) is None
        updated = await store.update_participant(seeker.id, {"is_seeking": False},
                                                 expect={"session_id": None})
        assert updated.is_seeking is False

    @pytest.mark.asyncio
    async def test_update_unknown(self, store):
        assert await store.update_participant("missing", {"is_online": False}) is None

    @pytest.mark.asyncio
    async def test_claim_is_partial_when_one_is_taken(self, store, clock, add_seeker):
        a = await add_seeker("A")
        b = await add_seeker("B", is_seeking=False)

        claimed = await store.claim_seekers([a.id, b.id], "s1", clock())

        assert claimed == [a.id]
        assert (await store.get_participant(a.id)).session_id == "s1"

    @pytest.mark.asyncio
    async def test_release_only_own_claim(self, store, clock, add_seeker):
        a = await add_seeker("A")
        await store.claim_seekers([a.id], "s1", clock())

        assert await store.release_claim(a.id, "other") is False
        assert await store.release_claim(a.id, "s1") is True
        released = await store.get_participant(a.id)
        assert released.session_id is None
        assert released.is_seeking is True

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, store, add_seeker):
        seeker = await add_seeker("A")
        seeker.name = "changed"
        assert (await store.get_participant(seeker.id)).name == "A"


class TestSessionsAndMessages:
    """Tests for session and message records."""

    @pytest.mark.asyncio
    async def test_end_session_once(self, store, clock):
        session = await store.create_session(ChatSession(created_at=clock()))

        first = await store.end_session(session.id, clock(), EndReason.SKIP)
        second = await store.end_session(session.id, clock(), EndReason.STOP)

        assert first.status == SessionStatus.ENDED
        assert first.end_reason == EndReason.SKIP
        assert second is None
        assert (await store.get_session(session.id)).end_reason == EndReason.SKIP

    @pytest.mark.asyncio
    async def test_message_rejected_on_ended_session(self, store, clock):
        session = await store.create_session(ChatSession(created_at=clock()))
        await store.end_session(session.id, clock(), EndReason.STOP)

        message = Message(session_id=session.id, participant_id="p", content="hi", sent_at=clock())
        assert await store.add_message(message) is None

    @pytest.mark.asyncio
    async def test_message_deduplicated_by_client_id(self, store, clock):
        session = await store.create_session(ChatSession(created_at=clock()))

        first = await store.add_message(Message(
            session_id=session.id, participant_id="p", content="hi",
            sent_at=clock(), client_message_id="c1",
        ))
        again = await store.add_message(Message(
            session_id=session.id, participant_id="p", content="hi",
            sent_at=clock(), client_message_id="c1",
        ))

        assert again.id == first.id
        assert len(await store.list_messages(session.id)) == 1

    @pytest.mark.asyncio
    async def test_list_sessions_by_status(self, store, clock):
        live = await store.create_session(ChatSession(created_at=clock()))
        done = await store.create_session(ChatSession(created_at=clock()))
        await store.end_session(done.id, clock(), EndReason.STOP)

        matched = await store.list_sessions(SessionStatus.MATCHED)
        assert [s.id for s in matched] == [live.id]


class TestLocalRecordStore:
    """Tests for the filesystem-backed store."""

    @pytest.mark.asyncio
    async def test_records_survive_reopen(self, tmp_path, clock):
        store = LocalRecordStore(str(tmp_path))
        await store.open()

        participant = await store.create_participant(Participant(
            name="A", gender="male", last_seen=clock(), joined_at=clock(),
        ))
        session = await store.create_session(ChatSession(created_at=clock()))
        await store.claim_seekers([participant.id], session.id, clock())
        await store.add_message(Message(
            session_id=session.id, participant_id=participant.id, content="hi", sent_at=clock(),
        ))
        await store.close()

        reopened = LocalRecordStore(str(tmp_path))
        await reopened.open()

        restored = await reopened.get_participant(participant.id)
        assert restored.session_id == session.id
        assert (await reopened.get_session(session.id)).status == SessionStatus.MATCHED
        assert [m.content for m in await reopened.list_messages(session.id)] == ["hi"]

    @pytest.mark.asyncio
    async def test_deleted_session_removed_from_disk(self, tmp_path, clock):
        store = LocalRecordStore(str(tmp_path))
        await store.open()
        session = await store.create_session(ChatSession(created_at=clock()))

        await store.delete_session(session.id)

        assert not (tmp_path / "sessions" / f"{session.id}.json").exists()

    def test_path_traversal_rejected(self, tmp_path):
        store = LocalRecordStore(str(tmp_path))
        with pytest.raises(ValueError):
            store._get_full_path("../outside.json")


class TestFactory:
    """Tests for create_record_store."""

    def test_memory(self):
        store = create_record_store(SimpleNamespace(storage_type="memory", local_storage_path="x"))
        assert type(store) is InMemoryRecordStore

    def test_local(self, tmp_path):
        store = create_record_store(SimpleNamespace(storage_type="LOCAL", local_storage_path=str(tmp_path)))
        assert isinstance(store, LocalRecordStore)

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_record_store(SimpleNamespace(storage_type="redis", local_storage_path="x"))
