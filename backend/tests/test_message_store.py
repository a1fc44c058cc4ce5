"""Tests for the per-conversation message log."""

import pytest

from faculty_chat.core.errors import EmptyContent, Forbidden, NotFound
from faculty_chat.core.realtime import EventBus, conversation_channel
from faculty_chat.services.conversation_service import ConversationRegistry
from faculty_chat.services.directory_service import DirectorySearch
from faculty_chat.services.message_service import MessageStore


@pytest.fixture
def conversation(db, frozen_clock):
    registry = ConversationRegistry(db, DirectorySearch())
    return registry.ensure_conversation("u1", "u2")


@pytest.fixture
def store(db, conversation, bus):
    return MessageStore(db, conversation, bus=bus)


class TestAppend:
    def test_ids_strictly_increase_and_list_keeps_order(self, store, frozen_clock):
        ids = []
        for i in range(5):
            frozen_clock.advance(seconds=1)
            ids.append(store.append("u1" if i % 2 == 0 else "u2", f"message {i}").id)

        assert ids == sorted(ids)
        assert len(set(ids)) == 5
        assert [m.id for m in store.list()] == ids

    def test_ids_increase_even_with_identical_timestamps(self, store):
        first = store.append("u1", "one")
        second = store.append("u1", "two")
        assert second.id > first.id
        assert [m.content for m in store.list()] == ["one", "two"]

    @pytest.mark.parametrize("content", ["", "   ", "\n\t ", None])
    def test_blank_content_rejected(self, store, content):
        with pytest.raises(EmptyContent):
            store.append("u1", content)
        assert store.list() == []

    def test_content_is_trimmed_plain_text(self, store):
        message = store.append("u1", "  <b>hi</b>\x00 \n")
        assert message.content == "<b>hi</b>"

    def test_non_participant_cannot_append(self, store):
        with pytest.raises(Forbidden):
            store.append("intruder", "hello")

    def test_append_moves_last_activity(self, store, conversation, frozen_clock):
        sent_at = frozen_clock.advance(minutes=5)
        store.append("u1", "hello")
        assert conversation.last_activity_at == sent_at
        assert conversation.created_at < sent_at

    def test_append_publishes_event(self, store, bus, conversation):
        events = []
        bus.subscribe(conversation_channel(conversation.id), events.append)

        message = store.append("u1", "hello")

        assert events[0]["type"] == "message_created"
        assert events[0]["message"]["id"] == message.id
        assert events[0]["message"]["sender_name"] == "User u1"


class TestEdit:
    def test_edit_round_trip_keeps_position(self, store, frozen_clock):
        first = store.append("u1", "hello")
        frozen_clock.advance(seconds=1)
        second = store.append("u2", "hi there")
        created_at = first.created_at
        edited_at = frozen_clock.advance(seconds=30)

        store.edit(first.id, "u1", "x")

        listed = store.list()
        assert [m.id for m in listed] == [first.id, second.id]
        assert listed[0].content == "x"
        assert listed[0].edited_at == edited_at
        assert listed[0].created_at == created_at

    def test_edit_by_other_participant_forbidden(self, store):
        message = store.append("u1", "hello")
        with pytest.raises(Forbidden):
            store.edit(message.id, "u2", "hacked")
        assert store.list()[0].content == "hello"
        assert store.list()[0].edited_at is None

    def test_edit_missing_or_deleted_is_not_found(self, store):
        message = store.append("u1", "hello")
        store.delete(message.id, "u1")
        with pytest.raises(NotFound):
            store.edit(message.id, "u1", "again")
        with pytest.raises(NotFound):
            store.edit(9999, "u1", "again")

    def test_edit_blank_rejected(self, store):
        message = store.append("u1", "hello")
        with pytest.raises(EmptyContent):
            store.edit(message.id, "u1", "  ")
        assert store.list()[0].content == "hello"

    def test_edit_does_not_move_last_activity(self, store, conversation, frozen_clock):
        sent_at = frozen_clock.advance(seconds=1)
        message = store.append("u1", "hello")
        frozen_clock.advance(hours=1)
        store.edit(message.id, "u1", "hello!")
        assert conversation.last_activity_at == sent_at


class TestDelete:
    def test_delete_is_idempotent(self, store, bus, conversation):
        events = []
        bus.subscribe(conversation_channel(conversation.id), events.append)
        message = store.append("u1", "hello")

        store.delete(message.id, "u1")
        state_after_first = (message.state, message.edited_at, conversation.last_activity_at)
        store.delete(message.id, "u1")

        assert (message.state, message.edited_at, conversation.last_activity_at) == state_after_first
        assert store.list() == []
        assert [e["type"] for e in events] == ["message_created", "message_deleted"]

    def test_delete_by_other_participant_forbidden(self, store):
        message = store.append("u1", "hello")
        with pytest.raises(Forbidden):
            store.delete(message.id, "u2")
        assert [m.id for m in store.list()] == [message.id]

    def test_delete_unknown_message(self, store):
        with pytest.raises(NotFound):
            store.delete(12345, "u1")

    def test_delete_clears_edit_marker(self, store):
        message = store.append("u1", "hello")
        store.edit(message.id, "u1", "hello!")
        deleted = store.delete(message.id, "u1")
        assert deleted.state == "deleted"
        assert deleted.edited_at is None

    def test_deleting_latest_falls_back_to_previous_activity(self, store, conversation, frozen_clock):
        t1 = frozen_clock.advance(seconds=10)
        store.append("u1", "first")
        frozen_clock.advance(seconds=10)
        latest = store.append("u2", "second")

        store.delete(latest.id, "u2")

        assert conversation.last_activity_at == t1

    def test_deleting_older_message_keeps_latest_activity(self, store, conversation, frozen_clock):
        frozen_clock.advance(seconds=10)
        older = store.append("u1", "first")
        t2 = frozen_clock.advance(seconds=10)
        store.append("u2", "second")

        store.delete(older.id, "u1")

        assert conversation.last_activity_at == t2

    def test_deleting_everything_falls_back_to_created_at(self, store, conversation, frozen_clock):
        frozen_clock.advance(seconds=10)
        message = store.append("u1", "only")
        store.delete(message.id, "u1")
        assert conversation.last_activity_at == conversation.created_at

    def test_deleted_ids_are_not_reused(self, store):
        message = store.append("u1", "hello")
        store.delete(message.id, "u1")
        assert store.append("u1", "again").id > message.id


class TestOpen:
    def test_open_unknown_conversation(self, db):
        with pytest.raises(NotFound):
            MessageStore.open(db, "a--b", bus=EventBus())

    def test_open_existing(self, db, conversation):
        assert MessageStore.open(db, conversation.id).conversation_id == "u1--u2"
