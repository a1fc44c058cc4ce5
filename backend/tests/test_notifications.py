import pytest

from faculty_chat.core.errors import NotFound
from faculty_chat.core.realtime import event_bus, user_channel
from faculty_chat.services import notification_service


@pytest.fixture
def inbox(db, frozen_clock):
    def _push(user_id="faculty-anya", **fields):
        frozen_clock.advance(seconds=1)
        fields.setdefault("title", "Department meeting")
        fields.setdefault("message", "Thursday, room 204")
        (notification,) = notification_service.push_notifications(db, user_ids=[user_id], **fields)
        return notification
    return _push


class TestNotificationFeed:
    def test_newest_first(self, db, inbox):
        first = inbox(title="first")
        second = inbox(title="second")

        listed = notification_service.list_notifications(db, "faculty-anya")

        assert [n.id for n in listed] == [second.id, first.id]

    def test_blank_recipients_are_skipped(self, db):
        assert notification_service.push_notifications(db, user_ids=["", None], title="t", message="m") == []

    def test_fan_out_deduplicates_recipients(self, db, frozen_clock):
        created = notification_service.push_notifications(
            db, user_ids=["faculty-john", "faculty-jane", "faculty-john"], title="t", message="m",
        )
        assert sorted(n.user_id for n in created) == ["faculty-jane", "faculty-john"]

    def test_feeds_are_private(self, db, inbox):
        mine = inbox(user_id="faculty-anya")
        inbox(user_id="faculty-john")

        assert [n.id for n in notification_service.list_notifications(db, "faculty-anya")] == [mine.id]
        with pytest.raises(NotFound):
            notification_service.mark_notification_read(db, mine.id, "faculty-john")

    def test_mark_read_and_count(self, db, inbox):
        first = inbox()
        inbox()
        assert notification_service.unread_notification_count(db, "faculty-anya") == 2

        notification_service.mark_notification_read(db, first.id, "faculty-anya")
        notification_service.mark_notification_read(db, first.id, "faculty-anya")

        assert notification_service.unread_notification_count(db, "faculty-anya") == 1
        unread = notification_service.list_notifications(db, "faculty-anya", unread_only=True)
        assert first.id not in [n.id for n in unread]

    def test_mark_all_read(self, db, inbox):
        inbox()
        inbox()
        inbox(user_id="faculty-john")

        assert notification_service.mark_all_notifications_read(db, "faculty-anya") == 2
        assert notification_service.unread_notification_count(db, "faculty-anya") == 0
        assert notification_service.unread_notification_count(db, "faculty-john") == 1

    def test_mute_toggle(self, db, inbox):
        notification = inbox()
        assert notification_service.set_notification_muted(db, notification.id, "faculty-anya", True).is_muted
        assert not notification_service.set_notification_muted(db, notification.id, "faculty-anya", False).is_muted

    def test_delete_and_clear(self, db, inbox):
        first = inbox()
        inbox()
        inbox(user_id="faculty-john")

        notification_service.delete_notification(db, first.id, "faculty-anya")
        with pytest.raises(NotFound):
            notification_service.delete_notification(db, first.id, "faculty-anya")

        assert notification_service.clear_notifications(db, "faculty-anya") == 1
        assert notification_service.list_notifications(db, "faculty-anya") == []
        assert len(notification_service.list_notifications(db, "faculty-john")) == 1

    def test_push_is_published_to_the_recipient(self, inbox):
        received = []
        subscription = event_bus.subscribe(user_channel("faculty-anya"), received.append)
        try:
            notification = inbox(category="Meetings", notification_type="meeting_invite")
        finally:
            subscription.cancel()

        assert received[0]["type"] == "notification_new"
        assert received[0]["notification"]["id"] == notification.id
        assert received[0]["notification"]["type"] == "meeting_invite"


class TestNewMessageNotifications:
    def test_recipient_notified_on_send(self, db, service, frozen_clock, faculty, student):
        conversation = service.start_conversation(faculty, student.id)

        service.send_message(faculty, conversation.id, "Office hours moved to 2pm")

        (notification,) = notification_service.list_notifications(db, student.id)
        assert notification.type == "new_message"
        assert notification.category == "Messages"
        assert notification.message == "Dr. Anya Smith sent you a message"
        assert notification.reference_id == conversation.id
        assert notification.created_by == faculty.id
        assert notification_service.list_notifications(db, faculty.id) == []

    def test_new_message_published_on_service_bus(self, service, bus, frozen_clock, faculty, student):
        conversation = service.start_conversation(faculty, student.id)
        received = []
        bus.subscribe(user_channel(student.id), received.append)

        service.send_message(faculty, conversation.id, "Office hours moved to 2pm")

        assert [e["type"] for e in received] == ["unread_changed", "notification_new"]
        assert received[1]["notification"]["reference_id"] == conversation.id
