"""Tests for the in-process event bus."""

from faculty_chat.core.realtime import EventBus


class TestEventBus:
    def test_publish_reaches_subscribers_of_channel_only(self):
        bus = EventBus()
        seen, other = [], []
        bus.subscribe("conversation:a", seen.append)
        bus.subscribe("conversation:b", other.append)

        delivered = bus.publish("conversation:a", {"type": "message_created"})

        assert delivered == 1
        assert seen == [{"type": "message_created"}]
        assert other == []

    def test_cancel_stops_delivery_and_drops_registration(self):
        bus = EventBus()
        seen = []
        subscription = bus.subscribe("user:u1", seen.append)

        subscription.cancel()
        subscription.cancel()
        bus.publish("user:u1", {"type": "unread_changed"})

        assert seen == []
        assert bus.subscriber_count("user:u1") == 0

    def test_failing_subscriber_does_not_block_others(self):
        bus = EventBus()
        seen = []

        def broken(payload):
            raise RuntimeError("boom")

        bus.subscribe("user:u1", broken)
        bus.subscribe("user:u1", seen.append)

        bus.publish("user:u1", {"n": 1})

        assert seen == [{"n": 1}]
