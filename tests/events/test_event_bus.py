"""
Tests for the in-process event bus.
"""

import pytest

from notegraph.core.events import EventBus
from notegraph.models.events import NoteEvent, NoteEventType


def event(event_type=NoteEventType.NOTE_CREATED, note_id="note_1"):
    return NoteEvent(type=event_type, user_id="user-1", note_id=note_id)


@pytest.mark.unit
@pytest.mark.asyncio
class TestEventBus:
    """Subscription and delivery."""

    async def test_publish_to_subscriber(self):
        """Test a handler receives events of its type only."""
        bus = EventBus()
        received = []

        async def handler(e):
            received.append(e)

        bus.subscribe(NoteEventType.NOTE_CREATED, handler)
        await bus.publish(event())
        await bus.publish(event(NoteEventType.NOTE_DELETED))

        assert [e.type for e in received] == [NoteEventType.NOTE_CREATED]

    async def test_handlers_run_in_subscription_order(self):
        """Test delivery order."""
        bus = EventBus()
        calls = []

        async def first(e):
            calls.append("first")

        async def second(e):
            calls.append("second")

        bus.subscribe(NoteEventType.NOTE_UPDATED, first)
        bus.subscribe(NoteEventType.NOTE_UPDATED, second)
        await bus.publish(event(NoteEventType.NOTE_UPDATED))

        assert calls == ["first", "second"]

    async def test_failing_handler_does_not_stop_delivery(self):
        """Test an exception is logged and the next handler still runs."""
        bus = EventBus()
        calls = []

        async def broken(e):
            raise RuntimeError("boom")

        async def healthy(e):
            calls.append(e.note_id)

        bus.subscribe(NoteEventType.NOTE_CREATED, broken)
        bus.subscribe(NoteEventType.NOTE_CREATED, healthy)

        await bus.publish(event())

        assert calls == ["note_1"]

    async def test_subscribe_all_and_duplicates(self):
        """Test subscribe_all covers every type and duplicates are ignored."""
        bus = EventBus()

        async def handler(e):
            pass

        bus.subscribe_all(handler)
        bus.subscribe(NoteEventType.LINK_CREATED, handler)

        for event_type in NoteEventType:
            assert bus.handler_count(event_type) == 1

    async def test_unsubscribe(self):
        """Test an unsubscribed handler no longer receives events."""
        bus = EventBus()
        received = []

        async def handler(e):
            received.append(e)

        bus.subscribe(NoteEventType.NOTE_CREATED, handler)
        bus.unsubscribe(NoteEventType.NOTE_CREATED, handler)
        await bus.publish(event())

        assert received == []
        assert bus.handler_count(NoteEventType.NOTE_CREATED) == 0
