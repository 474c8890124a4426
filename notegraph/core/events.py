"""
In-process event bus for note mutations.

Handlers run in subscription order inside ``publish``; the writer awaits
them, so cache invalidation is finished before the write call returns.
A failing handler is logged and skipped.
"""

from collections import defaultdict
from collections.abc import Awaitable, Callable

from notegraph.models.events import NoteEvent, NoteEventType
from notegraph.utils.logger import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[NoteEvent], Awaitable[None]]


class EventBus:
    """Publish/subscribe for NoteEvents."""

    def __init__(self):
        self._handlers: dict[NoteEventType, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: NoteEventType, handler: EventHandler) -> None:
        """Register an async handler for one event type."""
        if handler not in self._handlers[event_type]:
            self._handlers[event_type].append(handler)

    def subscribe_all(self, handler: EventHandler) -> None:
        """Register an async handler for every event type."""
        for event_type in NoteEventType:
            self.subscribe(event_type, handler)

    def unsubscribe(self, event_type: NoteEventType, handler: EventHandler) -> None:
        if handler in self._handlers[event_type]:
            self._handlers[event_type].remove(handler)

    def handler_count(self, event_type: NoteEventType) -> int:
        return len(self._handlers[event_type])

    async def publish(self, event: NoteEvent) -> None:
        """
        Deliver an event to its handlers.

        Args:
            event: Event to deliver
        """
        handlers = list(self._handlers[event.type])
        logger.debug(
            f"Publishing {event.type.value} for {event.note_id} to {len(handlers)} handlers"
        )

        for handler in handlers:
            try:
                await handler(event)
            except Exception as e:
                logger.bind(
                    event_type=event.type.value,
                    note_id=event.note_id,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                    error=str(e),
                ).error(f"Event handler failed for {event.type.value}: {e}")
