"""Event manager for lifecycle events, streamed to clients as Server-Sent Events.

Settlement and notification collaborators subscribe to this feed; the engine
never waits on them.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4


class EventType(str, Enum):
    """Types of events that can be emitted."""

    LESSON_CREATED = "lesson_created"
    LESSON_UPDATED = "lesson_updated"
    LESSON_STATUS_CHANGED = "lesson_status_changed"
    CAPACITY_CHANGED = "capacity_changed"
    ENROLLMENT_CREATED = "enrollment_created"
    ENROLLMENT_CANCELED = "enrollment_canceled"
    REFUND_REQUESTED = "refund_requested"
    REFUND_APPROVED = "refund_approved"
    HEARTBEAT = "heartbeat"


@dataclass
class Event:
    """An event to be sent via SSE."""

    event_type: EventType
    data: dict[str, Any]
    lesson_id: str | None = None

    def to_sse(self) -> str:
        """Convert to SSE format."""
        return f"event: {self.event_type.value}\ndata: {json.dumps(self.data)}\n\n"


@dataclass
class Subscriber:
    """A subscriber to the event stream."""

    id: str
    queue: asyncio.Queue[Event]
    lesson_id: str | None = None  # None means subscribe to all lessons
    loop: asyncio.AbstractEventLoop | None = None  # Loop the queue is read from

    @classmethod
    def create(cls, lesson_id: str | None = None) -> Subscriber:
        """Create a new subscriber, bound to the running event loop if there is one."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        return cls(id=str(uuid4()), queue=asyncio.Queue(), lesson_id=lesson_id, loop=loop)

    def deliver(self, event: Event) -> None:
        """Put an event on the queue from any thread."""
        if self.loop is None or self.loop.is_closed():
            self.queue.put_nowait(event)
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self.loop:
            self.queue.put_nowait(event)
        else:
            # Lifecycle calls run in worker threads; asyncio.Queue is not thread-safe
            self.loop.call_soon_threadsafe(self.queue.put_nowait, event)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


@dataclass
class EventManager:
    """Manager for SSE events."""

    _subscribers: dict[str, Subscriber] = field(default_factory=dict)
    _heartbeat_interval: int = 30  # seconds

    def subscribe(self, lesson_id: str | None = None) -> Subscriber:
        """Subscribe a client to events.

        Args:
            lesson_id: Optional lesson ID to filter events. None means all lessons.

        Returns:
            Subscriber instance for receiving events.
        """
        subscriber = Subscriber.create(lesson_id)
        self._subscribers[subscriber.id] = subscriber
        return subscriber

    def unsubscribe(self, subscriber_id: str) -> None:
        """Unsubscribe a client from events.

        Args:
            subscriber_id: ID of the subscriber to remove.
        """
        self._subscribers.pop(subscriber_id, None)

    def emit_sync(self, event: Event) -> None:
        """Emit an event synchronously (for use in non-async contexts).

        Safe to call from worker threads; delivery never blocks the caller.

        Args:
            event: Event to emit.
        """
        for subscriber in list(self._subscribers.values()):
            if subscriber.lesson_id is None or subscriber.lesson_id == event.lesson_id:
                subscriber.deliver(event)

    @property
    def subscriber_count(self) -> int:
        """Get the number of active subscribers."""
        return len(self._subscribers)

    # Convenience methods for emitting specific event types

    def emit_lesson_created(self, lesson_id: str, teacher_id: str, status: str) -> None:
        """Emit a lesson_created event."""
        event = Event(
            event_type=EventType.LESSON_CREATED,
            lesson_id=lesson_id,
            data={"lesson_id": lesson_id, "teacher_id": teacher_id, "status": status},
        )
        self.emit_sync(event)

    def emit_lesson_updated(self, lesson_id: str, deadline: str) -> None:
        """Emit a lesson_updated event."""
        event = Event(
            event_type=EventType.LESSON_UPDATED,
            lesson_id=lesson_id,
            data={"lesson_id": lesson_id, "deadline": deadline},
        )
        self.emit_sync(event)

    def emit_lesson_status_changed(
        self,
        lesson_id: str,
        status: str,
        previous_status: str,
    ) -> None:
        """Emit a lesson_status_changed event."""
        event = Event(
            event_type=EventType.LESSON_STATUS_CHANGED,
            lesson_id=lesson_id,
            data={
                "lesson_id": lesson_id,
                "status": status,
                "previous_status": previous_status,
            },
        )
        self.emit_sync(event)

    def emit_capacity_changed(
        self,
        lesson_id: str,
        current_student: int,
        max_student: int,
    ) -> None:
        """Emit a capacity_changed event."""
        event = Event(
            event_type=EventType.CAPACITY_CHANGED,
            lesson_id=lesson_id,
            data={
                "lesson_id": lesson_id,
                "current_student": current_student,
                "max_student": max_student,
            },
        )
        self.emit_sync(event)

    def emit_enrollment(
        self,
        event_type: EventType,
        enrollment_id: str,
        lesson_id: str,
        student_id: str,
        status: str,
    ) -> None:
        """Emit one of the enrollment transition events."""
        event = Event(
            event_type=event_type,
            lesson_id=lesson_id,
            data={
                "enrollment_id": enrollment_id,
                "lesson_id": lesson_id,
                "student_id": student_id,
                "status": status,
                "timestamp": _timestamp(),
            },
        )
        self.emit_sync(event)

    def create_heartbeat_event(self) -> Event:
        """Create a heartbeat event."""
        return Event(
            event_type=EventType.HEARTBEAT,
            lesson_id=None,  # Heartbeat goes to all subscribers
            data={"timestamp": _timestamp()},
        )
