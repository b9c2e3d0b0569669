"""Event manager for Server-Sent Events (SSE)."""

from __future__ import annotations

import asyncio
import json
import logging
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from issueboard.api.models import issue_to_response

if TYPE_CHECKING:
    from collections.abc import Iterable

    from issueboard.issue_store import Issue

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 100


class EventType(str, Enum):
    """Types of events that can be emitted."""

    ISSUE_UPDATED = "issueUpdated"
    NOTIFICATION = "notification"
    HEARTBEAT = "heartbeat"


@dataclass
class Event:
    """An event to be sent via SSE.

    `recipients` limits delivery to subscribers bound to those user IDs;
    None means every subscriber.
    """

    event_type: EventType
    data: dict[str, Any]
    recipients: frozenset[str] | None = None

    def to_sse(self) -> str:
        """Convert to SSE format."""
        return f"event: {self.event_type.value}\ndata: {json.dumps(self.data)}\n\n"


@dataclass
class Subscriber:
    """A connected stream and the event loop that drains its queue."""

    id: str
    queue: asyncio.Queue[Event]
    user_id: str | None = None
    loop: asyncio.AbstractEventLoop | None = None

    @classmethod
    def create(cls, user_id: str | None = None, maxsize: int = DEFAULT_QUEUE_SIZE) -> Subscriber:
        """Create a new subscriber bound to the running loop, if any."""
        try:
            loop: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        return cls(
            id=str(uuid4()),
            queue=asyncio.Queue(maxsize=maxsize),
            user_id=user_id,
            loop=loop,
        )

    def accepts(self, event: Event) -> bool:
        """Whether this subscriber is entitled to the event."""
        return event.recipients is None or self.user_id in event.recipients


@dataclass
class EventManager:
    """Fan-out of issue events to every connected stream.

    Delivery is best effort and at most once: a subscriber whose queue is
    full misses the event. Emitting is safe from any thread; events are
    handed to each subscriber's own loop.
    """

    _subscribers: dict[str, Subscriber] = field(default_factory=dict)
    _heartbeat_interval: float = 30  # seconds
    _queue_size: int = DEFAULT_QUEUE_SIZE
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def subscribe(self, user_id: str | None = None) -> Subscriber:
        """Subscribe a client to events.

        Args:
            user_id: The user the stream belongs to. Targeted events only
                reach subscribers bound to one of their recipients.

        Returns:
            Subscriber instance for receiving events.
        """
        subscriber = Subscriber.create(user_id, maxsize=self._queue_size)
        with self._lock:
            self._subscribers[subscriber.id] = subscriber
        logger.debug("Subscriber %s connected (user=%s)", subscriber.id, user_id)
        return subscriber

    def unsubscribe(self, subscriber_id: str) -> None:
        """Unsubscribe a client from events."""
        with self._lock:
            removed = self._subscribers.pop(subscriber_id, None)
        if removed is not None:
            logger.debug("Subscriber %s disconnected", subscriber_id)

    @property
    def subscriber_count(self) -> int:
        """Get the number of active subscribers."""
        return len(self._subscribers)

    async def emit(self, event: Event) -> None:
        """Emit an event from async code."""
        self.emit_sync(event)

    def emit_sync(self, event: Event) -> None:
        """Emit an event to all entitled subscribers, from any thread."""
        with self._lock:
            subscribers = list(self._subscribers.values())
        for subscriber in subscribers:
            if subscriber.accepts(event):
                self._deliver(subscriber, event)

    def _deliver(self, subscriber: Subscriber, event: Event) -> None:
        loop = subscriber.loop
        if loop is None or loop.is_closed():
            self._enqueue(subscriber, event)
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            self._enqueue(subscriber, event)
        else:
            loop.call_soon_threadsafe(self._enqueue, subscriber, event)

    def _enqueue(self, subscriber: Subscriber, event: Event) -> None:
        try:
            subscriber.queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(
                "Dropping %s event for slow subscriber %s",
                event.event_type.value,
                subscriber.id,
            )

    # Convenience methods for emitting specific event types

    def emit_issue_updated(self, issue: Issue) -> None:
        """Emit an issueUpdated event carrying the full issue."""
        event = Event(
            event_type=EventType.ISSUE_UPDATED,
            data=issue_to_response(issue).model_dump(mode="json"),
        )
        self.emit_sync(event)

    def emit_notification(
        self, recipient_ids: Iterable[str], data: dict[str, Any] | None = None
    ) -> None:
        """Emit a notification hint telling recipients to recheck their inbox."""
        event = Event(
            event_type=EventType.NOTIFICATION,
            data=dict(data or {}),
            recipients=frozenset(recipient_ids),
        )
        self.emit_sync(event)

    def create_heartbeat_event(self) -> Event:
        """Create a heartbeat event."""
        return Event(
            event_type=EventType.HEARTBEAT,
            data={"timestamp": datetime.now(UTC).isoformat()},
        )
