"""
In-memory event bus used to announce member lifecycle events.

This module provides a simple pub/sub mechanism: the member service publishes
events and listeners (the welcome-email sender, audit hooks) subscribe to
them. In a real system this would be a message broker like Kafka, RabbitMQ,
or AWS SNS/SQS.

Design decisions:
- Fire-and-forget: in the default asynchronous mode handlers run on a
  worker pool and ``publish`` returns without waiting for them
- Synchronous mode delivers inline, which keeps tests and demos
  deterministic
- Type-based subscriptions (subscribe to event types, not topics)
- A handler's exception is logged and dropped; it never reaches the
  publisher and never affects other handlers
- No persistence and no retry: each delivery is attempted at most once

Key insight:
- Publishers don't know who is listening, and learn nothing about how
  delivery went
"""

import logging
import threading
from collections import defaultdict
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional
from uuid import uuid4

logger = logging.getLogger("event_bus")


@dataclass
class Event:
    """
    Base record for everything published on the bus.

    Attributes:
        event_type: String name of the event type (used for routing)
        payload: The event-specific data
        source: Which component published the event
        event_id: Unique identifier for this event instance
        timestamp: When the event occurred
    """
    event_type: str
    payload: dict[str, Any]
    source: str
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __str__(self) -> str:
        return f"Event({self.event_type}, id={self.event_id[:8]}, source={self.source})"


# Type alias for event handler functions
EventHandler = Callable[[Event], None]


class EventBus:
    """
    Pub/sub event bus with optional background delivery.

    Example usage:
        bus = EventBus()

        def on_member_created(event):
            print(f"Welcome {event.payload['email']}")
        bus.subscribe("MemberCreated", on_member_created)

        bus.publish(member_created(saved_member))  # returns immediately
    """

    def __init__(self, asynchronous: bool = True, max_workers: int = 4):
        """
        Initialize the event bus.

        Args:
            asynchronous: Deliver on a thread pool instead of inline
            max_workers: Pool size when asynchronous
        """
        self._subscribers: dict[str, list[EventHandler]] = defaultdict(list)
        self._lock = threading.Lock()

        self._asynchronous = asynchronous
        self._executor: Optional[ThreadPoolExecutor] = None
        if asynchronous:
            self._executor = ThreadPoolExecutor(
                max_workers=max_workers,
                thread_name_prefix="event-bus",
            )
        self._pending: set[Future] = set()
        self._closed = False

        # Track all events for debugging
        self._event_log: list[Event] = []
        self._log_events: bool = True

    @property
    def asynchronous(self) -> bool:
        return self._asynchronous

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        """
        Subscribe to events of a specific type.

        The same handler can be subscribed multiple times (will be called multiple times).
        """
        with self._lock:
            self._subscribers[event_type].append(handler)
        logger.debug(f"Subscribed handler to '{event_type}' events")

    def subscribe_all(self, handler: EventHandler) -> None:
        """Subscribe to ALL events (useful for logging or audit)."""
        with self._lock:
            self._subscribers["*"].append(handler)
        logger.debug("Subscribed handler to ALL events")

    def unsubscribe(self, event_type: str, handler: EventHandler) -> bool:
        """
        Unsubscribe a handler from an event type.

        Returns:
            True if the handler was found and removed, False otherwise
        """
        with self._lock:
            try:
                self._subscribers[event_type].remove(handler)
            except ValueError:
                return False
        logger.debug(f"Unsubscribed handler from '{event_type}' events")
        return True

    def publish(self, event: Event) -> int:
        """
        Hand an event to every subscriber.

        Returns:
            Number of handlers the event was dispatched to. In asynchronous
            mode they may not have run yet.
        """
        with self._lock:
            if self._log_events:
                self._event_log.append(event)
            handlers = list(self._subscribers.get(event.event_type, []))
            handlers += self._subscribers.get("*", [])

        logger.info(f"Publishing: {event}")

        if not handlers:
            logger.warning(f"No handlers for event type '{event.event_type}'")
            return 0

        dispatched = 0
        for handler in handlers:
            with self._lock:
                if self._closed:
                    logger.warning(f"Bus is shut down, dropping {event}")
                    break
                future = None
                if self._executor is not None:
                    future = self._executor.submit(self._deliver, handler, event)
                    self._pending.add(future)
            if future is not None:
                future.add_done_callback(self._forget)
            else:
                self._deliver(handler, event)
            dispatched += 1

        return dispatched

    def wait_for_pending(self, timeout: Optional[float] = None) -> bool:
        """
        Block until queued deliveries have finished.

        Returns:
            True if nothing is left pending, False on timeout
        """
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_handlers: bool = True) -> None:
        """
        Stop the worker pool. Later publishes are logged and dropped.
        """
        with self._lock:
            self._closed = True
        if self._executor is not None:
            self._executor.shutdown(wait=wait_for_handlers)

    def get_subscriber_count(self, event_type: str) -> int:
        """Get the number of subscribers for an event type."""
        with self._lock:
            return len(self._subscribers.get(event_type, []))

    def get_event_log(self) -> list[Event]:
        """Get the log of all published events."""
        with self._lock:
            return self._event_log.copy()

    def clear_event_log(self) -> None:
        with self._lock:
            self._event_log.clear()

    def clear_subscribers(self) -> None:
        """Remove all subscribers (useful for testing)."""
        with self._lock:
            self._subscribers.clear()

    def set_logging(self, enabled: bool) -> None:
        """Enable or disable the in-memory event log."""
        self._log_events = enabled

    def _deliver(self, handler: EventHandler, event: Event) -> None:
        try:
            handler(event)
        except Exception as e:
            logger.error(f"Handler raised exception for {event}: {e}")

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)
