"""
Event bus for module communication.

In-process pub/sub: the executor, channels, store and discovery publish
run and lifecycle events; hosts and tests subscribe or read the log.
Dispatch is synchronous on the publishing thread.
"""

import logging
import threading
from collections import defaultdict
from collections.abc import Callable

from .events import Event, EventType


logger = logging.getLogger(__name__)


class EventBus:
    """
    Pub/sub bus with a bounded event log.

    Usage:
        bus = EventBus()
        bus.subscribe(EventType.RUN_COMPLETED, my_handler)
        bus.publish(Event(type=EventType.RUN_COMPLETED, data=outcome))
        bus.events_of(EventType.INTERLOCK_INSERTED)
    """

    def __init__(self, max_log_size: int = 200) -> None:
        self._handlers: dict[EventType, list[Callable[[Event], None]]] = defaultdict(list)
        self._lock = threading.Lock()
        self._event_log: list[Event] = []
        self._max_log_size = max_log_size

    def subscribe(self, event_type: EventType, handler: Callable[[Event], None]) -> None:
        """Register a handler for an event type."""
        with self._lock:
            if handler not in self._handlers[event_type]:
                self._handlers[event_type].append(handler)

    def subscribe_all(self, handler: Callable[[Event], None]) -> None:
        """Register a handler for every event type."""
        for event_type in EventType:
            self.subscribe(event_type, handler)

    def publish(self, event: Event) -> None:
        """Log the event and hand it to every subscriber of its type."""
        with self._lock:
            self._event_log.append(event)
            if len(self._event_log) > self._max_log_size:
                self._event_log.pop(0)
            handlers = list(self._handlers[event.type])

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.warning(f"[EventBus] Handler error for {event.type.name}: {e}")

    def get_event_log(self, limit: int = 20) -> list[Event]:
        """Get recent events from log."""
        with self._lock:
            return self._event_log[-limit:]

    def events_of(self, event_type: EventType) -> list[Event]:
        """All logged events of one type, oldest first."""
        with self._lock:
            return [e for e in self._event_log if e.type == event_type]

    def clear_log(self) -> None:
        with self._lock:
            self._event_log.clear()


# ─────────────────────────────────────────────────────────────
# SINGLETON ACCESS
# ─────────────────────────────────────────────────────────────

_bus: EventBus | None = None


def get_event_bus() -> EventBus:
    """Get the global event bus singleton."""
    global _bus
    if _bus is None:
        _bus = EventBus()
    return _bus


def reset_event_bus() -> None:
    """Reset the event bus (for testing)."""
    global _bus
    _bus = None
