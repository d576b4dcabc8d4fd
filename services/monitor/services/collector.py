"""
EventCollector - append-only log of challenge events.

Events are appended under a short critical section and never removed or
modified afterwards. Registered handlers run after each append, outside the
lock, in registration order.
"""

import logging
import threading
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterator, List

from ..models import ChallengeEvent, CollectorStats, EventType

logger = logging.getLogger("monitor.collector")

EventHandler = Callable[[ChallengeEvent], None]


class EventSnapshot:
    """
    Point-in-time view of the log.

    Bounded to the number of events present when it was taken, so events
    appended later are never seen. Iterating it again starts over.
    """

    def __init__(self, events: List[ChallengeEvent], length: int):
        self._events = events
        self._length = length

    def __iter__(self) -> Iterator[ChallengeEvent]:
        # The backing list only grows, so indexes below _length stay valid.
        for index in range(self._length):
            yield self._events[index]

    def __len__(self) -> int:
        return self._length


class EventCollector:
    """
    Captures challenge events and per-event statistics.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._events: List[ChallengeEvent] = []
        self._handlers: List[EventHandler] = []
        self._started_at = time.monotonic()
        self._stats = CollectorStats(start_time=datetime.now(timezone.utc))

    def on_event(self, handler: EventHandler) -> None:
        """Register a handler to be called for each event."""
        with self._lock:
            self._handlers.append(handler)

    def off_event(self, handler: EventHandler) -> None:
        """Remove a registered handler. Unknown handlers are ignored."""
        with self._lock:
            if handler in self._handlers:
                self._handlers.remove(handler)

    def emit(self, event: ChallengeEvent) -> None:
        """Record an event and notify all handlers."""
        if event.timestamp is None:
            event = replace(event, timestamp=datetime.now(timezone.utc))

        with self._lock:
            self._events.append(event)
            self._count(event)
            handlers = list(self._handlers)

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Event handler failed",
                    extra={"challenge_id": event.challenge_id, "event_type": event.type.value},
                )

    def _count(self, event: ChallengeEvent) -> None:
        self._stats.total += 1
        if event.type is EventType.COMPLETED:
            self._stats.passed += 1
        elif event.type is EventType.FAILED:
            self._stats.failed += 1
        elif event.type is EventType.SKIPPED:
            self._stats.skipped += 1
        elif event.type is EventType.TIMED_OUT:
            self._stats.timed_out += 1

    def emit_started(self, challenge_id: str, name: str) -> None:
        self.emit(ChallengeEvent(type=EventType.STARTED, challenge_id=challenge_id, name=name))

    def emit_completed(self, challenge_id: str, name: str, duration: float) -> None:
        self.emit(
            ChallengeEvent(
                type=EventType.COMPLETED,
                challenge_id=challenge_id,
                name=name,
                status="passed",
                duration=duration,
            )
        )

    def emit_failed(self, challenge_id: str, name: str, message: str) -> None:
        self.emit(
            ChallengeEvent(
                type=EventType.FAILED,
                challenge_id=challenge_id,
                name=name,
                status="failed",
                message=message,
            )
        )

    def emit_skipped(self, challenge_id: str, name: str, message: str = "") -> None:
        self.emit(
            ChallengeEvent(
                type=EventType.SKIPPED,
                challenge_id=challenge_id,
                name=name,
                status="skipped",
                message=message,
            )
        )

    def emit_timed_out(self, challenge_id: str, name: str) -> None:
        self.emit(
            ChallengeEvent(
                type=EventType.TIMED_OUT,
                challenge_id=challenge_id,
                name=name,
                status="timed_out",
            )
        )

    def snapshot(self) -> EventSnapshot:
        """Lazy view of every event appended so far."""
        with self._lock:
            return EventSnapshot(self._events, len(self._events))

    def events(self) -> List[ChallengeEvent]:
        """Return a copy of all collected events."""
        with self._lock:
            return list(self._events)

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> CollectorStats:
        """Return the current aggregate statistics."""
        with self._lock:
            stats = self._stats.model_copy()
        stats.duration = time.monotonic() - self._started_at
        return stats
