"""
Broadcaster - fan-out of serialized events to push-feed observers.

Each observer owns a bounded delivery queue. broadcast() never waits on an
observer: a payload that does not fit in an observer's queue is dropped for
that observer only. Producers may call broadcast() from any thread; delivery
onto a queue owned by another event loop goes through call_soon_threadsafe.
"""

import asyncio
import itertools
import logging
import threading
from typing import Dict, Optional

logger = logging.getLogger("monitor.broadcaster")

_observer_ids = itertools.count(1)


def _current_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class Observer:
    """
    Delivery queue of one push-feed connection.

    The bound is enforced with a pending counter under the observer lock, so
    a producer on a foreign thread can decide "full or not" without touching
    the asyncio queue. close() appends a ``None`` sentinel past the bound.
    """

    def __init__(self, maxsize: int, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.id = next(_observer_ids)
        self.maxsize = maxsize
        self.dropped = 0
        self._loop = loop
        self._queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue()
        self._lock = threading.Lock()
        self._pending = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        with self._lock:
            return self._pending

    def offer(self, payload: bytes) -> bool:
        """Enqueue without waiting. Returns False when full or closed."""
        with self._lock:
            if self._closed:
                return False
            if self._pending >= self.maxsize:
                self.dropped += 1
                return False
            self._pending += 1
        self._dispatch(payload)
        return True

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._dispatch(None)

    async def get(self) -> Optional[bytes]:
        """Wait for the next payload; ``None`` once the observer is closed."""
        return self._taken(await self._queue.get())

    def get_nowait(self) -> Optional[bytes]:
        """Like get() but raises asyncio.QueueEmpty instead of waiting."""
        return self._taken(self._queue.get_nowait())

    def _taken(self, item: Optional[bytes]) -> Optional[bytes]:
        if item is not None:
            with self._lock:
                self._pending -= 1
        return item

    def _dispatch(self, item: Optional[bytes]) -> None:
        loop = self._loop
        if loop is None or _current_loop() is loop:
            self._queue.put_nowait(item)
            return
        try:
            loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            # Owning loop is closed; nobody can read this queue anymore.
            logger.debug("Observer %s loop closed, payload discarded", self.id)


class Broadcaster:
    """
    Registry of connected observers, guarded by a single lock.
    """

    def __init__(self, queue_size: int = 32):
        self.queue_size = queue_size
        self._lock = threading.Lock()
        self._observers: Dict[int, Observer] = {}
        self._closed = False

    @property
    def observer_count(self) -> int:
        with self._lock:
            return len(self._observers)

    def subscribe(self) -> Observer:
        """Register a new observer bound to the running event loop, if any."""
        observer = Observer(self.queue_size, loop=_current_loop())
        with self._lock:
            accepted = not self._closed
            if accepted:
                self._observers[observer.id] = observer
            count = len(self._observers)
        if not accepted:
            # Shutting down: the feed ends right after its initial snapshot.
            observer.close()
            return observer
        logger.info("Observer %s subscribed (total: %d)", observer.id, count)
        return observer

    def unsubscribe(self, observer: Observer) -> None:
        """Deregister an observer. Removing an unknown observer is a no-op."""
        with self._lock:
            removed = self._observers.pop(observer.id, None)
            count = len(self._observers)
        observer.close()
        if removed is not None:
            logger.info(
                "Observer %s unsubscribed (total: %d, dropped: %d)",
                observer.id,
                count,
                observer.dropped,
            )

    def broadcast(self, payload: bytes) -> int:
        """Offer a payload to every observer. Returns how many accepted it."""
        delivered = 0
        with self._lock:
            for observer in self._observers.values():
                if observer.offer(payload):
                    delivered += 1
                else:
                    logger.debug("Observer %s queue full, payload dropped", observer.id)
        return delivered

    def close_all(self) -> int:
        """Close every observer and refuse new ones. Returns how many were closed."""
        with self._lock:
            self._closed = True
            observers = list(self._observers.values())
            self._observers.clear()
        for observer in observers:
            observer.close()
        if observers:
            logger.info("Closed %d observers", len(observers))
        return len(observers)
