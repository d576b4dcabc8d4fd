"""
Where: services/monitor/tests/test_broadcaster.py
What: Observer registry and non-blocking fan-out.
Why: One slow or dead observer must never stall the producer or other observers.
"""

import asyncio
import threading
import time

import pytest

from services.monitor.services.broadcaster import Broadcaster, Observer


def _drain_nowait(observer: Observer):
    items = []
    while True:
        try:
            items.append(observer.get_nowait())
        except asyncio.QueueEmpty:
            return items


def test_broadcast_reaches_every_observer():
    broadcaster = Broadcaster(queue_size=4)
    observers = [broadcaster.subscribe() for _ in range(3)]

    delivered = broadcaster.broadcast(b"payload")

    assert delivered == 3
    for observer in observers:
        assert _drain_nowait(observer) == [b"payload"]


def test_full_observer_is_skipped_not_disconnected():
    broadcaster = Broadcaster(queue_size=2)
    stuck = broadcaster.subscribe()
    healthy = [broadcaster.subscribe() for _ in range(3)]

    start = time.perf_counter()
    for i in range(5):
        broadcaster.broadcast(f"m{i}".encode())
        # Healthy observers drain as they go; the stuck one never does.
        for observer in healthy:
            assert _drain_nowait(observer) == [f"m{i}".encode()]
    elapsed = time.perf_counter() - start

    assert elapsed < 1.0
    assert stuck.pending == 2
    assert stuck.dropped == 3
    assert broadcaster.observer_count == 4
    assert _drain_nowait(stuck) == [b"m0", b"m1"]


def test_unsubscribe_is_idempotent():
    broadcaster = Broadcaster()
    observer = broadcaster.subscribe()

    broadcaster.unsubscribe(observer)
    broadcaster.unsubscribe(observer)

    assert broadcaster.observer_count == 0
    assert observer.closed
    assert broadcaster.broadcast(b"after") == 0


def test_closed_observer_refuses_payloads():
    observer = Observer(maxsize=2)
    observer.close()

    assert observer.offer(b"late") is False
    assert _drain_nowait(observer) == [None]


@pytest.mark.asyncio
async def test_get_returns_payloads_then_none_after_close():
    broadcaster = Broadcaster(queue_size=1)
    observer = broadcaster.subscribe()

    broadcaster.broadcast(b"one")
    broadcaster.close_all()

    assert await observer.get() == b"one"
    assert await observer.get() is None
    assert observer.pending == 0


@pytest.mark.asyncio
async def test_close_all_refuses_new_observers():
    broadcaster = Broadcaster()
    broadcaster.subscribe()

    assert broadcaster.close_all() == 1

    late = broadcaster.subscribe()
    assert late.closed
    assert broadcaster.observer_count == 0
    assert await asyncio.wait_for(late.get(), timeout=1.0) is None


@pytest.mark.asyncio
async def test_broadcast_from_producer_thread_wakes_loop_observer():
    broadcaster = Broadcaster(queue_size=8)
    observer = broadcaster.subscribe()

    thread = threading.Thread(target=broadcaster.broadcast, args=(b"from-thread",))
    thread.start()
    thread.join()

    assert await asyncio.wait_for(observer.get(), timeout=1.0) == b"from-thread"


@pytest.mark.asyncio
async def test_broadcast_does_not_block_when_observer_never_reads():
    broadcaster = Broadcaster(queue_size=1)
    broadcaster.subscribe()
    reader = broadcaster.subscribe()

    received = []

    async def consume():
        while len(received) < 50:
            received.append(await reader.get())

    consumer = asyncio.create_task(consume())
    for i in range(50):
        broadcaster.broadcast(str(i).encode())
        await asyncio.sleep(0.001)
    await asyncio.wait_for(consumer, timeout=2.0)

    assert received == [str(i).encode() for i in range(50)]


def test_concurrent_subscribe_unsubscribe_during_broadcast():
    broadcaster = Broadcaster(queue_size=1000)
    permanent = broadcaster.subscribe()
    stop = threading.Event()
    errors = []
    sent = []

    def producer():
        i = 0
        while not stop.is_set():
            payload = str(i).encode()
            broadcaster.broadcast(payload)
            sent.append(payload)
            i += 1
            if i >= 500:
                break

    def churn():
        try:
            while not stop.is_set():
                observer = broadcaster.subscribe()
                broadcaster.unsubscribe(observer)
                broadcaster.unsubscribe(observer)
        except Exception as exc:
            errors.append(exc)

    churners = [threading.Thread(target=churn) for _ in range(4)]
    for t in churners:
        t.start()
    producer_thread = threading.Thread(target=producer)
    producer_thread.start()
    producer_thread.join(timeout=10)
    stop.set()
    for t in churners:
        t.join(timeout=10)

    assert not producer_thread.is_alive()
    assert errors == []
    assert broadcaster.observer_count == 1
    assert _drain_nowait(permanent) == sent
