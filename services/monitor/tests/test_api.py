"""
Where: services/monitor/tests/test_api.py
What: HTTP endpoint and push-feed generator tests.
Why: Keep the response contract stable and failures local to one request.
"""

import asyncio
import json
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from services.monitor.api.routes import observer_feed
from services.monitor.app import create_app
from services.monitor.core.exceptions import SerializationError
from services.monitor.core.sse import encode_event
from services.monitor.models import ChallengeEvent, EventType
from services.monitor.services.broadcaster import Broadcaster


@pytest.fixture
def broadcaster():
    return Broadcaster(queue_size=8)


@pytest.fixture
def app(collector, dashboard, broadcaster, settings):
    return create_app(collector, dashboard, broadcaster, settings)


@pytest.fixture
def client(app):
    return TestClient(app)


def test_health_returns_ok(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.text == "ok"
    assert response.headers["x-request-id"]


def test_request_id_is_propagated(client):
    response = client.get("/health", headers={"X-Request-ID": "req-42"})

    assert response.headers["x-request-id"] == "req-42"


def test_dashboard_returns_aggregate(client, dashboard):
    dashboard.update_from_event(ChallengeEvent(type=EventType.STARTED, challenge_id="ch-1", name="Test"))
    dashboard.update_from_event(
        ChallengeEvent(type=EventType.COMPLETED, challenge_id="ch-1", name="Test", duration=1.0)
    )

    response = client.get("/dashboard")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json"
    body = response.json()
    assert body["run_id"] == "run-1"
    assert body["status"] == "running"
    assert body["challenges"]["ch-1"]["status"] == "passed"
    assert body["summary"] == {
        "total": 1,
        "passed": 1,
        "failed": 0,
        "skipped": 0,
        "running": 0,
        "pass_rate": 100.0,
    }


def test_dashboard_serialization_failure_is_local(client):
    with patch(
        "services.monitor.api.routes.encode_dashboard",
        side_effect=SerializationError("dashboard 'run-1'", ValueError("bad value")),
    ):
        response = client.get("/dashboard")

    assert response.status_code == 500
    assert response.json()["message"] == "Serialization failed"

    # The server keeps serving afterwards.
    assert client.get("/health").status_code == 200


def test_stats_returns_collector_counters(client, collector):
    collector.emit_completed("ch-1", "Pass", 1.0)
    collector.emit_timed_out("ch-2", "Slow")

    body = client.get("/stats").json()

    assert body["total"] == 2
    assert body["passed"] == 1
    assert body["timed_out"] == 1


async def _call_asgi(app, scope):
    messages = []
    received = False

    async def receive():
        nonlocal received
        if not received:
            received = True
            return {"type": "http.request", "body": b"", "more_body": False}
        await asyncio.sleep(3600)

    async def send(message):
        messages.append(message)

    await app(scope, receive, send)
    return messages


@pytest.mark.asyncio
async def test_events_rejects_transport_without_streaming(app, broadcaster):
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.0",
        "method": "GET",
        "scheme": "http",
        "path": "/events",
        "raw_path": b"/events",
        "root_path": "",
        "query_string": b"",
        "headers": [(b"host", b"testserver")],
        "client": ("127.0.0.1", 50000),
        "server": ("testserver", 80),
    }

    messages = await asyncio.wait_for(_call_asgi(app, scope), timeout=5.0)

    start = next(m for m in messages if m["type"] == "http.response.start")
    body = b"".join(m.get("body", b"") for m in messages if m["type"] == "http.response.body")
    assert start["status"] == 500
    assert json.loads(body)["message"] == "streaming not supported"
    assert broadcaster.observer_count == 0


@pytest.mark.asyncio
async def test_observer_feed_sends_dashboard_then_challenges(broadcaster, dashboard):
    dashboard.update_from_event(ChallengeEvent(type=EventType.STARTED, challenge_id="ch-1", name="Test"))
    feed = observer_feed(broadcaster, dashboard)

    first = await asyncio.wait_for(feed.__anext__(), timeout=1.0)
    assert first.startswith(b"event: dashboard\ndata: ")
    assert first.endswith(b"\n\n")
    snapshot = json.loads(first.split(b"data: ", 1)[1])
    assert snapshot["challenges"]["ch-1"]["status"] == "running"
    assert broadcaster.observer_count == 1

    payloads = [
        encode_event(ChallengeEvent(type=EventType.COMPLETED, challenge_id="ch-1")),
        encode_event(ChallengeEvent(type=EventType.STARTED, challenge_id="ch-2")),
    ]
    for payload in payloads:
        broadcaster.broadcast(payload)

    for payload in payloads:
        frame = await asyncio.wait_for(feed.__anext__(), timeout=1.0)
        assert frame == b"event: challenge\ndata: " + payload + b"\n\n"

    await feed.aclose()
    assert broadcaster.observer_count == 0


@pytest.mark.asyncio
async def test_observer_feed_ends_when_observers_are_closed(broadcaster, dashboard):
    feed = observer_feed(broadcaster, dashboard)
    await feed.__anext__()

    broadcaster.close_all()

    with pytest.raises(StopAsyncIteration):
        await asyncio.wait_for(feed.__anext__(), timeout=1.0)
    assert broadcaster.observer_count == 0


@pytest.mark.asyncio
async def test_observer_feed_deregisters_on_cancellation(broadcaster, dashboard):
    feed = observer_feed(broadcaster, dashboard)
    await feed.__anext__()

    async def next_frame():
        return await feed.__anext__()

    waiter = asyncio.create_task(next_frame())
    await asyncio.sleep(0.01)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    assert broadcaster.observer_count == 0


@pytest.mark.asyncio
async def test_observer_feed_skips_unserializable_snapshot(broadcaster, dashboard):
    with patch(
        "services.monitor.api.routes.encode_dashboard",
        side_effect=SerializationError("dashboard 'run-1'", TypeError("bad")),
    ):
        feed = observer_feed(broadcaster, dashboard)
        pending = asyncio.create_task(feed.__anext__())
        await asyncio.sleep(0.01)

    assert not pending.done()
    broadcaster.broadcast(b'{"type": "started"}')
    frame = await asyncio.wait_for(pending, timeout=1.0)
    assert frame.startswith(b"event: challenge\n")
    await feed.aclose()
