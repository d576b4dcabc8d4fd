"""
Monitor HTTP endpoints.

/health      liveness probe
/dashboard   JSON snapshot of the dashboard aggregate
/stats       per-event counters of the event log
/events      push feed (text/event-stream)
"""

import asyncio
import logging
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response, StreamingResponse

from ..core.exceptions import SerializationError, StreamingNotSupportedError
from ..core.sse import EVENT_CHALLENGE, EVENT_DASHBOARD, encode_dashboard, format_sse
from ..services.broadcaster import Broadcaster, Observer
from ..services.dashboard import DashboardData
from .deps import BroadcasterDep, CollectorDep, ConfigDep, DashboardDep

logger = logging.getLogger("monitor.api")

router = APIRouter()


def ensure_streaming_supported(request: Request) -> None:
    """
    Reject connections whose transport cannot flush a response incrementally.

    HTTP/1.0 has no chunked transfer encoding, so an open-ended body cannot be
    delivered message by message.
    """
    http_version = request.scope.get("http_version", "1.1")
    if http_version == "1.0":
        raise StreamingNotSupportedError(
            "streaming not supported: HTTP/1.0 connections cannot be flushed incrementally"
        )


async def _close_on_disconnect(
    request: Request, broadcaster: Broadcaster, observer: Observer
) -> None:
    while True:
        message = await request.receive()
        if message["type"] == "http.disconnect":
            break
    logger.debug("Observer %s disconnected", observer.id)
    broadcaster.unsubscribe(observer)


async def observer_feed(
    broadcaster: Broadcaster,
    dashboard: DashboardData,
    request: Optional[Request] = None,
) -> AsyncIterator[bytes]:
    """
    Frames for one push-feed connection.

    Registers an observer, yields the current dashboard, then one frame per
    broadcast payload until the observer is closed or the consumer goes
    away. With a request, a client disconnect closes the observer while the
    feed is waiting for the next payload. The observer is always
    deregistered on exit.
    """
    observer = broadcaster.subscribe()
    watcher = None
    if request is not None:
        watcher = asyncio.create_task(_close_on_disconnect(request, broadcaster, observer))
    try:
        try:
            initial = format_sse(EVENT_DASHBOARD, encode_dashboard(dashboard.snapshot()))
        except SerializationError as exc:
            logger.warning("Initial dashboard push skipped: %s", exc)
        else:
            yield initial

        while True:
            payload = await observer.get()
            if payload is None:
                break
            try:
                frame = format_sse(EVENT_CHALLENGE, payload)
            except UnicodeDecodeError as exc:
                logger.warning("Challenge push skipped for observer %s: %s", observer.id, exc)
                continue
            yield frame
    finally:
        if watcher is not None:
            watcher.cancel()
        broadcaster.unsubscribe(observer)


@router.get("/health", response_class=PlainTextResponse)
async def health_check():
    """Health check endpoint."""
    return "ok"


@router.get("/dashboard")
async def get_dashboard(dashboard: DashboardDep):
    """Current dashboard aggregate."""
    body = encode_dashboard(dashboard.snapshot())
    return Response(content=body, media_type="application/json")


@router.get("/stats")
async def get_stats(collector: CollectorDep):
    """Per-event counters of the event log."""
    return JSONResponse(content=collector.stats().model_dump(mode="json"))


@router.get("/events")
async def stream_events(
    request: Request,
    broadcaster: BroadcasterDep,
    dashboard: DashboardDep,
    settings: ConfigDep,
):
    """Push feed: initial dashboard snapshot, then every new challenge event."""
    ensure_streaming_supported(request)

    headers = {
        "Cache-Control": "no-cache",
        "Connection": "keep-alive",
        "Access-Control-Allow-Origin": settings.CORS_ALLOW_ORIGIN,
        "X-Accel-Buffering": "no",
    }
    return StreamingResponse(
        observer_feed(broadcaster, dashboard, request),
        media_type="text/event-stream",
        headers=headers,
    )
