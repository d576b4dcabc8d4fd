"""
Where: services/monitor/lifecycle.py
What: Monitor startup/shutdown hooks for the ASGI application.
Why: Keep app.py focused on app assembly while preserving lifecycle behavior.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

logger = logging.getLogger("monitor.server")


@asynccontextmanager
async def manage_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle."""
    dashboard = app.state.dashboard
    broadcaster = app.state.broadcaster
    logger.info(
        "Monitor initialized (run_id: %s, observer queue size: %d)",
        dashboard.run_id,
        broadcaster.queue_size,
    )
    try:
        yield
    finally:
        closed = broadcaster.close_all()
        logger.info("Monitor shutting down, closed %d observers.", closed)
