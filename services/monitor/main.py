"""
Challenge Monitor - live progress dashboard

Collects challenge lifecycle events, keeps the dashboard aggregate current
and streams both to connected observers over Server-Sent Events.
"""

import asyncio
import logging
import signal
from typing import Optional

from .config import MonitorConfig, config
from .core.logging_config import setup_logging
from .server import MonitorServer
from .services.collector import EventCollector
from .services.dashboard import DashboardData

logger = logging.getLogger("monitor.main")


def build_server(settings: Optional[MonitorConfig] = None) -> MonitorServer:
    """Wire a collector, a dashboard and a server from configuration."""
    settings = settings or config
    collector = EventCollector()
    dashboard = DashboardData(settings.MONITOR_RUN_ID)
    return MonitorServer(settings.MONITOR_BIND_ADDR, collector, dashboard, settings)


async def serve(server: MonitorServer) -> None:
    """Run the server until SIGINT or SIGTERM."""
    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown.set)
        except NotImplementedError:
            logger.debug("Signal handler for %s unavailable on this event loop", sig.name)
    await server.start(shutdown)


def run() -> None:
    setup_logging()
    server = build_server()
    asyncio.run(serve(server))


if __name__ == "__main__":
    run()
