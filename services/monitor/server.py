"""
MonitorServer - HTTP server for the live dashboard.

Lifecycle: CREATED -> STARTING -> SERVING -> STOPPING -> STOPPED.

start() binds the listen socket itself so an unusable address fails fast
with ServerStartError, then serves with uvicorn until the shutdown event is
set, stop() is called, or the serving task is cancelled. stop() closes every
observer so open push feeds end, lets in-flight requests finish, and raises
ShutdownTimeoutError when that takes longer than the deadline.
"""

import asyncio
import contextlib
import logging
import socket
from enum import Enum
from typing import Optional, Tuple

import uvicorn

from .app import create_app
from .config import MonitorConfig, config
from .core.exceptions import (
    MonitorError,
    SerializationError,
    ServerStartError,
    ShutdownTimeoutError,
)
from .core.sse import encode_event
from .models import ChallengeEvent
from .services.broadcaster import Broadcaster
from .services.collector import EventCollector
from .services.dashboard import DashboardData

logger = logging.getLogger("monitor.server")


class ServerState(str, Enum):
    CREATED = "created"
    STARTING = "starting"
    SERVING = "serving"
    STOPPING = "stopping"
    STOPPED = "stopped"


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the caller."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


def parse_address(addr: str) -> Tuple[str, int]:
    """Split ``host:port`` (``[v6]:port`` for IPv6). An empty host means all interfaces."""
    host, sep, port = addr.rpartition(":")
    if not sep:
        raise ValueError(f"missing port in address {addr!r}")
    host = host.strip("[]") or "0.0.0.0"
    return host, int(port)


def bind_socket(addr: str) -> socket.socket:
    try:
        host, port = parse_address(addr)
        family = socket.AF_INET6 if ":" in host else socket.AF_INET
        return socket.create_server((host, port), family=family)
    except (OSError, OverflowError, ValueError) as e:
        raise ServerStartError(addr, e) from e


class MonitorServer:
    """
    Serves the dashboard endpoints and pushes every collected event to the
    connected observers.
    """

    def __init__(
        self,
        addr: str,
        collector: EventCollector,
        dashboard: DashboardData,
        settings: Optional[MonitorConfig] = None,
    ):
        self.addr = addr
        self.collector = collector
        self.dashboard = dashboard
        self.settings = settings or config
        self.broadcaster = Broadcaster(queue_size=self.settings.OBSERVER_QUEUE_SIZE)
        self.app = create_app(collector, dashboard, self.broadcaster, self.settings)
        self.state = ServerState.CREATED

        self._socket: Optional[socket.socket] = None
        self._bound: Optional[Tuple[str, int]] = None
        self._server: Optional[_EmbeddedServer] = None
        self._serve_task: Optional[asyncio.Task] = None
        self._stop_requested = False
        self._serving = asyncio.Event()
        self._stopped = asyncio.Event()

        dashboard.attach(collector)
        collector.on_event(self._push_event)

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port), available once started."""
        return self._bound

    def _push_event(self, event: ChallengeEvent) -> None:
        try:
            payload = encode_event(event)
        except SerializationError as e:
            logger.warning(
                f"Challenge push skipped: {e}", extra={"challenge_id": event.challenge_id}
            )
            return
        self.broadcast(payload)

    def broadcast(self, payload: bytes) -> int:
        """Fan a serialized event out to every connected observer."""
        return self.broadcaster.broadcast(payload)

    async def wait_until_serving(self) -> None:
        await self._serving.wait()

    async def start(self, shutdown: Optional[asyncio.Event] = None) -> None:
        """
        Serve until shutdown is set, stop() is called or this task is cancelled.

        Raises:
            ServerStartError: the address cannot be bound or startup failed.
        """
        if self.state is not ServerState.CREATED:
            raise MonitorError(f"monitor server already {self.state.value}")
        self.state = ServerState.STARTING

        try:
            self._socket = bind_socket(self.addr)
            self._bound = self._socket.getsockname()[:2]
        except ServerStartError:
            self._finish()
            raise

        uv_config = uvicorn.Config(
            self.app,
            log_config=None,
            access_log=False,
            lifespan="on",
            timeout_graceful_shutdown=self.settings.SHUTDOWN_TIMEOUT_SECONDS,
        )
        self._server = _EmbeddedServer(uv_config)
        self._serve_task = asyncio.create_task(self._server.serve(sockets=[self._socket]))

        try:
            while not self._server.started and not self._serve_task.done():
                await asyncio.sleep(0.01)

            if self._server.started and self.state is ServerState.STARTING:
                self.state = ServerState.SERVING
                self._serving.set()
                host, port = self.address
                logger.info(f"Monitor server listening on {host}:{port}")
                await self._wait_for_exit(shutdown)
        finally:
            if self.state in (ServerState.STARTING, ServerState.SERVING):
                await self.stop()

        if not self._serving.is_set() and not self._stop_requested:
            raise ServerStartError(self.addr, RuntimeError("server startup failed"))

    async def _wait_for_exit(self, shutdown: Optional[asyncio.Event]) -> None:
        waiters = {self._serve_task}
        shutdown_waiter = None
        if shutdown is not None:
            shutdown_waiter = asyncio.create_task(shutdown.wait())
            waiters.add(shutdown_waiter)
        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if shutdown_waiter is not None:
                shutdown_waiter.cancel()

    async def stop(self, timeout: Optional[float] = None) -> None:
        """
        Gracefully shut the server down. A server that was never started
        stops successfully without doing anything.

        Raises:
            ShutdownTimeoutError: in-flight requests did not finish in time.
        """
        if self.state in (ServerState.CREATED, ServerState.STOPPED):
            return
        if self.state is ServerState.STOPPING:
            await self._stopped.wait()
            return

        self.state = ServerState.STOPPING
        self._stop_requested = True
        if timeout is None:
            timeout = self.settings.SHUTDOWN_TIMEOUT_SECONDS
        logger.info(f"Stopping monitor server (observers: {self.broadcaster.observer_count})")

        # Ends every open push feed so the drain below can complete.
        self.broadcaster.close_all()
        try:
            if self._server is not None and self._serve_task is not None:
                self._server.should_exit = True
                try:
                    await asyncio.wait_for(asyncio.shield(self._serve_task), timeout)
                except asyncio.TimeoutError as e:
                    self._server.force_exit = True
                    raise ShutdownTimeoutError(timeout) from e
        finally:
            self._finish()
        logger.info("Monitor server stopped")

    def _finish(self) -> None:
        self.state = ServerState.STOPPED
        self.collector.off_event(self._push_event)
        if self._socket is not None:
            self._socket.close()
        self._stopped.set()
