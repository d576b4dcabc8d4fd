"""
Where: services/monitor/middleware.py
What: Request ID propagation and structured access logging.
Why: Isolate cross-cutting request concerns from app assembly.
"""

import logging
import time
from typing import Optional

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from services.common.core.request_context import (
    clear_request_id,
    generate_request_id,
    set_request_id,
)

logger = logging.getLogger("monitor.access")


def _header(scope: Scope, name: bytes) -> Optional[str]:
    for key, value in scope.get("headers", []):
        if key.lower() == name:
            return value.decode("latin-1")
    return None


class AccessLogMiddleware:
    """
    Pure ASGI middleware so streaming responses pass through unbuffered.

    Logged once per request when the response completes; for the push feed
    that is when the stream ends.
    """

    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        incoming = _header(scope, b"x-request-id")
        request_id = set_request_id(incoming) if incoming else generate_request_id()
        status_code = 500

        async def send_with_request_id(message: Message) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
                headers = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode("latin-1")))
                message = {**message, "headers": headers}
            await send(message)

        try:
            await self.app(scope, receive, send_with_request_id)
        finally:
            process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
            client = scope.get("client")
            logger.info(
                f"{scope.get('method')} {scope.get('path')} {status_code}",
                extra={
                    "request_id": request_id,
                    "method": scope.get("method"),
                    "path": scope.get("path"),
                    "status": status_code,
                    "latency_ms": process_time_ms,
                    "user_agent": _header(scope, b"user-agent"),
                    "client_ip": client[0] if client else None,
                },
            )
            clear_request_id()
