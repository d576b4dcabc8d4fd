"""
Custom exception classes.

Represent errors raised by the monitor server and its wire encoding.
"""

import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class MonitorError(Exception):
    """Base exception class for the monitor."""

    pass


class ServerStartError(MonitorError):
    """Raised when the server cannot bind or start listening."""

    def __init__(self, addr: str, cause: Exception):
        self.addr = addr
        self.cause = cause
        super().__init__(f"monitor server: cannot listen on {addr!r}: {cause}")


class ShutdownTimeoutError(MonitorError):
    """Raised when in-flight requests do not drain before the deadline."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(f"monitor server: shutdown did not finish within {timeout}s")


class StreamingNotSupportedError(MonitorError):
    """Raised when a connection cannot be flushed incrementally."""

    def __init__(self, detail: str = "streaming not supported"):
        self.detail = detail
        super().__init__(detail)


class SerializationError(MonitorError):
    """Raised when an event or dashboard snapshot cannot be encoded."""

    def __init__(self, what: str, cause: Exception):
        self.what = what
        self.cause = cause
        super().__init__(f"Failed to serialize {what}: {cause}")


# ===========================================
# Exception Handlers
# ===========================================


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for unhandled exceptions.
    """
    logger.error(
        f"Global exception handler caught: {exc}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Internal Server Error", "detail": str(exc)},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handler for HTTPException.
    """
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail})


async def streaming_not_supported_handler(request: Request, exc: StreamingNotSupportedError):
    logger.warning(
        "Rejected push-feed request: %s",
        exc.detail,
        extra={"path": request.url.path, "http_version": request.scope.get("http_version")},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "streaming not supported", "detail": exc.detail},
    )


async def serialization_error_handler(request: Request, exc: SerializationError):
    logger.warning("Serialization failed for %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Serialization failed", "detail": str(exc)},
    )
