"""
Core logic package.

Provides wire encoding and the exception taxonomy.
"""

from .exceptions import (
    MonitorError,
    SerializationError,
    ServerStartError,
    ShutdownTimeoutError,
    StreamingNotSupportedError,
)
from .sse import EVENT_CHALLENGE, EVENT_DASHBOARD, encode_dashboard, encode_event, format_sse

__all__ = [
    "MonitorError",
    "SerializationError",
    "ServerStartError",
    "ShutdownTimeoutError",
    "StreamingNotSupportedError",
    "EVENT_CHALLENGE",
    "EVENT_DASHBOARD",
    "encode_dashboard",
    "encode_event",
    "format_sse",
]
