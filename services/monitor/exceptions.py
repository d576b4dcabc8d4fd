"""
Where: services/monitor/exceptions.py
What: Monitor exception handler registration.
Why: Keep error handling setup isolated from route and lifecycle concerns.
"""

from fastapi import FastAPI
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.exceptions import (
    SerializationError,
    StreamingNotSupportedError,
    global_exception_handler,
    http_exception_handler,
    serialization_error_handler,
    streaming_not_supported_handler,
)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(Exception, global_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(StreamingNotSupportedError, streaming_not_supported_handler)
    app.add_exception_handler(SerializationError, serialization_error_handler)
