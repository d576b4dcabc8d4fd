"""
Monitor configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults.
"""

import sys
from pydantic import Field
from services.common.core.config import BaseAppConfig


class MonitorConfig(BaseAppConfig):
    """
    Configuration management for the Monitor service.
    """

    # Server settings
    MONITOR_BIND_ADDR: str = Field(default="127.0.0.1:8090", description="Listen address")
    MONITOR_RUN_ID: str = Field(default="run", description="Run label shown on the dashboard")

    # Fan-out
    OBSERVER_QUEUE_SIZE: int = Field(
        default=32, ge=1, description="Pending payloads buffered per push-feed observer"
    )
    CORS_ALLOW_ORIGIN: str = Field(default="*", description="Access-Control-Allow-Origin value")

    # Shutdown
    SHUTDOWN_TIMEOUT_SECONDS: float = Field(
        default=5.0, gt=0, description="Graceful drain deadline (seconds)"
    )


# Load config as a singleton.
# pydantic-settings reads environment variables during instantiation.
try:
    config = MonitorConfig()
except Exception as e:
    sys.stderr.write(f"Failed to load configuration: {e}\n")
    raise
