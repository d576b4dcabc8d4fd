"""
Monitor application assembly.

Builds one FastAPI application per server instance; every shared object is
carried on app.state rather than at module level.
"""

from typing import Optional

from fastapi import FastAPI

from .api.routes import router
from .config import MonitorConfig, config
from .exceptions import register_exception_handlers
from .lifecycle import manage_lifespan
from .middleware import AccessLogMiddleware
from .services.broadcaster import Broadcaster
from .services.collector import EventCollector
from .services.dashboard import DashboardData


def create_app(
    collector: EventCollector,
    dashboard: DashboardData,
    broadcaster: Broadcaster,
    settings: Optional[MonitorConfig] = None,
) -> FastAPI:
    app = FastAPI(title="Challenge Monitor", version="1.0.0", lifespan=manage_lifespan)

    app.state.config = settings or config
    app.state.collector = collector
    app.state.dashboard = dashboard
    app.state.broadcaster = broadcaster

    app.add_middleware(AccessLogMiddleware)
    register_exception_handlers(app)
    app.include_router(router)
    return app
