"""
Dependency Injection for Monitor API.

Manage request handler dependencies using FastAPI Depends.
"""

from typing import Annotated
from fastapi import Depends, Request

from ..config import MonitorConfig
from ..services.broadcaster import Broadcaster
from ..services.collector import EventCollector
from ..services.dashboard import DashboardData


def get_collector(request: Request) -> EventCollector:
    return request.app.state.collector


def get_dashboard(request: Request) -> DashboardData:
    return request.app.state.dashboard


def get_broadcaster(request: Request) -> Broadcaster:
    return request.app.state.broadcaster


def get_config(request: Request) -> MonitorConfig:
    return request.app.state.config


# Service Dependency Type Aliases
CollectorDep = Annotated[EventCollector, Depends(get_collector)]
DashboardDep = Annotated[DashboardData, Depends(get_dashboard)]
BroadcasterDep = Annotated[Broadcaster, Depends(get_broadcaster)]
ConfigDep = Annotated[MonitorConfig, Depends(get_config)]
