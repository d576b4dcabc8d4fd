"""
Services package.

Provides the event log, the dashboard aggregate and the observer registry.
"""

from .broadcaster import Broadcaster, Observer
from .collector import EventCollector, EventSnapshot
from .dashboard import DashboardData, build_dashboard_data

__all__ = [
    "Broadcaster",
    "Observer",
    "EventCollector",
    "EventSnapshot",
    "DashboardData",
    "build_dashboard_data",
]
