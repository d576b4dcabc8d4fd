import pytest

from services.monitor.config import MonitorConfig
from services.monitor.services.collector import EventCollector
from services.monitor.services.dashboard import DashboardData


@pytest.fixture
def settings(monkeypatch):
    """Config isolated from the developer's environment and .env file."""
    for name in (
        "MONITOR_BIND_ADDR",
        "MONITOR_RUN_ID",
        "OBSERVER_QUEUE_SIZE",
        "SHUTDOWN_TIMEOUT_SECONDS",
        "CORS_ALLOW_ORIGIN",
    ):
        monkeypatch.delenv(name, raising=False)
    return MonitorConfig(_env_file=None, SHUTDOWN_TIMEOUT_SECONDS=2.0)


@pytest.fixture
def collector():
    return EventCollector()


@pytest.fixture
def dashboard():
    return DashboardData("run-1")
