"""
Data model definitions package.

Aggregates the event contract and Pydantic models for use in other modules.
"""

from .events import (
    STATUS_FAILED,
    STATUS_PASSED,
    STATUS_RUNNING,
    STATUS_SKIPPED,
    STATUS_TIMED_OUT,
    ChallengeEvent,
    EventType,
)
from .schemas import ChallengeState, CollectorStats, DashboardSnapshot, DashboardSummary

__all__ = [
    "STATUS_FAILED",
    "STATUS_PASSED",
    "STATUS_RUNNING",
    "STATUS_SKIPPED",
    "STATUS_TIMED_OUT",
    "ChallengeEvent",
    "EventType",
    "ChallengeState",
    "CollectorStats",
    "DashboardSnapshot",
    "DashboardSummary",
]
