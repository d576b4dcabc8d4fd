"""
Pydantic schema definitions.

Define the dashboard and statistics documents served over HTTP.
"""

from datetime import datetime
from typing import Dict, Optional
from pydantic import BaseModel, Field


class ChallengeState(BaseModel):
    """Current state of one challenge on the dashboard."""

    id: str
    name: str = ""
    category: str = ""
    status: str = ""
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    duration: float = 0.0
    message: str = ""


class DashboardSummary(BaseModel):
    """Rollup counters."""

    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    running: int = 0
    pass_rate: float = 0.0


class DashboardSnapshot(BaseModel):
    """
    Point-in-time copy of the dashboard aggregate.
    """

    run_id: str
    status: str
    start_time: datetime
    challenges: Dict[str, ChallengeState] = Field(default_factory=dict)
    summary: DashboardSummary = Field(default_factory=DashboardSummary)


class CollectorStats(BaseModel):
    """Per-event counters kept by the event log (duration in seconds)."""

    total: int = 0
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    timed_out: int = 0
    start_time: datetime
    duration: float = 0.0
