# Where: services/monitor/models/events.py
# What: Challenge lifecycle event contract.
# Why: Provide a stable, decoupled contract between the producer and the dashboard.
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

STATUS_RUNNING = "running"
STATUS_PASSED = "passed"
STATUS_FAILED = "failed"
STATUS_SKIPPED = "skipped"
STATUS_TIMED_OUT = "timed_out"


class EventType(str, Enum):
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class ChallengeEvent:
    """One lifecycle transition of one challenge.

    ``duration`` is in seconds. ``timestamp`` is filled in by the collector
    when the producer leaves it empty.
    """

    type: EventType
    challenge_id: str
    name: str = ""
    category: str = ""
    status: str = ""
    message: str = ""
    duration: float = 0.0
    timestamp: datetime | None = None
    metrics: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Rejects anything outside the closed set of event types.
        object.__setattr__(self, "type", EventType(self.type))

    @property
    def is_terminal(self) -> bool:
        return self.type is not EventType.STARTED

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "challenge_id": self.challenge_id,
            "name": self.name,
            "category": self.category,
            "status": self.status,
            "message": self.message,
            "duration": self.duration,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "metrics": self.metrics,
        }
