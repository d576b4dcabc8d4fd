"""
DashboardData - real-time aggregate of challenge execution state.

Holds one status record per challenge plus rollup counters. Every change goes
through update_from_event(), which adjusts the counters in constant time, so
applying a log incrementally and replaying it with build_dashboard_data()
produce the same state.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from ..models import (
    STATUS_FAILED,
    STATUS_PASSED,
    STATUS_RUNNING,
    STATUS_SKIPPED,
    STATUS_TIMED_OUT,
    ChallengeEvent,
    ChallengeState,
    DashboardSnapshot,
    DashboardSummary,
    EventType,
)

logger = logging.getLogger("monitor.dashboard")

SNAPSHOT_RUN_ID = "snapshot"

RUN_STATUS_RUNNING = "running"
RUN_STATUS_COMPLETED = "completed"
RUN_STATUS_FAILED = "failed"


def pass_rate(passed: int, failed: int) -> float:
    """Percentage of passed challenges among passed and failed ones."""
    completed = passed + failed
    if completed == 0:
        return 0.0
    return passed / completed * 100


class DashboardData:
    """
    Live dashboard aggregate guarded by its own lock.
    """

    def __init__(self, run_id: str, start_time: Optional[datetime] = None):
        self._lock = threading.Lock()
        self.run_id = run_id
        self.start_time = start_time or datetime.now(timezone.utc)
        self._status = RUN_STATUS_RUNNING
        self._challenges: Dict[str, ChallengeState] = {}
        self._summary = DashboardSummary()
        self._sources: List = []

    @property
    def status(self) -> str:
        with self._lock:
            return self._status

    def attach(self, collector) -> bool:
        """
        Apply every event emitted on collector from now on.

        Each collector is attached at most once, however many servers share
        this dashboard. Returns False when it was already attached.
        """
        with self._lock:
            if collector in self._sources:
                return False
            self._sources.append(collector)
        collector.on_event(self.update_from_event)
        return True

    def set_status(self, status: str) -> None:
        """Set the overall run status."""
        with self._lock:
            self._status = status
        logger.info("Run %s status set to %s", self.run_id, status)

    def update_from_event(self, event: ChallengeEvent) -> None:
        """Apply one event to the aggregate."""
        with self._lock:
            summary = self._summary
            state = self._challenges.get(event.challenge_id)
            if state is None:
                summary.total += 1
                state = ChallengeState(
                    id=event.challenge_id, name=event.name, category=event.category
                )
            previous = state.status

            if event.type is EventType.STARTED:
                # A (re)start replaces whatever the record held before.
                state = ChallengeState(
                    id=event.challenge_id,
                    name=event.name or state.name,
                    category=event.category or state.category,
                    status=STATUS_RUNNING,
                    start_time=event.timestamp,
                )
            else:
                if event.name:
                    state.name = event.name
                state.end_time = event.timestamp
                if event.type is EventType.COMPLETED:
                    state.status = STATUS_PASSED
                    state.duration = event.duration
                    summary.passed += 1
                elif event.type is EventType.FAILED:
                    state.status = STATUS_FAILED
                    state.message = event.message
                    summary.failed += 1
                elif event.type is EventType.SKIPPED:
                    state.status = STATUS_SKIPPED
                    if event.message:
                        state.message = event.message
                    summary.skipped += 1
                elif event.type is EventType.TIMED_OUT:
                    state.status = STATUS_TIMED_OUT

            if previous == STATUS_RUNNING and state.status != STATUS_RUNNING:
                summary.running -= 1
            elif previous != STATUS_RUNNING and state.status == STATUS_RUNNING:
                summary.running += 1

            self._challenges[event.challenge_id] = state
            summary.pass_rate = pass_rate(summary.passed, summary.failed)

    def apply(self, events: Iterable[ChallengeEvent]) -> None:
        """Apply events in order."""
        for event in events:
            self.update_from_event(event)

    def summary(self) -> DashboardSummary:
        with self._lock:
            return self._summary.model_copy()

    def snapshot(self) -> DashboardSnapshot:
        """Return an independent copy of the current dashboard state."""
        with self._lock:
            return DashboardSnapshot(
                run_id=self.run_id,
                status=self._status,
                start_time=self.start_time,
                challenges={
                    challenge_id: state.model_copy()
                    for challenge_id, state in self._challenges.items()
                },
                summary=self._summary.model_copy(),
            )


def build_dashboard_data(collector) -> DashboardData:
    """
    Create a DashboardData from an EventCollector by replaying all
    collected events in arrival order.
    """
    data = DashboardData(SNAPSHOT_RUN_ID)
    data.apply(collector.snapshot())
    return data
