#!/usr/bin/env python3
"""
Failure/Backoff Manager

Applies the per-item bookkeeping after a run: completes the run record,
tracks consecutive failures, disables persistently failing schedules and
always advances next_run_at.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..exceptions import DatabaseError
from ..models.run import RunRecord, RunStatus
from ..models.schedule import MonitoredSchedule
from ..scheduling.calculator import NextRun, next_run_for

logger = logging.getLogger(__name__)

MAX_CONSECUTIVE_FAILURES = 5
ERROR_MESSAGE_MAX_LENGTH = 500


@dataclass
class FailureOutcome:
    """Schedule state after a recorded failure."""
    error_message: str
    consecutive_failures: int
    disabled: bool
    next_run_at: datetime


def describe_error(error: BaseException, max_length: int = ERROR_MESSAGE_MAX_LENGTH) -> str:
    """Error text suitable for the run record, truncated to max_length."""
    message = str(error) or error.__class__.__name__
    return message[:max_length]


class BackoffManager:
    """Records run outcomes and moves schedules forward."""

    def __init__(self, database, max_failures: int = MAX_CONSECUTIVE_FAILURES,
                 error_max_length: int = ERROR_MESSAGE_MAX_LENGTH):
        self.database = database
        self.max_failures = max_failures
        self.error_max_length = error_max_length

    def advance(self, schedule: MonitoredSchedule, now: datetime) -> NextRun:
        """Advance next_run_at without touching the failure counter."""
        next_run = next_run_for(schedule, now)
        self.database.advance_schedule(
            schedule.id, now, next_run.run_at, disable=next_run.should_disable
        )
        self._log_end_bound(schedule, next_run)
        return next_run

    def record_success(self, schedule: MonitoredSchedule, run: Optional[RunRecord],
                       score: int, now: datetime) -> NextRun:
        """
        Complete the run as success, reset failures and advance.

        Args:
            schedule: Schedule that ran
            run: Claimed run record (None for manual scans)
            score: Score of the stored result
            now: Completion instant

        Returns:
            The computed next run
        """
        next_run = next_run_for(schedule, now)

        if run is not None:
            self.database.complete_run(run.id, RunStatus.SUCCESS, now, score=score)

        self.database.advance_schedule(
            schedule.id, now, next_run.run_at,
            disable=next_run.should_disable, reset_failures=True
        )
        self._log_end_bound(schedule, next_run)
        return next_run

    def record_failure(self, schedule: MonitoredSchedule, run: Optional[RunRecord],
                       error: BaseException, now: datetime) -> FailureOutcome:
        """
        Mark the run failed, count the failure and advance.

        The increment and the ceiling check happen in one store update, so
        overlapping invocations cannot lose a failure.
        """
        error_message = describe_error(error, self.error_max_length)

        if run is not None:
            try:
                self.database.complete_run(run.id, RunStatus.FAILED, now, error_message=error_message)
            except DatabaseError as e:
                logger.error(f"Could not mark run {run.id} failed: {e}")

        next_run = next_run_for(schedule, now)
        failures, enabled = self.database.record_schedule_failure(
            schedule.id, self.max_failures, now, next_run.run_at, disable=next_run.should_disable
        )

        disabled = not enabled
        if failures >= self.max_failures:
            logger.warning(
                f"Schedule {schedule.id} disabled after {failures} consecutive failures "
                f"(last error: {error_message})"
            )
        else:
            logger.info(f"Schedule {schedule.id} failure {failures}/{self.max_failures}: {error_message}")

        self._log_end_bound(schedule, next_run)
        return FailureOutcome(
            error_message=error_message,
            consecutive_failures=failures,
            disabled=disabled,
            next_run_at=next_run.run_at,
        )

    @staticmethod
    def _log_end_bound(schedule: MonitoredSchedule, next_run: NextRun) -> None:
        if next_run.should_disable:
            logger.info(f"Schedule {schedule.id} reached its end date and was disabled")
