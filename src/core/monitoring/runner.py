#!/usr/bin/env python3
"""
Monitoring Runner - drives one batch of due schedules.

Each due schedule is processed by process_schedule(), which returns an
ItemOutcome instead of letting exceptions cross loop iterations. The batch
stops starting new items once the wall-clock budget is spent; items not
started stay due for the next invocation.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Callable

from ..exceptions import DatabaseError, ScheduleNotFoundError, ScheduleInactiveError, ValidationError
from ..models.run import RunStatus
from ..models.schedule import MonitoredSchedule
from ..alerts.engine import AlertEngine, AlertOutcome
from ..analysis.regression import RegressionClassifier
from ..scheduling.selector import DueWorkSelector
from .backoff import BackoffManager, describe_error
from .coordinator import IdempotencyCoordinator
from .orchestrator import ScanOrchestrator, ScanExecution

logger = logging.getLogger(__name__)

DEFAULT_TIME_BUDGET_SECONDS = 300


@dataclass
class ItemOutcome:
    """Result of processing one due schedule."""
    schedule_id: str
    target_url: str
    status: RunStatus
    window_key: Optional[str] = None
    score: Optional[int] = None
    error: Optional[str] = None
    alerts_created: int = 0
    disabled: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'schedule_id': self.schedule_id,
            'target_url': self.target_url,
            'status': self.status.value,
        }
        if self.window_key:
            data['window_key'] = self.window_key
        if self.score is not None:
            data['score'] = self.score
        if self.error:
            data['error'] = self.error
        if self.alerts_created:
            data['alerts_created'] = self.alerts_created
        if self.disabled:
            data['disabled'] = True
        return data


@dataclass
class BatchSummary:
    """Aggregated outcomes of one invocation."""
    results: List[ItemOutcome] = field(default_factory=list)
    deferred: int = 0

    @property
    def processed(self) -> int:
        return len(self.results)

    def count(self, status: RunStatus) -> int:
        return sum(1 for item in self.results if item.status is status)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'processed': self.processed,
            'results': [item.to_dict() for item in self.results],
        }


@dataclass
class ManualScanOutcome:
    """Result of an out-of-schedule scan."""
    execution: ScanExecution
    alerts: AlertOutcome

    def to_dict(self) -> Dict[str, Any]:
        result = self.execution.result
        return {
            'schedule_id': result.schedule_id,
            'result': result.to_dict(),
            'previous_score': self.execution.previous.score if self.execution.previous else None,
            'is_regression': result.below_threshold,
            'alerts': self.alerts.to_dict(),
        }


class MonitoringRunner:
    """Selects due schedules and runs each through claim, scan, classify and alert."""

    def __init__(self, database, orchestrator: ScanOrchestrator,
                 selector: Optional[DueWorkSelector] = None,
                 coordinator: Optional[IdempotencyCoordinator] = None,
                 classifier: Optional[RegressionClassifier] = None,
                 alert_engine: Optional[AlertEngine] = None,
                 backoff: Optional[BackoffManager] = None,
                 time_budget_seconds: float = DEFAULT_TIME_BUDGET_SECONDS,
                 clock: Optional[Callable[[], datetime]] = None,
                 monotonic: Callable[[], float] = time.monotonic):
        """
        Initialize the runner.

        Args:
            database: Store (see DatabaseFacade)
            orchestrator: Scan orchestrator
            selector: Due-work selector (default batch size when omitted)
            coordinator: Idempotency coordinator
            classifier: Regression classifier
            alert_engine: Alert engine
            backoff: Failure/backoff manager
            time_budget_seconds: Wall-clock budget of one batch
            clock: Callable returning the current UTC datetime
            monotonic: Monotonic time source for the budget
        """
        self.database = database
        self.orchestrator = orchestrator
        self.selector = selector or DueWorkSelector(database)
        self.coordinator = coordinator or IdempotencyCoordinator(database)
        self.classifier = classifier or RegressionClassifier()
        self.alert_engine = alert_engine or AlertEngine(database)
        self.backoff = backoff or BackoffManager(database)
        self.time_budget_seconds = time_budget_seconds
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.monotonic = monotonic

    def run_batch(self, now: Optional[datetime] = None) -> BatchSummary:
        """
        Process one bounded batch of due schedules sequentially.

        Args:
            now: Selection instant (defaults to the clock)

        Returns:
            BatchSummary of every item that was started
        """
        started = self.monotonic()
        now = now or self.clock()
        schedules = self.selector.select(now)
        summary = BatchSummary()

        for index, schedule in enumerate(schedules):
            elapsed = self.monotonic() - started
            if elapsed >= self.time_budget_seconds:
                summary.deferred = len(schedules) - index
                logger.warning(
                    f"Time budget of {self.time_budget_seconds}s spent after {elapsed:.1f}s; "
                    f"{summary.deferred} schedule(s) left for the next run"
                )
                break

            summary.results.append(self.process_schedule(schedule, self.clock()))

        logger.info(
            f"Batch finished: {summary.processed} processed, "
            f"{summary.count(RunStatus.SUCCESS)} success, "
            f"{summary.count(RunStatus.FAILED)} failed, "
            f"{summary.count(RunStatus.SKIPPED)} skipped"
        )
        return summary

    def process_schedule(self, schedule: MonitoredSchedule, now: datetime) -> ItemOutcome:
        """
        Claim, scan, classify and alert for one schedule.

        Never raises: every failure is folded into the returned outcome so
        the rest of the batch proceeds. A schedule whose stored timezone or
        time of day cannot be evaluated is disabled, since it would otherwise
        stay due forever.
        """
        outcome = ItemOutcome(schedule_id=schedule.id, target_url=schedule.target_url,
                              status=RunStatus.FAILED)

        try:
            claim = self.coordinator.claim(schedule, now)
        except Exception as e:
            logger.error(f"Could not claim schedule {schedule.id}: {e}")
            return self._abandon(schedule, None, e, now, outcome)

        outcome.window_key = claim.window_key

        if not claim.acquired:
            outcome.status = RunStatus.SKIPPED
            try:
                self.backoff.advance(schedule, now)
            except Exception as e:
                logger.error(f"Could not advance skipped schedule {schedule.id}: {e}")
                if isinstance(e, ValidationError):
                    return self._abandon(schedule, None, e, now, outcome)
            return outcome

        try:
            execution = self.orchestrator.execute(schedule, claim.run)
        except Exception as e:
            logger.error(f"Scan failed for schedule {schedule.id}: {e}")
            return self._handle_failure(schedule, claim.run, e, self.clock(), outcome)

        finished = self.clock()
        outcome.score = execution.result.score
        outcome.alerts_created = self._raise_alerts(schedule, execution, finished)

        try:
            self.backoff.record_success(schedule, claim.run, execution.result.score, finished)
        except Exception as e:
            logger.error(f"Could not record success for schedule {schedule.id}: {e}")
            return self._abandon(schedule, claim.run, e, finished, outcome)

        outcome.status = RunStatus.SUCCESS
        return outcome

    def trigger_manual(self, schedule_id: str, now: Optional[datetime] = None) -> ManualScanOutcome:
        """
        Scan one schedule immediately, outside its cadence.

        Bypasses selection and claiming: no run record is created and
        next_run_at is left untouched.

        Raises:
            ScheduleNotFoundError: Unknown schedule id
            ScheduleInactiveError: Schedule is disabled
            ScanEngineError: The scan failed
        """
        schedule = self.database.get_schedule(schedule_id)
        if schedule is None:
            raise ScheduleNotFoundError(schedule_id)
        if not schedule.enabled:
            raise ScheduleInactiveError(schedule_id)

        now = now or self.clock()
        logger.info(f"Manual scan requested for schedule {schedule_id}")

        execution = self.orchestrator.execute(schedule)
        candidates = self.classifier.classify(execution.result, execution.previous, schedule)
        alerts = self.alert_engine.process(candidates, now)
        return ManualScanOutcome(execution=execution, alerts=alerts)

    def _raise_alerts(self, schedule: MonitoredSchedule, execution: ScanExecution, now: datetime) -> int:
        """Classify and persist alerts; the run stays successful if this fails."""
        candidates = self.classifier.classify(execution.result, execution.previous, schedule)
        if not candidates:
            return 0
        try:
            return len(self.alert_engine.process(candidates, now).created)
        except DatabaseError as e:
            logger.error(f"Could not store alerts for schedule {schedule.id}: {e}")
            return 0

    def _handle_failure(self, schedule, run, error, now, outcome: ItemOutcome) -> ItemOutcome:
        try:
            failure = self.backoff.record_failure(schedule, run, error, now)
        except Exception as e:
            logger.error(f"Could not record failure for schedule {schedule.id}: {e}")
            if isinstance(e, ValidationError):
                return self._abandon(schedule, None, e, now, outcome)
            outcome.error = describe_error(error)
            return outcome

        outcome.error = failure.error_message
        outcome.disabled = failure.disabled

        try:
            candidate = self.classifier.scan_failed_candidate(schedule, failure.error_message)
            outcome.alerts_created = len(self.alert_engine.process([candidate], now).created)
        except DatabaseError as e:
            logger.error(f"Could not store scan failure alert for schedule {schedule.id}: {e}")

        return outcome

    def _abandon(self, schedule, run, error, now, outcome: ItemOutcome) -> ItemOutcome:
        """Fail the item without the normal bookkeeping, which itself failed."""
        outcome.status = RunStatus.FAILED
        outcome.error = describe_error(error)

        if run is not None:
            try:
                self.database.complete_run(run.id, RunStatus.FAILED, now, error_message=outcome.error)
            except Exception as e:
                logger.error(f"Could not mark run {run.id} failed: {e}")

        if isinstance(error, ValidationError):
            try:
                self.database.disable_schedule(schedule.id)
                outcome.disabled = True
                logger.warning(f"Schedule {schedule.id} disabled: {outcome.error}")
            except Exception as e:
                logger.error(f"Could not disable invalid schedule {schedule.id}: {e}")

        return outcome
