#!/usr/bin/env python3
"""
Scan Orchestrator - runs one scan and turns it into a stored ScanResult.

Responsibilities:
- call the scan engine under an explicit deadline
- bucket violations by impact and derive WCAG AA/AAA compliance
- link the new result to the previous one for the same schedule
- send the plain-text report to recipients (best effort)
"""

import logging
import math
import re
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..exceptions import ScanTimeoutError, NotificationError, DatabaseError
from ..models.run import RunRecord
from ..models.scan import EngineScan, ScanResult, Violation, IMPACT_LEVELS
from ..models.schedule import MonitoredSchedule

logger = logging.getLogger(__name__)

# Baseline success-criteria counts per conformance level
WCAG_AA_CRITERIA = 50
WCAG_AAA_CRITERIA = 78

WCAG_TAG_PATTERN = re.compile(r'^wcag\d+(a{1,3})$')

DEFAULT_SCAN_TIMEOUT = 120


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def wcag_level(tag: str) -> Optional[str]:
    """Map an engine tag such as "wcag21aa" to its level ("A", "AA", "AAA")."""
    match = WCAG_TAG_PATTERN.match(tag)
    return match.group(1).upper() if match else None


def count_impacts(violations: List[Violation]) -> Dict[str, int]:
    """Count violations per impact tier; unknown impacts are not counted."""
    counts = {level: 0 for level in IMPACT_LEVELS}
    for violation in violations:
        if violation.impact in counts:
            counts[violation.impact] += 1
    return counts


def compliance_percentage(total_criteria: int, violations_at_level: int) -> int:
    """max(0, round((total - violations) / total * 100))"""
    return max(0, _round_half_up((total_criteria - violations_at_level) / total_criteria * 100))


def compute_compliance(violations: List[Violation]) -> Dict[str, int]:
    """
    Derive AA and AAA compliance from the violation list.

    A violation counts toward AA when it carries an A or AA tag, and toward
    AAA when it carries any WCAG level tag.
    """
    aa_violations = 0
    aaa_violations = 0
    for violation in violations:
        levels = {wcag_level(tag) for tag in violation.tags} - {None}
        if levels & {'A', 'AA'}:
            aa_violations += 1
        if levels:
            aaa_violations += 1

    return {
        'aa': compliance_percentage(WCAG_AA_CRITERIA, aa_violations),
        'aaa': compliance_percentage(WCAG_AAA_CRITERIA, aaa_violations),
    }


@dataclass
class ScanExecution:
    """What one orchestrated scan produced."""
    result: ScanResult
    previous: Optional[ScanResult] = None
    notification_id: Optional[str] = None


class ScanOrchestrator:
    """Executes a scan for a schedule and persists the linked result."""

    def __init__(self, database, scan_engine, notification_sender=None, report_formatter=None,
                 scan_timeout: float = DEFAULT_SCAN_TIMEOUT, clock=None):
        """
        Args:
            database: Store (see DatabaseFacade)
            scan_engine: Object with scan(url, timeout) -> EngineScan
            notification_sender: Optional object with send(recipients, subject, text)
            report_formatter: Optional ReportFormatter used for report emails
            scan_timeout: Deadline for one scan in seconds
            clock: Callable returning the current UTC datetime
        """
        self.database = database
        self.scan_engine = scan_engine
        self.notification_sender = notification_sender
        self.report_formatter = report_formatter
        self.scan_timeout = scan_timeout
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def execute(self, schedule: MonitoredSchedule, run: Optional[RunRecord] = None) -> ScanExecution:
        """
        Scan the schedule's target and store the result.

        Args:
            schedule: Schedule to scan
            run: Claimed run, if this is a scheduled execution

        Returns:
            ScanExecution with the stored result and its predecessor

        Raises:
            ScanEngineError: The engine failed or exceeded the deadline
            DatabaseError: The result could not be stored
        """
        logger.info(f"Running scan for {schedule.target_url} (schedule {schedule.id})")
        engine_scan = self._scan_with_deadline(schedule.target_url)

        previous = self.database.get_latest_scan_result(schedule.id)
        result = self._build_result(schedule, engine_scan, previous)
        stored = self.database.store_scan_result(result)

        logger.info(
            f"Schedule {schedule.id} scored {stored.score}"
            + (f" ({stored.score_change:+d})" if previous else "")
            + f", AA compliance {stored.wcag_aa_compliance}%"
        )

        notification_id = self._send_report(schedule, stored, previous, run)
        return ScanExecution(result=stored, previous=previous, notification_id=notification_id)

    def _scan_with_deadline(self, url: str) -> EngineScan:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='scan')
        try:
            future = executor.submit(self.scan_engine.scan, url, self.scan_timeout)
            try:
                return future.result(timeout=self.scan_timeout)
            except FutureTimeoutError:
                future.cancel()
                logger.warning(f"Scan of {url} exceeded {self.scan_timeout}s deadline")
                raise ScanTimeoutError(url, self.scan_timeout)
        finally:
            # Do not block on a hung engine call
            executor.shutdown(wait=False)

    def _build_result(self, schedule: MonitoredSchedule, engine_scan: EngineScan,
                      previous: Optional[ScanResult]) -> ScanResult:
        score = max(0, min(100, _round_half_up(engine_scan.score)))
        impacts = count_impacts(engine_scan.violations)
        compliance = compute_compliance(engine_scan.violations)

        performance = None
        if engine_scan.performance_score is not None:
            performance = _round_half_up(engine_scan.performance_score)

        return ScanResult(
            schedule_id=schedule.id,
            target_url=schedule.target_url,
            score=score,
            issues_count=len(engine_scan.violations),
            impact_critical=impacts['critical'],
            impact_serious=impacts['serious'],
            impact_moderate=impacts['moderate'],
            impact_minor=impacts['minor'],
            wcag_aa_compliance=compliance['aa'],
            wcag_aaa_compliance=compliance['aaa'],
            performance_score=performance,
            previous_result_id=previous.id if previous else None,
            score_change=score - previous.score if previous else 0,
            below_threshold=score < schedule.score_threshold,
            created_at=self.clock(),
        )

    def _send_report(self, schedule: MonitoredSchedule, result: ScanResult,
                     previous: Optional[ScanResult], run: Optional[RunRecord]) -> Optional[str]:
        """Email the report. Delivery failures are logged, not raised."""
        if not schedule.recipients or self.notification_sender is None or self.report_formatter is None:
            return None

        now = self.clock()
        subject = self.report_formatter.build_subject(schedule.target_url, now)
        text = self.report_formatter.build_report_text(
            result, previous.score if previous else None, now, schedule.id
        )

        try:
            notification_id = self.notification_sender.send(schedule.recipients, subject, text)
        except NotificationError as e:
            logger.error(f"Report email failed for schedule {schedule.id}: {e}")
            return None

        if notification_id and run is not None:
            try:
                self.database.attach_notification(run.id, notification_id, now)
            except DatabaseError as e:
                logger.warning(f"Could not record notification {notification_id} on run {run.id}: {e}")

        return notification_id
