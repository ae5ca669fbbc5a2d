#!/usr/bin/env python3
"""
Regression & Risk Classifier

Compares a new scan result with the one before it and turns significant
changes into alert candidates. Pure: nothing is persisted here.
"""

import logging
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from ..models.alert import AlertCandidate, AlertSeverity, AlertType
from ..models.scan import ScanResult
from ..models.schedule import MonitoredSchedule

logger = logging.getLogger(__name__)

# (minimum value, severity), checked top-down
SCORE_DROP_TIERS: List[Tuple[int, AlertSeverity]] = [
    (30, AlertSeverity.CRITICAL),
    (20, AlertSeverity.HIGH),
    (15, AlertSeverity.MEDIUM),
    (10, AlertSeverity.LOW),
]

NEW_VIOLATION_TIERS: List[Tuple[int, AlertSeverity]] = [
    (50, AlertSeverity.CRITICAL),
    (20, AlertSeverity.HIGH),
    (10, AlertSeverity.MEDIUM),
    (5, AlertSeverity.LOW),
]

# (upper bound exclusive, severity) on absolute AA compliance
COMPLIANCE_TIERS: List[Tuple[int, AlertSeverity]] = [
    (40, AlertSeverity.CRITICAL),
    (55, AlertSeverity.HIGH),
    (70, AlertSeverity.MEDIUM),
]

PERFORMANCE_DROP_LIMIT = 20


def severity_at_least(value: int, tiers: List[Tuple[int, AlertSeverity]]) -> Optional[AlertSeverity]:
    for minimum, severity in tiers:
        if value >= minimum:
            return severity
    return None


def severity_below(value: int, tiers: List[Tuple[int, AlertSeverity]]) -> Optional[AlertSeverity]:
    for bound, severity in tiers:
        if value < bound:
            return severity
    return None


def score_drop_causes(drop: int) -> List[str]:
    if drop >= 25:
        return ['Major website update or redesign', 'New content management system']
    if drop >= 15:
        return ['Content updates affecting accessibility', 'Changes to navigation or forms']
    return ['Minor content or styling changes', 'Third-party widget updates']


class RegressionClassifier:
    """Classifies score, violation, compliance and performance regressions."""

    def classify(self, current: ScanResult, previous: Optional[ScanResult],
                 schedule: MonitoredSchedule) -> List[AlertCandidate]:
        """
        Produce alert candidates for one new scan result.

        Args:
            current: Newly stored result
            previous: Preceding result of the same schedule, if any
            schedule: Owning schedule (entity and threshold)

        Returns:
            Zero or more candidates; one scan can trigger several types
        """
        candidates = []
        domain = urlparse(schedule.target_url).hostname or schedule.target_url

        if previous is not None:
            candidate = self._score_drop(current, previous, schedule, domain)
            if candidate:
                candidates.append(candidate)

            candidate = self._new_violations(current, previous, schedule, domain)
            if candidate:
                candidates.append(candidate)

            candidate = self._performance_impact(current, previous, schedule, domain)
            if candidate:
                candidates.append(candidate)

        candidate = self._compliance_breach(current, schedule, domain)
        if candidate:
            candidates.append(candidate)

        if candidates:
            summary = ", ".join(f"{c.alert_type.value}/{c.severity.value}" for c in candidates)
            logger.info(f"Schedule {schedule.id} regressions: {summary}")

        return candidates

    def _score_drop(self, current, previous, schedule, domain) -> Optional[AlertCandidate]:
        drop = previous.score - current.score
        severity = severity_at_least(drop, SCORE_DROP_TIERS)
        if severity is None:
            return None

        return AlertCandidate(
            alert_type=AlertType.SCORE_DROP,
            severity=severity,
            entity_id=schedule.id,
            title=f"Accessibility score dropped by {drop} points on {domain}",
            message=f"Score fell from {previous.score} to {current.score}.",
            current_score=current.score,
            previous_score=previous.score,
            threshold=schedule.score_threshold,
            scan_result_id=current.id,
            details={
                'score_change': -drop,
                'previous_result_id': previous.id,
                'possible_causes': score_drop_causes(drop),
            },
        )

    def _new_violations(self, current, previous, schedule, domain) -> Optional[AlertCandidate]:
        new_violations = current.issues_count - previous.issues_count
        if new_violations <= 0:
            return None

        severity = severity_at_least(new_violations, NEW_VIOLATION_TIERS)
        if severity is None:
            return None

        return AlertCandidate(
            alert_type=AlertType.NEW_VIOLATIONS,
            severity=severity,
            entity_id=schedule.id,
            title=f"{new_violations} new accessibility violations on {domain}",
            message=f"Issue count rose from {previous.issues_count} to {current.issues_count}.",
            current_score=current.score,
            previous_score=previous.score,
            threshold=schedule.score_threshold,
            scan_result_id=current.id,
            details={
                'new_violations': new_violations,
                'previous_result_id': previous.id,
                'possible_causes': [
                    'New content added without accessibility review',
                    'Updated components with accessibility issues',
                    'Third-party integrations with violations',
                ],
            },
        )

    def _compliance_breach(self, current, schedule, domain) -> Optional[AlertCandidate]:
        if current.wcag_aa_compliance is None:
            return None

        severity = severity_below(current.wcag_aa_compliance, COMPLIANCE_TIERS)
        if severity is None:
            return None

        return AlertCandidate(
            alert_type=AlertType.COMPLIANCE_BREACH,
            severity=severity,
            entity_id=schedule.id,
            title=f"WCAG AA compliance at {current.wcag_aa_compliance}% on {domain}",
            message=f"WCAG AA compliance dropped to {current.wcag_aa_compliance}%.",
            current_score=current.score,
            threshold=schedule.score_threshold,
            scan_result_id=current.id,
            details={
                'wcag_aa_compliance': current.wcag_aa_compliance,
                'possible_causes': [
                    'Critical accessibility barriers introduced',
                    'Form accessibility issues',
                    'Navigation or heading structure problems',
                ],
            },
        )

    def _performance_impact(self, current, previous, schedule, domain) -> Optional[AlertCandidate]:
        if current.performance_score is None or previous.performance_score is None:
            return None

        drop = previous.performance_score - current.performance_score
        if drop <= PERFORMANCE_DROP_LIMIT:
            return None

        return AlertCandidate(
            alert_type=AlertType.PERFORMANCE_IMPACT,
            severity=AlertSeverity.MEDIUM,
            entity_id=schedule.id,
            title=f"Performance dropped by {drop} points on {domain}",
            message="Performance degradation may impact accessibility users.",
            current_score=current.score,
            previous_score=previous.score,
            threshold=schedule.score_threshold,
            scan_result_id=current.id,
            details={
                'performance_score': current.performance_score,
                'previous_performance_score': previous.performance_score,
                'possible_causes': [
                    'Slow page load affecting screen readers',
                    'Heavy JavaScript impacting keyboard navigation',
                    'Large images without optimization',
                ],
            },
        )

    def scan_failed_candidate(self, schedule: MonitoredSchedule, error: str) -> AlertCandidate:
        """Candidate raised when a scheduled scan could not complete."""
        return AlertCandidate(
            alert_type=AlertType.SCAN_FAILED,
            severity=AlertSeverity.MEDIUM,
            entity_id=schedule.id,
            title="Scheduled scan failed",
            message=f"Automated scan failed: {error}",
            current_score=0,
            threshold=schedule.score_threshold,
            details={'target_url': schedule.target_url},
        )
