#!/usr/bin/env python3
"""
Alert Engine - deduplicates and persists alert candidates.

An unresolved alert of the same (type, entity) created inside the dedup
window suppresses new candidates. Alerts are never deleted or resolved
automatically; resolve() is the only way to close one.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, List, Optional

from ..exceptions import AlertNotFoundError
from ..models.alert import Alert, AlertCandidate, AlertSeverity

logger = logging.getLogger(__name__)

DEFAULT_DEDUP_HOURS = 24
SUMMARY_LATEST_COUNT = 5


@dataclass
class AlertOutcome:
    """Result of processing a batch of candidates."""
    created: List[Alert] = field(default_factory=list)
    suppressed: List[AlertCandidate] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'created': len(self.created),
            'suppressed': len(self.suppressed),
            'alert_ids': [alert.id for alert in self.created],
        }


class AlertEngine:
    """Persists regression alerts with time-window deduplication."""

    def __init__(self, database, dedup_hours: int = DEFAULT_DEDUP_HOURS):
        """
        Args:
            database: Store (see DatabaseFacade)
            dedup_hours: Window in which an open alert suppresses duplicates
        """
        self.database = database
        self.dedup_window = timedelta(hours=dedup_hours)

    def process(self, candidates: List[AlertCandidate], now: Optional[datetime] = None) -> AlertOutcome:
        """
        Persist every candidate that is not a duplicate.

        Args:
            candidates: Candidates from the regression classifier
            now: Reference instant for the dedup window

        Returns:
            AlertOutcome listing created alerts and suppressed candidates
        """
        now = now or datetime.now(timezone.utc)
        since = now - self.dedup_window
        outcome = AlertOutcome()

        for candidate in candidates:
            existing = self.database.find_recent_unresolved_alert(
                candidate.alert_type, candidate.entity_id, since
            )
            if existing is not None:
                logger.info(
                    f"Suppressed duplicate {candidate.alert_type.value} alert for "
                    f"{candidate.entity_id} (open alert {existing.id})"
                )
                outcome.suppressed.append(candidate)
                continue

            alert = self.database.create_alert(candidate, now)
            logger.info(
                f"Created {alert.severity.value} {alert.alert_type.value} alert {alert.id} "
                f"for {alert.entity_id}"
            )
            outcome.created.append(alert)

        return outcome

    def resolve(self, alert_id: str, resolved_by: Optional[str] = None,
                now: Optional[datetime] = None) -> Alert:
        """
        Resolve an alert explicitly.

        Raises:
            AlertNotFoundError: No alert with this id
        """
        now = now or datetime.now(timezone.utc)
        alert = self.database.resolve_alert(alert_id, resolved_by, now)
        if alert is None:
            raise AlertNotFoundError(alert_id)

        logger.info(f"Alert {alert_id} resolved by {resolved_by or 'unknown'}")
        return alert

    def list_alerts(self, entity_id: Optional[str] = None, unresolved_only: bool = False,
                    limit: int = 100) -> List[Alert]:
        return self.database.list_alerts(entity_id, unresolved_only, limit)

    def summary(self, entity_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Summarize alerts of one entity (or all entities).

        Returns:
            total, unresolved, unresolved count per severity and the five
            latest alerts
        """
        alerts = self.database.list_alerts(entity_id, False, 1000)
        unresolved = [alert for alert in alerts if not alert.resolved]

        by_severity = {severity.value: 0 for severity in reversed(list(AlertSeverity))}
        for alert in unresolved:
            by_severity[alert.severity.value] += 1

        return {
            'entity_id': entity_id,
            'total': len(alerts),
            'unresolved': len(unresolved),
            'by_severity': by_severity,
            'latest': [alert.to_dict() for alert in alerts[:SUMMARY_LATEST_COUNT]],
        }
