#!/usr/bin/env python3
"""
Alert data models.

AlertCandidate is produced by the regression classifier; Alert is what the
alert engine persists after deduplication.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

from ..exceptions import ValidationError


class AlertType(Enum):
    """Kinds of monitoring alerts."""
    SCORE_DROP = "SCORE_DROP"
    NEW_VIOLATIONS = "NEW_VIOLATIONS"
    COMPLIANCE_BREACH = "COMPLIANCE_BREACH"
    PERFORMANCE_IMPACT = "PERFORMANCE_IMPACT"
    SCAN_FAILED = "SCAN_FAILED"

    @classmethod
    def parse(cls, value: Any) -> 'AlertType':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValidationError('alert_type', value, f"one of {', '.join(t.value for t in cls)}")


class AlertSeverity(Enum):
    """Four-tier alert severity scale."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @classmethod
    def parse(cls, value: Any) -> 'AlertSeverity':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValidationError('severity', value, 'one of low, medium, high, critical')

    @property
    def rank(self) -> int:
        return list(AlertSeverity).index(self) + 1


@dataclass
class AlertCandidate:
    """A classified regression event that has not been persisted yet."""
    alert_type: AlertType
    severity: AlertSeverity
    entity_id: str
    title: str
    message: str
    entity_type: str = "schedule"
    current_score: Optional[int] = None
    previous_score: Optional[int] = None
    threshold: Optional[int] = None
    scan_result_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Alert:
    """A persisted alert."""
    id: str
    entity_type: str
    entity_id: str
    alert_type: AlertType
    severity: AlertSeverity
    title: str
    message: str
    created_at: datetime
    current_score: Optional[int] = None
    previous_score: Optional[int] = None
    threshold: Optional[int] = None
    scan_result_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    resolved: bool = False
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'type': self.alert_type.value,
            'severity': self.severity.value,
            'title': self.title,
            'message': self.message,
            'current_score': self.current_score,
            'previous_score': self.previous_score,
            'threshold': self.threshold,
            'scan_result_id': self.scan_result_id,
            'details': dict(self.details),
            'resolved': self.resolved,
            'resolved_at': self.resolved_at.isoformat() if self.resolved_at else None,
            'resolved_by': self.resolved_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'Alert':
        return cls(
            id=str(row['id']),
            entity_type=row.get('entity_type') or 'schedule',
            entity_id=str(row['entity_id']),
            alert_type=AlertType.parse(row['alert_type']),
            severity=AlertSeverity.parse(row['severity']),
            title=row.get('title') or '',
            message=row.get('message') or '',
            created_at=row['created_at'],
            current_score=row.get('current_score'),
            previous_score=row.get('previous_score'),
            threshold=row.get('threshold'),
            scan_result_id=str(row['scan_result_id']) if row.get('scan_result_id') else None,
            details=dict(row.get('details') or {}),
            resolved=bool(row.get('resolved')),
            resolved_at=row.get('resolved_at'),
            resolved_by=row.get('resolved_by'),
        )

    @classmethod
    def from_candidate(cls, candidate: AlertCandidate, alert_id: str, created_at: datetime) -> 'Alert':
        return cls(
            id=alert_id,
            entity_type=candidate.entity_type,
            entity_id=candidate.entity_id,
            alert_type=candidate.alert_type,
            severity=candidate.severity,
            title=candidate.title,
            message=candidate.message,
            created_at=created_at,
            current_score=candidate.current_score,
            previous_score=candidate.previous_score,
            threshold=candidate.threshold,
            scan_result_id=candidate.scan_result_id,
            details=dict(candidate.details),
        )
