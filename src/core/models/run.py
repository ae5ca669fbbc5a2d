#!/usr/bin/env python3
"""
Schedule run data model.

A run record marks one claimed execution window for a schedule.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional
from dataclasses import dataclass

from ..exceptions import ValidationError


class RunStatus(Enum):
    """Lifecycle states of a schedule run."""
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"

    @classmethod
    def parse(cls, value: Any) -> 'RunStatus':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValidationError('status', value, 'one of running, success, failed, skipped')

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.RUNNING


@dataclass
class RunRecord:
    """Represents a single claimed execution window."""
    id: str
    schedule_id: str
    window_key: str
    status: RunStatus
    started_at: datetime
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None
    score: Optional[int] = None
    notification_id: Optional[str] = None
    notification_sent_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'schedule_id': self.schedule_id,
            'window_key': self.window_key,
            'status': self.status.value,
            'started_at': self.started_at.isoformat() if self.started_at else None,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'error_message': self.error_message,
            'score': self.score,
            'notification_id': self.notification_id,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'RunRecord':
        return cls(
            id=str(row['id']),
            schedule_id=str(row['schedule_id']),
            window_key=row['window_key'],
            status=RunStatus.parse(row['status']),
            started_at=row['started_at'],
            completed_at=row.get('completed_at'),
            error_message=row.get('error_message'),
            score=row.get('score'),
            notification_id=row.get('notification_id'),
            notification_sent_at=row.get('notification_sent_at'),
        )
