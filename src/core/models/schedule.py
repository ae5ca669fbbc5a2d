#!/usr/bin/env python3
"""
Monitored schedule data model.

A schedule describes when a target URL gets scanned and who receives the
resulting reports.
"""

from datetime import datetime, time
from enum import Enum
import logging
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field

import pytz
from dateutil import parser as date_parser

from ..exceptions import ValidationError

logger = logging.getLogger(__name__)

MAX_RECIPIENTS = 5


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Accept a datetime, an ISO string (JSON fixtures, API payloads) or None."""
    if value is None or isinstance(value, datetime):
        return value
    return date_parser.isoparse(str(value))


def parse_time_of_day(time_of_day: str) -> time:
    """Parse an "HH:MM" string into a time."""
    try:
        hours_str, minutes_str = str(time_of_day).strip().split(':')
        hours, minutes = int(hours_str), int(minutes_str)
    except ValueError:
        raise ValidationError('time_of_day', time_of_day, 'HH:MM')

    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValidationError('time_of_day', time_of_day, 'HH:MM between 00:00 and 23:59')
    return time(hours, minutes)


def get_timezone(name: str) -> pytz.BaseTzInfo:
    """Resolve an IANA timezone name."""
    try:
        return pytz.timezone(name or 'UTC')
    except pytz.UnknownTimeZoneError:
        raise ValidationError('timezone', name, 'IANA timezone name')


class Frequency(Enum):
    """How often a schedule runs."""
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"

    @classmethod
    def parse(cls, value: Any) -> 'Frequency':
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise ValidationError('frequency', value, 'one of WEEKLY, BIWEEKLY')


@dataclass
class MonitoredSchedule:
    """
    A recurring accessibility scan of a single target URL.

    Only the scheduler mutates next_run_at, last_run_at and
    consecutive_failures; everything else belongs to the owning user.
    """
    id: str
    target_url: str
    frequency: Frequency
    day_of_week: int  # 0 = Sunday ... 6 = Saturday
    time_of_day: str  # "HH:MM"
    timezone: str = "UTC"
    score_threshold: int = 70
    recipients: List[str] = field(default_factory=list)
    enabled: bool = True
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    consecutive_failures: int = 0
    owner_id: Optional[str] = None
    label: Optional[str] = None

    def __post_init__(self):
        """Validate configuration fields."""
        self.frequency = Frequency.parse(self.frequency)
        self.target_url = (self.target_url or "").strip()
        if not self.target_url.startswith(('http://', 'https://')):
            raise ValidationError('target_url', self.target_url, 'http(s) URL')
        if not isinstance(self.day_of_week, int) or not 0 <= self.day_of_week <= 6:
            raise ValidationError('day_of_week', self.day_of_week, 'integer 0-6')
        parse_time_of_day(self.time_of_day)
        self.timezone = self.timezone or 'UTC'
        get_timezone(self.timezone)
        if not 0 <= self.score_threshold <= 100:
            raise ValidationError('score_threshold', self.score_threshold, 'integer 0-100')
        self.recipients = [r.strip() for r in (self.recipients or []) if r and r.strip()]
        if len(self.recipients) > MAX_RECIPIENTS:
            raise ValidationError('recipients', self.recipients, f'at most {MAX_RECIPIENTS} addresses')

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'target_url': self.target_url,
            'label': self.label,
            'frequency': self.frequency.value,
            'day_of_week': self.day_of_week,
            'time_of_day': self.time_of_day,
            'timezone': self.timezone,
            'score_threshold': self.score_threshold,
            'recipients': list(self.recipients),
            'enabled': self.enabled,
            'starts_at': self.starts_at.isoformat() if self.starts_at else None,
            'ends_at': self.ends_at.isoformat() if self.ends_at else None,
            'last_run_at': self.last_run_at.isoformat() if self.last_run_at else None,
            'next_run_at': self.next_run_at.isoformat() if self.next_run_at else None,
            'consecutive_failures': self.consecutive_failures,
            'owner_id': self.owner_id,
        }

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> 'MonitoredSchedule':
        """Create a schedule from a database row."""
        return cls(
            id=str(row['id']),
            target_url=row['target_url'],
            frequency=Frequency.parse(row['frequency']),
            day_of_week=int(row['day_of_week']),
            time_of_day=row['time_of_day'],
            timezone=row.get('timezone') or 'UTC',
            score_threshold=int(row.get('score_threshold', 70)),
            recipients=list(row.get('recipients') or []),
            enabled=bool(row.get('enabled', True)),
            starts_at=parse_timestamp(row.get('starts_at')),
            ends_at=parse_timestamp(row.get('ends_at')),
            last_run_at=parse_timestamp(row.get('last_run_at')),
            next_run_at=parse_timestamp(row.get('next_run_at')),
            consecutive_failures=int(row.get('consecutive_failures') or 0),
            owner_id=row.get('owner_id'),
            label=row.get('label'),
        )

    def __repr__(self):
        return f"MonitoredSchedule(id='{self.id}', target_url='{self.target_url}', next_run_at={self.next_run_at})"


def schedules_from_rows(rows: List[Dict[str, Any]]) -> List[MonitoredSchedule]:
    """
    Build schedules from rows, skipping rows that fail validation.

    A stored schedule with an unknown timezone or a malformed time of day
    is logged and left out so it cannot abort the batch that selected it.
    """
    schedules = []
    for row in rows:
        try:
            schedules.append(MonitoredSchedule.from_row(row))
        except ValidationError as e:
            logger.error(f"Skipping invalid schedule {row.get('id')}: {e}")
    return schedules
