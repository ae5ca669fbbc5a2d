#!/usr/bin/env python3
"""
Schedule Calculator - pure time math for monitored schedules.

Computes the next run instant from a frequency/day/time/timezone tuple and
derives the idempotency window key for a claimed run. No I/O.
"""

import logging
from datetime import datetime, time, timedelta, timezone
from typing import Optional, Union, NamedTuple
import pytz

from ..exceptions import ValidationError
from ..models.schedule import Frequency, MonitoredSchedule, parse_time_of_day, get_timezone

logger = logging.getLogger(__name__)

DAYS_PER_WEEK = 7
WINDOW_KEY_FORMAT = '%Y-%m-%dT%H:%M%z'


class NextRun(NamedTuple):
    """Result of a next-run computation."""
    run_at: datetime
    should_disable: bool = False


def _ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _sunday_based_weekday(value: datetime) -> int:
    # datetime.weekday() is Monday-based
    return (value.weekday() + 1) % DAYS_PER_WEEK


def _localize(tz: pytz.BaseTzInfo, naive: datetime) -> datetime:
    # Non-existent DST wall times resolve to the standard-time reading
    return tz.normalize(tz.localize(naive, is_dst=False))


def calculate_next_run(
    frequency: Union[Frequency, str],
    day_of_week: int,
    time_of_day: str,
    timezone_name: str,
    now: datetime,
    starts_at: Optional[datetime] = None,
    ends_at: Optional[datetime] = None,
) -> NextRun:
    """
    Calculate the next valid run instant strictly after now.

    Args:
        frequency: WEEKLY or BIWEEKLY
        day_of_week: Target weekday, 0 = Sunday ... 6 = Saturday
        time_of_day: Wall-clock time in the schedule timezone ("HH:MM")
        timezone_name: IANA timezone of the schedule
        now: Reference instant
        starts_at: Optional start bound; runs never happen before it
        ends_at: Optional end bound

    Returns:
        NextRun with the UTC run instant; should_disable is set when the
        instant is not before the end bound
    """
    frequency = Frequency.parse(frequency)
    if not isinstance(day_of_week, int) or not 0 <= day_of_week <= 6:
        raise ValidationError('day_of_week', day_of_week, 'integer 0-6')

    run_time = parse_time_of_day(time_of_day)
    tz = get_timezone(timezone_name)
    now = _ensure_aware(now)

    reference = now
    if starts_at is not None:
        starts_at = _ensure_aware(starts_at)
        if starts_at > now:
            reference = starts_at - timedelta(microseconds=1)

    local_reference = reference.astimezone(tz)
    day_offset = (day_of_week - _sunday_based_weekday(local_reference)) % DAYS_PER_WEEK
    target_date = local_reference.date() + timedelta(days=day_offset)
    candidate = _localize(tz, datetime.combine(target_date, run_time))

    if day_offset == 0 and candidate <= reference:
        day_offset = DAYS_PER_WEEK

    if frequency is Frequency.BIWEEKLY:
        day_offset += DAYS_PER_WEEK

    if day_offset:
        target_date = local_reference.date() + timedelta(days=day_offset)
        candidate = _localize(tz, datetime.combine(target_date, run_time))

    run_at = candidate.astimezone(timezone.utc)

    should_disable = False
    if ends_at is not None and run_at >= _ensure_aware(ends_at):
        logger.debug(f"Next run {run_at.isoformat()} is past end bound {ends_at}")
        should_disable = True

    return NextRun(run_at=run_at, should_disable=should_disable)


def next_run_for(schedule: MonitoredSchedule, now: datetime) -> NextRun:
    """Calculate the next run for a stored schedule."""
    return calculate_next_run(
        frequency=schedule.frequency,
        day_of_week=schedule.day_of_week,
        time_of_day=schedule.time_of_day,
        timezone_name=schedule.timezone,
        now=now,
        starts_at=schedule.starts_at,
        ends_at=schedule.ends_at,
    )


def make_window_key(run_at: datetime, timezone_name: str) -> str:
    """
    Build the idempotency key of one scheduled slot.

    The key is the slot's wall-clock minute in the schedule timezone plus its
    UTC offset, e.g. "2025-02-20T09:00+0100". The offset keeps the repeated
    hour of a DST fall-back distinct.
    """
    tz = get_timezone(timezone_name)
    local = _ensure_aware(run_at).astimezone(tz)
    return local.replace(second=0, microsecond=0).strftime(WINDOW_KEY_FORMAT)


def format_time_since(since_time: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Format time elapsed since an instant, for reports and CLI output."""
    if since_time is None:
        return "never"

    now = _ensure_aware(now or datetime.now(timezone.utc))
    diff = now - _ensure_aware(since_time)

    if diff.days > 0:
        days = diff.days
        unit = "day" if days == 1 else "days"
        return f"{days} {unit}"

    if diff.seconds >= 3600:
        hours = diff.seconds // 3600
        unit = "hour" if hours == 1 else "hours"
        return f"{hours} {unit}"

    if diff.seconds >= 60:
        minutes = diff.seconds // 60
        unit = "minute" if minutes == 1 else "minutes"
        return f"{minutes} {unit}"

    return "less than a minute"
