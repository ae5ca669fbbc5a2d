#!/usr/bin/env python3
"""
Schedule Database Service

Handles all database operations on monitored schedules.
"""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

import psycopg

from ..exceptions import DatabaseOperationError
from ..models.schedule import MonitoredSchedule, schedules_from_rows

logger = logging.getLogger(__name__)

SCHEDULE_COLUMNS = """
    id, owner_id, label, target_url, frequency, day_of_week, time_of_day,
    timezone, score_threshold, recipients, enabled, starts_at, ends_at,
    last_run_at, next_run_at, consecutive_failures
"""


class ScheduleService:
    """Service for monitored schedule database operations."""

    def __init__(self, connection_manager):
        """
        Initialize schedule service.

        Args:
            connection_manager: Database connection manager instance
        """
        self.connection_manager = connection_manager

    def get_schedule(self, schedule_id: str) -> Optional[MonitoredSchedule]:
        """Load one schedule by id, or None when it does not exist."""
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"""
                    SELECT {SCHEDULE_COLUMNS} FROM monitored_schedules
                    WHERE id::text = %s
                """, (schedule_id,))
                row = cursor.fetchone()
                return MonitoredSchedule.from_row(row) if row else None

        except psycopg.Error as e:
            logger.error(f"Failed to load schedule {schedule_id}: {e}")
            raise DatabaseOperationError('select', 'monitored_schedules', e)

    def list_due_schedules(self, now: datetime, limit: int) -> List[MonitoredSchedule]:
        """
        Get enabled schedules whose next run is due.

        Args:
            now: Reference instant
            limit: Maximum number of schedules

        Returns:
            Schedules ordered by next_run_at ascending
        """
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"""
                    SELECT {SCHEDULE_COLUMNS} FROM monitored_schedules
                    WHERE enabled
                    AND next_run_at <= %s
                    AND (ends_at IS NULL OR ends_at > %s)
                    ORDER BY next_run_at ASC
                    LIMIT %s
                """, (now, now, limit))

                return schedules_from_rows(cursor.fetchall())

        except psycopg.Error as e:
            logger.error(f"Failed to list due schedules: {e}")
            raise DatabaseOperationError('select', 'monitored_schedules', e)

    def list_schedules(self, enabled_only: bool = False) -> List[MonitoredSchedule]:
        """List all schedules ordered by next run."""
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"""
                    SELECT {SCHEDULE_COLUMNS} FROM monitored_schedules
                    WHERE (%s = FALSE OR enabled)
                    ORDER BY next_run_at ASC NULLS LAST
                """, (enabled_only,))

                return schedules_from_rows(cursor.fetchall())

        except psycopg.Error as e:
            logger.error(f"Failed to list schedules: {e}")
            raise DatabaseOperationError('select', 'monitored_schedules', e)

    def advance_schedule(self, schedule_id: str, last_run_at: datetime,
                         next_run_at: datetime, disable: bool = False,
                         reset_failures: bool = False) -> None:
        """
        Move a schedule to its next slot.

        Args:
            schedule_id: Schedule to update
            last_run_at: Instant of the run that just finished
            next_run_at: Newly computed next run
            disable: Disable the schedule (end bound reached)
            reset_failures: Reset consecutive_failures to 0
        """
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute("""
                    UPDATE monitored_schedules
                    SET last_run_at = %s,
                        next_run_at = %s,
                        enabled = CASE WHEN %s THEN FALSE ELSE enabled END,
                        consecutive_failures = CASE WHEN %s THEN 0 ELSE consecutive_failures END,
                        updated_at = NOW()
                    WHERE id::text = %s
                """, (last_run_at, next_run_at, disable, reset_failures, schedule_id))

            logger.debug(f"Advanced schedule {schedule_id} to {next_run_at.isoformat()}")

        except psycopg.Error as e:
            logger.error(f"Failed to advance schedule {schedule_id}: {e}")
            raise DatabaseOperationError('update', 'monitored_schedules', e)

    def disable_schedule(self, schedule_id: str) -> None:
        """Disable a schedule without moving its next run."""
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute("""
                    UPDATE monitored_schedules
                    SET enabled = FALSE, updated_at = NOW()
                    WHERE id::text = %s
                """, (schedule_id,))

            logger.info(f"Disabled schedule {schedule_id}")

        except psycopg.Error as e:
            logger.error(f"Failed to disable schedule {schedule_id}: {e}")
            raise DatabaseOperationError('update', 'monitored_schedules', e)

    def record_failure(self, schedule_id: str, max_failures: int, last_run_at: datetime,
                       next_run_at: datetime, disable: bool = False) -> Tuple[int, bool]:
        """
        Atomically increment the failure counter and advance the schedule.

        The schedule is disabled in the same statement when the new counter
        reaches max_failures.

        Returns:
            (consecutive_failures, enabled) after the update
        """
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute("""
                    UPDATE monitored_schedules
                    SET consecutive_failures = consecutive_failures + 1,
                        enabled = CASE
                            WHEN consecutive_failures + 1 >= %s OR %s THEN FALSE
                            ELSE enabled
                        END,
                        last_run_at = %s,
                        next_run_at = %s,
                        updated_at = NOW()
                    WHERE id::text = %s
                    RETURNING consecutive_failures, enabled
                """, (max_failures, disable, last_run_at, next_run_at, schedule_id))

                row = cursor.fetchone()
                if row is None:
                    raise DatabaseOperationError(
                        'update', 'monitored_schedules',
                        LookupError(f"schedule {schedule_id} not found")
                    )
                return row['consecutive_failures'], row['enabled']

        except psycopg.Error as e:
            logger.error(f"Failed to record failure for schedule {schedule_id}: {e}")
            raise DatabaseOperationError('update', 'monitored_schedules', e)
