#!/usr/bin/env python3
"""
Run Database Service

Stores claimed execution windows. The (schedule_id, window_key) unique
constraint is what makes concurrent invocations safe.
"""

import logging
from datetime import datetime
from typing import List, Optional

import psycopg

from ..exceptions import DatabaseOperationError
from ..models.run import RunRecord, RunStatus

logger = logging.getLogger(__name__)

RUN_COLUMNS = """
    id, schedule_id, window_key, status, started_at, completed_at,
    error_message, score, notification_id, notification_sent_at
"""


class RunService:
    """Service for schedule run database operations."""

    def __init__(self, connection_manager):
        self.connection_manager = connection_manager

    def claim_run(self, schedule_id: str, window_key: str, started_at: datetime) -> Optional[RunRecord]:
        """
        Insert a running record for a window unless one already exists.

        Args:
            schedule_id: Schedule being executed
            window_key: Deterministic key of the scheduled slot
            started_at: Claim instant

        Returns:
            The new RunRecord, or None if another invocation holds the window
        """
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"""
                    INSERT INTO schedule_runs (schedule_id, window_key, status, started_at)
                    VALUES (%s, %s, %s, %s)
                    ON CONFLICT (schedule_id, window_key) DO NOTHING
                    RETURNING {RUN_COLUMNS}
                """, (schedule_id, window_key, RunStatus.RUNNING.value, started_at))

                row = cursor.fetchone()
                return RunRecord.from_row(row) if row else None

        except psycopg.Error as e:
            logger.error(f"Failed to claim window {window_key} for schedule {schedule_id}: {e}")
            raise DatabaseOperationError('insert', 'schedule_runs', e)

    def complete_run(self, run_id: str, status: RunStatus, completed_at: datetime,
                     error_message: Optional[str] = None, score: Optional[int] = None) -> None:
        """Move a run to a terminal status."""
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute("""
                    UPDATE schedule_runs
                    SET status = %s, completed_at = %s, error_message = %s, score = %s
                    WHERE id::text = %s
                """, (status.value, completed_at, error_message, score, run_id))

        except psycopg.Error as e:
            logger.error(f"Failed to complete run {run_id}: {e}")
            raise DatabaseOperationError('update', 'schedule_runs', e)

    def attach_notification(self, run_id: str, notification_id: str, sent_at: datetime) -> None:
        """Record which notification was sent for a run."""
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute("""
                    UPDATE schedule_runs
                    SET notification_id = %s, notification_sent_at = %s
                    WHERE id::text = %s
                """, (notification_id, sent_at, run_id))

        except psycopg.Error as e:
            logger.error(f"Failed to attach notification to run {run_id}: {e}")
            raise DatabaseOperationError('update', 'schedule_runs', e)

    def list_runs(self, schedule_id: str, limit: int = 20) -> List[RunRecord]:
        """Most recent runs of a schedule, newest first."""
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"""
                    SELECT {RUN_COLUMNS} FROM schedule_runs
                    WHERE schedule_id::text = %s
                    ORDER BY started_at DESC
                    LIMIT %s
                """, (schedule_id, limit))

                return [RunRecord.from_row(row) for row in cursor.fetchall()]

        except psycopg.Error as e:
            logger.error(f"Failed to list runs for schedule {schedule_id}: {e}")
            raise DatabaseOperationError('select', 'schedule_runs', e)
