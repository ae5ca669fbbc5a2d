#!/usr/bin/env python3
"""
Scan Result Database Service

Scan results are append-only; every row links to the result before it.
"""

import logging
from datetime import datetime
from typing import List, Optional

import psycopg

from ..exceptions import DatabaseOperationError
from ..models.scan import ScanResult

logger = logging.getLogger(__name__)

SCAN_COLUMNS = """
    id, schedule_id, target_url, score, issues_count, impact_critical,
    impact_serious, impact_moderate, impact_minor, wcag_aa_compliance,
    wcag_aaa_compliance, performance_score, previous_result_id, score_change,
    below_threshold, created_at
"""


class ScanService:
    """Service for scan result database operations."""

    def __init__(self, connection_manager):
        self.connection_manager = connection_manager

    def get_latest_scan_result(self, schedule_id: str) -> Optional[ScanResult]:
        """Most recent result of a schedule, if any."""
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"""
                    SELECT {SCAN_COLUMNS} FROM scan_results
                    WHERE schedule_id::text = %s
                    ORDER BY created_at DESC
                    LIMIT 1
                """, (schedule_id,))

                row = cursor.fetchone()
                return ScanResult.from_row(row) if row else None

        except psycopg.Error as e:
            logger.error(f"Failed to load latest scan result for {schedule_id}: {e}")
            raise DatabaseOperationError('select', 'scan_results', e)

    def store_scan_result(self, result: ScanResult) -> ScanResult:
        """
        Persist a new scan result.

        Returns:
            The stored result carrying its generated id and created_at
        """
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"""
                    INSERT INTO scan_results (
                        schedule_id, target_url, score, issues_count,
                        impact_critical, impact_serious, impact_moderate, impact_minor,
                        wcag_aa_compliance, wcag_aaa_compliance, performance_score,
                        previous_result_id, score_change, below_threshold, created_at
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                            COALESCE(%s, NOW()))
                    RETURNING {SCAN_COLUMNS}
                """, (
                    result.schedule_id,
                    result.target_url,
                    result.score,
                    result.issues_count,
                    result.impact_critical,
                    result.impact_serious,
                    result.impact_moderate,
                    result.impact_minor,
                    result.wcag_aa_compliance,
                    result.wcag_aaa_compliance,
                    result.performance_score,
                    result.previous_result_id,
                    result.score_change,
                    result.below_threshold,
                    result.created_at
                ))

                stored = ScanResult.from_row(cursor.fetchone())
                logger.debug(f"Stored scan result {stored.id} for schedule {stored.schedule_id}")
                return stored

        except psycopg.Error as e:
            logger.error(f"Failed to store scan result for {result.schedule_id}: {e}")
            raise DatabaseOperationError('insert', 'scan_results', e)

    def get_scan_results(self, schedule_id: Optional[str] = None,
                         since: Optional[datetime] = None,
                         limit: int = 500) -> List[ScanResult]:
        """
        Get scan results in chronological order.

        Args:
            schedule_id: Restrict to one schedule
            since: Only results created at or after this instant
            limit: Maximum number of (most recent) results

        Returns:
            Results ordered by created_at ascending
        """
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"""
                    SELECT * FROM (
                        SELECT {SCAN_COLUMNS} FROM scan_results
                        WHERE (%s::text IS NULL OR schedule_id::text = %s)
                        AND (%s::timestamptz IS NULL OR created_at >= %s)
                        ORDER BY created_at DESC
                        LIMIT %s
                    ) recent
                    ORDER BY created_at ASC
                """, (schedule_id, schedule_id, since, since, limit))

                return [ScanResult.from_row(row) for row in cursor.fetchall()]

        except psycopg.Error as e:
            logger.error(f"Failed to get scan results: {e}")
            raise DatabaseOperationError('select', 'scan_results', e)
