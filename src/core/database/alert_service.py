#!/usr/bin/env python3
"""
Alert Database Service

Handles persistence, lookup and manual resolution of monitoring alerts.
"""

import logging
from datetime import datetime
from typing import List, Optional

import psycopg
from psycopg.types.json import Jsonb

from ..exceptions import DatabaseOperationError
from ..models.alert import Alert, AlertCandidate, AlertType

logger = logging.getLogger(__name__)

ALERT_COLUMNS = """
    id, entity_type, entity_id, alert_type, severity, title, message,
    current_score, previous_score, threshold, scan_result_id, details,
    resolved, resolved_at, resolved_by, created_at
"""


class AlertService:
    """Service for alert database operations."""

    def __init__(self, connection_manager):
        self.connection_manager = connection_manager

    def find_recent_unresolved_alert(self, alert_type: AlertType, entity_id: str,
                                     since: datetime) -> Optional[Alert]:
        """
        Find an unresolved alert of the same type and entity created at or
        after since.
        """
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"""
                    SELECT {ALERT_COLUMNS} FROM monitoring_alerts
                    WHERE alert_type = %s
                    AND entity_id = %s
                    AND NOT resolved
                    AND created_at >= %s
                    ORDER BY created_at DESC
                    LIMIT 1
                """, (alert_type.value, entity_id, since))

                row = cursor.fetchone()
                return Alert.from_row(row) if row else None

        except psycopg.Error as e:
            logger.error(f"Failed to look up recent {alert_type.value} alert for {entity_id}: {e}")
            raise DatabaseOperationError('select', 'monitoring_alerts', e)

    def create_alert(self, candidate: AlertCandidate, created_at: datetime) -> Alert:
        """Persist a new alert from a candidate."""
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"""
                    INSERT INTO monitoring_alerts (
                        entity_type, entity_id, alert_type, severity, title, message,
                        current_score, previous_score, threshold, scan_result_id,
                        details, created_at
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    RETURNING {ALERT_COLUMNS}
                """, (
                    candidate.entity_type,
                    candidate.entity_id,
                    candidate.alert_type.value,
                    candidate.severity.value,
                    candidate.title,
                    candidate.message,
                    candidate.current_score,
                    candidate.previous_score,
                    candidate.threshold,
                    candidate.scan_result_id,
                    Jsonb(candidate.details),
                    created_at
                ))

                return Alert.from_row(cursor.fetchone())

        except psycopg.Error as e:
            logger.error(f"Failed to create {candidate.alert_type.value} alert: {e}")
            raise DatabaseOperationError('insert', 'monitoring_alerts', e)

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"""
                    SELECT {ALERT_COLUMNS} FROM monitoring_alerts
                    WHERE id::text = %s
                """, (alert_id,))

                row = cursor.fetchone()
                return Alert.from_row(row) if row else None

        except psycopg.Error as e:
            logger.error(f"Failed to load alert {alert_id}: {e}")
            raise DatabaseOperationError('select', 'monitoring_alerts', e)

    def resolve_alert(self, alert_id: str, resolved_by: Optional[str],
                      resolved_at: datetime) -> Optional[Alert]:
        """
        Mark an alert resolved.

        Resolving an already resolved alert keeps the original resolution.

        Returns:
            The updated alert, or None if it does not exist
        """
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"""
                    UPDATE monitoring_alerts
                    SET resolved = TRUE,
                        resolved_at = COALESCE(resolved_at, %s),
                        resolved_by = COALESCE(resolved_by, %s)
                    WHERE id::text = %s
                    RETURNING {ALERT_COLUMNS}
                """, (resolved_at, resolved_by, alert_id))

                row = cursor.fetchone()
                return Alert.from_row(row) if row else None

        except psycopg.Error as e:
            logger.error(f"Failed to resolve alert {alert_id}: {e}")
            raise DatabaseOperationError('update', 'monitoring_alerts', e)

    def list_alerts(self, entity_id: Optional[str] = None, unresolved_only: bool = False,
                    limit: int = 100) -> List[Alert]:
        """Alerts newest first, optionally filtered."""
        try:
            with self.connection_manager.get_cursor() as cursor:
                cursor.execute(f"""
                    SELECT {ALERT_COLUMNS} FROM monitoring_alerts
                    WHERE (%s::text IS NULL OR entity_id = %s)
                    AND (%s = FALSE OR NOT resolved)
                    ORDER BY created_at DESC
                    LIMIT %s
                """, (entity_id, entity_id, unresolved_only, limit))

                return [Alert.from_row(row) for row in cursor.fetchall()]

        except psycopg.Error as e:
            logger.error(f"Failed to list alerts: {e}")
            raise DatabaseOperationError('select', 'monitoring_alerts', e)
