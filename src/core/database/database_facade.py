#!/usr/bin/env python3
"""
Database Facade

Single interface over the per-table services. Monitoring components only
talk to this surface, so tests can swap in an in-memory store with the
same methods.
"""

import logging
from datetime import datetime, timezone
from typing import List, Dict, Any, Optional, Tuple

import psycopg

from .connection_manager import ConnectionManager
from .schedule_service import ScheduleService
from .run_service import RunService
from .scan_service import ScanService
from .alert_service import AlertService
from ..models import (
    MonitoredSchedule, RunRecord, RunStatus, ScanResult,
    Alert, AlertCandidate, AlertType
)

logger = logging.getLogger(__name__)

MONITORING_TABLES = ('monitored_schedules', 'schedule_runs', 'scan_results', 'monitoring_alerts')


class DatabaseFacade:
    """Unified database interface using modular services."""

    def __init__(self, config, connection_manager: Optional[ConnectionManager] = None):
        """
        Initialize database facade with configuration.

        Args:
            config: Application configuration object
            connection_manager: Pre-built connection manager (optional)
        """
        self.config = config
        self.connection_manager = connection_manager or ConnectionManager(config.database)

        self.schedules = ScheduleService(self.connection_manager)
        self.runs = RunService(self.connection_manager)
        self.scans = ScanService(self.connection_manager)
        self.alerts = AlertService(self.connection_manager)

    # Schedules

    def get_schedule(self, schedule_id: str) -> Optional[MonitoredSchedule]:
        return self.schedules.get_schedule(schedule_id)

    def list_due_schedules(self, now: datetime, limit: int) -> List[MonitoredSchedule]:
        return self.schedules.list_due_schedules(now, limit)

    def list_schedules(self, enabled_only: bool = False) -> List[MonitoredSchedule]:
        return self.schedules.list_schedules(enabled_only)

    def advance_schedule(self, schedule_id: str, last_run_at: datetime, next_run_at: datetime,
                         disable: bool = False, reset_failures: bool = False) -> None:
        self.schedules.advance_schedule(schedule_id, last_run_at, next_run_at, disable, reset_failures)

    def disable_schedule(self, schedule_id: str) -> None:
        self.schedules.disable_schedule(schedule_id)

    def record_schedule_failure(self, schedule_id: str, max_failures: int, last_run_at: datetime,
                                next_run_at: datetime, disable: bool = False) -> Tuple[int, bool]:
        return self.schedules.record_failure(schedule_id, max_failures, last_run_at, next_run_at, disable)

    # Runs

    def claim_run(self, schedule_id: str, window_key: str, started_at: datetime) -> Optional[RunRecord]:
        return self.runs.claim_run(schedule_id, window_key, started_at)

    def complete_run(self, run_id: str, status: RunStatus, completed_at: datetime,
                     error_message: Optional[str] = None, score: Optional[int] = None) -> None:
        self.runs.complete_run(run_id, status, completed_at, error_message, score)

    def attach_notification(self, run_id: str, notification_id: str, sent_at: datetime) -> None:
        self.runs.attach_notification(run_id, notification_id, sent_at)

    def list_runs(self, schedule_id: str, limit: int = 20) -> List[RunRecord]:
        return self.runs.list_runs(schedule_id, limit)

    # Scan results

    def get_latest_scan_result(self, schedule_id: str) -> Optional[ScanResult]:
        return self.scans.get_latest_scan_result(schedule_id)

    def store_scan_result(self, result: ScanResult) -> ScanResult:
        return self.scans.store_scan_result(result)

    def get_scan_results(self, schedule_id: Optional[str] = None, since: Optional[datetime] = None,
                         limit: int = 500) -> List[ScanResult]:
        return self.scans.get_scan_results(schedule_id, since, limit)

    # Alerts

    def find_recent_unresolved_alert(self, alert_type: AlertType, entity_id: str,
                                     since: datetime) -> Optional[Alert]:
        return self.alerts.find_recent_unresolved_alert(alert_type, entity_id, since)

    def create_alert(self, candidate: AlertCandidate, created_at: datetime) -> Alert:
        return self.alerts.create_alert(candidate, created_at)

    def get_alert(self, alert_id: str) -> Optional[Alert]:
        return self.alerts.get_alert(alert_id)

    def resolve_alert(self, alert_id: str, resolved_by: Optional[str],
                      resolved_at: datetime) -> Optional[Alert]:
        return self.alerts.resolve_alert(alert_id, resolved_by, resolved_at)

    def list_alerts(self, entity_id: Optional[str] = None, unresolved_only: bool = False,
                    limit: int = 100) -> List[Alert]:
        return self.alerts.list_alerts(entity_id, unresolved_only, limit)

    # Health Check

    def health_check(self) -> Dict[str, Any]:
        """Check database connection and return table row counts."""
        health_info = self.connection_manager.health_check()
        if not health_info.get('connected', False):
            health_info['timestamp'] = datetime.now(timezone.utc).isoformat()
            return health_info

        tables_info = {}
        for table in MONITORING_TABLES:
            try:
                with self.connection_manager.get_cursor() as cursor:
                    cursor.execute(f"SELECT COUNT(*) AS count FROM {table}")
                    tables_info[table] = {'count': cursor.fetchone()['count']}
            except psycopg.Error as e:
                logger.warning(f"Could not count rows in {table}: {e}")
                tables_info[table] = {'error': str(e)}

        health_info['tables'] = tables_info
        return health_info

    # Connection Management

    def close(self):
        """Close database connection."""
        self.connection_manager.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
