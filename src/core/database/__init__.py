#!/usr/bin/env python3
"""
Database package for the accessibility monitor.

Provides modular PostgreSQL services behind a single facade.
"""

import logging
from typing import Optional

from .connection_manager import ConnectionManager
from .schedule_service import ScheduleService
from .run_service import RunService
from .scan_service import ScanService
from .alert_service import AlertService
from .database_facade import DatabaseFacade

logger = logging.getLogger(__name__)

# Global database instance
_db_instance: Optional[DatabaseFacade] = None


def get_database() -> DatabaseFacade:
    """Get the process-wide database facade, connecting on first use."""
    global _db_instance
    if _db_instance is None:
        from ..config import get_config
        _db_instance = DatabaseFacade(get_config())
        logger.info("Using direct PostgreSQL connection")
    return _db_instance


def close_database() -> None:
    """Close global database connection."""
    global _db_instance
    if _db_instance is not None:
        _db_instance.close()
        _db_instance = None


__all__ = [
    'ConnectionManager',
    'ScheduleService',
    'RunService',
    'ScanService',
    'AlertService',
    'DatabaseFacade',
    'get_database',
    'close_database'
]
