#!/usr/bin/env python3
"""
Due-Work Selector - picks the schedules that should run now.
"""

import logging
from datetime import datetime
from typing import List

from ..models.schedule import MonitoredSchedule

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10


class DueWorkSelector:
    """Read-only query for due schedules, oldest due first."""

    def __init__(self, database, batch_size: int = DEFAULT_BATCH_SIZE):
        """
        Args:
            database: Store exposing list_due_schedules(now, limit)
            batch_size: Maximum schedules returned per invocation
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.database = database
        self.batch_size = batch_size

    def select(self, now: datetime) -> List[MonitoredSchedule]:
        """
        Return enabled schedules with next_run_at <= now whose end bound is
        unset or still ahead, ordered by next_run_at ascending.
        """
        schedules = self.database.list_due_schedules(now, self.batch_size)
        logger.info(f"Selected {len(schedules)} due schedule(s) (limit {self.batch_size})")
        return schedules[:self.batch_size]
