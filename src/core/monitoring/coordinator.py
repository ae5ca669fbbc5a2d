#!/usr/bin/env python3
"""
Idempotency Coordinator - claims one execution window per schedule slot.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..models.run import RunRecord
from ..models.schedule import MonitoredSchedule
from ..scheduling.calculator import make_window_key

logger = logging.getLogger(__name__)


@dataclass
class Claim:
    """Outcome of a claim attempt."""
    window_key: str
    run: Optional[RunRecord] = None

    @property
    def acquired(self) -> bool:
        return self.run is not None


class IdempotencyCoordinator:
    """
    Guarantees at most one execution per (schedule, window).

    Exclusivity comes from the store's unique constraint on
    (schedule_id, window_key); there is no in-process locking, so any number
    of overlapping invocations may call claim() concurrently.
    """

    def __init__(self, database):
        self.database = database

    def claim(self, schedule: MonitoredSchedule, now: datetime) -> Claim:
        """
        Try to take ownership of the schedule's current slot.

        Args:
            schedule: Due schedule; its next_run_at identifies the slot
            now: Claim instant recorded as started_at

        Returns:
            Claim; acquired is False when another invocation owns the slot
        """
        slot = schedule.next_run_at or now
        window_key = make_window_key(slot, schedule.timezone)

        run = self.database.claim_run(schedule.id, window_key, now)
        if run is None:
            logger.info(f"Skipping schedule {schedule.id}: window {window_key} already claimed")
        else:
            logger.debug(f"Claimed window {window_key} for schedule {schedule.id} (run {run.id})")

        return Claim(window_key=window_key, run=run)
