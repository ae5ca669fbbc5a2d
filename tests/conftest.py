import sys
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from core.models.schedule import MonitoredSchedule  # noqa: E402
from fakes import NOW, FakeDatabase, FakeNotificationSender, FakeScanEngine  # noqa: E402


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def fake_engine() -> FakeScanEngine:
    return FakeScanEngine()


@pytest.fixture
def fake_sender() -> FakeNotificationSender:
    return FakeNotificationSender()


@pytest.fixture
def make_schedule(fake_db):
    def _factory(schedule_id: str = "sched-1", target_url: str = "https://example.com",
                 next_run_at: Optional[datetime] = None, **overrides) -> MonitoredSchedule:
        fields = {
            "frequency": "WEEKLY",
            "day_of_week": 3,
            "time_of_day": "09:00",
            "timezone": "UTC",
            "score_threshold": 70,
            "next_run_at": next_run_at or NOW - timedelta(hours=1),
        }
        fields.update(overrides)
        schedule = MonitoredSchedule(id=schedule_id, target_url=target_url, **fields)
        return fake_db.add_schedule(schedule)

    return _factory


@pytest.fixture
def make_runner(fake_db, fake_engine):
    from core.monitoring import MonitoringRunner, ScanOrchestrator
    from integrations.report_formatter import ReportFormatter

    def _factory(database: Optional[FakeDatabase] = None, engine: Optional[FakeScanEngine] = None,
                 sender: Optional[FakeNotificationSender] = None, scan_timeout: float = 5,
                 clock_value: datetime = NOW, **kwargs) -> MonitoringRunner:
        database = database or fake_db
        orchestrator = ScanOrchestrator(
            database,
            engine or fake_engine,
            notification_sender=sender,
            report_formatter=ReportFormatter("https://monitor.example.com"),
            scan_timeout=scan_timeout,
            clock=lambda: clock_value,
        )
        clock = kwargs.pop("clock", None) or (lambda: clock_value)
        return MonitoringRunner(database, orchestrator, clock=clock, **kwargs)

    return _factory
