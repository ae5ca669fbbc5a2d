import json
from argparse import Namespace
from datetime import datetime, timedelta, timezone

import pytest

from fakes import NOW, make_result
from cli_router import CLIRouter
from commands.alerts import AlertsCommand
from commands.monitor import MonitorCommand
from commands.trends import TrendsCommand
from core.alerts import AlertEngine
from core.analysis import TrendAnalyzer
from core.container import Container
from core.models.alert import AlertCandidate, AlertSeverity, AlertType


@pytest.fixture
def container(fake_db, make_runner):
    container = Container()
    container.register_instance('database', fake_db)
    container.register_factory('runner', make_runner)
    container.register_instance('alert_engine', AlertEngine(fake_db))
    container.register_instance('trend_analyzer', TrendAnalyzer())
    return container


def test_router_parses_monitor_trigger():
    args = CLIRouter().parser.parse_args(["monitor", "trigger", "sched-1", "--json"])

    assert args.command == "monitor"
    assert args.subcommand == "trigger"
    assert args.schedule_id == "sched-1"
    assert args.json is True


def test_router_rejects_unknown_range():
    assert CLIRouter().route_command(["trends", "show", "--range", "1y"]) == 2


def test_monitor_run_prints_json_summary(container, make_schedule, capsys):
    make_schedule()

    exit_code = MonitorCommand(container).execute("run", Namespace(json=True))

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert output["processed"] == 1


def test_trigger_unknown_schedule_is_client_error(container):
    exit_code = MonitorCommand(container).execute("trigger", Namespace(schedule_id="missing", json=False))

    assert exit_code == 2


def test_unknown_subcommand(container):
    assert MonitorCommand(container).execute("explode", Namespace()) == 1


def test_alerts_resolve(container, fake_db, capsys):
    alert = fake_db.create_alert(AlertCandidate(
        alert_type=AlertType.COMPLIANCE_BREACH,
        severity=AlertSeverity.HIGH,
        entity_id="sched-1",
        title="WCAG AA compliance at 50% on example.com",
        message="WCAG AA compliance dropped to 50%.",
    ), NOW)

    exit_code = AlertsCommand(container).execute("resolve", Namespace(alert_id=alert.id, by="ops"))

    assert exit_code == 0
    assert fake_db.get_alert(alert.id).resolved_by == "ops"
    assert "resolved" in capsys.readouterr().out


def test_trends_for_unknown_schedule(container):
    args = Namespace(schedule="missing", range="30d", json=False)

    assert TrendsCommand(container).execute("show", args) == 2


def test_trends_show_compares_latest_scan(container, fake_db, make_schedule, capsys):
    make_schedule()
    today = datetime.now(timezone.utc)
    for days_ago, score in [(3, 70), (2, 70), (1, 90)]:
        fake_db.store_scan_result(make_result(score, created_at=today - timedelta(days=days_ago)))

    exit_code = TrendsCommand(container).execute("show", Namespace(schedule="sched-1", range="30d", json=True))

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert output["statistics"]["latest_score"] == 90
    assert output["latest_comparison"]["comparison"] == "above_average"


def test_monitor_list_shows_disabled_schedules(container, make_schedule, capsys):
    make_schedule("sched-a", "https://a.example.com")
    make_schedule("sched-b", "https://b.example.com", enabled=False)

    exit_code = MonitorCommand(container).execute("list", Namespace(enabled=False, json=True))

    assert exit_code == 0
    listed = json.loads(capsys.readouterr().out)
    assert {s["id"]: s["enabled"] for s in listed} == {"sched-a": True, "sched-b": False}


def test_monitor_runs_after_batch(container, fake_db, make_schedule, capsys):
    make_schedule()
    MonitorCommand(container).execute("run", Namespace(json=True))
    capsys.readouterr()

    exit_code = MonitorCommand(container).execute("runs", Namespace(schedule_id="sched-1", limit=20, json=True))

    assert exit_code == 0
    runs = json.loads(capsys.readouterr().out)
    assert [(r["window_key"], r["status"]) for r in runs] == [("2025-01-15T09:00+0000", "success")]


def test_monitor_runs_unknown_schedule(container):
    args = Namespace(schedule_id="missing", limit=20, json=False)

    assert MonitorCommand(container).execute("runs", args) == 2


def test_router_parses_monitor_runs():
    args = CLIRouter().parser.parse_args(["monitor", "runs", "sched-1", "--limit", "5"])

    assert args.subcommand == "runs"
    assert args.limit == 5
