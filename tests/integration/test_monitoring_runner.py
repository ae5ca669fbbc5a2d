from datetime import datetime, timedelta, timezone

import pytest

from fakes import NOW, FakeNotificationSender, FakeScanEngine, make_result, make_violations
from core.exceptions import ScanEngineError, ScheduleInactiveError, ScheduleNotFoundError, ValidationError
from core.models.alert import AlertSeverity, AlertType
from core.models.run import RunStatus
from core.models.scan import EngineScan
from core.scheduling import DueWorkSelector


def test_failing_schedule_does_not_block_the_batch(fake_db, make_schedule, make_runner):
    make_schedule("sched-a", "https://a.example.com", next_run_at=NOW - timedelta(hours=3))
    make_schedule("sched-b", "https://b.example.com", next_run_at=NOW - timedelta(hours=2))
    make_schedule("sched-c", "https://c.example.com", next_run_at=NOW - timedelta(hours=1))
    engine = FakeScanEngine(responses={
        "https://b.example.com": ScanEngineError("https://b.example.com", "engine returned HTTP 503"),
    })

    summary = make_runner(engine=engine).run_batch(NOW)

    assert [item.schedule_id for item in summary.results] == ["sched-a", "sched-b", "sched-c"]
    assert [item.status for item in summary.results] == [
        RunStatus.SUCCESS, RunStatus.FAILED, RunStatus.SUCCESS
    ]
    failed = summary.results[1]
    assert "HTTP 503" in failed.error
    assert failed.alerts_created == 1
    assert fake_db.schedules["sched-b"].consecutive_failures == 1
    assert all(s.next_run_at > NOW for s in fake_db.schedules.values())
    assert [a.alert_type for a in fake_db.alerts] == [AlertType.SCAN_FAILED]


def test_unexpected_error_is_isolated(fake_db, make_schedule, make_runner):
    make_schedule("sched-a", "https://a.example.com", next_run_at=NOW - timedelta(hours=2))
    make_schedule("sched-b", "https://b.example.com")
    engine = FakeScanEngine(responses={"https://a.example.com": RuntimeError("segfault in parser")})

    summary = make_runner(engine=engine).run_batch(NOW)

    assert [item.status for item in summary.results] == [RunStatus.FAILED, RunStatus.SUCCESS]
    run = fake_db.list_runs("sched-a")[0]
    assert run.status is RunStatus.FAILED
    assert run.error_message == "segfault in parser"


def test_successful_run_links_result_and_raises_alerts(fake_db, make_schedule, make_runner):
    make_schedule()
    fake_db.store_scan_result(make_result(90, issues=3, aa=96, created_at=NOW - timedelta(days=7)))
    engine = FakeScanEngine(default=EngineScan(score=55, violations=make_violations(4)))

    summary = make_runner(engine=engine).run_batch(NOW)

    item = summary.results[0]
    assert item.status is RunStatus.SUCCESS
    assert item.score == 55
    assert item.window_key == "2025-01-15T09:00+0000"

    latest = fake_db.get_latest_scan_result("sched-1")
    previous = fake_db.scan_results[0]
    assert latest.previous_result_id == previous.id
    assert latest.score_change == -35
    assert latest.below_threshold is True
    assert latest.issues_count == 4
    assert latest.impact_serious == 4
    assert latest.wcag_aa_compliance == 92

    drops = [a for a in fake_db.alerts if a.alert_type is AlertType.SCORE_DROP]
    assert drops[0].severity is AlertSeverity.CRITICAL
    assert item.alerts_created == len(fake_db.alerts)

    run = fake_db.list_runs("sched-1")[0]
    assert run.status is RunStatus.SUCCESS
    assert run.score == 55


def test_success_advances_and_resets_failures(fake_db, make_schedule, make_runner):
    make_schedule(consecutive_failures=3)

    make_runner().run_batch(NOW)

    schedule = fake_db.schedules["sched-1"]
    assert schedule.consecutive_failures == 0
    assert schedule.last_run_at == NOW
    assert schedule.next_run_at == datetime(2025, 1, 22, 9, 0, tzinfo=timezone.utc)


def test_report_email_sent_and_recorded(fake_db, make_schedule, make_runner):
    make_schedule(recipients=["a11y@example.com"])
    sender = FakeNotificationSender()

    make_runner(sender=sender).run_batch(NOW)

    assert len(sender.messages) == 1
    message = sender.messages[0]
    assert message["recipients"] == ["a11y@example.com"]
    assert message["subject"] == "Accessibility Monitoring Report - example.com - Jan 15, 2025"
    assert "Score: 90/100" in message["text"]
    assert fake_db.list_runs("sched-1")[0].notification_id == "msg-1"


def test_email_failure_does_not_fail_the_run(fake_db, make_schedule, make_runner):
    make_schedule(recipients=["a11y@example.com"])

    summary = make_runner(sender=FakeNotificationSender(succeed=False)).run_batch(NOW)

    assert summary.results[0].status is RunStatus.SUCCESS
    assert fake_db.list_runs("sched-1")[0].notification_id is None


def test_alert_store_failure_keeps_run_successful(fake_db, make_schedule, make_runner):
    make_schedule()
    fake_db.fail_on.add("create_alert")
    engine = FakeScanEngine(default=EngineScan(score=40, violations=make_violations(30, tags=["wcag2a"])))

    summary = make_runner(engine=engine).run_batch(NOW)

    assert summary.results[0].status is RunStatus.SUCCESS
    assert summary.results[0].alerts_created == 0


def test_result_store_failure_is_a_failed_run(fake_db, make_schedule, make_runner):
    make_schedule()
    fake_db.fail_on.add("store_scan_result")

    summary = make_runner().run_batch(NOW)

    assert summary.results[0].status is RunStatus.FAILED
    assert fake_db.schedules["sched-1"].consecutive_failures == 1


def test_already_claimed_window_is_skipped(fake_db, make_schedule, make_runner, fake_engine):
    make_schedule()
    fake_db.claim_run("sched-1", "2025-01-15T09:00+0000", NOW - timedelta(minutes=5))

    summary = make_runner().run_batch(NOW)

    assert summary.results[0].status is RunStatus.SKIPPED
    assert fake_engine.calls == []
    assert fake_db.schedules["sched-1"].next_run_at > NOW
    assert fake_db.schedules["sched-1"].consecutive_failures == 0


def test_fifth_failure_disables_schedule(fake_db, make_schedule, make_runner):
    make_schedule(consecutive_failures=4)
    engine = FakeScanEngine(default=ScanEngineError("https://example.com", "request failed"))

    summary = make_runner(engine=engine).run_batch(NOW)

    assert summary.results[0].disabled is True
    assert fake_db.schedules["sched-1"].enabled is False
    assert DueWorkSelector(fake_db).select(NOW + timedelta(days=30)) == []


def test_scan_deadline_fails_the_run(fake_db, make_schedule, make_runner):
    make_schedule()
    engine = FakeScanEngine(delay=0.5)

    summary = make_runner(engine=engine, scan_timeout=0.05).run_batch(NOW)

    assert summary.results[0].status is RunStatus.FAILED
    assert "timed out" in summary.results[0].error
    assert fake_db.scan_results == []


def test_time_budget_defers_remaining_schedules(fake_db, make_schedule, make_runner):
    make_schedule("sched-a", "https://a.example.com", next_run_at=NOW - timedelta(hours=2))
    make_schedule("sched-b", "https://b.example.com")
    ticks = iter([0.0, 0.0, 301.0])

    summary = make_runner(monotonic=lambda: next(ticks), time_budget_seconds=300).run_batch(NOW)

    assert summary.processed == 1
    assert summary.deferred == 1
    assert fake_db.schedules["sched-b"].next_run_at == NOW - timedelta(hours=1)


def test_batch_size_bounds_work(fake_db, make_schedule, make_runner, fake_engine):
    for i in range(12):
        make_schedule(f"sched-{i:02d}", f"https://site{i}.example.com",
                      next_run_at=NOW - timedelta(minutes=60 - i))

    summary = make_runner(selector=DueWorkSelector(fake_db, batch_size=10)).run_batch(NOW)

    assert summary.processed == 10
    assert len(fake_engine.calls) == 10
    assert [item.schedule_id for item in summary.results][0] == "sched-00"


def test_ended_schedule_is_not_selected(fake_db, make_schedule, make_runner, fake_engine):
    make_schedule(ends_at=NOW - timedelta(minutes=1))

    summary = make_runner().run_batch(NOW)

    assert summary.processed == 0
    assert fake_engine.calls == []


def test_batch_summary_dict(fake_db, make_schedule, make_runner):
    make_schedule()

    data = make_runner().run_batch(NOW).to_dict()

    assert data == {
        "processed": 1,
        "results": [{
            "schedule_id": "sched-1",
            "target_url": "https://example.com",
            "status": "success",
            "window_key": "2025-01-15T09:00+0000",
            "score": 90,
        }],
    }


def test_manual_trigger_bypasses_claiming(fake_db, make_schedule, make_runner):
    schedule = make_schedule(next_run_at=NOW + timedelta(days=3))
    engine = FakeScanEngine(default=EngineScan(score=62))

    outcome = make_runner(engine=engine).trigger_manual("sched-1")

    assert outcome.execution.result.score == 62
    assert fake_db.runs == {}
    assert fake_db.schedules["sched-1"].next_run_at == schedule.next_run_at
    data = outcome.to_dict()
    assert data["is_regression"] is True
    assert data["previous_score"] is None


def test_manual_trigger_raises_alerts_against_previous(fake_db, make_schedule, make_runner):
    make_schedule()
    fake_db.store_scan_result(make_result(90, created_at=NOW - timedelta(days=1)))
    engine = FakeScanEngine(default=EngineScan(score=70))

    outcome = make_runner(engine=engine).trigger_manual("sched-1")

    assert [a.alert_type for a in outcome.alerts.created] == [AlertType.SCORE_DROP]
    assert outcome.alerts.created[0].severity is AlertSeverity.HIGH


def test_manual_trigger_unknown_schedule(make_runner):
    with pytest.raises(ScheduleNotFoundError):
        make_runner().trigger_manual("missing")


def test_manual_trigger_disabled_schedule(make_schedule, make_runner):
    make_schedule(enabled=False)

    with pytest.raises(ScheduleInactiveError):
        make_runner().trigger_manual("sched-1")


def test_unknown_stored_timezone_fails_only_that_schedule(fake_db, make_schedule, make_runner, fake_engine):
    broken = make_schedule("sched-a", "https://a.example.com", next_run_at=NOW - timedelta(hours=2))
    make_schedule("sched-b", "https://b.example.com")
    broken.timezone = "Mars/Olympus"

    summary = make_runner().run_batch(NOW)

    assert [item.status for item in summary.results] == [RunStatus.FAILED, RunStatus.SUCCESS]
    assert "Mars/Olympus" in summary.results[0].error
    assert summary.results[0].disabled is True
    assert fake_db.schedules["sched-a"].enabled is False
    assert fake_engine.calls == ["https://b.example.com"]
    assert [s.id for s in DueWorkSelector(fake_db).select(NOW)] == []


def test_malformed_time_of_day_fails_run_after_scan(fake_db, make_schedule, make_runner):
    broken = make_schedule("sched-a", "https://a.example.com", next_run_at=NOW - timedelta(hours=2))
    make_schedule("sched-b", "https://b.example.com")
    broken.time_of_day = "9am"

    summary = make_runner().run_batch(NOW)

    assert [item.status for item in summary.results] == [RunStatus.FAILED, RunStatus.SUCCESS]
    run = fake_db.list_runs("sched-a")[0]
    assert run.status is RunStatus.FAILED
    assert "9am" in run.error_message
    assert fake_db.schedules["sched-a"].enabled is False


def test_unexpected_claim_error_is_isolated(fake_db, make_schedule, make_runner):
    make_schedule("sched-a", "https://a.example.com", next_run_at=NOW - timedelta(hours=2))
    make_schedule("sched-b", "https://b.example.com")

    class FlakyCoordinator:
        def __init__(self, inner):
            self.inner = inner

        def claim(self, schedule, now):
            if schedule.id == "sched-a":
                raise RuntimeError("claim exploded")
            return self.inner.claim(schedule, now)

    runner = make_runner()
    runner.coordinator = FlakyCoordinator(runner.coordinator)

    summary = runner.run_batch(NOW)

    assert [item.status for item in summary.results] == [RunStatus.FAILED, RunStatus.SUCCESS]
    assert summary.results[0].error == "claim exploded"
    assert fake_db.schedules["sched-a"].enabled is True


def test_next_run_is_computed_from_completion_time(fake_db, make_schedule, make_runner):
    make_schedule(next_run_at=datetime(2025, 1, 8, 9, 0, tzinfo=timezone.utc))
    started = datetime(2025, 1, 15, 8, 59, tzinfo=timezone.utc)
    ticks = iter([started, started + timedelta(minutes=2)])

    make_runner(clock=lambda: next(ticks)).run_batch(started)

    assert fake_db.schedules["sched-1"].next_run_at == datetime(2025, 1, 22, 9, 0, tzinfo=timezone.utc)
    assert fake_db.list_runs("sched-1")[0].completed_at == started + timedelta(minutes=2)
