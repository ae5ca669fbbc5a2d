from datetime import datetime, timedelta, timezone

from fakes import NOW
from core.models.run import RunStatus
from core.monitoring.backoff import BackoffManager, describe_error
from core.scheduling import DueWorkSelector


def test_five_consecutive_failures_disable_schedule(fake_db, make_schedule):
    make_schedule()
    backoff = BackoffManager(fake_db, max_failures=5)

    outcomes = []
    for attempt in range(5):
        schedule = fake_db.get_schedule("sched-1")
        outcomes.append(backoff.record_failure(schedule, None, RuntimeError("engine down"), NOW))

    assert [o.consecutive_failures for o in outcomes] == [1, 2, 3, 4, 5]
    assert [o.disabled for o in outcomes] == [False, False, False, False, True]
    assert fake_db.schedules["sched-1"].enabled is False

    far_future = NOW + timedelta(days=365)
    assert DueWorkSelector(fake_db).select(far_future) == []


def test_success_resets_failure_counter(fake_db, make_schedule):
    make_schedule(consecutive_failures=4)
    backoff = BackoffManager(fake_db)

    backoff.record_success(fake_db.get_schedule("sched-1"), None, 88, NOW)

    assert fake_db.schedules["sched-1"].consecutive_failures == 0
    assert fake_db.schedules["sched-1"].enabled is True


def test_failure_still_advances_next_run(fake_db, make_schedule):
    make_schedule()
    backoff = BackoffManager(fake_db)

    outcome = backoff.record_failure(fake_db.get_schedule("sched-1"), None, RuntimeError("boom"), NOW)

    assert outcome.next_run_at > NOW
    assert fake_db.schedules["sched-1"].next_run_at == outcome.next_run_at
    assert fake_db.schedules["sched-1"].last_run_at == NOW


def test_failure_completes_run_with_truncated_error(fake_db, make_schedule):
    make_schedule()
    run = fake_db.claim_run("sched-1", "2025-01-15T09:00+0000", NOW)
    backoff = BackoffManager(fake_db)

    backoff.record_failure(fake_db.get_schedule("sched-1"), run, RuntimeError("x" * 600), NOW)

    stored = fake_db.runs[run.id]
    assert stored.status is RunStatus.FAILED
    assert len(stored.error_message) == 500


def test_failure_is_counted_when_run_update_fails(fake_db, make_schedule):
    make_schedule()
    run = fake_db.claim_run("sched-1", "2025-01-15T09:00+0000", NOW)
    fake_db.fail_on.add("complete_run")

    outcome = BackoffManager(fake_db).record_failure(
        fake_db.get_schedule("sched-1"), run, RuntimeError("boom"), NOW
    )

    assert outcome.consecutive_failures == 1


def test_success_past_end_bound_disables_schedule(fake_db, make_schedule):
    make_schedule(ends_at=datetime(2025, 1, 20, tzinfo=timezone.utc))

    next_run = BackoffManager(fake_db).record_success(fake_db.get_schedule("sched-1"), None, 90, NOW)

    assert next_run.should_disable
    assert fake_db.schedules["sched-1"].enabled is False


def test_describe_error_falls_back_to_class_name():
    assert describe_error(TimeoutError()) == "TimeoutError"
    assert describe_error(ValueError("bad"), max_length=2) == "ba"
