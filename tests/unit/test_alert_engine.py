from datetime import timedelta

import pytest

from fakes import NOW
from core.alerts import AlertEngine
from core.exceptions import AlertNotFoundError
from core.models.alert import AlertCandidate, AlertSeverity, AlertType


def candidate(alert_type=AlertType.SCORE_DROP, severity=AlertSeverity.HIGH, entity_id="sched-1"):
    return AlertCandidate(
        alert_type=alert_type,
        severity=severity,
        entity_id=entity_id,
        title=f"{alert_type.value} on example.com",
        message="Score fell from 90 to 68.",
        current_score=68,
        previous_score=90,
    )


@pytest.fixture
def engine(fake_db):
    return AlertEngine(fake_db, dedup_hours=24)


def test_duplicate_within_window_is_suppressed(engine, fake_db):
    first = engine.process([candidate()], NOW)
    second = engine.process([candidate()], NOW + timedelta(hours=2))

    assert len(first.created) == 1
    assert second.created == []
    assert len(second.suppressed) == 1
    assert len(fake_db.alerts) == 1


def test_same_candidate_twice_in_one_batch_creates_one_alert(engine, fake_db):
    outcome = engine.process([candidate(), candidate()], NOW)

    assert len(outcome.created) == 1
    assert len(outcome.suppressed) == 1


def test_alert_outside_window_does_not_suppress(engine, fake_db):
    engine.process([candidate()], NOW)
    outcome = engine.process([candidate()], NOW + timedelta(hours=25))

    assert len(outcome.created) == 1
    assert len(fake_db.alerts) == 2


def test_resolved_alert_does_not_suppress(engine, fake_db):
    created = engine.process([candidate()], NOW).created[0]
    engine.resolve(created.id, "ops@example.com", NOW + timedelta(minutes=5))

    outcome = engine.process([candidate()], NOW + timedelta(hours=1))

    assert len(outcome.created) == 1


def test_different_types_and_entities_are_independent(engine):
    outcome = engine.process([
        candidate(AlertType.SCORE_DROP),
        candidate(AlertType.COMPLIANCE_BREACH),
        candidate(AlertType.SCORE_DROP, entity_id="sched-2"),
    ], NOW)

    assert len(outcome.created) == 3
    assert outcome.suppressed == []


def test_created_alert_carries_candidate_fields(engine):
    alert = engine.process([candidate()], NOW).created[0]

    assert alert.alert_type is AlertType.SCORE_DROP
    assert alert.severity is AlertSeverity.HIGH
    assert alert.created_at == NOW
    assert alert.resolved is False
    assert alert.to_dict()["type"] == "SCORE_DROP"


def test_resolve_marks_alert(engine):
    alert = engine.process([candidate()], NOW).created[0]

    resolved = engine.resolve(alert.id, "ops@example.com", NOW + timedelta(hours=1))

    assert resolved.resolved is True
    assert resolved.resolved_by == "ops@example.com"
    assert resolved.resolved_at == NOW + timedelta(hours=1)


def test_resolve_unknown_alert_raises(engine):
    with pytest.raises(AlertNotFoundError):
        engine.resolve("alert-missing")


def test_summary_counts_unresolved_by_severity(engine):
    created = engine.process([
        candidate(AlertType.SCORE_DROP, AlertSeverity.CRITICAL),
        candidate(AlertType.NEW_VIOLATIONS, AlertSeverity.HIGH),
        candidate(AlertType.COMPLIANCE_BREACH, AlertSeverity.HIGH),
        candidate(AlertType.SCAN_FAILED, AlertSeverity.MEDIUM, entity_id="sched-2"),
    ], NOW).created
    engine.resolve(created[0].id)

    summary = engine.summary("sched-1")

    assert summary["total"] == 3
    assert summary["unresolved"] == 2
    assert list(summary["by_severity"]) == ["critical", "high", "medium", "low"]
    assert summary["by_severity"] == {"critical": 0, "high": 2, "medium": 0, "low": 0}
    assert len(summary["latest"]) == 3


def test_list_alerts_filters(engine):
    created = engine.process([
        candidate(AlertType.SCORE_DROP),
        candidate(AlertType.SCORE_DROP, entity_id="sched-2"),
    ], NOW).created
    engine.resolve(created[1].id)

    assert len(engine.list_alerts()) == 2
    assert [a.entity_id for a in engine.list_alerts(unresolved_only=True)] == ["sched-1"]
    assert [a.entity_id for a in engine.list_alerts(entity_id="sched-2")] == ["sched-2"]
