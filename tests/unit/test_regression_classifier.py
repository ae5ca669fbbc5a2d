import pytest

from fakes import make_result
from core.analysis.regression import RegressionClassifier
from core.models.alert import AlertSeverity, AlertType
from core.models.schedule import MonitoredSchedule


@pytest.fixture
def schedule():
    return MonitoredSchedule(
        id="sched-1",
        target_url="https://shop.example.com/checkout",
        frequency="WEEKLY",
        day_of_week=1,
        time_of_day="09:00",
    )


@pytest.fixture
def classifier():
    return RegressionClassifier()


def test_large_score_drop_is_critical(classifier, schedule):
    previous = make_result(90, result_id="scan-1")
    current = make_result(55, result_id="scan-2")

    candidates = classifier.classify(current, previous, schedule)

    assert [c.alert_type for c in candidates] == [AlertType.SCORE_DROP]
    alert = candidates[0]
    assert alert.severity is AlertSeverity.CRITICAL
    assert alert.entity_id == "sched-1"
    assert alert.current_score == 55
    assert alert.previous_score == 90
    assert alert.scan_result_id == "scan-2"
    assert "shop.example.com" in alert.title
    assert alert.details["possible_causes"]


def test_small_score_drop_is_low(classifier, schedule):
    candidates = classifier.classify(make_result(68), make_result(80), schedule)

    assert [(c.alert_type, c.severity) for c in candidates] == [(AlertType.SCORE_DROP, AlertSeverity.LOW)]


@pytest.mark.parametrize("drop,severity", [
    (30, AlertSeverity.CRITICAL),
    (29, AlertSeverity.HIGH),
    (20, AlertSeverity.HIGH),
    (15, AlertSeverity.MEDIUM),
    (10, AlertSeverity.LOW),
    (9, None),
    (-5, None),
])
def test_score_drop_tiers(classifier, schedule, drop, severity):
    candidates = classifier.classify(make_result(95 - drop), make_result(95), schedule)
    drops = [c for c in candidates if c.alert_type is AlertType.SCORE_DROP]

    if severity is None:
        assert drops == []
    else:
        assert drops[0].severity is severity


@pytest.mark.parametrize("new_violations,severity", [
    (50, AlertSeverity.CRITICAL),
    (25, AlertSeverity.HIGH),
    (10, AlertSeverity.MEDIUM),
    (5, AlertSeverity.LOW),
    (4, None),
    (-3, None),
])
def test_new_violation_tiers(classifier, schedule, new_violations, severity):
    previous = make_result(90, issues=10)
    current = make_result(90, issues=10 + new_violations)

    candidates = classifier.classify(current, previous, schedule)
    found = [c for c in candidates if c.alert_type is AlertType.NEW_VIOLATIONS]

    if severity is None:
        assert found == []
    else:
        assert found[0].severity is severity
        assert found[0].details["new_violations"] == new_violations


@pytest.mark.parametrize("aa,severity", [
    (35, AlertSeverity.CRITICAL),
    (40, AlertSeverity.HIGH),
    (54, AlertSeverity.HIGH),
    (55, AlertSeverity.MEDIUM),
    (69, AlertSeverity.MEDIUM),
    (70, None),
    (72, None),
])
def test_compliance_breach_tiers(classifier, schedule, aa, severity):
    candidates = classifier.classify(make_result(90, aa=aa), make_result(90), schedule)
    found = [c for c in candidates if c.alert_type is AlertType.COMPLIANCE_BREACH]

    if severity is None:
        assert found == []
    else:
        assert found[0].severity is severity


def test_compliance_is_checked_on_first_scan(classifier, schedule):
    candidates = classifier.classify(make_result(40, aa=35), None, schedule)

    assert [(c.alert_type, c.severity) for c in candidates] == [
        (AlertType.COMPLIANCE_BREACH, AlertSeverity.CRITICAL)
    ]


def test_first_scan_without_breach_raises_nothing(classifier, schedule):
    assert classifier.classify(make_result(95, aa=98), None, schedule) == []


def test_performance_drop_over_limit_is_medium(classifier, schedule):
    previous = make_result(90, performance=90)
    current = make_result(90, performance=65)

    candidates = classifier.classify(current, previous, schedule)

    assert [(c.alert_type, c.severity) for c in candidates] == [
        (AlertType.PERFORMANCE_IMPACT, AlertSeverity.MEDIUM)
    ]


def test_performance_drop_at_limit_is_ignored(classifier, schedule):
    candidates = classifier.classify(make_result(90, performance=70), make_result(90, performance=90), schedule)

    assert candidates == []


def test_one_scan_can_raise_several_alert_types(classifier, schedule):
    previous = make_result(92, issues=5, aa=96)
    current = make_result(60, issues=40, aa=50)

    types = {c.alert_type for c in classifier.classify(current, previous, schedule)}

    assert types == {AlertType.SCORE_DROP, AlertType.NEW_VIOLATIONS, AlertType.COMPLIANCE_BREACH}


def test_scan_failed_candidate(classifier, schedule):
    candidate = classifier.scan_failed_candidate(schedule, "engine returned HTTP 503")

    assert candidate.alert_type is AlertType.SCAN_FAILED
    assert candidate.severity is AlertSeverity.MEDIUM
    assert "HTTP 503" in candidate.message
    assert candidate.details["target_url"] == schedule.target_url
