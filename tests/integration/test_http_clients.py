from datetime import datetime

import pytest
import requests

from fakes import make_result
from core.exceptions import ConfigurationError, NotificationError, ScanEngineError, ScanTimeoutError
from integrations.notification_sender import NotificationSender
from integrations.report_formatter import ReportFormatter
from integrations.scan_engine import ScanEngineClient


class FakeResponse:
    def __init__(self, status_code=200, body=None, text=""):
        self.status_code = status_code
        self._body = body
        self.text = text

    def json(self):
        if self._body is None:
            raise ValueError("no JSON body")
        return self._body


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, **kwargs):
        self.requests.append({"url": url, **kwargs})
        if self.error:
            raise self.error
        return self.response


def test_scan_engine_parses_response():
    session = FakeSession(FakeResponse(body={
        "score": 84.4,
        "violations": [
            {"id": "image-alt", "impact": "critical", "tags": ["wcag2a", "wcag111"]},
            {"id": "region", "impact": "moderate", "tags": ["best-practice"]},
        ],
    }))
    client = ScanEngineClient("https://engine.internal/scan", api_key="k", session=session)

    scan = client.scan("https://example.com", timeout=60)

    assert scan.score == 84.4
    assert [v.rule_id for v in scan.violations] == ["image-alt", "region"]
    sent = session.requests[0]
    assert sent["json"] == {"url": "https://example.com", "timeout": 60}
    assert sent["headers"]["Authorization"] == "Bearer k"
    assert sent["timeout"] == 60


def test_scan_engine_timeout():
    client = ScanEngineClient("https://engine.internal/scan", session=FakeSession(error=requests.Timeout()))

    with pytest.raises(ScanTimeoutError):
        client.scan("https://example.com", timeout=5)


@pytest.mark.parametrize("session", [
    FakeSession(error=requests.ConnectionError("refused")),
    FakeSession(FakeResponse(status_code=500, text="internal error")),
    FakeSession(FakeResponse(body=None)),
    FakeSession(FakeResponse(body={})),
    FakeSession(FakeResponse(body={"score": None, "violations": []})),
    FakeSession(FakeResponse(body={"score": 140})),
])
def test_scan_engine_failures(session):
    client = ScanEngineClient("https://engine.internal/scan", session=session)

    with pytest.raises(ScanEngineError):
        client.scan("https://example.com", timeout=5)


def test_scan_engine_requires_endpoint(monkeypatch):
    monkeypatch.delenv("SCAN_ENGINE_URL", raising=False)

    with pytest.raises(ConfigurationError):
        ScanEngineClient()


def test_notification_sender_posts_message(monkeypatch):
    calls = []

    def fake_post(url, **kwargs):
        calls.append({"url": url, **kwargs})
        return FakeResponse(body={"id": "email-123"})

    monkeypatch.setattr("integrations.notification_sender.requests.post", fake_post)
    sender = NotificationSender("https://mail.internal/emails", "key", "monitor@example.com")

    message_id = sender.send(["a@example.com", "b@example.com"], "Subject", "Body")

    assert message_id == "email-123"
    assert calls[0]["json"]["to"] == ["a@example.com", "b@example.com"]
    assert calls[0]["json"]["from"] == "monitor@example.com"


def test_notification_sender_without_recipients_sends_nothing(monkeypatch):
    def fail_post(url, **kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr("integrations.notification_sender.requests.post", fail_post)
    sender = NotificationSender("https://mail.internal/emails", "key")

    assert sender.send([], "Subject", "Body") is None


def test_notification_sender_error_status(monkeypatch):
    monkeypatch.setattr(
        "integrations.notification_sender.requests.post",
        lambda url, **kwargs: FakeResponse(status_code=422, text="invalid recipient"),
    )
    sender = NotificationSender("https://mail.internal/emails", "key")

    with pytest.raises(NotificationError):
        sender.send(["a@example.com"], "Subject", "Body")


def test_report_text():
    formatter = ReportFormatter("https://monitor.example.com/")
    result = make_result(62, issues=7, aa=86)
    report_date = datetime(2025, 1, 15)

    text = formatter.build_report_text(result, 70, report_date, "sched-1")

    assert text.startswith("Accessibility Monitoring Report\nexample.com - Wednesday, January 15, 2025\n")
    assert "Score: 62/100" in text
    assert "Previous: 70/100 (-8)" in text
    assert "WCAG AA compliance: 86%" in text
    assert "below the threshold" in text
    assert text.rstrip().endswith("https://monitor.example.com/schedules/sched-1")


def test_scan_engine_reply_without_score_is_malformed():
    client = ScanEngineClient("https://engine.internal/scan", session=FakeSession(FakeResponse(body={"violations": []})))

    with pytest.raises(ScanEngineError, match="malformed engine response"):
        client.scan("https://example.com", timeout=5)
