#!/usr/bin/env python3
"""
Plain-text formatting for monitoring reports, alerts and trend summaries.

Used for report emails and for CLI output.
"""

from datetime import datetime
from typing import List, Optional
from urllib.parse import urlparse

from core.models.alert import Alert, AlertSeverity
from core.models.scan import ScanResult


class ReportFormatter:
    """Formats monitoring data as plain text."""

    SEVERITY_ICONS = {
        AlertSeverity.CRITICAL: '🚨',
        AlertSeverity.HIGH: '🔴',
        AlertSeverity.MEDIUM: '🟠',
        AlertSeverity.LOW: '🟡',
    }

    def __init__(self, app_url: str = "http://localhost:8000"):
        self.app_url = app_url.rstrip('/')

    @staticmethod
    def domain_of(url: str) -> str:
        return urlparse(url).hostname or url

    def build_subject(self, target_url: str, report_date: datetime) -> str:
        date_str = f"{report_date:%b} {report_date.day}, {report_date.year}"
        return f"Accessibility Monitoring Report - {self.domain_of(target_url)} - {date_str}"

    def build_report_text(self, result: ScanResult, previous_score: Optional[int],
                          report_date: datetime, schedule_id: str) -> str:
        """
        Build the body of a scheduled report email.

        Args:
            result: Newly stored scan result
            previous_score: Score of the previous result, if any
            report_date: Date shown in the header
            schedule_id: Used for the manage link
        """
        date_str = f"{report_date:%A, %B} {report_date.day}, {report_date.year}"
        lines = [
            "Accessibility Monitoring Report",
            f"{self.domain_of(result.target_url)} - {date_str}",
            "",
            f"Score: {result.score}/100",
        ]

        if previous_score is not None:
            diff = result.score - previous_score
            sign = '+' if diff >= 0 else ''
            lines.append(f"Previous: {previous_score}/100 ({sign}{diff})")

        lines.append(f"Issues: {result.issues_count}")
        breakdown = ", ".join(f"{level} {count}" for level, count in result.impact_breakdown.items())
        lines.append(f"By impact: {breakdown}")

        if result.wcag_aa_compliance is not None:
            lines.append(f"WCAG AA compliance: {result.wcag_aa_compliance}%")
        if result.wcag_aaa_compliance is not None:
            lines.append(f"WCAG AAA compliance: {result.wcag_aaa_compliance}%")

        if result.below_threshold:
            lines.append("")
            lines.append("⚠️ The score is below the threshold configured for this schedule.")

        lines.extend([
            "",
            "---",
            f"Manage schedule: {self.app_url}/schedules/{schedule_id}",
        ])
        return "\n".join(lines) + "\n"

    def format_alert_line(self, alert: Alert) -> str:
        icon = self.SEVERITY_ICONS.get(alert.severity, '•')
        status = 'resolved' if alert.resolved else 'open'
        created = alert.created_at.strftime('%Y-%m-%d %H:%M') if alert.created_at else '-'
        return (f"{icon} [{alert.severity.value.upper():8}] {alert.alert_type.value:18} "
                f"{created}  {status:8}  {alert.title}  ({alert.id})")

    def format_alert_list(self, alerts: List[Alert]) -> str:
        if not alerts:
            return "No alerts found"
        return "\n".join(self.format_alert_line(alert) for alert in alerts)
