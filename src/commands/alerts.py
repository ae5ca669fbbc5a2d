#!/usr/bin/env python3
"""
Alerts command - list, summarize and resolve monitoring alerts.
"""

import json
from argparse import Namespace

from .base import BaseCommand
from integrations.report_formatter import ReportFormatter


class AlertsCommand(BaseCommand):
    """Inspect and resolve regression alerts."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute alerts subcommand."""
        try:
            if subcommand == "list":
                return self.list(args)
            elif subcommand == "summary":
                return self.summary(args)
            elif subcommand == "resolve":
                return self.resolve(args)
            else:
                return self.unknown_subcommand(subcommand)

        except Exception as e:
            return self.handle_error(e, f"alerts {subcommand}")

    def list(self, args: Namespace) -> int:
        alerts = self.alert_engine.list_alerts(args.schedule, args.unresolved, args.limit)
        if args.json:
            print(json.dumps([alert.to_dict() for alert in alerts], indent=2))
        else:
            print(ReportFormatter().format_alert_list(alerts))
        return 0

    def summary(self, args: Namespace) -> int:
        summary = self.alert_engine.summary(args.schedule)
        if args.json:
            print(json.dumps(summary, indent=2))
            return 0

        scope = f"schedule {args.schedule}" if args.schedule else "all schedules"
        print(f"🔔 Alert summary for {scope}")
        print("=" * 40)
        print(f"Total: {summary['total']}  Unresolved: {summary['unresolved']}")
        for severity, count in summary['by_severity'].items():
            print(f"  {severity:8} {count}")
        return 0

    def resolve(self, args: Namespace) -> int:
        alert = self.alert_engine.resolve(args.alert_id, args.by)
        print(f"✅ Alert {alert.id} resolved")
        return 0
