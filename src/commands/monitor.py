#!/usr/bin/env python3
"""
Monitor command - run batches, trigger manual scans, inspect due work.
"""

import json
import logging
from argparse import Namespace
from datetime import datetime, timezone

from .base import BaseCommand
from core.exceptions import ScheduleNotFoundError
from core.models.run import RunStatus
from core.scheduling import DueWorkSelector, format_time_since

logger = logging.getLogger(__name__)

STATUS_ICONS = {
    RunStatus.SUCCESS: '✅',
    RunStatus.FAILED: '❌',
    RunStatus.SKIPPED: '⏭️',
    RunStatus.RUNNING: '⏳',
}


class MonitorCommand(BaseCommand):
    """Run scheduled accessibility monitoring."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute monitor subcommand."""
        try:
            if subcommand == "run":
                return self.run(args)
            elif subcommand == "trigger":
                return self.trigger(args)
            elif subcommand == "due":
                return self.due(args)
            elif subcommand == "list":
                return self.list_schedules(args)
            elif subcommand == "runs":
                return self.runs(args)
            else:
                return self.unknown_subcommand(subcommand)

        except Exception as e:
            return self.handle_error(e, f"monitor {subcommand}")

    def run(self, args: Namespace) -> int:
        """Process one batch of due schedules."""
        runner = self.create_runner()
        summary = runner.run_batch()

        if getattr(args, 'json', False):
            print(json.dumps(summary.to_dict(), indent=2))
            return 0

        if not summary.processed:
            print("No due schedules")
            return 0

        print(f"🔎 Processed {summary.processed} schedule(s)")
        print("=" * 50)
        for item in summary.results:
            icon = STATUS_ICONS.get(item.status, '•')
            line = f"{icon} {item.status.value:8} {item.target_url}"
            if item.score is not None:
                line += f"  score {item.score}"
            if item.alerts_created:
                line += f"  ({item.alerts_created} alert(s))"
            if item.error:
                line += f"  error: {item.error}"
            if item.disabled:
                line += "  [disabled]"
            print(line)

        if summary.deferred:
            print(f"\n⏳ {summary.deferred} schedule(s) deferred to the next run (time budget)")

        return 0

    def trigger(self, args: Namespace) -> int:
        """Scan one schedule immediately."""
        runner = self.create_runner()
        outcome = runner.trigger_manual(args.schedule_id)

        if getattr(args, 'json', False):
            print(json.dumps(outcome.to_dict(), indent=2))
            return 0

        result = outcome.execution.result
        print(f"✅ Scan finished for {result.target_url}")
        print(f"   Score: {result.score}/100", end="")
        if outcome.execution.previous is not None:
            print(f" ({result.score_change:+d})")
        else:
            print()
        print(f"   Issues: {result.issues_count}")
        print(f"   WCAG AA: {result.wcag_aa_compliance}%  AAA: {result.wcag_aaa_compliance}%")
        print(f"   Alerts created: {len(outcome.alerts.created)}, suppressed: {len(outcome.alerts.suppressed)}")
        return 0

    def due(self, args: Namespace) -> int:
        """List schedules that are due right now."""
        now = datetime.now(timezone.utc)
        limit = args.limit or self.config.monitoring.batch_size
        schedules = DueWorkSelector(self.db, batch_size=limit).select(now)

        if not schedules:
            print("No due schedules")
            return 0

        print(f"📅 {len(schedules)} due schedule(s)")
        for schedule in schedules:
            overdue = format_time_since(schedule.next_run_at, now)
            print(f"  {schedule.id}  {schedule.target_url}  due {overdue} ago"
                  f"  failures {schedule.consecutive_failures}")
        return 0

    def list_schedules(self, args: Namespace) -> int:
        """List schedules ordered by next run."""
        schedules = self.db.list_schedules(enabled_only=args.enabled)

        if args.json:
            print(json.dumps([schedule.to_dict() for schedule in schedules], indent=2))
            return 0

        if not schedules:
            print("No schedules")
            return 0

        print(f"📋 {len(schedules)} schedule(s)")
        for schedule in schedules:
            state = "on " if schedule.enabled else "off"
            next_run = schedule.next_run_at.isoformat() if schedule.next_run_at else "-"
            print(f"  [{state}] {schedule.id}  {schedule.target_url}  "
                  f"{schedule.frequency.value.lower()} next {next_run}"
                  f"  failures {schedule.consecutive_failures}")
        return 0

    def runs(self, args: Namespace) -> int:
        """Show the most recent runs of one schedule."""
        if self.db.get_schedule(args.schedule_id) is None:
            raise ScheduleNotFoundError(args.schedule_id)

        runs = self.db.list_runs(args.schedule_id, limit=args.limit)

        if args.json:
            print(json.dumps([run.to_dict() for run in runs], indent=2))
            return 0

        if not runs:
            print(f"No runs recorded for {args.schedule_id}")
            return 0

        print(f"🗂️  Last {len(runs)} run(s) of {args.schedule_id}")
        for run in runs:
            icon = STATUS_ICONS.get(run.status, '•')
            line = f"{icon} {run.window_key}  {run.status.value:8}"
            if run.score is not None:
                line += f"  score {run.score}"
            if run.error_message:
                line += f"  error: {run.error_message}"
            print(line)
        return 0
