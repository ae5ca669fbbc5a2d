#!/usr/bin/env python3
"""
Trends command - score trend insights and forecast.
"""

import json
from argparse import Namespace

from .base import BaseCommand
from core.analysis.trends import since_for_range
from core.exceptions import ScheduleNotFoundError

TREND_ICONS = {'improving': '📈', 'declining': '📉', 'stable': '➡️'}


class TrendsCommand(BaseCommand):
    """Analyze score history of one schedule or all schedules."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute trends subcommand."""
        try:
            if subcommand == "show":
                return self.show(args)
            else:
                return self.unknown_subcommand(subcommand)

        except Exception as e:
            return self.handle_error(e, f"trends {subcommand}")

    def show(self, args: Namespace) -> int:
        if args.schedule and self.db.get_schedule(args.schedule) is None:
            raise ScheduleNotFoundError(args.schedule)

        results = self.db.get_scan_results(args.schedule, since=since_for_range(args.range))
        report = self.trend_analyzer.analyze(results)
        statistics = self.trend_analyzer.schedule_statistics(results) if args.schedule else None
        comparison = None
        if statistics:
            comparison = self.trend_analyzer.compare_with_history(results[:-1], results[-1].score)

        if args.json:
            data = report.to_dict()
            data['statistics'] = statistics
            data['latest_comparison'] = comparison
            print(json.dumps(data, indent=2))
            return 0

        print(f"{TREND_ICONS.get(report.overall_trend, '')} Trend ({args.range}, {len(results)} scans): "
              f"{report.overall_trend} {report.trend_percentage:+.1f}%")
        print(f"   Average change per scan: {report.avg_score_change:+.1f}")
        if report.best_performer:
            print(f"   Best: {report.best_performer}  Worst: {report.worst_performer}")
        print(f"   Forecast (7 steps): {report.forecast.next_week_score} "
              f"(confidence {report.forecast.confidence}%)")

        for pattern in report.patterns:
            print(f"   • [{pattern.type}] {pattern.description}")

        if statistics:
            print(f"   Latest {statistics['latest_score']}, avg {statistics['avg_score']}, "
                  f"range {statistics['min_score']}-{statistics['max_score']}, "
                  f"{statistics['regression_count']} below threshold")
            print(f"   {comparison['message']}")

        print("\nRecommendations:")
        for recommendation in report.recommendations:
            print(f"  - {recommendation}")
        return 0
