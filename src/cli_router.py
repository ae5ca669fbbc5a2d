#!/usr/bin/env python3
"""
CLI Router for the accessibility monitor.

Modular command architecture for scheduled compliance monitoring.
"""

import argparse
import logging
import sys
from typing import Optional, List

from commands import get_command, COMMANDS
from core.config import get_config_manager
from core.exceptions import MonitorError

logger = logging.getLogger(__name__)


class CLIRouter:
    """
    CLI router for monitoring commands.

    Command structure:
    - python run.py monitor run
    - python run.py monitor trigger <schedule_id>
    - python run.py monitor runs <schedule_id>
    - python run.py alerts list --unresolved
    - python run.py trends show --schedule <schedule_id> --range 30d
    """

    def __init__(self):
        """Initialize CLI router."""
        self.parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create the main argument parser."""
        parser = argparse.ArgumentParser(
            description="Accessibility Compliance Monitor",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog=self._get_examples_text()
        )

        subparsers = parser.add_subparsers(
            dest='command',
            help='Available commands',
            metavar='{command}'
        )

        self._add_monitor_parser(subparsers)
        self._add_alerts_parser(subparsers)
        self._add_trends_parser(subparsers)
        self._add_health_parser(subparsers)
        self._add_serve_parser(subparsers)

        return parser

    def _add_monitor_parser(self, subparsers):
        """Add monitor command parser."""
        monitor_parser = subparsers.add_parser(
            'monitor',
            help='Run due schedules and trigger scans'
        )

        monitor_subparsers = monitor_parser.add_subparsers(
            dest='subcommand',
            help='Monitoring operations',
            metavar='{run,trigger,due,list,runs}'
        )

        run_parser = monitor_subparsers.add_parser('run', help='Process one batch of due schedules')
        run_parser.add_argument('--json', action='store_true', help='Print the batch summary as JSON')

        trigger_parser = monitor_subparsers.add_parser('trigger', help='Scan one schedule immediately')
        trigger_parser.add_argument('schedule_id', help='Schedule to scan')
        trigger_parser.add_argument('--json', action='store_true', help='Print the scan outcome as JSON')

        due_parser = monitor_subparsers.add_parser('due', help='List schedules that are due now')
        due_parser.add_argument('--limit', type=int, default=None, help='Maximum schedules to list (default: batch size)')

        list_parser = monitor_subparsers.add_parser('list', help='List schedules by next run')
        list_parser.add_argument('--enabled', action='store_true', help='Only enabled schedules')
        list_parser.add_argument('--json', action='store_true', help='Print schedules as JSON')

        runs_parser = monitor_subparsers.add_parser('runs', help='Show recent runs of one schedule')
        runs_parser.add_argument('schedule_id', help='Schedule to inspect')
        runs_parser.add_argument('--limit', type=int, default=20, help='Maximum runs to show (default: 20)')
        runs_parser.add_argument('--json', action='store_true', help='Print runs as JSON')

    def _add_alerts_parser(self, subparsers):
        """Add alerts command parser."""
        alerts_parser = subparsers.add_parser(
            'alerts',
            help='Regression alert operations'
        )

        alerts_subparsers = alerts_parser.add_subparsers(
            dest='subcommand',
            help='Alert operations',
            metavar='{list,summary,resolve}'
        )

        list_parser = alerts_subparsers.add_parser('list', help='List alerts, newest first')
        list_parser.add_argument('--schedule', default=None, help='Only alerts for this schedule')
        list_parser.add_argument('--unresolved', action='store_true', help='Only unresolved alerts')
        list_parser.add_argument('--limit', type=int, default=50, help='Maximum alerts to show (default: 50)')
        list_parser.add_argument('--json', action='store_true', help='Print alerts as JSON')

        summary_parser = alerts_subparsers.add_parser('summary', help='Counts by severity')
        summary_parser.add_argument('--schedule', default=None, help='Only alerts for this schedule')
        summary_parser.add_argument('--json', action='store_true', help='Print the summary as JSON')

        resolve_parser = alerts_subparsers.add_parser('resolve', help='Mark an alert resolved')
        resolve_parser.add_argument('alert_id', help='Alert to resolve')
        resolve_parser.add_argument('--by', default=None, help='Who resolved the alert')

    def _add_trends_parser(self, subparsers):
        """Add trends command parser."""
        trends_parser = subparsers.add_parser(
            'trends',
            help='Score trend analysis and forecast'
        )

        trends_subparsers = trends_parser.add_subparsers(
            dest='subcommand',
            help='Trend operations',
            metavar='{show}'
        )

        show_parser = trends_subparsers.add_parser('show', help='Show trend insights')
        show_parser.add_argument('--schedule', default=None, help='Schedule to analyze (default: all)')
        show_parser.add_argument('--range', choices=['7d', '30d', '90d'], default='30d', help='Time range (default: 30d)')
        show_parser.add_argument('--json', action='store_true', help='Print the report as JSON')

    def _add_health_parser(self, subparsers):
        """Add health command parser."""
        health_parser = subparsers.add_parser(
            'health',
            help='System health monitoring and diagnostics'
        )

        health_subparsers = health_parser.add_subparsers(
            dest='subcommand',
            help='Health operations',
            metavar='{check,database,integrations}'
        )

        health_subparsers.add_parser('check', help='Run comprehensive health check')
        health_subparsers.add_parser('database', help='Check database health')
        health_subparsers.add_parser('integrations', help='Check integration configuration')

    def _add_serve_parser(self, subparsers):
        """Add serve command parser."""
        serve_parser = subparsers.add_parser(
            'serve',
            help='Run the HTTP trigger endpoints'
        )

        serve_subparsers = serve_parser.add_subparsers(
            dest='subcommand',
            help='Server operations',
            metavar='{api}'
        )

        api_parser = serve_subparsers.add_parser('api', help='Serve the monitoring API with uvicorn')
        api_parser.add_argument('--host', default=None, help='Bind address (default: API_HOST)')
        api_parser.add_argument('--port', type=int, default=None, help='Bind port (default: API_PORT)')

    def _get_examples_text(self) -> str:
        """Get examples text for help."""
        return """
Examples:
  # Scheduled trigger (cron)
  python run.py monitor run
  python run.py monitor run --json

  # Manual scan and inspection
  python run.py monitor trigger 6f1c2b1e-...
  python run.py monitor due
  python run.py alerts list --unresolved
  python run.py alerts resolve 91ab... --by ops@example.com
  python run.py trends show --schedule 6f1c2b1e-... --range 90d

  # Other commands
  python run.py health check
  python run.py serve api --port 8000

"""

    def route_command(self, args: Optional[List[str]] = None) -> int:
        """
        Route command to appropriate handler.

        Args:
            args: Command line arguments (uses sys.argv if None)

        Returns:
            Exit code
        """
        try:
            if args is None:
                args = sys.argv[1:]

            parsed_args = self.parser.parse_args(args)

            if not parsed_args.command:
                self.parser.print_help()
                return 1

            return self._handle_command(parsed_args)

        except SystemExit as e:
            # argparse calls sys.exit() on error or help
            return e.code if e.code is not None else 0
        except Exception as e:
            logger.error(f"CLI routing error: {e}", exc_info=True)
            return 1

    def _handle_command(self, args: argparse.Namespace) -> int:
        """Handle command structure."""
        logger.debug(f"Handling command: {args.command}")

        if args.command not in COMMANDS:
            available = ', '.join(COMMANDS.keys())
            logger.error(f"Unknown command '{args.command}'. Available: {available}")
            return 1

        subcommand = getattr(args, 'subcommand', None)
        if not subcommand:
            logger.error(f"No subcommand specified for '{args.command}'")
            self.parser.parse_args([args.command, '--help'])
            return 1

        try:
            command = get_command(args.command)
            return command.execute(subcommand, args)
        except Exception as e:
            logger.error(f"Error executing {args.command} {subcommand}: {e}", exc_info=True)
            return 1


def main(args: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code
    """
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        get_config_manager().update_logging()
    except (ValueError, MonitorError) as e:
        # Commands report the configuration problem themselves
        logger.warning(f"Configuration incomplete: {e}")

    router = CLIRouter()
    return router.route_command(args)


if __name__ == '__main__':
    exit_code = main()
    sys.exit(exit_code)
