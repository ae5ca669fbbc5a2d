#!/usr/bin/env python3
"""
Health check command for monitoring system status.

Checks configuration, the database and integration settings.
"""

import logging
from argparse import Namespace

from .base import BaseCommand
from core.config import get_config_manager
from core.env_loader import monitoring_env_warnings, validate_database_config
from core.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class HealthCommand(BaseCommand):
    """Handle system health monitoring and diagnostics."""

    def execute(self, subcommand: str, args: Namespace) -> int:
        """Execute health subcommand."""
        try:
            if subcommand == "check":
                return self.check(args)
            elif subcommand == "database":
                return self.database(args)
            elif subcommand == "integrations":
                return self.integrations(args)
            elif subcommand == "integrations":
                return self.integrations(args)
            else:
                return self.unknown_subcommand(subcommand)

        except Exception as e:
            return self.handle_error(e, f"health {subcommand}")

    def check(self, args: Namespace) -> int:
        """Run comprehensive health check."""
        print("🏥 System Health Check")
        print("=" * 50)

        overall_healthy = self._print_database_status()

        print("\n⚙️  Configuration:")
        try:
            validate_database_config()
            print("  ✅ Database configuration: OK")
        except ValueError as e:
            print(f"  ❌ Database configuration: {e}")
            overall_healthy = False

        for warning in monitoring_env_warnings():
            print(f"  ⚠️  {warning}")

        if not self._print_integration_status():
            overall_healthy = False

        print("\n" + "=" * 50)
        if overall_healthy:
            print("✅ Overall Status: HEALTHY")
            return 0
        else:
            print("❌ Overall Status: UNHEALTHY")
            return 1

    def database(self, args: Namespace) -> int:
        """Check database health specifically."""
        print("📊 Database Health Check")
        print("=" * 30)
        return 0 if self._print_database_status() else 1

    def integrations(self, args: Namespace) -> int:
        """Check integration configuration."""
        return 0 if self._print_integration_status() else 1

    def _print_integration_status(self) -> bool:
        """Print integration status; only the scan engine is required."""
        print("\n🔌 Integration Status:")
        status = get_config_manager().get_integration_status()
        labels = {
            'scan_engine': 'Scan engine',
            'notifications': 'Report emails',
            'cron_secret': 'Trigger secret',
        }
        for key, label in labels.items():
            if status.get(key):
                print(f"  ✅ {label}: configured")
            else:
                print(f"  ⚠️  {label}: not configured")
        return bool(status.get('scan_engine'))

    def _print_database_status(self) -> bool:
        print("\n📊 Database Status:")
        try:
            health = self.db.health_check()
        except DatabaseError as e:
            print(f"  ❌ Database check failed: {e}")
            return False

        if not health.get('connected'):
            print("  ❌ Database connection: FAILED")
            print(f"     Error: {health.get('error', 'Unknown error')}")
            return False

        print("  ✅ Database connection: OK")
        for table, info in health.get('tables', {}).items():
            if 'count' in info:
                print(f"  📋 {table}: {info['count']} records")
            else:
                print(f"  ⚠️  {table}: {info.get('error')}")
        return True
