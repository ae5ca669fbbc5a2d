#!/usr/bin/env python3
"""
Apply database migrations for the monitoring schema.
"""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from core.config import get_config
from core.database.connection_manager import ConnectionManager
from core.exceptions import MonitorError

MIGRATIONS_DIR = os.path.join(os.path.dirname(__file__), "database", "migrations")


def apply_migrations(print_only: bool = False) -> bool:
    """Apply every migration file in order, or print them with --print."""
    migration_files = sorted(f for f in os.listdir(MIGRATIONS_DIR) if f.endswith('.sql'))
    if not migration_files:
        print(f"No migrations found in {MIGRATIONS_DIR}")
        return False

    if print_only:
        for name in migration_files:
            with open(os.path.join(MIGRATIONS_DIR, name), 'r') as f:
                print(f"-- {name}")
                print(f.read())
        return True

    try:
        manager = ConnectionManager(get_config().database)
    except (ValueError, MonitorError) as e:
        print(f"❌ Cannot connect to database: {e}")
        print("Run with --print and apply the SQL manually instead.")
        return False

    with manager:
        for name in migration_files:
            with open(os.path.join(MIGRATIONS_DIR, name), 'r') as f:
                migration_sql = f.read()
            print(f"Applying {name}...")
            with manager.transaction() as cursor:
                cursor.execute(migration_sql)
            print(f"  ✅ {name}")

    return True


if __name__ == "__main__":
    success = apply_migrations(print_only='--print' in sys.argv[1:])
    exit(0 if success else 1)
