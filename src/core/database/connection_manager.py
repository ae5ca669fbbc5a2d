#!/usr/bin/env python3
"""
Database Connection Manager

Owns the single psycopg connection used by the per-table services and
translates driver failures into the monitor's exception hierarchy.
"""

import logging
import psycopg
from psycopg.rows import dict_row
from typing import Optional, Dict, Any
from contextlib import contextmanager

from ..exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages the PostgreSQL connection with reconnect on failure."""

    def __init__(self, config, connect: bool = True):
        """
        Initialize connection manager.

        Args:
            config: DatabaseConfig with database_url and connection_timeout
            connect: Open the connection immediately
        """
        self.config = config
        self.connection: Optional[psycopg.Connection] = None
        if connect:
            self._connect()

    def _connect(self) -> None:
        """Establish database connection."""
        try:
            self.connection = psycopg.connect(
                self.config.database_url,
                row_factory=dict_row,
                autocommit=True,
                connect_timeout=self.config.connection_timeout
            )
            logger.debug("Database connection established")

        except psycopg.Error as e:
            raise DatabaseConnectionError('postgresql', e)

    def ensure_connection(self) -> None:
        """Reconnect if the connection was closed or stopped answering."""
        try:
            if not self.connection or self.connection.closed:
                self._connect()
            else:
                with self.connection.cursor() as cursor:
                    cursor.execute("SELECT 1")
        except psycopg.Error:
            logger.warning("Connection test failed, reconnecting...")
            self._connect()

    @contextmanager
    def get_cursor(self):
        """
        Get an autocommit cursor.

        Yields:
            Database cursor returning dict rows
        """
        self.ensure_connection()
        with self.connection.cursor() as cursor:
            yield cursor

    @contextmanager
    def transaction(self):
        """
        Execute several statements atomically.

        Yields:
            Database cursor within transaction
        """
        self.ensure_connection()
        with self.connection.transaction():
            with self.connection.cursor() as cursor:
                yield cursor

    def close(self) -> None:
        """Close database connection."""
        if self.connection and not self.connection.closed:
            self.connection.close()
            logger.debug("Database connection closed")

    def health_check(self) -> Dict[str, Any]:
        """
        Report connectivity and server version.

        Returns:
            Health status information
        """
        try:
            with self.get_cursor() as cursor:
                cursor.execute("SELECT 1 AS test")
                result = cursor.fetchone()

                cursor.execute("SELECT version() AS version")
                version_info = cursor.fetchone()

                return {
                    'connected': True,
                    'test_query': result['test'] == 1,
                    'version': version_info['version'],
                    'connection_info': {
                        'autocommit': self.connection.autocommit,
                        'status': str(self.connection.info.transaction_status)
                    }
                }

        except (psycopg.Error, DatabaseConnectionError) as e:
            logger.error(f"Database health check failed: {e}")
            return {
                'connected': False,
                'error': str(e)
            }

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
