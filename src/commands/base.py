#!/usr/bin/env python3
"""
Base command class for the modular command architecture.

Provides the interface all CLI commands implement and access to services
through the dependency injection container.
"""

import logging
from abc import ABC, abstractmethod
from typing import List
from argparse import Namespace

from core.container import get_container
from core.exceptions import MonitorError, ErrorRecovery

logger = logging.getLogger(__name__)


class BaseCommand(ABC):
    """
    Base class for all CLI commands.

    Subclasses implement execute() and dispatch to one method per
    subcommand; services come from the container.
    """

    def __init__(self, container=None):
        """
        Initialize base command with dependency injection container.

        Args:
            container: Optional container instance. If None, uses global container.
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self._container = container or get_container()

    @property
    def config(self):
        """Get configuration from container."""
        return self._container.get('config')

    @property
    def db(self):
        """Get database instance from container."""
        return self._container.get('database')

    @property
    def alert_engine(self):
        """Get alert engine from container."""
        return self._container.get('alert_engine')

    @property
    def trend_analyzer(self):
        """Get trend analyzer from container."""
        return self._container.get('trend_analyzer')

    def create_runner(self):
        """Create a monitoring runner wired to configured integrations."""
        return self._container.get('runner')

    @abstractmethod
    def execute(self, subcommand: str, args: Namespace) -> int:
        """
        Execute the command with given subcommand and arguments.

        Args:
            subcommand: The specific action to perform
            args: Parsed command line arguments

        Returns:
            Exit code (0 for success, non-zero for error)
        """
        pass

    def get_available_subcommands(self) -> List[str]:
        """Names of the public subcommand methods of this command."""
        methods = []
        for attr_name in dir(self):
            if attr_name.startswith('_') or attr_name in ('execute', 'get_available_subcommands',
                                                          'handle_error', 'create_runner',
                                                          'unknown_subcommand'):
                continue
            if callable(getattr(type(self), attr_name, None)):
                methods.append(attr_name)
        return methods

    def unknown_subcommand(self, subcommand: str) -> int:
        available = ", ".join(self.get_available_subcommands())
        self.logger.error(f"Unknown subcommand '{subcommand}'. Available: {available}")
        return 1

    def handle_error(self, error: Exception, context: str = "") -> int:
        """
        Standard error handling for commands.

        Args:
            error: The exception that occurred
            context: Additional context about where the error occurred

        Returns:
            Appropriate exit code
        """
        error_msg = f"{context}: {error}" if context else str(error)

        if isinstance(error, MonitorError) and ErrorRecovery.is_client_error(error):
            self.logger.error(error_msg)
            return 2

        self.logger.error(error_msg, exc_info=True)

        if isinstance(error, KeyboardInterrupt):
            self.logger.info("Command interrupted by user")
            return 130
        elif isinstance(error, ValueError):
            return 22
        else:
            return 1
