#!/usr/bin/env python3
"""
CLI commands for the accessibility monitor.

Each top-level command is a class handling its own subcommands.
"""

from typing import Dict, Type
from .base import BaseCommand
from .monitor import MonitorCommand
from .alerts import AlertsCommand
from .trends import TrendsCommand
from .health import HealthCommand
from .serve import ServeCommand

# Command registry for easy extension
COMMANDS: Dict[str, Type[BaseCommand]] = {
    'monitor': MonitorCommand,
    'alerts': AlertsCommand,
    'trends': TrendsCommand,
    'health': HealthCommand,
    'serve': ServeCommand,
}


def get_command(command_name: str) -> BaseCommand:
    """Get a command instance by name."""
    if command_name not in COMMANDS:
        available = ', '.join(COMMANDS.keys())
        raise ValueError(f"Unknown command '{command_name}'. Available: {available}")

    command_class = COMMANDS[command_name]
    return command_class()


def list_commands() -> Dict[str, str]:
    """Get list of available commands with descriptions."""
    commands = {}
    for name, command_class in COMMANDS.items():
        commands[name] = getattr(command_class, '__doc__', 'No description available')
    return commands
