#!/usr/bin/env python3
"""
Scheduling package: next-run calculation and due-work selection.
"""

from .calculator import (
    NextRun, calculate_next_run, next_run_for, make_window_key,
    parse_time_of_day, format_time_since
)
from .selector import DueWorkSelector

__all__ = [
    'NextRun', 'calculate_next_run', 'next_run_for', 'make_window_key',
    'parse_time_of_day', 'format_time_since', 'DueWorkSelector'
]
