#!/usr/bin/env python3
"""
Core data models for accessibility monitoring.

Contains all data structures used throughout the application.
"""

from .schedule import Frequency, MonitoredSchedule
from .run import RunStatus, RunRecord
from .scan import Violation, EngineScan, ScanResult
from .alert import AlertType, AlertSeverity, AlertCandidate, Alert

__all__ = [
    'Frequency', 'MonitoredSchedule',
    'RunStatus', 'RunRecord',
    'Violation', 'EngineScan', 'ScanResult',
    'AlertType', 'AlertSeverity', 'AlertCandidate', 'Alert',
]
