#!/usr/bin/env python3
"""
Monitoring package: claiming, scanning, backoff and batch driving.
"""

from .coordinator import IdempotencyCoordinator, Claim
from .orchestrator import ScanOrchestrator, ScanExecution, compute_compliance
from .backoff import BackoffManager, FailureOutcome
from .runner import MonitoringRunner, ItemOutcome, BatchSummary, ManualScanOutcome

__all__ = [
    'IdempotencyCoordinator', 'Claim',
    'ScanOrchestrator', 'ScanExecution', 'compute_compliance',
    'BackoffManager', 'FailureOutcome',
    'MonitoringRunner', 'ItemOutcome', 'BatchSummary', 'ManualScanOutcome'
]
