#!/usr/bin/env python3
"""
Alerting package.
"""

from .engine import AlertEngine, AlertOutcome

__all__ = ['AlertEngine', 'AlertOutcome']
