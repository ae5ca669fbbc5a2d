#!/usr/bin/env python3
"""
Standardized exception hierarchy for the accessibility monitor.

Provides specific exception types for different error conditions with
proper error context.
"""

from typing import Optional, Dict, Any


class MonitorError(Exception):
    """Base exception for all monitoring errors."""

    def __init__(self, message: str, error_code: Optional[str] = None, context: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            error_code: Machine-readable error code
            context: Additional error context
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.context = context or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'context': self.context
        }


# Input-related exceptions (rejected before any state change)
class ValidationError(MonitorError):
    """Data validation failed."""

    def __init__(self, field: str, value: Any, expected: str):
        message = f"Validation failed for {field}: expected {expected}, got {value!r}"
        context = {
            'field': field,
            'value': str(value),
            'expected': expected,
            'actual_type': type(value).__name__
        }
        super().__init__(message, context=context)


class ScheduleNotFoundError(MonitorError):
    """Schedule does not exist."""

    def __init__(self, schedule_id: str):
        super().__init__(f"Schedule not found: {schedule_id}", context={'schedule_id': schedule_id})


class ScheduleInactiveError(MonitorError):
    """Schedule exists but is disabled."""

    def __init__(self, schedule_id: str):
        super().__init__(f"Schedule is inactive: {schedule_id}", context={'schedule_id': schedule_id})


class AlertNotFoundError(MonitorError):
    """Alert does not exist."""

    def __init__(self, alert_id: str):
        super().__init__(f"Alert not found: {alert_id}", context={'alert_id': alert_id})


# Scan engine exceptions
class ScanEngineError(MonitorError):
    """Scan engine failed to produce a result."""

    def __init__(self, url: str, reason: str, original_error: Optional[Exception] = None):
        message = f"Scan failed for {url}: {reason}"
        context = {
            'url': url,
            'reason': reason,
            'original_error': str(original_error) if original_error else None
        }
        super().__init__(message, context=context)


class ScanTimeoutError(ScanEngineError):
    """Scan did not finish before its deadline."""

    def __init__(self, url: str, timeout_seconds: float):
        super().__init__(url, f"timed out after {timeout_seconds:g}s")
        self.context['timeout_seconds'] = timeout_seconds


# Database-related exceptions
class DatabaseError(MonitorError):
    """Base exception for database errors."""
    pass


class DatabaseConnectionError(DatabaseError):
    """Failed to connect to database."""

    def __init__(self, connection_type: str, original_error: Exception):
        message = f"Failed to connect to database via {connection_type}"
        context = {
            'connection_type': connection_type,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


class DatabaseOperationError(DatabaseError):
    """Database operation failed."""

    def __init__(self, operation: str, table: str, original_error: Exception):
        message = f"Database {operation} failed on table {table}: {original_error}"
        context = {
            'operation': operation,
            'table': table,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


# Notification-related exceptions
class NotificationError(MonitorError):
    """Notification could not be delivered."""

    def __init__(self, channel: str, original_error: Exception):
        message = f"Notification delivery failed for channel {channel}"
        context = {
            'channel': channel,
            'original_error': str(original_error)
        }
        super().__init__(message, context=context)


# Configuration-related exceptions
class ConfigurationError(MonitorError):
    """Configuration is invalid or missing."""

    def __init__(self, config_key: str, issue: str):
        message = f"Configuration error for {config_key}: {issue}"
        context = {
            'config_key': config_key,
            'issue': issue
        }
        super().__init__(message, context=context)


class ErrorRecovery:
    """Utilities for classifying per-item failures."""

    @staticmethod
    def is_collaborator_failure(error: Exception) -> bool:
        """Scan engine and notification failures count toward backoff."""
        return isinstance(error, (ScanEngineError, NotificationError))

    @staticmethod
    def is_persistence_failure(error: Exception) -> bool:
        """Check if an error came from the persistent store."""
        return isinstance(error, DatabaseError)

    @staticmethod
    def is_client_error(error: Exception) -> bool:
        """Check if an error should surface as a 4xx response."""
        return isinstance(error, (ValidationError, ScheduleNotFoundError,
                                  ScheduleInactiveError, AlertNotFoundError))
