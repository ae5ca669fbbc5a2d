#!/usr/bin/env python3
"""
Dependency Injection Container

Central place where the monitoring components are wired to configuration,
the database and the external integrations. Supports singleton and
factory registrations.
"""

import logging
from typing import Any, Dict, Callable, TypeVar, Optional
from functools import wraps
import threading

logger = logging.getLogger(__name__)

T = TypeVar('T')


class Container:
    """Simple dependency injection container with lifecycle management."""

    def __init__(self):
        """Initialize empty container."""
        self._factories: Dict[str, Callable] = {}
        self._singletons: Dict[str, Any] = {}
        self._lock = threading.RLock()

    def register_singleton(self, service_name: str, factory: Callable[[], T]) -> None:
        """
        Register a service as singleton (created once, reused).

        Args:
            service_name: Unique name for the service
            factory: Function that creates the service instance
        """
        with self._lock:
            factory._is_singleton = True
            self._factories[service_name] = factory
            self._singletons.pop(service_name, None)

    def register_factory(self, service_name: str, factory: Callable[[], T]) -> None:
        """
        Register a service as factory (new instance each time).

        Args:
            service_name: Unique name for the service
            factory: Function that creates service instances
        """
        with self._lock:
            self._factories[service_name] = factory

    def register_instance(self, service_name: str, instance: T) -> None:
        """Register an existing instance as singleton (tests, app factory)."""
        with self._lock:
            self._singletons[service_name] = instance

    def get(self, service_name: str) -> Any:
        """
        Get service instance by name.

        Raises:
            KeyError: If service is not registered
        """
        if service_name in self._singletons:
            return self._singletons[service_name]

        if service_name not in self._factories:
            raise KeyError(f"Service '{service_name}' not registered")

        with self._lock:
            factory = self._factories[service_name]

            if getattr(factory, '_is_singleton', False):
                # Double-check under the lock
                if service_name not in self._singletons:
                    self._singletons[service_name] = factory()
                    logger.debug(f"Created singleton instance for '{service_name}'")
                return self._singletons[service_name]

            instance = factory()
            logger.debug(f"Created new instance for '{service_name}'")
            return instance

    def has(self, service_name: str) -> bool:
        """Check if service is registered."""
        return service_name in self._factories or service_name in self._singletons

    def clear(self) -> None:
        """Clear all registered services and instances."""
        with self._lock:
            self._factories.clear()
            self._singletons.clear()


def singleton(factory_func: Callable[[], T]) -> Callable[[], T]:
    """
    Decorator to mark a factory function as singleton.

    Usage:
        @singleton
        def create_database():
            return DatabaseFacade(config)
    """
    @wraps(factory_func)
    def wrapper():
        return factory_func()

    wrapper._is_singleton = True
    return wrapper


# Global container instance
_container: Optional[Container] = None
_container_lock = threading.Lock()


def get_container() -> Container:
    """Get global container instance (thread-safe singleton)."""
    global _container
    if _container is None:
        with _container_lock:
            if _container is None:
                _container = Container()
                _setup_default_services(_container)
    return _container


def reset_container() -> None:
    """Reset global container (useful for testing)."""
    global _container
    with _container_lock:
        if _container:
            _container.clear()
        _container = None


def _setup_default_services(container: Container) -> None:
    """Set up default service registrations with configuration injection."""

    @singleton
    def create_config():
        from core.config import get_config
        return get_config()

    @singleton
    def create_database():
        from core.database import get_database
        return get_database()

    @singleton
    def create_scan_engine():
        from integrations.scan_engine import ScanEngineClient
        config = container.get('config')
        return ScanEngineClient(
            endpoint=config.integrations.scan_engine_url,
            api_key=config.integrations.scan_engine_api_key
        )

    @singleton
    def create_notification_sender():
        from integrations.notification_sender import NotificationSender
        config = container.get('config')
        if not config.has_notifications():
            logger.info("Notification API not configured; report emails disabled")
            return None
        return NotificationSender(
            api_url=config.integrations.notification_api_url,
            api_key=config.integrations.notification_api_key,
            sender=config.integrations.notification_from
        )

    @singleton
    def create_report_formatter():
        from integrations.report_formatter import ReportFormatter
        return ReportFormatter(app_url=container.get('config').monitoring.app_url)

    @singleton
    def create_alert_engine():
        from core.alerts import AlertEngine
        config = container.get('config')
        return AlertEngine(container.get('database'), dedup_hours=config.monitoring.alert_dedup_hours)

    @singleton
    def create_trend_analyzer():
        from core.analysis import TrendAnalyzer
        return TrendAnalyzer()

    def create_runner():
        from core.monitoring import (
            MonitoringRunner, ScanOrchestrator, BackoffManager
        )
        from core.scheduling import DueWorkSelector
        config = container.get('config')
        database = container.get('database')
        monitoring = config.monitoring

        orchestrator = ScanOrchestrator(
            database,
            container.get('scan_engine'),
            notification_sender=container.get('notification_sender'),
            report_formatter=container.get('report_formatter'),
            scan_timeout=monitoring.scan_timeout_seconds
        )
        return MonitoringRunner(
            database,
            orchestrator,
            selector=DueWorkSelector(database, batch_size=monitoring.batch_size),
            alert_engine=container.get('alert_engine'),
            backoff=BackoffManager(
                database,
                max_failures=monitoring.max_consecutive_failures,
                error_max_length=monitoring.error_message_max_length
            ),
            time_budget_seconds=monitoring.time_budget_seconds
        )

    # Register services
    container.register_singleton('config', create_config)
    container.register_singleton('database', create_database)
    container.register_singleton('scan_engine', create_scan_engine)
    container.register_singleton('notification_sender', create_notification_sender)
    container.register_singleton('report_formatter', create_report_formatter)
    container.register_singleton('alert_engine', create_alert_engine)
    container.register_singleton('trend_analyzer', create_trend_analyzer)

    # Non-singletons
    container.register_factory('runner', create_runner)

    logger.debug("Default services registered in container")


# Convenience functions for common usage patterns

def get_config():
    """Get configuration instance from container."""
    return get_container().get('config')


def get_database():
    """Get database instance from container."""
    return get_container().get('database')


def get_alert_engine():
    """Get alert engine instance from container."""
    return get_container().get('alert_engine')


def get_trend_analyzer():
    """Get trend analyzer instance from container."""
    return get_container().get('trend_analyzer')


def create_runner():
    """Create a monitoring runner wired to the configured integrations."""
    return get_container().get('runner')
