#!/usr/bin/env python3
"""
Centralized Configuration Manager

Provides a single source of truth for all application configuration,
including environment variables, defaults, and validation.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Optional, Dict

from .env_loader import load_env_file, get_env_var, get_env_int, get_env_bool

logger = logging.getLogger(__name__)


@dataclass
class DatabaseConfig:
    """Database connection configuration."""
    database_url: str
    connection_timeout: int = 30
    max_retries: int = 3


@dataclass
class IntegrationConfig:
    """External integration configuration."""
    scan_engine_url: Optional[str] = None
    scan_engine_api_key: Optional[str] = None
    notification_api_url: Optional[str] = None
    notification_api_key: Optional[str] = None
    notification_from: str = "monitoring@localhost"


@dataclass
class MonitoringConfig:
    """Scheduler, backoff and alerting settings."""
    cron_secret: Optional[str] = None
    batch_size: int = 10
    time_budget_seconds: int = 300
    max_consecutive_failures: int = 5
    scan_timeout_seconds: int = 120
    alert_dedup_hours: int = 24
    error_message_max_length: int = 500
    app_url: str = "http://localhost:8000"


@dataclass
class ApplicationConfig:
    """Core application configuration."""
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Logging
    log_level: str = "INFO"
    verbose_logging: bool = False


@dataclass
class Config:
    """Master configuration container."""
    database: DatabaseConfig
    integrations: IntegrationConfig
    monitoring: MonitoringConfig
    app: ApplicationConfig

    # Environment info
    environment: str = field(default_factory=lambda: os.getenv('ENVIRONMENT', 'development'))

    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() in ['dev', 'development', 'local']

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() in ['prod', 'production']

    def has_scan_engine(self) -> bool:
        return bool(self.integrations.scan_engine_url)

    def has_notifications(self) -> bool:
        return bool(self.integrations.notification_api_url and self.integrations.notification_api_key)


class ConfigManager:
    """Manages application configuration with validation and environment loading."""

    def __init__(self, env_file_path: str = ".env"):
        """
        Initialize configuration manager.

        Args:
            env_file_path: Path to .env file relative to project root
        """
        self._config: Optional[Config] = None
        load_env_file(env_file_path)

    def get_config(self, force_reload: bool = False) -> Config:
        """
        Get application configuration.

        Args:
            force_reload: Force reloading configuration from environment

        Returns:
            Complete configuration object
        """
        if self._config is None or force_reload:
            self._config = self._build_config()
        return self._config

    def _build_config(self) -> Config:
        """Build configuration from environment variables."""

        # Database configuration (required)
        database_config = DatabaseConfig(
            database_url=get_env_var('DATABASE_URL', required=True),
            connection_timeout=get_env_int('DB_CONNECTION_TIMEOUT', 30),
            max_retries=get_env_int('DB_MAX_RETRIES', 3)
        )

        # Integration configuration (optional)
        integration_config = IntegrationConfig(
            scan_engine_url=os.getenv('SCAN_ENGINE_URL'),
            scan_engine_api_key=os.getenv('SCAN_ENGINE_API_KEY'),
            notification_api_url=os.getenv('NOTIFICATION_API_URL'),
            notification_api_key=os.getenv('NOTIFICATION_API_KEY'),
            notification_from=os.getenv('NOTIFICATION_FROM', 'monitoring@localhost')
        )

        monitoring_config = MonitoringConfig(
            cron_secret=os.getenv('CRON_SECRET'),
            batch_size=get_env_int('MONITOR_BATCH_SIZE', 10),
            time_budget_seconds=get_env_int('MONITOR_TIME_BUDGET_SECONDS', 300),
            max_consecutive_failures=get_env_int('MAX_CONSECUTIVE_FAILURES', 5),
            scan_timeout_seconds=get_env_int('SCAN_TIMEOUT_SECONDS', 120),
            alert_dedup_hours=get_env_int('ALERT_DEDUP_HOURS', 24),
            error_message_max_length=get_env_int('ERROR_MESSAGE_MAX_LENGTH', 500),
            app_url=os.getenv('APP_URL', 'http://localhost:8000').rstrip('/')
        )

        # Application configuration
        app_config = ApplicationConfig(
            api_host=os.getenv('API_HOST', '0.0.0.0'),
            api_port=get_env_int('API_PORT', 8000),
            log_level=os.getenv('LOG_LEVEL', 'INFO').upper(),
            verbose_logging=get_env_bool('VERBOSE_LOGGING')
        )

        config = Config(
            database=database_config,
            integrations=integration_config,
            monitoring=monitoring_config,
            app=app_config
        )

        self._validate_config(config)
        return config

    def _validate_config(self, config: Config) -> None:
        """Validate configuration values."""
        errors = []

        if not config.database.database_url.startswith(('postgresql://', 'postgres://')):
            errors.append("DATABASE_URL must be a postgresql:// URL")

        monitoring = config.monitoring
        if monitoring.batch_size < 1 or monitoring.batch_size > 100:
            errors.append("MONITOR_BATCH_SIZE must be between 1 and 100")

        if monitoring.time_budget_seconds < 10:
            errors.append("MONITOR_TIME_BUDGET_SECONDS must be at least 10 seconds")

        if monitoring.max_consecutive_failures < 1:
            errors.append("MAX_CONSECUTIVE_FAILURES must be at least 1")

        if monitoring.scan_timeout_seconds < 1:
            errors.append("SCAN_TIMEOUT_SECONDS must be at least 1 second")

        if monitoring.scan_timeout_seconds > monitoring.time_budget_seconds:
            errors.append("SCAN_TIMEOUT_SECONDS must not exceed MONITOR_TIME_BUDGET_SECONDS")

        if monitoring.alert_dedup_hours < 0:
            errors.append("ALERT_DEDUP_HOURS must not be negative")

        # Validate log level
        valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if config.app.log_level not in valid_log_levels:
            errors.append(f"LOG_LEVEL must be one of: {', '.join(valid_log_levels)}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

        if config.is_production() and not monitoring.cron_secret:
            logger.warning("CRON_SECRET is not set; trigger endpoints will reject all requests")

        logger.info("Configuration validation passed")

    def update_logging(self) -> None:
        """Configure logging based on current configuration."""
        config = self.get_config()

        # Set log level
        numeric_level = getattr(logging, config.app.log_level)
        logging.getLogger().setLevel(numeric_level)

        # Configure format
        if config.app.verbose_logging:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
        else:
            format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

        # Update existing handlers
        for handler in logging.getLogger().handlers:
            handler.setLevel(numeric_level)
            formatter = logging.Formatter(format_str, datefmt='%Y-%m-%d %H:%M:%S')
            handler.setFormatter(formatter)

    def get_integration_status(self) -> Dict[str, bool]:
        """Get status of all integrations."""
        config = self.get_config()
        return {
            'scan_engine': config.has_scan_engine(),
            'notifications': config.has_notifications(),
            'cron_secret': bool(config.monitoring.cron_secret)
        }


# Global configuration manager instance
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """Get global configuration manager instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def get_config() -> Config:
    """Get application configuration."""
    return get_config_manager().get_config()


def reset_config() -> None:
    """Reset configuration manager (useful for testing)."""
    global _config_manager
    _config_manager = None
