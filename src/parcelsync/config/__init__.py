"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .leopard import (
    LeopardConfig,
    default_leopard_resilience,
    get_activity_timezone,
    get_leopard_config,
)
from .logging import configure_logging
from .notifications import NotificationConfig, SmtpConfig, get_notification_config
from .reconciliation import ReconciliationConfig, get_reconciliation_config
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "LeopardConfig",
    "MissingConfigurationError",
    "NotificationConfig",
    "RateLimit",
    "ReconciliationConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "SmtpConfig",
    "StorageConfig",
    "configure_logging",
    "default_leopard_resilience",
    "get_activity_timezone",
    "get_database_config",
    "get_leopard_config",
    "get_notification_config",
    "get_reconciliation_config",
    "get_storage_config",
    "require_env_var",
    "require_env_vars",
]
