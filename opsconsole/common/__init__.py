"""
Common Utilities

Shared modules used across all services:
- config.py - Settings (environment + YAML)
- exceptions.py - Custom exception classes
- logging_setup.py - Structured logging setup
"""

from .config import (
    ConsoleSettings,
    MAINTENANCE_DOCUMENT_ID,
    load_settings,
    get_settings,
)
from .exceptions import (
    ConsoleError,
    ConfigError,
    SubscriptionError,
    StatsError,
    NotAuthenticatedError,
    StatsFetchError,
    ServiceError,
)
from .logging_setup import (
    configure_logging,
    get_service_logger,
    log_maintenance_change,
    log_stats_failure,
)

__all__ = [
    # Config
    "ConsoleSettings",
    "MAINTENANCE_DOCUMENT_ID",
    "load_settings",
    "get_settings",
    # Exceptions
    "ConsoleError",
    "ConfigError",
    "SubscriptionError",
    "StatsError",
    "NotAuthenticatedError",
    "StatsFetchError",
    "ServiceError",
    # Logging
    "configure_logging",
    "get_service_logger",
    "log_maintenance_change",
    "log_stats_failure",
]
