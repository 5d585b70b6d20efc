"""
Structured Logging Setup

All console loggers live under the "opsconsole" logger, which owns the one
output handler. Service modules ask for an adapter with get_service_logger();
the entry point calls configure_logging() once the settings are known.
"""

import logging
import sys
import os
from datetime import datetime, timezone
from typing import Any
import json

ROOT_LOGGER_NAME = "opsconsole"

# Attributes every LogRecord carries; anything else came in through `extra`
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message", "asctime", "service", "taskName",
}


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, service, logger, message, extras"""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", record.name.rpartition(".")[2]),
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, value) for key, value in vars(record).items() if key not in _RECORD_ATTRS
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Tags every record with the owning service; caller extras are kept"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def configure_logging(log_level: str = "INFO", json_format: bool = True) -> logging.Logger:
    """
    Install the console's handler on the "opsconsole" logger.

    Safe to call again: the previous handler is replaced, so the last call
    wins (the entry point calls it after reading the settings).

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: JSON lines for production, plain text for development

    Returns:
        The "opsconsole" logger
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        JsonFormatter() if json_format
        else logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)
    root.propagate = False
    return root


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """
    Get a logger adapter for one service.

    The first call configures output from OPSCONSOLE_LOG_LEVEL and
    OPSCONSOLE_LOG_FORMAT unless configure_logging() already ran.
    """
    if not logging.getLogger(ROOT_LOGGER_NAME).handlers:
        configure_logging(
            os.environ.get("OPSCONSOLE_LOG_LEVEL", "INFO"),
            os.environ.get("OPSCONSOLE_LOG_FORMAT", "json").lower() == "json",
        )
    logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{service_name}")
    return ServiceLoggerAdapter(logger, {"service": service_name})


def log_maintenance_change(logger: logging.LoggerAdapter, snapshot: Any) -> None:
    """Log a newly published maintenance snapshot"""
    flags = [
        name for name, on in (
            ("global", snapshot.global_maintenance),
            ("partial", snapshot.partial),
            ("planned", snapshot.planned),
            ("ai", snapshot.ai_disabled),
            ("license", snapshot.license_maintenance),
        ) if on
    ]
    logger.info(
        f"Maintenance state: {', '.join(flags) if flags else 'none active'}",
        extra={
            "maintenance_flags": flags,
            "enabled_by": snapshot.enabled_by,
            "updated_at": snapshot.updated_at.isoformat(),
        },
    )


def log_stats_failure(logger: logging.LoggerAdapter, error: BaseException) -> None:
    """Log a failed stats fetch"""
    logger.error(
        f"Failed to load stats: {error}",
        extra={
            "error_type": type(error).__name__,
            "status_code": getattr(error, "status_code", None),
        },
    )
