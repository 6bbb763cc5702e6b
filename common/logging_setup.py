"""
Structured Logging Setup

Consistent logging configuration for the config server and its clients.
Uses JSON format for structured logs unless told otherwise.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

# LogRecord attributes that are not user-supplied "extra" fields
_RESERVED_ATTRS = frozenset((
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "service",
    "message", "taskName",
))


class JsonFormatter(logging.Formatter):
    """JSON log formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", "unknown"),
            "message": record.getMessage(),
            "logger": record.name,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that adds service name to all logs"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs.setdefault("extra", {})
        kwargs["extra"]["service"] = self.extra.get("service", "unknown")
        return msg, kwargs


def setup_logging(
    service_name: str,
    log_level: str = "INFO",
    json_format: bool = True,
) -> logging.Logger:
    """
    Set up structured logging for a service.

    Args:
        service_name: Name of the service (e.g., "server", "client.sync")
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format (True for production, False for dev)

    Returns:
        Configured logger instance
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(f"cloudconfig.{service_name}")
    logger.setLevel(numeric_level)

    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)

    if json_format:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    handler.setFormatter(formatter)
    logger.addHandler(handler)

    # Don't propagate to root logger
    logger.propagate = False

    return logger


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """
    Get a logger adapter with service context.

    Args:
        service_name: Name of the service

    Returns:
        Logger adapter with service name in all logs
    """
    log_level = os.environ.get("CLOUDCONFIG_LOG_LEVEL", "INFO")
    json_format = os.environ.get("CLOUDCONFIG_LOG_FORMAT", "json").lower() == "json"

    logger = setup_logging(service_name, log_level, json_format)
    return ServiceLoggerAdapter(logger, {"service": service_name})


def set_log_level(log_level: str) -> None:
    """Change the level of every cloudconfig logger already created (e.g. for --verbose)"""
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    os.environ["CLOUDCONFIG_LOG_LEVEL"] = log_level.upper()

    for name, logger in logging.root.manager.loggerDict.items():
        if name.startswith("cloudconfig.") and isinstance(logger, logging.Logger):
            logger.setLevel(numeric_level)
            for handler in logger.handlers:
                handler.setLevel(numeric_level)


def log_refresh(
    logger: logging.Logger | ServiceLoggerAdapter,
    changed_keys: list[str],
    old_version: str | None,
    new_version: str | None,
) -> None:
    """Log the outcome of a configuration refresh"""
    if changed_keys:
        logger.info(
            f"Config refreshed: {len(changed_keys)} key(s) changed ({old_version} → {new_version})",
            extra={
                "changed_keys": changed_keys,
                "old_version": old_version,
                "new_version": new_version,
            },
        )
    else:
        logger.debug(
            "Config refreshed (no changes)",
            extra={"version": new_version},
        )


def log_fetch(
    logger: logging.Logger | ServiceLoggerAdapter,
    uri: str,
    attempt: int,
    success: bool = True,
    error: Any = None,
) -> None:
    """Log a config server fetch attempt"""
    if success:
        logger.debug(
            f"Fetched config from {uri} (attempt {attempt})",
            extra={"uri": uri, "attempt": attempt},
        )
    else:
        logger.warning(
            f"Fetch attempt {attempt} to {uri} failed: {error}",
            extra={"uri": uri, "attempt": attempt},
        )
