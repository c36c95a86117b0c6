"""
Centralized logging configuration for bikecolors.

This module provides structured logging setup using structlog with
consistent formatting, levels, and processors across all components.
"""

import inspect
import logging
import os
import sys
from typing import Any

import structlog


def get_log_level() -> int:
    """
    Get log level from environment variable or default to INFO.

    Returns:
        int: Log level constant from logging module
    """
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()

    level_mapping = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }

    return level_mapping.get(level_name, logging.INFO)


def is_development_environment() -> bool:
    """Check if running in development mode (DEV_MODE flag or ENVIRONMENT)."""
    if os.getenv("DEV_MODE", "").lower() in ("true", "1", "yes", "on"):
        return True
    return os.getenv("ENVIRONMENT", "production").lower() in ["development", "dev", "local"]


def configure_structured_logging(dev_mode: bool | None = None) -> None:
    """
    Configure structured logging for the entire application.

    Args:
        dev_mode: Force development rendering; defaults to the environment
    """
    log_level = get_log_level()
    is_dev = is_development_environment() if dev_mode is None else dev_mode

    # Configure standard library logging
    logging.basicConfig(
        level=log_level,
        format="%(message)s",  # structlog will handle formatting
        stream=sys.stderr,
    )

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if is_dev:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    else:
        # Production: JSON lines for the log collector
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    logger = structlog.get_logger("bikecolors.logging")
    logger.info(
        "logging_configured",
        log_level=logging.getLevelName(log_level),
        environment="development" if is_dev else "production",
    )


def get_logger(name: str | None = None) -> Any:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (optional, defaults to calling module)

    Returns:
        structlog.BoundLogger: Configured logger instance
    """
    if name is None:
        frame = inspect.currentframe()
        if frame and frame.f_back:
            name = frame.f_back.f_globals.get("__name__", "unknown")

    return structlog.get_logger(name)


def log_performance(operation: str, duration: float, **context: Any) -> None:
    """
    Log performance metrics.

    Args:
        operation: Name of the operation
        duration: Duration in seconds
        **context: Additional context information
    """
    logger = get_logger("bikecolors.performance")
    logger.info("performance_metric", operation=operation, duration_seconds=duration, **context)


def log_admin_action(action: str, **context: Any) -> None:
    """
    Log moderation actions for the audit trail.

    Args:
        action: Action performed (approve, reject)
        **context: Additional context information
    """
    logger = get_logger("bikecolors.admin_actions")
    logger.info("admin_action", action=action, **context)


def log_error(error: Exception, context: dict[str, Any] | None = None) -> None:
    """
    Log errors with structured context.

    Args:
        error: Exception that occurred
        context: Additional context information
    """
    logger = get_logger("bikecolors.errors")

    error_context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }

    if context:
        error_context.update(context)

    logger.error("error_occurred", **error_context)


class LogContext:
    """Context manager for adding structured context to logs."""

    def __init__(self, logger: Any, **context: Any):
        self.logger = logger
        self.context = context
        self.bound_logger: Any = None

    def __enter__(self) -> Any:
        self.bound_logger = self.logger.bind(**self.context)
        return self.bound_logger

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is not None and self.bound_logger is not None:
            self.bound_logger.error(
                "context_exception", exception_type=exc_type.__name__, exception_message=str(exc_val)
            )


def log_context(**context: Any) -> LogContext:
    """
    Create a logging context manager.

    Args:
        **context: Context variables to add to all log messages

    Returns:
        LogContext: Context manager for structured logging, named after the
            calling module
    """
    frame = inspect.currentframe()
    name = frame.f_back.f_globals.get("__name__") if frame and frame.f_back else None
    return LogContext(get_logger(name), **context)
