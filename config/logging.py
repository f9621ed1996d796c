#!/usr/bin/env python3
"""
mediasort - structlog configuration.

configure_from_env() is called once by the command line before any work;
library modules only call structlog.get_logger(__name__).

LOG_LEVEL and LOG_FORMAT ("json" or "console") apply when no explicit value
is given. MEDIASORT_ENV is stamped on every entry as "environment".
"""

import logging
import os
import sys

import structlog
from structlog.types import EventDict, WrappedLogger

APP_NAME = "mediasort"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def add_app_context(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """
    Add application context to every log entry.

    Adds:
    - app: "mediasort"
    - environment: value of MEDIASORT_ENV (default "development")
    """
    event_dict["app"] = APP_NAME
    event_dict["environment"] = os.getenv("MEDIASORT_ENV", "development")
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    enable_colors: bool = False,
) -> None:
    """
    Configure structlog for mediasort.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, JSON lines. If False, human-readable output
        enable_colors: If True, colorize console output (dev only)

    Raises:
        ValueError: If level is not one of LOG_LEVELS
    """
    if level.upper() not in LOG_LEVELS:
        raise ValueError(f"Unknown log level: {level}")

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )

    processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=enable_colors))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def configure_from_env(level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure logging from explicit values, falling back to LOG_LEVEL / LOG_FORMAT.

    Args:
        level: Overrides LOG_LEVEL when given
        log_format: "json" or "console", overrides LOG_FORMAT when given

    Raises:
        ValueError: If the resolved level is unknown
    """
    log_level = level or os.getenv("LOG_LEVEL", "INFO")
    fmt = log_format or os.getenv("LOG_FORMAT", "json")
    configure_logging(
        level=log_level,
        json_format=fmt == "json",
        enable_colors=fmt == "console" and sys.stdout.isatty(),
    )
