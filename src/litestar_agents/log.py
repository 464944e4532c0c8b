"""Structured logging configuration using structlog.

Every module logs through ``structlog.get_logger(__name__)`` with snake_case
event names and key/value context. Nothing is configured on import; the
application (or the plugin, when asked to) calls :func:`configure_logging`
once at startup.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, WrappedLogger

__all__ = ["REDACTED_KEYS", "configure_logging", "redact_sensitive_keys"]

REDACTED_KEYS: frozenset[str] = frozenset(
    {
        "email",
        "phone",
        "password",
        "secret",
        "token",
        "api_key",
        "access_token",
        "refresh_token",
        "authorization",
    }
)
"""Event keys whose values are replaced before rendering."""


def redact_sensitive_keys(_logger: WrappedLogger, _method_name: str, event_dict: EventDict) -> EventDict:
    """Processor that masks the values of :data:`REDACTED_KEYS`."""
    for key in event_dict.keys() & REDACTED_KEYS:
        if event_dict[key] is not None:
            event_dict[key] = "[REDACTED]"
    return event_dict


def configure_logging(level: str = "INFO", fmt: str = "console", *, redact: bool = True) -> None:
    """Configure structlog for the process.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        fmt: ``json`` for production, ``console`` for development.
        redact: Whether to mask sensitive values such as contact emails.
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if redact:
        processors.append(redact_sensitive_keys)

    if fmt == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    level_num = logging.getLevelName(level.upper())
    if not isinstance(level_num, int):
        level_num = logging.INFO

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )
