"""Logging configuration.

Provides a single entry point for configuring structured logging with structlog.

Configuration is read from environment variables:

- ``TASKFLOW_LOG_LEVEL``: DEBUG | INFO | WARNING | ERROR (default: INFO)
- ``TASKFLOW_LOG_FORMAT``: json | console (default: console)
- ``TASKFLOW_LOG_DEBUG_DEFINITIONS``: comma-separated workflow definition ids whose
  events are always logged, including DEBUG

Example:
    >>> from litestar_taskflow.logging import configure_logging
    >>> configure_logging(level="DEBUG", format="json")
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, Literal

import structlog

__all__ = ["configure_logging", "is_configured"]

_configured = False


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
    format: Literal["json", "console"] | None = None,
    debug_definitions: list[str] | None = None,
    force: bool = False,
) -> None:
    """Configure structured logging for the application.

    Should be called once at application startup. Subsequent calls are no-ops
    unless ``force`` is set.

    Args:
        level: Log level, overriding ``TASKFLOW_LOG_LEVEL``.
        format: Output format, overriding ``TASKFLOW_LOG_FORMAT``.
        debug_definitions: Definition ids logged verbosely regardless of level.
        force: Reconfigure even if already configured.
    """
    global _configured

    if _configured and not force:
        return

    log_level = (level or os.environ.get("TASKFLOW_LOG_LEVEL", "INFO")).upper()
    log_format = (format or os.environ.get("TASKFLOW_LOG_FORMAT", "console")).lower()

    if debug_definitions is None:
        env_definitions = os.environ.get("TASKFLOW_LOG_DEBUG_DEFINITIONS", "")
        debug_definitions = [d.strip() for d in env_definitions.split(",") if d.strip()]

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    if debug_definitions:
        processors.insert(0, _make_definition_filter(debug_definitions, log_level))
    else:
        processors.insert(0, structlog.stdlib.filter_by_level)

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True, exception_formatter=structlog.dev.plain_traceback))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # With a definition filter the stdlib level must let DEBUG through
    stdlib_level = logging.DEBUG if debug_definitions else getattr(logging, log_level)
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=stdlib_level, force=True)

    _configured = True


def _make_definition_filter(debug_definitions: list[str], default_level: str) -> Any:
    """Create a processor that keeps DEBUG events of selected definitions."""
    default_level_num = getattr(logging, default_level)

    def definition_debug_filter(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        definition_id = event_dict.get("definition_id")
        if definition_id is not None and str(definition_id) in debug_definitions:
            return event_dict

        level_num = getattr(logging, method_name.upper(), logging.DEBUG)
        if level_num < default_level_num:
            raise structlog.DropEvent
        return event_dict

    return definition_debug_filter


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured
