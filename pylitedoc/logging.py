"""Structured logging for pylitedoc.

Library modules log through :func:`get_logger`. Applications that configure
structlog themselves keep their setup; otherwise the first ``Database``
calls :func:`ensure_logging` with its settings.
"""

import logging
import sys
from typing import Any, List, Optional

import structlog
from structlog.types import EventDict, Processor

from pylitedoc.config import Settings, get_settings


def add_logger_name(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add logger name to log entry."""
    name = event_dict.pop("logger_name", None)
    event_dict["logger"] = name or (logger.name if hasattr(logger, "name") else "pylitedoc")
    return event_dict


def configure_logging(settings: Optional[Settings] = None) -> None:
    """Configure structlog with console or JSON rendering.

    Args:
        settings: Optional settings instance. If not provided, will load from environment.
    """
    if settings is None:
        settings = get_settings()

    shared_processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.log_format == "console":
        tail: List[Processor] = [
            structlog.dev.ConsoleRenderer(
                colors=False,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]
    else:
        tail = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]

    structlog.configure(
        processors=shared_processors + tail,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, settings.log_level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def ensure_logging(settings: Optional[Settings] = None) -> None:
    if not structlog.is_configured():
        configure_logging(settings)


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Optional logger name. If not provided, uses 'pylitedoc'.
    """
    # lazy: picks up configure_logging() run after import
    return structlog.get_logger(logger_name=name or "pylitedoc")
