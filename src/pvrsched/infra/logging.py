"""
Logging configuration for pvrsched.

This module configures structlog for JSON logging across the application.
"""

import logging
from typing import Any

import structlog

from .settings import settings


def shorten_entries(_, __, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Render recording objects in log events as their sequence number and title."""

    def shorten(value: Any) -> Any:
        seq = getattr(value, "sequence_number", None)
        title = getattr(value, "title", None)
        if seq is not None and title is not None:
            return f"#{seq} {title!r}"
        if isinstance(value, list):
            return [shorten(item) for item in value]
        return value

    for key in list(event_dict.keys()):
        event_dict[key] = shorten(event_dict[key])

    return event_dict


def configure_logging(level: str | None = None) -> None:
    """Configure structlog for JSON logging."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, (level or settings.log_level).upper(), logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            shorten_entries,
            structlog.processors.JSONRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a configured logger with service context."""
    logger = structlog.get_logger(name)
    return logger.bind(
        service="pvrsched",
        env=settings.env,
    )
