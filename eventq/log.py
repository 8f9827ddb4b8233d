"""
Structured logging for eventq.

Every module logs through get_logger(__name__), which returns a structlog
logger. eventq never configures logging on import; applications call
configure_logging() once (or install their own structlog configuration).

Usage
-----
    from eventq.log import configure_logging, get_logger

    configure_logging()                      # EVENTQ_LOG_LEVEL / EVENTQ_LOG_JSON
    logger = get_logger(__name__)
    logger.warning("Push dropped", queue="events", reason="lock timeout")
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from eventq.config import Settings


def _add_timestamp(logger, method_name, event_dict):
    """Add an ISO 8601 UTC timestamp to the event dictionary."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _add_log_level(logger, method_name, event_dict):
    """Add the upper-cased method name as `level`."""
    event_dict["level"] = method_name.upper()
    return event_dict


def configure_logging(settings: Settings | None = None) -> None:
    """
    Install the eventq structlog pipeline.

    Level and renderer come from `settings` (log_level, log_json); when
    omitted, Settings() is loaded from the environment.
    """
    if settings is None:
        from eventq.config import Settings

        settings = Settings()

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            _add_timestamp,
            _add_log_level,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.log_level)
        ),
        logger_factory=structlog.WriteLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structlog logger bound to `name` (typically __name__)."""
    return structlog.get_logger(name)
