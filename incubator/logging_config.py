"""
Structlog configuration and helpers.
"""

from __future__ import annotations

import logging
from typing import Optional

import structlog

from incubator import config


def setup_logging(
    log_level: Optional[str] = None, log_format: Optional[str] = None
) -> None:
    """Configure structlog for the application.

    Args:
        log_level: Optional log level name (e.g., "INFO"). Defaults from LOG_LEVEL.
        log_format: "json" or "console". Defaults from LOG_FORMAT.
    """
    level_name = (log_level or config.LOG_LEVEL or "INFO").upper()
    fmt = (log_format or config.LOG_FORMAT or "console").lower()
    level = getattr(logging, level_name, logging.INFO)

    # stdlib logging too, so SQLAlchemy/uvicorn output ends up in the same place
    logging.basicConfig(level=level)

    renderer = (
        structlog.processors.JSONRenderer(sort_keys=True)
        if fmt == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.typing.FilteringBoundLogger:
    """Get a structlog logger bound with a name."""
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


def bind_context(**kwargs) -> None:
    """Bind contextvars for correlation (e.g., request_id, event_id, founder_id)."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear bound contextvars (call at end of request)."""
    structlog.contextvars.clear_contextvars()
