"""
Structured logging configuration using structlog.

Engine components log snake_case events with keyword context
(``deltas_computed``, ``funnel_computed`` ...). The tracing middleware binds
``request_id`` and ``path`` through contextvars so every record emitted while
serving a request carries them.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from api.config import Settings, get_settings

SERVICE_NAME = "note-insights"

# stdlib loggers that are too chatty at INFO
NOISY_LOGGERS = ("uvicorn.access", "httpx")


def add_service(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag every record with the service name and environment."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("env", get_settings().app_env)
    return event_dict


def add_severity(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add severity level for structured logging."""
    event_dict["severity"] = method_name.upper()
    return event_dict


def _renderer(settings: Settings) -> Processor:
    if settings.log_format == "json" and not settings.dev_mode:
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=not settings.testing)


def build_processors(settings: Settings) -> list[Processor]:
    """Processor chain shared by every logger; the renderer comes last."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        add_service,
        add_severity,
        structlog.processors.UnicodeDecoder(),
        _renderer(settings),
    ]


def configure_logging() -> None:
    """
    Configure structured logging for the application.
    JSON in production, console output in development and tests.
    """
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=build_processors(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = __name__) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)
