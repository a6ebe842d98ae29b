"""Structured logging for the Property Weather API, built on structlog.

Both structlog loggers and plain ``logging.getLogger(__name__)`` loggers end up
in the same pipeline, so ``extra={...}`` fields on stdlib calls are rendered
alongside keyword fields on structlog calls.

Environment:
    LOG_LEVEL   DEBUG / INFO / WARNING / ERROR (default INFO)
    LOG_FORMAT  "json" for one JSON object per line, anything else for console

Weatherstack authenticates with an ``access_key`` query parameter, so request
URLs that reach the logs (httpx, uvicorn, exception messages) are scrubbed.

Usage:
    from core import get_logger
    logger = get_logger(__name__)
    logger.info("property.created", property_id="123", city="Austin")
"""

import logging
import os
import re
import sys
from typing import Any

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars
from structlog.types import EventDict, Processor

__all__ = [
    "bind_contextvars",
    "clear_contextvars",
    "configure_logging",
    "get_logger",
]

_ACCESS_KEY_PATTERN = re.compile(r"(access_key=)[^&\s\"']+")

# Loggers that are chatty at INFO
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def _scrub(value: Any) -> Any:
    if isinstance(value, str) and "access_key=" in value:
        return _ACCESS_KEY_PATTERN.sub(r"\1***", value)
    return value


def redact_access_key(
    _logger: logging.Logger, _method_name: str, event_dict: EventDict
) -> EventDict:
    """Mask Weatherstack access keys in any string field."""
    return {key: _scrub(value) for key, value in event_dict.items()}


def _log_level() -> int:
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _renderer() -> Processor:
    if os.environ.get("LOG_FORMAT", "").lower() == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=True, exception_formatter=structlog.dev.plain_traceback
    )


def _shared_processors() -> list[Processor]:
    """Processors applied to structlog and stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging() -> None:
    """Route all logging through structlog. Safe to call more than once."""
    shared = _shared_processors()

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            redact_access_key,
            _renderer(),
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(_log_level())

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Structured logger that accepts keyword fields.

    Example:
        logger = get_logger(__name__)
        logger.info("property.deleted", property_id="123")
    """
    return structlog.stdlib.get_logger(name)
