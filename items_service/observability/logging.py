from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from items_service.config import Settings

# Third-party loggers whose records are re-rendered through our JSON formatter.
_ROUTED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "sqlalchemy.engine")


class _JSONHandler(logging.StreamHandler):
    """Marker subclass so repeated configuration can detect an installed handler."""


def _service_fields(settings: Settings) -> structlog.types.Processor:
    static = {
        "service": settings.service_name,
        "version": settings.service_version,
        "env": settings.app_env,
    }

    def add_service_fields(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        for key, value in static.items():
            event_dict.setdefault(key, value)
        return event_dict

    return add_service_fields


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(settings: Settings) -> None:
    """Route structlog and stdlib records to stdout as one JSON object per line.

    Every event carries the service identity plus whatever request fields are
    bound in structlog contextvars. Calling it again only adjusts the level.
    """

    level = _resolve_level(settings.log_level)
    root = logging.getLogger()
    root.setLevel(level)
    if any(isinstance(h, _JSONHandler) for h in root.handlers):
        return

    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        _service_fields(settings),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = _JSONHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared,
        )
    )
    root.handlers = [handler]

    for name in _ROUTED_LOGGERS:
        routed = logging.getLogger(name)
        routed.handlers = [handler]
        routed.propagate = False
    # SQL echo stays off unless explicitly debugging.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.DEBUG if settings.debug else logging.WARNING)
