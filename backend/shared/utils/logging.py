"""
Structured logging for FixtureWatch services.

structlog renders through the stdlib root handler, so library loggers (httpx,
SQLAlchemy, asyncpg) come out in the same format as our own events. Events are
snake_case names with key/value context: logger.info("fixture_updated", fixture_id=...).
"""
from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from shared.config import Environment, Settings, get_settings

_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "sqlalchemy.engine", "asyncpg")


def _pre_chain() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def build_renderer(settings: Settings) -> structlog.types.Processor:
    """Colored console lines in dev, one JSON object per line everywhere else."""
    if settings.environment == Environment.DEV:
        return structlog.dev.ConsoleRenderer(colors=True)
    return structlog.processors.JSONRenderer()


def setup_logging(service_name: str, extra_context: dict[str, Any] | None = None) -> None:
    """
    Configure logging for one process.

    Args:
        service_name: "reliability" or "stats"; bound to every event as `service`.
        extra_context: Further static fields bound to every event.
    """
    settings = get_settings()
    pre_chain = _pre_chain()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, build_renderer(settings)],
            foreign_pre_chain=pre_chain,
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        service=service_name,
        instance_id=settings.instance_id,
        **(extra_context or {}),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
