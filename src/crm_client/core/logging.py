"""Structured logging setup.

JSON lines in production, console output elsewhere. Every entry carries
the ``service`` and ``environment`` bound here, plus any context bound
with ``structlog.contextvars`` (the gateway binds ``request_id`` for the
duration of each call).
"""

from __future__ import annotations

import logging

import structlog

from src.crm_client.config import Environment, get_settings


def configure_structlog() -> None:
    """Configure structlog processors and bind process-wide context."""
    settings = get_settings()

    logging.basicConfig(format="%(message)s", level=settings.LOG_LEVEL.upper())

    processors: list = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.ENVIRONMENT == Environment.production:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.bind_contextvars(
        service=settings.SERVICE_NAME,
        environment=settings.ENVIRONMENT.value,
    )
