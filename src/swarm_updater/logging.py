"""Structured logging for swarm-updater.

Application code logs through structlog. The Docker SDK and urllib3 log
through the standard library; their records are rendered by the same
renderer via ``ProcessorFormatter``, so a sweep produces one uniform stream
(JSON in production, colored console output in development).
"""

import logging
import sys
from typing import Any

import structlog

from swarm_updater.config import get_settings

THIRD_PARTY_LOGGERS = ("docker", "urllib3")


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def _renderer(development: bool) -> Any:
    if development:
        return structlog.dev.ConsoleRenderer(colors=True)
    return structlog.processors.JSONRenderer()


def setup_logging(level: str | None = None) -> None:
    """Configure structlog and route stdlib records through it.

    ``level`` overrides the configured log level (used by ``--debug``).
    """
    settings = get_settings()
    log_level = _resolve_level(level or settings.log_level)
    renderer = _renderer(settings.is_development)

    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    structlog.configure(
        processors=[
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(sys.stdout),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[structlog.stdlib.add_logger_name, *shared],
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    logging.basicConfig(handlers=[handler], level=log_level, force=True)

    # The SDK logs every HTTP round trip at debug
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a logger instance."""
    return structlog.get_logger(name)
