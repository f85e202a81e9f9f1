"""structlog setup for applications embedding gbflags."""

from __future__ import annotations

import logging
import sys

import structlog

LOGGER_NAME = "gbflags"


def _renderer(format: str) -> structlog.types.Processor:
    if format == "text":
        return structlog.dev.ConsoleRenderer()
    return structlog.processors.JSONRenderer()


def new_logger(level: str = "INFO", format: str = "json") -> structlog.stdlib.BoundLogger:
    """Route gbflags events through the stdlib root logger at ``level``.

    Args:
        level: "DEBUG", "INFO", "WARNING", "ERROR" or "CRITICAL"
        format: "json" or "text"

    ``basicConfig`` only adds a stdout handler when the root logger has none;
    the root level is always set to ``level``.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout)
    logging.getLogger().setLevel(log_level)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _renderer(format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    return structlog.stdlib.get_logger(LOGGER_NAME)
