"""Structured logging setup.

Engine modules log through structlog.get_logger(__name__). The CLI calls
configure_logging once at startup; log lines go to stderr so they never mix
with rich table output on stdout.
"""

import logging
import sys

import structlog


def configure_logging(level: str = "WARNING", json: bool = False) -> None:
    """Configure structlog processors and the minimum level.

    Args:
        level: Standard level name (DEBUG, INFO, WARNING, ERROR).
        json: Render JSON lines instead of the coloured console format.
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.WARNING

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
