"""structlog configuration for programs embedding httpstash.

The library only ever calls ``structlog.get_logger()``; it never configures
logging on import. Applications that want httpstash's events rendered
consistently call :func:`setup_logging` once at startup.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from structlog.types import Processor

    from httpstash.config import LoggingSettings


def setup_logging(settings: LoggingSettings) -> None:
    """Route structlog output to stderr at the configured level and format."""
    level = logging.getLevelName(settings.level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.format == "json":
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
