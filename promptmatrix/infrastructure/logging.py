import logging
import sys

import structlog

from ..domain.errors import ConfigurationError

LOG_FORMATS = ("console", "json")


def configure_logging(log_format: str = "console", level: str = "info") -> None:
    """Configure structlog to render to stderr, keeping stdout for reports."""
    if log_format == "console":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    elif log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        raise ConfigurationError(
            f"Invalid log format: {log_format!r}. Must be 'console' or 'json'."
        )

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ConfigurationError(f"Invalid log level: {level!r}")

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
