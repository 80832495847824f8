"""
Structured logging for deploygraph.

structlog on top of stdlib logging. Initialised lazily on the first
get_logger() call; level and renderer come from settings.observability
(DEPLOYGRAPH_LOG_LEVEL, DEPLOYGRAPH_LOG_JSON) unless configure_logging()
was called explicitly.
"""

import logging
from typing import Any

import structlog
from structlog.processors import JSONRenderer

from deploygraph_shared.config.settings import get_settings

# Logger cache
_LOGGER_CACHE: dict[str, Any] = {}
_INITIALIZED = False


def configure_logging(level: str | None = None, json_format: bool | None = None) -> None:
    """
    Configure structured logging.

    Args:
        level: Log level name (None = settings)
        json_format: Render JSON lines instead of console output (None = settings)
    """
    global _INITIALIZED

    observability = get_settings().observability
    if level is None:
        level = observability.log_level
    if json_format is None:
        json_format = observability.log_json

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        processors.append(JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )
    _INITIALIZED = True


def get_logger(name: str):
    """
    Get a structured logger.

    The logging system is configured on the first call.

    Args:
        name: Logger name (usually __name__)

    Returns:
        structlog BoundLogger
    """
    if not _INITIALIZED:
        configure_logging()

    if name in _LOGGER_CACHE:
        return _LOGGER_CACHE[name]

    logger = structlog.get_logger(name)
    _LOGGER_CACHE[name] = logger
    return logger


def reset_logging() -> None:
    """Reset logging state (tests)."""
    global _INITIALIZED
    _INITIALIZED = False
    _LOGGER_CACHE.clear()
    structlog.reset_defaults()
