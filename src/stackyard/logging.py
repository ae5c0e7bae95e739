"""
Structured logging for stackyard.

Engine and provider events go through structlog and are handed to the
standard library root logger, so ``--log-level`` filters them like any other
record. Events are rendered for the console unless ``STACKYARD_LOG_JSON``
asks for one JSON object per line.
"""

import logging
from typing import Any

import structlog


def event_renderer(json: bool) -> Any:
    """Return the final processor: JSON lines, or colored key/value pairs."""
    if json:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer()


def configure_logging(level: int | str = logging.INFO, *, json: bool = True) -> None:
    """Route stackyard events through structlog at ``level``."""
    structlog.configure(
        processors=[
            # Fields bound with structlog.contextvars, e.g. the current resource
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            event_renderer(json),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Events arrive fully rendered; the handler must not decorate them again
    logging.basicConfig(level=level, format="%(message)s", force=True)
