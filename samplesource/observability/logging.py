"""structlog setup for the controller.

Every record is a JSON object on stderr carrying ``service``, ``version``
and the ``component`` that emitted it.
"""

from __future__ import annotations

import logging
import sys

import structlog

from samplesource import __version__

SERVICE_NAME = "samplesource-controller"


def setup_logging(level: str = "info") -> None:
    """Configure structlog for JSON output to stderr at *level*."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="ts"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(component: str) -> structlog.stdlib.BoundLogger:
    """Logger bound to the service and *component*, e.g. ``get_logger("reconciler")``."""
    return structlog.get_logger(  # type: ignore[no-any-return]
        service=SERVICE_NAME,
        version=__version__,
        component=component,
    )
