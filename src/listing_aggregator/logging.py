"""Structlog-based logging for the listing aggregator.

Library code never configures logging on import and never prints; components
take a logger argument and fall back to `get_logger()`. Entry points (the CLI,
an embedding server) call `configure_logging` once.
"""
from __future__ import annotations

from typing import Any, Literal

import logging
import sys

import structlog

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def configure_logging(level: LogLevel = "INFO", *, json: bool = True) -> None:
    renderer: Any = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()
    logging.basicConfig(format="%(message)s", level=getattr(logging, level))
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="ISO"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level)),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "listing_aggregator", **initial: Any):
    return structlog.get_logger(name, **initial)
