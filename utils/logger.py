"""
Structured logging for the OP Stack withdrawal tooling.

structlog is configured once at import: ISO timestamps, log level and a JSON
renderer (``LOG_FORMAT=json``, the default) or a human-readable console
renderer (``LOG_FORMAT=console``). Modules obtain loggers via `get_logger()` and
pass context as keyword arguments, e.g.::

    log = get_logger(__name__)
    log.info("withdrawal_status", status="ready-to-prove", portal_version=3)
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog
from dotenv import load_dotenv

from .config import ENV

load_dotenv()

LOG_LEVEL = os.getenv(ENV.LOG_LEVEL, "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)

LOG_FORMAT = os.getenv(ENV.LOG_FORMAT, "json").strip().lower()


def configure_structlog() -> None:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if LOG_FORMAT == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a structured logger bound with the module name."""
    return structlog.get_logger(name).bind(logger=name)
