"""structlog configuration helpers."""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

import structlog

DEBUG_ENV_VAR = "ERPFORGE_DEBUG"


def debug_requested() -> bool:
    """Return True when the ``ERPFORGE_DEBUG`` environment flag is set."""
    env_flag = os.getenv(DEBUG_ENV_VAR, "")
    return str(env_flag).strip().lower() in {"1", "true", "yes", "on"}


def configure_logging(debug: Optional[bool] = None, json: bool = False) -> None:
    """Configure structlog for console or JSON output.

    Args:
        debug: Emit debug events. ``None`` defers to ``ERPFORGE_DEBUG``.
        json: Render events as JSON lines instead of the console renderer.
    """
    if debug is None:
        debug = debug_requested()
    level = logging.DEBUG if debug else logging.INFO
    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.add_log_level,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
