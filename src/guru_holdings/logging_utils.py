"""Logging configuration helpers for the holdings reconciliation project."""
from __future__ import annotations

import logging
import os

LOG_LEVEL_ENV = "GURU_HOLDINGS_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _coerce_level(level: str | int) -> int:
    """Translate a user provided level into a numeric log level."""

    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"Unknown log level: {level}")
    return resolved


def configure_logging(level: str | int | None = None, *, force: bool = False) -> None:
    """Configure the root logger for console output.

    ``level`` falls back to ``GURU_HOLDINGS_LOG_LEVEL`` and then to INFO; an
    unknown level name also falls back to INFO. ``force`` mirrors
    :func:`logging.basicConfig` and replaces handlers that are already
    installed.
    """

    requested = level if level is not None else os.getenv(LOG_LEVEL_ENV, "INFO")
    try:
        resolved_level = _coerce_level(requested)
    except ValueError:
        resolved_level = logging.INFO

    root_logger = logging.getLogger()
    if root_logger.handlers and not force:
        root_logger.setLevel(resolved_level)
        return

    logging.basicConfig(level=resolved_level, format=LOG_FORMAT, force=force)
    # urllib3 logs every retry at DEBUG; keep it quiet unless asked for.
    if resolved_level > logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)


__all__ = ["configure_logging", "LOG_FORMAT"]
