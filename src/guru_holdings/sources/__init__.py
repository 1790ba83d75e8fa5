"""Source factory for the filings archive."""
from __future__ import annotations

import logging
import threading
from typing import Any

from .base import FilingSource
from .edgar import EdgarSource
from .utils import RequestThrottle

LOGGER = logging.getLogger(__name__)


def create_source(settings: Any, cancel_event: threading.Event | None = None) -> FilingSource:
    """Instantiate the archive client configured by ``settings``.

    A single throttle is created per source so every worker sharing the source
    shares the request budget.
    """

    throttle = RequestThrottle(settings.request_delay, cancel_event)
    LOGGER.debug(
        "Selected EdgarSource (delay=%.2fs, timeout=%.1fs, retries=%d)",
        settings.request_delay,
        settings.request_timeout,
        settings.max_retries,
    )
    return EdgarSource(
        settings.user_agent,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
        backoff_factor=settings.backoff_factor,
        throttle=throttle,
    )


__all__ = ["create_source", "FilingSource", "EdgarSource", "RequestThrottle"]
