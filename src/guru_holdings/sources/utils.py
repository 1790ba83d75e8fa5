"""Utility helpers for talking to the filings archive."""
from __future__ import annotations

import re
import threading
import time
from datetime import date
from typing import Callable, Optional

from dateutil import parser

from ..errors import PipelineCancelled


NON_NUMERIC = re.compile(r"[^0-9.\-]")


def parse_number(value: str | None) -> Optional[float]:
    """Parse a filed numeric value such as ``"1,234"`` or ``"12.5"``."""

    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        cleaned = NON_NUMERIC.sub("", cleaned)
        return float(cleaned) if cleaned not in {"", ".", "-"} else None


def parse_int(value: str | None) -> Optional[int]:
    """Parse a human readable integer value."""

    if not value:
        return None
    cleaned = re.sub(r"[^0-9]", "", value)
    return int(cleaned) if cleaned else None


def parse_date(value: str | None) -> Optional[date]:
    """Parse an ISO ``YYYY-MM-DD`` date string using dateutil."""

    if not value:
        return None
    return parser.isoparse(value.strip()).date()


def pad_cik(cik: str) -> str:
    """Return the 10-digit zero padded CIK used by the submissions API."""

    return cik.strip().lstrip("0").zfill(10)


def numeric_cik(cik: str) -> str:
    """Return the CIK without leading zeros as used in archive paths."""

    return cik.strip().lstrip("0") or "0"


def strip_dashes(accession_number: str) -> str:
    return accession_number.replace("-", "")


class RequestThrottle:
    """Enforce a fixed delay before every outbound request.

    One instance is shared by all workers of a batch so the aggregate request
    rate never exceeds one request per ``delay`` seconds.
    """

    def __init__(
        self,
        delay: float,
        cancel_event: threading.Event | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.delay = delay
        self.cancel_event = cancel_event
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_request: float | None = None

    def wait(self) -> None:
        self._raise_if_cancelled()
        with self._lock:
            now = self._clock()
            if self._last_request is not None:
                remaining = self._last_request + self.delay - now
            else:
                remaining = self.delay
            if remaining > 0:
                self._sleep(remaining)
            self._last_request = self._clock()
        self._raise_if_cancelled()

    def _raise_if_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise PipelineCancelled("Batch cancelled before the next upstream request")


__all__ = [
    "RequestThrottle",
    "numeric_cik",
    "pad_cik",
    "parse_date",
    "parse_int",
    "parse_number",
    "strip_dashes",
]
