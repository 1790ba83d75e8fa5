"""Price snapshots supplied by the downstream platform for display."""
from __future__ import annotations

import copy
import json
import logging
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import requests

LOGGER = logging.getLogger(__name__)

PriceMap = Dict[str, float]


class PriceCache:
    """Time-bounded cache of price maps keyed by snapshot source.

    The cache is an explicit object handed to whoever needs prices, so
    separate runs and app instances never share state by accident.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[float, PriceMap]] = {}

    def get(self, key: str, loader: Callable[[], PriceMap]) -> PriceMap:
        """Return the cached prices for ``key``, calling ``loader`` when stale."""

        with self._lock:
            entry = self._entries.get(key)
            now = self._clock()
            if entry is not None and now - entry[0] < self.ttl_seconds:
                return entry[1]

        prices = loader()
        with self._lock:
            self._entries[key] = (self._clock(), prices)
        LOGGER.debug("Cached %d prices for %s", len(prices), key)
        return prices

    def invalidate(self, key: str | None = None) -> None:
        """Drop one cached source, or every source when ``key`` is None."""

        with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)


def parse_price_snapshot(payload: Mapping[str, Any]) -> PriceMap:
    """Extract ``{TICKER: price}`` from ``{"prices": {TICKER: {"currentPrice": n}}}``."""

    prices: PriceMap = {}
    for ticker, data in (payload.get("prices") or {}).items():
        price = data.get("currentPrice") if isinstance(data, Mapping) else data
        if isinstance(price, (int, float)) and price > 0:
            prices[ticker.upper()] = float(price)
    return prices


def load_price_snapshot(location: str, session: requests.Session | None = None, timeout: float = 30.0) -> PriceMap:
    """Load a price snapshot from an HTTP(S) URL or a local file path."""

    if location.startswith(("http://", "https://")):
        client = session or requests.Session()
        response = client.get(location, timeout=timeout)
        response.raise_for_status()
        payload = response.json()
    else:
        payload = json.loads(Path(location).read_text(encoding="utf-8"))
    prices = parse_price_snapshot(payload)
    LOGGER.info("Loaded %d prices from %s", len(prices), location)
    return prices


def apply_prices(
    document: Mapping[str, Any],
    current_prices: Mapping[str, float],
    filing_prices: Optional[Mapping[str, float]] = None,
) -> dict[str, Any]:
    """Return a copy of a portfolio document with price fields filled in.

    ``price_change_pct`` compares the current price against the price on the
    disclosure date and is only set when both are known.
    """

    enriched = copy.deepcopy(dict(document))
    filing_prices = filing_prices or {}
    for holding in enriched.get("holdings", []):
        ticker = (holding.get("ticker") or "").upper()
        current = current_prices.get(ticker) if ticker else None
        at_filing = filing_prices.get(ticker) if ticker else None
        holding["price_current"] = current
        holding["price_at_filing"] = at_filing
        if current is not None and at_filing:
            holding["price_change_pct"] = round((current - at_filing) / at_filing * 100, 2)
        else:
            holding["price_change_pct"] = None
    return enriched


__all__ = [
    "PriceCache",
    "apply_prices",
    "load_price_snapshot",
    "parse_price_snapshot",
]
