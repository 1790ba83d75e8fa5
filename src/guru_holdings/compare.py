"""Quarter-over-quarter comparison of aggregated holdings."""
from __future__ import annotations

import logging
from collections import Counter
from typing import Dict, Iterable, List, Optional, Sequence

from .models import (
    ADD,
    HOLD,
    NEW_BUY,
    SOLD_OUT,
    TRIM,
    ComparisonResult,
    IdentifierMapping,
    RawHolding,
    ResolvedHolding,
)
from .resolver import IdentifierResolver, is_generic_issuer

LOGGER = logging.getLogger(__name__)

DEFAULT_CHANGE_THRESHOLD = 0.01
STATUS_ORDER = (NEW_BUY, SOLD_OUT, ADD, TRIM, HOLD)


def _to_dollars(value_thousands: float) -> int:
    return int(round(value_thousands * 1000))


def _weight(value: int, total: int) -> float:
    return round(value / total * 100, 2)


def display_name(name_of_issuer: str, title_of_class: str, mapping: IdentifierMapping) -> str:
    """Choose the name shown for a holding.

    An explicit override from the resolver wins; generic sponsor names are
    replaced by the filed class title; otherwise the filed issuer name is kept.
    """

    if mapping.display_name and mapping.display_name != name_of_issuer:
        return mapping.display_name
    if title_of_class and is_generic_issuer(name_of_issuer):
        return title_of_class
    return name_of_issuer


def classify_change(prev_shares: int, curr_shares: int, threshold: float = DEFAULT_CHANGE_THRESHOLD) -> tuple[str, float]:
    """Return the status and the rounded share change percentage."""

    change = (curr_shares - prev_shares) / prev_shares if prev_shares > 0 else 0.0
    if change > threshold:
        status = ADD
    elif change < -threshold:
        status = TRIM
    else:
        status = HOLD
    return status, round(change * 100, 2)


def _index(holdings: Iterable[RawHolding]) -> Dict[str, RawHolding]:
    return {holding.cusip: holding for holding in holdings}


def compare_holdings(
    previous: Sequence[RawHolding],
    current: Sequence[RawHolding],
    resolver: IdentifierResolver,
    threshold: float = DEFAULT_CHANGE_THRESHOLD,
) -> ComparisonResult:
    """Diff two quarters of aggregated holdings.

    Values are converted from thousands to whole dollars and weights are
    computed against each quarter's total filed value. Holdings are ordered by
    current weight, then previous weight, then CUSIP.
    """

    prev_map = _index(previous)
    curr_map = _index(current)
    total_prev = sum(_to_dollars(holding.value) for holding in previous)
    total_curr = sum(_to_dollars(holding.value) for holding in current)

    def prev_weight(value: int) -> Optional[float]:
        return _weight(value, total_prev) if total_prev > 0 else None

    result: List[ResolvedHolding] = []
    for cusip, curr in curr_map.items():
        prev = prev_map.get(cusip)
        mapping = resolver.resolve(cusip, curr.name_of_issuer)
        value_curr = _to_dollars(curr.value)

        if prev is None:
            status, change_pct = NEW_BUY, None
            value_prev = shares_prev = weight_prev = None
        else:
            status, change_pct = classify_change(prev.shares, curr.shares, threshold)
            value_prev = _to_dollars(prev.value)
            shares_prev = prev.shares
            weight_prev = prev_weight(value_prev)

        result.append(
            ResolvedHolding(
                cusip=cusip,
                ticker=mapping.ticker,
                name_of_issuer=display_name(curr.name_of_issuer, curr.title_of_class, mapping),
                title_of_class=curr.title_of_class,
                exchange=mapping.exchange,
                value_curr=value_curr,
                shares_curr=curr.shares,
                weight_curr=_weight(value_curr, total_curr) if total_curr > 0 else 0.0,
                value_prev=value_prev,
                shares_prev=shares_prev,
                weight_prev=weight_prev,
                status=status,
                shares_change_pct=change_pct,
                ticker_source=mapping.source,
            )
        )

    for cusip, prev in prev_map.items():
        if cusip in curr_map:
            continue
        mapping = resolver.resolve(cusip, prev.name_of_issuer)
        value_prev = _to_dollars(prev.value)
        result.append(
            ResolvedHolding(
                cusip=cusip,
                ticker=mapping.ticker,
                name_of_issuer=display_name(prev.name_of_issuer, prev.title_of_class, mapping),
                title_of_class=prev.title_of_class,
                exchange=mapping.exchange,
                value_curr=0,
                shares_curr=0,
                weight_curr=0.0,
                value_prev=value_prev,
                shares_prev=prev.shares,
                weight_prev=prev_weight(value_prev),
                status=SOLD_OUT,
                shares_change_pct=-100.0,
                ticker_source=mapping.source,
            )
        )

    result.sort(key=lambda h: (-h.weight_curr, -(h.weight_prev or 0.0), h.cusip))
    return ComparisonResult(holdings=result, total_value_prev=total_prev, total_value_curr=total_curr)


def summarize_statuses(holdings: Sequence[ResolvedHolding]) -> Counter:
    """Count holdings per status and log the new buys and exits."""

    counts = Counter(holding.status for holding in holdings)
    LOGGER.info(
        "Comparison: %d holdings (%s)",
        len(holdings),
        ", ".join(f"{status} {counts[status]}" for status in STATUS_ORDER),
    )
    for holding in holdings:
        if holding.status == NEW_BUY:
            LOGGER.info(
                "  NEW BUY %s (%s) $%s (%.2f%%)",
                holding.ticker or "???",
                holding.name_of_issuer,
                f"{holding.value_curr:,}",
                holding.weight_curr,
            )
        elif holding.status == SOLD_OUT:
            LOGGER.info("  SOLD OUT %s (%s)", holding.ticker or "???", holding.name_of_issuer)
    return counts


def format_preview(holdings: Sequence[ResolvedHolding], limit: int = 10) -> str:
    """Render the top holdings as a fixed-width table for the operator log."""

    lines = [
        f"{'#':<4}{'Ticker':<10}{'Name':<30}{'Weight%':>9}{'Shares':>16}  {'Change':<10}Status",
        "-" * 90,
    ]
    for position, holding in enumerate(holdings[:limit], start=1):
        if holding.shares_change_pct is None:
            change = "NEW"
        else:
            change = f"{holding.shares_change_pct:+.1f}%"
        lines.append(
            f"{position:<4}{(holding.ticker or '???'):<10}{holding.name_of_issuer[:25]:<30}"
            f"{holding.weight_curr:>9.2f}{holding.shares_curr:>16,}  {change:<10}{holding.status}"
        )
    return "\n".join(lines)


__all__ = [
    "DEFAULT_CHANGE_THRESHOLD",
    "classify_change",
    "compare_holdings",
    "display_name",
    "format_preview",
    "summarize_statuses",
]
