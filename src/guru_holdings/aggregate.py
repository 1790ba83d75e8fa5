"""Merge split position rows and drop non-equity rows."""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List

from .models import RawHolding

LOGGER = logging.getLogger(__name__)


def is_bond_identifier(cusip: str) -> bool:
    """Return True when the issue part of a CUSIP marks a debt security.

    Equity issues use digits in positions 7-8 (``81141R100``); debt issues
    use letters there (``81141RAG5``).
    """

    if len(cusip) < 9:
        return False
    return not cusip[6].isdigit() and not cusip[7].isdigit()


def aggregate_holdings(holdings: Iterable[RawHolding]) -> List[RawHolding]:
    """Return one direct-equity row per CUSIP.

    Option rows and debt identifiers are dropped first; rows a filer split
    across sub-accounts are then merged by summing value and share count.
    """

    merged: Dict[str, RawHolding] = {}
    skipped_options = skipped_bonds = 0
    for holding in holdings:
        if holding.put_call:
            skipped_options += 1
            continue
        if is_bond_identifier(holding.cusip):
            skipped_bonds += 1
            continue

        existing = merged.get(holding.cusip)
        if existing is None:
            merged[holding.cusip] = replace(holding)
        else:
            existing.value += holding.value
            existing.shares += holding.shares

    LOGGER.debug(
        "Aggregated into %d holdings (%d option rows, %d debt rows skipped)",
        len(merged),
        skipped_options,
        skipped_bonds,
    )
    return list(merged.values())


__all__ = ["aggregate_holdings", "is_bond_identifier"]
