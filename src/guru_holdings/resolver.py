"""Resolve CUSIP identifiers into ticker symbols.

Resolution runs an ordered chain of independent strategies; the first one
that returns a mapping wins. Identifiers no strategy can resolve are carried
through as ``unmapped`` so their value still counts toward the portfolio.
"""
from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from collections import Counter
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .cusip_table import GENERIC_ISSUER_BLACKLIST, MANUAL_CUSIP_MAP, ManualEntry
from .models import (
    SOURCE_AUTO,
    SOURCE_MANUAL,
    SOURCE_UNMAPPED,
    IdentifierMapping,
    ReferenceSecurity,
    ResolvedHolding,
)
from .sources.base import FilingSource

LOGGER = logging.getLogger(__name__)

LEGAL_SUFFIXES = re.compile(
    r"\b(INC|CORP|CORPORATION|LTD|LIMITED|CO|COMPANY|GROUP|HOLDINGS|PLC|NV|SA|AG|LP|LLC"
    r"|THE|TR|TRUST|FD|FDS)\b"
)
SHARE_CLASSES = re.compile(r"\b(CLASS [A-Z]|CL [A-Z]|SER [A-Z]|SERIES [A-Z]|NEW)\b")
NON_ALPHANUMERIC = re.compile(r"[^A-Z0-9\s]")
WHITESPACE = re.compile(r"\s+")

MIN_NAME_LENGTH = 3
MIN_PREFIX_LENGTH = 4

US_VENUES = frozenset({"NAS", "NYS", "AMS"})
EXCHANGE_CODES = {
    "nasdaq": "NAS",
    "nyse": "NYS",
    "nyse american": "AMS",
    "nyse arca": "AMS",
}


def normalize_company_name(name: str) -> str:
    """Reduce an issuer name to a comparable form.

    Legal suffixes, share-class qualifiers and punctuation are removed and
    whitespace is collapsed.
    """

    normalized = LEGAL_SUFFIXES.sub("", name.upper())
    normalized = SHARE_CLASSES.sub("", normalized)
    normalized = NON_ALPHANUMERIC.sub("", normalized)
    return WHITESPACE.sub(" ", normalized).strip()


GENERIC_ISSUERS = frozenset(normalize_company_name(name) for name in GENERIC_ISSUER_BLACKLIST)


def is_generic_issuer(name: str) -> bool:
    return normalize_company_name(name) in GENERIC_ISSUERS


class ResolutionStrategy(ABC):
    """One tier of the resolution chain."""

    @abstractmethod
    def lookup(self, cusip: str, issuer_name: str) -> Optional[IdentifierMapping]:
        """Return a mapping for ``cusip``, or ``None`` to defer to the next tier."""


class ManualTableStrategy(ResolutionStrategy):
    """Curated mappings; always trusted over name matching."""

    def __init__(self, table: Mapping[str, ManualEntry] = MANUAL_CUSIP_MAP) -> None:
        self.table = table

    def lookup(self, cusip: str, issuer_name: str) -> Optional[IdentifierMapping]:
        entry = self.table.get(cusip)
        if entry is None:
            return None
        return IdentifierMapping(
            cusip=cusip,
            ticker=entry.ticker,
            exchange=entry.exchange,
            name=entry.name or issuer_name,
            source=SOURCE_MANUAL,
            display_name=entry.name,
        )


class NameMatchStrategy(ResolutionStrategy):
    """Match the filed issuer name against a list of listed securities."""

    def __init__(self, securities: Sequence[ReferenceSecurity]) -> None:
        self._candidates = [
            (normalize_company_name(security.name), security) for security in securities
        ]
        self._exact: Dict[str, ReferenceSecurity] = {}
        for normalized, security in self._candidates:
            if normalized:
                self._exact.setdefault(normalized, security)

    def _mapping(self, cusip: str, security: ReferenceSecurity) -> IdentifierMapping:
        return IdentifierMapping(
            cusip=cusip,
            ticker=security.symbol,
            exchange=security.exchange,
            name=security.name,
            source=SOURCE_AUTO,
        )

    def lookup(self, cusip: str, issuer_name: str) -> Optional[IdentifierMapping]:
        issuer = normalize_company_name(issuer_name)
        if len(issuer) < MIN_NAME_LENGTH:
            return None
        # A sponsor name fits every product of that sponsor.
        if issuer in GENERIC_ISSUERS:
            return None

        security = self._exact.get(issuer)
        if security is not None:
            return self._mapping(cusip, security)

        if len(issuer) < MIN_PREFIX_LENGTH:
            return None
        for normalized, security in self._candidates:
            if len(normalized) < MIN_PREFIX_LENGTH:
                continue
            if normalized.startswith(issuer) or issuer.startswith(normalized):
                return self._mapping(cusip, security)
        return None


class IdentifierResolver:
    """Run resolution strategies in order, falling back to ``unmapped``."""

    def __init__(self, strategies: Iterable[ResolutionStrategy]) -> None:
        self.strategies = list(strategies)

    @classmethod
    def default(cls, securities: Sequence[ReferenceSecurity] = ()) -> "IdentifierResolver":
        return cls([ManualTableStrategy(), NameMatchStrategy(securities)])

    def resolve(self, cusip: str, issuer_name: str) -> IdentifierMapping:
        for strategy in self.strategies:
            mapping = strategy.lookup(cusip, issuer_name)
            if mapping is not None:
                return mapping
        return IdentifierMapping(
            cusip=cusip,
            ticker=None,
            exchange=None,
            name=issuer_name,
            source=SOURCE_UNMAPPED,
        )


def _exchange_code(value: Any) -> Optional[str]:
    if not value:
        return None
    text = str(value).strip()
    if text.upper() in US_VENUES:
        return text.upper()
    return EXCHANGE_CODES.get(text.lower())


def parse_reference_securities(payload: Any) -> List[ReferenceSecurity]:
    """Build US-listed reference securities from a reference payload.

    Two layouts are understood: ``{"stocks": [{"symbol", "name", "exchange"}]}``
    and the archive's tabular ``{"fields": [...], "data": [[...]]}``.
    """

    rows: List[Mapping[str, Any]]
    if isinstance(payload, Mapping) and "fields" in payload and "data" in payload:
        fields = list(payload["fields"])
        rows = [dict(zip(fields, row)) for row in payload["data"]]
    elif isinstance(payload, Mapping):
        rows = list(payload.get("stocks", []))
    else:
        rows = list(payload)

    securities = []
    for row in rows:
        symbol = row.get("symbol") or row.get("ticker")
        name = row.get("name") or row.get("title")
        exchange = _exchange_code(row.get("exchange"))
        if not symbol or not name or exchange not in US_VENUES:
            continue
        securities.append(ReferenceSecurity(str(symbol).upper(), str(name), exchange))
    return securities


def load_reference_securities(
    source: FilingSource | None = None,
    path: Path | None = None,
) -> List[ReferenceSecurity]:
    """Load the reference security list from ``path`` or from ``source``."""

    if path is not None:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        origin = str(path)
    elif source is not None:
        payload = source.fetch_reference_securities()
        origin = "archive"
    else:
        raise ValueError("A reference file path or a filing source is required")

    securities = parse_reference_securities(payload)
    LOGGER.info("Loaded %d US-listed reference securities from %s", len(securities), origin)
    return securities


def summarize_mapping(holdings: Sequence[ResolvedHolding]) -> Counter:
    """Count holdings per resolution source and log unmapped identifiers."""

    counts = Counter(holding.ticker_source for holding in holdings)
    LOGGER.info(
        "Ticker mapping: %d manual, %d auto, %d unmapped (of %d)",
        counts[SOURCE_MANUAL],
        counts[SOURCE_AUTO],
        counts[SOURCE_UNMAPPED],
        len(holdings),
    )
    for holding in holdings:
        if holding.ticker_source == SOURCE_UNMAPPED:
            LOGGER.info("Unmapped CUSIP %s (%s)", holding.cusip, holding.name_of_issuer)
    return counts


__all__ = [
    "GENERIC_ISSUERS",
    "IdentifierResolver",
    "ManualTableStrategy",
    "NameMatchStrategy",
    "ResolutionStrategy",
    "is_generic_issuer",
    "load_reference_securities",
    "normalize_company_name",
    "parse_reference_securities",
    "summarize_mapping",
]
