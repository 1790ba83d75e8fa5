"""Domain models for holdings reports and reconciled portfolios."""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, List, Optional


NEW_BUY = "NEW BUY"
SOLD_OUT = "SOLD OUT"
ADD = "ADD"
TRIM = "TRIM"
HOLD = "HOLD"

SOURCE_MANUAL = "manual"
SOURCE_AUTO = "auto"
SOURCE_UNMAPPED = "unmapped"


def slugify(name: str) -> str:
    """Return the lower-case, dash separated slug used to address an investor."""

    return re.sub(r"\s+", "-", name.strip().lower())


@dataclass(frozen=True, slots=True)
class TrackedInvestor:
    """An investor whose holdings reports are reconciled each run."""

    name: str
    cik: str
    filing_name: str = ""

    @property
    def slug(self) -> str:
        return slugify(self.name)


@dataclass(frozen=True, slots=True)
class FilingReference:
    """One holdings report listed in a filer's submissions index."""

    cik: str
    form: str
    accession_number: str
    filing_date: Optional[date]
    report_date: Optional[date]
    primary_document: str = ""


@dataclass(frozen=True, slots=True)
class DocumentEntry:
    """A file listed in a filing's document directory."""

    name: str
    size: int
    url: str


@dataclass(slots=True)
class RawHolding:
    """A single position line of a holdings table.

    ``value`` is expressed in thousands of dollars once the parser has
    normalised the document's units.
    """

    name_of_issuer: str
    title_of_class: str
    cusip: str
    value: float
    shares: int
    shares_type: str = "SH"  # "SH" or "PRN"
    put_call: Optional[str] = None  # "PUT" or "CALL"
    investment_discretion: str = ""


@dataclass(frozen=True, slots=True)
class ReferenceSecurity:
    """A listed security used for issuer-name matching."""

    symbol: str
    name: str
    exchange: str


@dataclass(frozen=True, slots=True)
class IdentifierMapping:
    """Resolution of a CUSIP into a tradable ticker."""

    cusip: str
    ticker: Optional[str]
    exchange: Optional[str]
    name: str
    source: str
    display_name: Optional[str] = None


@dataclass(slots=True)
class ResolvedHolding:
    """A reconciled position comparing two quarters."""

    cusip: str
    ticker: Optional[str]
    name_of_issuer: str
    title_of_class: str
    exchange: Optional[str]
    value_curr: int
    shares_curr: int
    weight_curr: float
    value_prev: Optional[int]
    shares_prev: Optional[int]
    weight_prev: Optional[float]
    status: str
    shares_change_pct: Optional[float]
    ticker_source: str


@dataclass(slots=True)
class ComparisonResult:
    holdings: List[ResolvedHolding]
    total_value_prev: int
    total_value_curr: int


@dataclass(slots=True)
class PortfolioSnapshot:
    """The per-investor document handed to downstream consumers."""

    investor_name: str
    investor_slug: str
    cik: str
    filing_name: str
    report_date_prev: date
    report_date_curr: date
    filing_date_curr: Optional[date]
    total_value_prev: int
    total_value_curr: int
    holdings_count: int
    updated_at: datetime
    holdings: List[ResolvedHolding] = field(default_factory=list)

    def to_document(self) -> dict[str, Any]:
        """Serialise into the JSON-compatible downstream document."""

        document = asdict(self)
        document["report_date_prev"] = self.report_date_prev.isoformat()
        document["report_date_curr"] = self.report_date_curr.isoformat()
        document["filing_date_curr"] = (
            self.filing_date_curr.isoformat() if self.filing_date_curr else None
        )
        document["updated_at"] = self.updated_at.isoformat()
        return document


@dataclass(slots=True)
class InvestorResult:
    """Outcome of processing one investor in a batch run."""

    slug: str
    succeeded: bool
    stage: Optional[str] = None
    message: Optional[str] = None
    snapshot: Optional[PortfolioSnapshot] = None


__all__ = [
    "ADD",
    "HOLD",
    "NEW_BUY",
    "SOLD_OUT",
    "TRIM",
    "SOURCE_AUTO",
    "SOURCE_MANUAL",
    "SOURCE_UNMAPPED",
    "ComparisonResult",
    "DocumentEntry",
    "FilingReference",
    "IdentifierMapping",
    "InvestorResult",
    "PortfolioSnapshot",
    "RawHolding",
    "ReferenceSecurity",
    "ResolvedHolding",
    "TrackedInvestor",
    "slugify",
]
