"""Shared fixtures for the holdings reconciliation test suite."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Iterable, Optional, Sequence

import pytest
from sqlalchemy import create_engine

from guru_holdings.config import Settings
from guru_holdings.db import ensure_schema
from guru_holdings.errors import UpstreamHTTPError
from guru_holdings.models import NEW_BUY, PortfolioSnapshot, RawHolding, ResolvedHolding, TrackedInvestor
from guru_holdings.resolver import IdentifierResolver
from guru_holdings.sources.base import FilingSource

INFO_TABLE_NS = "http://www.sec.gov/edgar/document/thirteenf/informationtable"
SUBMISSION_NS = "http://www.sec.gov/edgar/thirteenffiler"

# (issuer, class title, cusip, value, shares, put/call)
Row = tuple


def _entries(rows: Iterable[Row], prefix: str = "") -> str:
    parts = []
    for row in rows:
        issuer, title, cusip, value, shares = row[:5]
        put_call = row[5] if len(row) > 5 else None
        option = f"<{prefix}putCall>{put_call}</{prefix}putCall>" if put_call else ""
        parts.append(
            f"<{prefix}infoTable>"
            f"<{prefix}nameOfIssuer>{issuer}</{prefix}nameOfIssuer>"
            f"<{prefix}titleOfClass>{title}</{prefix}titleOfClass>"
            f"<{prefix}cusip>{cusip}</{prefix}cusip>"
            f"<{prefix}value>{value}</{prefix}value>"
            f"<{prefix}shrsOrPrnAmt>"
            f"<{prefix}sshPrnamt>{shares}</{prefix}sshPrnamt>"
            f"<{prefix}sshPrnamtType>SH</{prefix}sshPrnamtType>"
            f"</{prefix}shrsOrPrnAmt>"
            f"{option}"
            f"<{prefix}investmentDiscretion>SOLE</{prefix}investmentDiscretion>"
            f"</{prefix}infoTable>"
        )
    return "".join(parts)


def info_table_xml(rows: Sequence[Row]) -> bytes:
    """Holdings table with a namespaced ``informationTable`` root."""

    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<informationTable xmlns="{INFO_TABLE_NS}">{_entries(rows)}</informationTable>'
    ).encode("utf-8")


def wrapped_info_table_xml(rows: Sequence[Row]) -> bytes:
    """Holdings table nested inside an ``edgarSubmission`` with prefixed elements."""

    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<edgarSubmission xmlns="{SUBMISSION_NS}" xmlns:ns1="{INFO_TABLE_NS}">'
        "<headerData><submissionType>13F-HR</submissionType></headerData>"
        f"<formData><ns1:informationTable>{_entries(rows, 'ns1:')}</ns1:informationTable></formData>"
        "</edgarSubmission>"
    ).encode("utf-8")


def directory_listing(documents: Sequence[tuple[str, int]]) -> str:
    """Render a filing directory page like the archive's index listing."""

    rows = "".join(
        f'<tr><td><a href="/Archives/edgar/data/1/000000000024000001/{name}">{name}</a></td>'
        f"<td>{size:,}</td><td>2024-05-15 12:00:00</td></tr>"
        for name, size in documents
    )
    return (
        "<html><body><table><tr><th>Name</th><th>Size</th><th>Last Modified</th></tr>"
        f'<tr><td><a href="/Archives/edgar/data/1/">Parent Directory</a></td><td></td><td></td></tr>'
        f"{rows}</table></body></html>"
    )


def submissions_block(filings: Sequence[tuple[str, str, str, str]]) -> dict[str, list[str]]:
    """Columnar submissions block from (form, accession, filing date, report date) rows."""

    return {
        "form": [item[0] for item in filings],
        "accessionNumber": [item[1] for item in filings],
        "filingDate": [item[2] for item in filings],
        "reportDate": [item[3] for item in filings],
        "primaryDocument": ["primary_doc.xml" for _ in filings],
    }


def holding(cusip: str, value: float, shares: int, name: str = "ISSUER", title: str = "COM", put_call: Optional[str] = None) -> RawHolding:
    return RawHolding(
        name_of_issuer=name,
        title_of_class=title,
        cusip=cusip,
        value=value,
        shares=shares,
        put_call=put_call,
    )


class FakeSource(FilingSource):
    """In-memory filings archive keyed by CIK, accession number and URL."""

    BASE_URL = "https://archive.test/data"

    def __init__(
        self,
        submissions: Optional[dict[str, dict[str, Any]]] = None,
        pages: Optional[dict[str, dict[str, Any]]] = None,
        listings: Optional[dict[str, str]] = None,
        documents: Optional[dict[str, bytes]] = None,
        reference: Optional[dict[str, Any]] = None,
    ) -> None:
        self.submissions = submissions or {}
        self.pages = pages or {}
        self.listings = listings or {}
        self.documents = documents or {}
        self.reference = reference
        self.calls: list[tuple[str, str]] = []

    def fetch_submissions(self, cik: str) -> dict[str, Any]:
        self.calls.append(("submissions", cik))
        if cik not in self.submissions:
            raise UpstreamHTTPError(404, f"{self.BASE_URL}/CIK{cik}.json", "Not Found")
        return self.submissions[cik]

    def fetch_submissions_page(self, name: str) -> dict[str, Any]:
        self.calls.append(("page", name))
        return self.pages[name]

    def filing_base_url(self, cik: str, accession_number: str) -> str:
        return f"{self.BASE_URL}/{cik.lstrip('0')}/{accession_number.replace('-', '')}"

    def fetch_filing_index(self, cik: str, accession_number: str) -> str:
        self.calls.append(("index", accession_number))
        if accession_number not in self.listings:
            raise UpstreamHTTPError(404, self.filing_base_url(cik, accession_number), "Not Found")
        return self.listings[accession_number]

    def fetch_document(self, url: str) -> bytes:
        self.calls.append(("document", url))
        if url not in self.documents:
            raise UpstreamHTTPError(404, url, "Not Found")
        return self.documents[url]

    def fetch_reference_securities(self) -> dict[str, Any]:
        self.calls.append(("reference", ""))
        if self.reference is None:
            raise UpstreamHTTPError(503, "https://archive.test/tickers.json", "Service Unavailable")
        return self.reference

    def add_filing(self, cik: str, accession: str, rows: Sequence[Row], name: str = "infotable.xml") -> None:
        """Register a filing directory containing a cover page and a holdings table."""

        self.listings[accession] = directory_listing([("primary_doc.xml", 2_000), (name, 40_000)])
        url = f"{self.filing_base_url(cik, accession)}/{name}"
        self.documents[url] = info_table_xml(rows)


@pytest.fixture
def investor() -> TrackedInvestor:
    return TrackedInvestor("Test Investor", "0000000001", "Test Capital")


@pytest.fixture
def settings(investor: TrackedInvestor) -> Settings:
    return Settings(database_url=None, investors=(investor,), request_delay=0.0, max_workers=1)


@pytest.fixture
def resolver() -> IdentifierResolver:
    return IdentifierResolver.default(())


@pytest.fixture
def engine(tmp_path):
    """SQLite store in a temporary file, shared by every thread of a test."""

    engine = create_engine(f"sqlite:///{tmp_path / 'holdings.db'}", future=True)
    ensure_schema(engine)
    yield engine
    engine.dispose()


def make_snapshot(slug="warren-buffett", total=170_000, report_date=date(2024, 6, 30)):
    position = ResolvedHolding(
        cusip="037833100",
        ticker="AAPL",
        name_of_issuer="APPLE INC",
        title_of_class="COM",
        exchange="NAS",
        value_curr=total,
        shares_curr=1200,
        weight_curr=100.0,
        value_prev=None,
        shares_prev=None,
        weight_prev=None,
        status=NEW_BUY,
        shares_change_pct=None,
        ticker_source="manual",
    )
    return PortfolioSnapshot(
        investor_name="Warren Buffett",
        investor_slug=slug,
        cik="0001067983",
        filing_name="Berkshire Hathaway",
        report_date_prev=date(2024, 3, 31),
        report_date_curr=report_date,
        filing_date_curr=date(2024, 8, 14),
        total_value_prev=0,
        total_value_curr=total,
        holdings_count=1,
        updated_at=datetime(2024, 8, 20, 2, 0, tzinfo=timezone.utc),
        holdings=[position],
    )
