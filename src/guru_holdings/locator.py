"""Locate holdings reports and their holdings-table documents."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, List, Optional, Sequence

from bs4 import BeautifulSoup

from .errors import FilingNotFoundError, InformationTableNotFoundError
from .models import DocumentEntry, FilingReference
from .sources.base import FilingSource
from .sources.utils import parse_date, parse_int

LOGGER = logging.getLogger(__name__)

HOLDINGS_FORMS = frozenset({"13F-HR", "13F-HR/A"})
COVER_PAGE_DOCUMENT = "primary_doc.xml"
INFO_TABLE_MARKERS = ("infotable", "information_table", "informationtable", "info_table")
# A runner-up this close to the largest candidate makes the size heuristic ambiguous.
AMBIGUOUS_SIZE_RATIO = 0.5
MAX_OVERFLOW_PAGES = 2


def _extract_filings(cik: str, block: dict[str, Any]) -> List[FilingReference]:
    forms = block.get("form", [])
    accessions = block.get("accessionNumber", [])
    filing_dates = block.get("filingDate", [])
    report_dates = block.get("reportDate", [])
    primary_docs = block.get("primaryDocument", [])

    filings = []
    for index, form in enumerate(forms):
        if form not in HOLDINGS_FORMS or index >= len(accessions):
            continue
        filings.append(
            FilingReference(
                cik=cik,
                form=form,
                accession_number=accessions[index],
                filing_date=parse_date(filing_dates[index] if index < len(filing_dates) else None),
                report_date=parse_date(report_dates[index] if index < len(report_dates) else None),
                primary_document=primary_docs[index] if index < len(primary_docs) else "",
            )
        )
    return filings


def _distinct_periods(filings: Iterable[FilingReference]) -> set[date]:
    return {filing.report_date for filing in filings if filing.report_date is not None}


def list_holdings_filings(source: FilingSource, cik: str) -> List[FilingReference]:
    """Return the filer's holdings reports, most recently filed first.

    The submissions API only lists the most recent filings inline. Large filers
    can push older holdings reports into overflow pages, so up to
    ``MAX_OVERFLOW_PAGES`` of them are read until two report periods are known.
    """

    data = source.fetch_submissions(cik)
    filings_data = data.get("filings", {})
    filings = _extract_filings(cik, filings_data.get("recent", {}))

    if len(_distinct_periods(filings)) < 2:
        for extra in filings_data.get("files", [])[:MAX_OVERFLOW_PAGES]:
            name = extra.get("name")
            if not name:
                continue
            filings.extend(_extract_filings(cik, source.fetch_submissions_page(name)))
            if len(_distinct_periods(filings)) >= 2:
                break

    if not filings:
        raise FilingNotFoundError(f"No 13F-HR filings found for CIK {cik}")

    filings.sort(key=lambda filing: filing.filing_date or date.min, reverse=True)
    LOGGER.info("Found %d holdings reports for CIK %s", len(filings), cik)
    for filing in filings[:8]:
        LOGGER.debug(
            "  %s %s (filed %s) %s",
            filing.form,
            filing.report_date,
            filing.filing_date,
            filing.accession_number,
        )
    return filings


def latest_report_periods(filings: Sequence[FilingReference], count: int = 2) -> List[date]:
    """Return the ``count`` most recent distinct report dates, newest first."""

    return sorted(_distinct_periods(filings), reverse=True)[:count]


def select_filing(
    filings: Sequence[FilingReference],
    quarter_end: date,
    tolerance_days: int = 30,
) -> Optional[FilingReference]:
    """Pick the holdings report describing ``quarter_end``.

    An exact report-date match wins; otherwise the report whose date is
    nearest to ``quarter_end`` and strictly within ``tolerance_days`` of it.
    """

    for filing in filings:
        if filing.report_date == quarter_end:
            return filing

    candidates = [
        filing
        for filing in filings
        if filing.report_date is not None
        and abs((filing.report_date - quarter_end).days) < tolerance_days
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda filing: abs((filing.report_date - quarter_end).days))


def parse_directory_listing(html: str, base_url: str) -> List[DocumentEntry]:
    """Extract the XML documents and their sizes from a filing directory page."""

    soup = BeautifulSoup(html, "html.parser")
    entries: List[DocumentEntry] = []
    seen: set[str] = set()
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href.lower().endswith(".xml") or "xslform" in href.lower():
            continue
        name = href.rstrip("/").split("/")[-1]
        if name in seen:
            continue
        seen.add(name)

        size = 0
        cell = anchor.find_parent("td")
        if cell is not None:
            size_cell = cell.find_next_sibling("td")
            if size_cell is not None:
                size = parse_int(size_cell.get_text(strip=True)) or 0
        entries.append(DocumentEntry(name=name, size=size, url=f"{base_url}/{name}"))
    return entries


def _cover_page_names(filing: FilingReference) -> set[str]:
    names = {COVER_PAGE_DOCUMENT}
    if filing.primary_document:
        names.add(filing.primary_document.split("/")[-1].lower())
    return names


def find_information_table(source: FilingSource, filing: FilingReference) -> DocumentEntry:
    """Locate the holdings-table XML document of ``filing``.

    File names are chosen by each filer, so a name that signals an
    information table is preferred. Failing that, the largest XML document
    other than the cover page is used.
    """

    base_url = source.filing_base_url(filing.cik, filing.accession_number)
    html = source.fetch_filing_index(filing.cik, filing.accession_number)
    documents = parse_directory_listing(html, base_url)
    LOGGER.info(
        "Found %d XML documents in %s: %s",
        len(documents),
        filing.accession_number,
        ", ".join(f"{doc.name}({doc.size})" for doc in documents),
    )
    if not documents:
        raise InformationTableNotFoundError(
            f"No XML documents in filing {filing.accession_number} for CIK {filing.cik}"
        )

    for document in documents:
        lower = document.name.lower()
        if any(marker in lower for marker in INFO_TABLE_MARKERS):
            LOGGER.info("Using information table %s", document.name)
            return document

    cover_pages = _cover_page_names(filing)
    candidates = sorted(
        (doc for doc in documents if doc.name.lower() not in cover_pages),
        key=lambda doc: doc.size,
        reverse=True,
    )
    if not candidates:
        raise InformationTableNotFoundError(
            f"Filing {filing.accession_number} for CIK {filing.cik} only contains its cover page"
        )

    chosen = candidates[0]
    if len(candidates) > 1 and candidates[1].size >= chosen.size * AMBIGUOUS_SIZE_RATIO:
        LOGGER.warning(
            "Ambiguous holdings table in %s: chose %s (%d bytes) over %s (%d bytes)",
            filing.accession_number,
            chosen.name,
            chosen.size,
            candidates[1].name,
            candidates[1].size,
        )
    LOGGER.info("Selected %s by size (%d bytes)", chosen.name, chosen.size)
    return chosen


def fetch_information_table(source: FilingSource, filing: FilingReference) -> bytes:
    """Locate and download the holdings-table document of ``filing``."""

    document = find_information_table(source, filing)
    return source.fetch_document(document.url)


__all__ = [
    "HOLDINGS_FORMS",
    "fetch_information_table",
    "find_information_table",
    "latest_report_periods",
    "list_holdings_filings",
    "parse_directory_listing",
    "select_filing",
]
