"""Tests for locating holdings reports and their tables."""

from datetime import date

import pytest

from conftest import FakeSource, directory_listing, submissions_block
from guru_holdings.errors import FilingNotFoundError, InformationTableNotFoundError
from guru_holdings.locator import (
    fetch_information_table,
    find_information_table,
    latest_report_periods,
    list_holdings_filings,
    parse_directory_listing,
    select_filing,
)
from guru_holdings.models import FilingReference

CIK = "0000000001"


def _filing(accession, report_date, filing_date=None, primary_document="primary_doc.xml"):
    return FilingReference(
        cik=CIK,
        form="13F-HR",
        accession_number=accession,
        filing_date=filing_date,
        report_date=report_date,
        primary_document=primary_document,
    )


class TestListHoldingsFilings:
    """Reading the submissions index."""

    def test_keeps_holdings_forms_newest_first(self):
        """Only 13F-HR and amendments are kept, ordered by filing date."""
        recent = submissions_block(
            [
                ("10-K", "0000000001-24-000010", "2024-08-01", "2024-06-30"),
                ("13F-HR", "0000000001-24-000001", "2024-05-15", "2024-03-31"),
                ("13F-HR/A", "0000000001-24-000005", "2024-09-01", "2024-06-30"),
                ("13F-HR", "0000000001-24-000003", "2024-08-14", "2024-06-30"),
                ("13F-NT", "0000000001-24-000007", "2024-08-14", "2024-06-30"),
            ]
        )
        source = FakeSource(submissions={CIK: {"filings": {"recent": recent, "files": []}}})

        filings = list_holdings_filings(source, CIK)

        assert [f.accession_number for f in filings] == [
            "0000000001-24-000005",
            "0000000001-24-000003",
            "0000000001-24-000001",
        ]
        assert filings[0].form == "13F-HR/A"
        assert filings[0].report_date == date(2024, 6, 30)
        assert filings[0].filing_date == date(2024, 9, 1)
        assert filings[0].primary_document == "primary_doc.xml"

    def test_reads_overflow_pages_when_short_of_periods(self):
        """A single recent period triggers reading older pages."""
        recent = submissions_block([("13F-HR", "acc-2", "2024-08-14", "2024-06-30")])
        older = submissions_block([("13F-HR", "acc-1", "2024-05-15", "2024-03-31")])
        source = FakeSource(
            submissions={CIK: {"filings": {"recent": recent, "files": [{"name": "CIK0000000001-submissions-001.json"}]}}},
            pages={"CIK0000000001-submissions-001.json": older},
        )

        filings = list_holdings_filings(source, CIK)

        assert [f.accession_number for f in filings] == ["acc-2", "acc-1"]
        assert ("page", "CIK0000000001-submissions-001.json") in source.calls

    def test_overflow_pages_skipped_when_enough_periods(self):
        """Two recent periods are enough."""
        recent = submissions_block(
            [
                ("13F-HR", "acc-2", "2024-08-14", "2024-06-30"),
                ("13F-HR", "acc-1", "2024-05-15", "2024-03-31"),
            ]
        )
        source = FakeSource(submissions={CIK: {"filings": {"recent": recent, "files": [{"name": "unused.json"}]}}})

        list_holdings_filings(source, CIK)

        assert all(call[0] != "page" for call in source.calls)

    def test_rows_without_accession_number_are_skipped(self):
        """A short accession column drops the unmatched rows."""
        recent = submissions_block(
            [
                ("13F-HR", "0000000001-24-000003", "2024-08-14", "2024-06-30"),
                ("13F-HR", "0000000001-24-000001", "2024-05-15", "2024-03-31"),
            ]
        )
        recent["accessionNumber"] = recent["accessionNumber"][:1]
        source = FakeSource(submissions={CIK: {"filings": {"recent": recent}}})

        filings = list_holdings_filings(source, CIK)

        assert [f.accession_number for f in filings] == ["0000000001-24-000003"]

    def test_no_holdings_reports(self):
        """A filer without holdings reports is a locate error."""
        recent = submissions_block([("10-K", "acc-1", "2024-03-01", "2023-12-31")])
        source = FakeSource(submissions={CIK: {"filings": {"recent": recent}}})

        with pytest.raises(FilingNotFoundError) as excinfo:
            list_holdings_filings(source, CIK)

        assert excinfo.value.stage == "locate"


class TestSelectFiling:
    """Choosing the filing for a quarter-end."""

    FILINGS = [
        _filing("amendment", date(2024, 6, 30), date(2024, 9, 1)),
        _filing("original", date(2024, 6, 30), date(2024, 8, 14)),
        _filing("odd-period", date(2024, 3, 29), date(2024, 5, 15)),
    ]

    def test_exact_match_prefers_latest_filed(self):
        """The first exact match in filing order wins."""
        assert select_filing(self.FILINGS, date(2024, 6, 30)).accession_number == "amendment"

    def test_nearest_within_tolerance(self):
        """A report date off by a few days still matches."""
        assert select_filing(self.FILINGS, date(2024, 3, 31)).accession_number == "odd-period"

    def test_outside_tolerance(self):
        """Nothing within the window gives None."""
        assert select_filing(self.FILINGS, date(2023, 12, 31)) is None

    def test_tolerance_is_strict_and_configurable(self):
        """A distance equal to the tolerance does not match."""
        assert select_filing(self.FILINGS, date(2024, 4, 1), tolerance_days=3) is None
        assert select_filing(self.FILINGS, date(2024, 4, 1), tolerance_days=4).accession_number == "odd-period"

    def test_latest_report_periods(self):
        """Distinct report dates, newest first."""
        assert latest_report_periods(self.FILINGS) == [date(2024, 6, 30), date(2024, 3, 29)]
        assert latest_report_periods(self.FILINGS, 1) == [date(2024, 6, 30)]


class TestDirectoryListing:
    """Parsing a filing directory page."""

    def test_xml_documents_with_sizes(self):
        """XML links are listed with their byte sizes."""
        html = directory_listing([("primary_doc.xml", 2_345), ("holdings.xml", 51_200)])
        html = html.replace("</table>", '<tr><td><a href="xslForm13F_X02/primary_doc.xml">render</a></td><td>1</td></tr></table>')

        entries = parse_directory_listing(html, "https://archive.test/data/1/acc")

        assert [(e.name, e.size) for e in entries] == [("primary_doc.xml", 2345), ("holdings.xml", 51200)]
        assert entries[1].url == "https://archive.test/data/1/acc/holdings.xml"


class TestFindInformationTable:
    """Choosing the holdings-table document."""

    def _source(self, documents):
        source = FakeSource(listings={"acc": directory_listing(documents)})
        return source

    def test_prefers_named_table(self):
        """A name containing infotable wins over a bigger document."""
        source = self._source([("primary_doc.xml", 2_000), ("big.xml", 90_000), ("form13fInfoTable.xml", 30_000)])

        assert find_information_table(source, _filing("acc", None)).name == "form13fInfoTable.xml"

    def test_falls_back_to_largest_non_cover(self, caplog):
        """Without a signalling name the largest other document is used."""
        source = self._source([("primary_doc.xml", 200_000), ("a.xml", 10_000), ("b.xml", 50_000)])

        with caplog.at_level("WARNING", logger="guru_holdings.locator"):
            chosen = find_information_table(source, _filing("acc", None))

        assert chosen.name == "b.xml"
        assert "Ambiguous" not in caplog.text

    def test_warns_when_runner_up_is_close(self, caplog):
        """Two similar sized candidates are logged as ambiguous."""
        source = self._source([("primary_doc.xml", 2_000), ("a.xml", 30_000), ("b.xml", 50_000)])

        with caplog.at_level("WARNING", logger="guru_holdings.locator"):
            chosen = find_information_table(source, _filing("acc", None))

        assert chosen.name == "b.xml"
        assert "Ambiguous" in caplog.text

    def test_primary_document_counts_as_cover(self):
        """The filing's own primary document is never the table."""
        source = self._source([("cover.xml", 90_000), ("data.xml", 10_000)])

        chosen = find_information_table(source, _filing("acc", None, primary_document="cover.xml"))

        assert chosen.name == "data.xml"

    def test_only_cover_page(self):
        """A filing with nothing but its cover page is a locate error."""
        source = self._source([("primary_doc.xml", 2_000)])

        with pytest.raises(InformationTableNotFoundError):
            find_information_table(source, _filing("acc", None))

    def test_no_xml_documents(self):
        """An empty directory is a locate error."""
        source = FakeSource(listings={"acc": "<html><body><table></table></body></html>"})

        with pytest.raises(InformationTableNotFoundError):
            find_information_table(source, _filing("acc", None))

    def test_fetch_downloads_chosen_document(self):
        """The chosen document's bytes are returned."""
        source = FakeSource()
        source.add_filing(CIK, "acc", [("ALPHA CORP", "COM", "111111101", "10", "1")])

        document = fetch_information_table(source, _filing("acc", date(2024, 6, 30)))

        assert b"ALPHA CORP" in document
        assert source.calls[-1][0] == "document"
