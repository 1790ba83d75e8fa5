"""Tests for the snapshot store."""

from datetime import date

from conftest import make_snapshot

from guru_holdings.db import (
    DEFAULT_SCHEDULE,
    fetch_snapshot,
    fetch_snapshots_view,
    get_or_create_schedule,
    save_snapshot,
    update_schedule,
)


class TestSnapshots:
    """Whole-document persistence per investor."""

    def test_round_trip_document(self, engine):
        """The stored document uses the downstream field names."""
        save_snapshot(engine, make_snapshot())

        document = fetch_snapshot(engine, "warren-buffett")

        assert document["investor_slug"] == "warren-buffett"
        assert document["report_date_curr"] == "2024-06-30"
        assert document["filing_date_curr"] == "2024-08-14"
        assert document["updated_at"] == "2024-08-20T02:00:00+00:00"
        assert document["holdings"][0]["ticker"] == "AAPL"
        assert document["holdings"][0]["weight_prev"] is None

    def test_save_replaces_previous_snapshot(self, engine):
        """A second save replaces the row rather than adding one."""
        save_snapshot(engine, make_snapshot(total=100))
        save_snapshot(engine, make_snapshot(total=200, report_date=date(2024, 9, 30)))

        view = fetch_snapshots_view(engine)

        assert len(view) == 1
        assert view[0]["total_value_curr"] == 200
        assert view[0]["report_date_curr"] == date(2024, 9, 30)
        assert fetch_snapshot(engine, "warren-buffett")["total_value_curr"] == 200

    def test_missing_snapshot(self, engine):
        assert fetch_snapshot(engine, "nobody") is None

    def test_view_rows(self, engine):
        """Summary rows are ordered by investor name."""
        save_snapshot(engine, make_snapshot())
        other = make_snapshot(slug="li-lu")
        other.investor_name = "Li Lu"
        save_snapshot(engine, other)

        view = fetch_snapshots_view(engine)

        assert [row["slug"] for row in view] == ["li-lu", "warren-buffett"]
        assert view[0]["holdings_count"] == 1
        assert view[0]["report_date_prev"] == "2024-03-31"


class TestSchedule:
    """The batch schedule row."""

    def test_seeded_with_default(self, engine):
        assert get_or_create_schedule(engine) == DEFAULT_SCHEDULE

    def test_update(self, engine):
        update_schedule(engine, 6, 30)

        assert get_or_create_schedule(engine) == {"hour": 6, "minute": 30, "timezone": "UTC"}
