"""Command line entry point for the holdings reconciliation batch."""
from __future__ import annotations

import argparse
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.engine import Engine

from .aggregate import aggregate_holdings
from .compare import compare_holdings, format_preview, summarize_statuses
from .config import Settings
from .db import create_db_engine, ensure_schema, save_snapshot
from .errors import PipelineError, QuarterNotFoundError
from .locator import fetch_information_table, latest_report_periods, list_holdings_filings, select_filing
from .logging_utils import configure_logging
from .models import (
    SOLD_OUT,
    ComparisonResult,
    FilingReference,
    InvestorResult,
    PortfolioSnapshot,
    RawHolding,
    ReferenceSecurity,
    TrackedInvestor,
)
from .parser import parse_information_table
from .resolver import IdentifierResolver, load_reference_securities, summarize_mapping
from .sources import create_source
from .sources.base import FilingSource

LOGGER = logging.getLogger(__name__)


def select_investors(settings: Settings, slug: Optional[str] = None) -> List[TrackedInvestor]:
    """Return every tracked investor, or the one addressed by ``slug``."""

    if slug is None:
        return list(settings.investors)
    investor = settings.investor_by_slug(slug)
    if investor is None:
        valid = ", ".join(item.slug for item in settings.investors)
        raise ValueError(f"Unknown investor slug {slug!r}; expected one of: {valid}")
    return [investor]


def resolve_target_quarters(settings: Settings, filings: Sequence[FilingReference]) -> Tuple[date, date]:
    """Return the (previous, current) quarter-ends to compare."""

    if settings.quarter_end_curr is not None and settings.quarter_end_prev is not None:
        return settings.quarter_end_prev, settings.quarter_end_curr
    periods = latest_report_periods(filings, 2)
    if len(periods) < 2:
        raise QuarterNotFoundError(
            f"Need two report periods to compare, found {[p.isoformat() for p in periods]}"
        )
    return periods[1], periods[0]


def _require_filing(
    filings: Sequence[FilingReference], quarter_end: date, settings: Settings
) -> FilingReference:
    filing = select_filing(filings, quarter_end, settings.quarter_tolerance_days)
    if filing is None:
        available = ", ".join(sorted({f.report_date.isoformat() for f in filings if f.report_date}))
        raise QuarterNotFoundError(
            f"No holdings report for quarter ending {quarter_end.isoformat()}; available: {available}"
        )
    return filing


def build_snapshot(
    investor: TrackedInvestor,
    comparison: ComparisonResult,
    prev_filing: FilingReference,
    curr_filing: FilingReference,
    generated_at: datetime,
) -> PortfolioSnapshot:
    return PortfolioSnapshot(
        investor_name=investor.name,
        investor_slug=investor.slug,
        cik=investor.cik,
        filing_name=investor.filing_name,
        report_date_prev=prev_filing.report_date,
        report_date_curr=curr_filing.report_date,
        filing_date_curr=curr_filing.filing_date,
        total_value_prev=comparison.total_value_prev,
        total_value_curr=comparison.total_value_curr,
        holdings_count=sum(1 for h in comparison.holdings if h.status != SOLD_OUT),
        updated_at=generated_at,
        holdings=comparison.holdings,
    )


def process_investor(
    investor: TrackedInvestor,
    source: FilingSource,
    resolver: IdentifierResolver,
    settings: Settings,
    *,
    engine: Engine | None = None,
    dry_run: bool = False,
) -> InvestorResult:
    """Run the full pipeline for one investor.

    Any failure is logged and reported in the result; the investor's stored
    snapshot is only replaced when every stage succeeded.
    """

    LOGGER.info("Processing %s (CIK %s, %s)", investor.name, investor.cik, investor.filing_name)
    stage = "locate"
    try:
        filings = list_holdings_filings(source, investor.cik)
        prev_end, curr_end = resolve_target_quarters(settings, filings)
        prev_filing = _require_filing(filings, prev_end, settings)
        curr_filing = _require_filing(filings, curr_end, settings)
        LOGGER.info(
            "%s: previous %s (%s), current %s (%s)",
            investor.slug,
            prev_filing.report_date,
            prev_filing.accession_number,
            curr_filing.report_date,
            curr_filing.accession_number,
        )

        quarters: List[List[RawHolding]] = []
        for filing in (prev_filing, curr_filing):
            stage = "fetch"
            document = fetch_information_table(source, filing)
            stage = "parse"
            holdings = aggregate_holdings(parse_information_table(document))
            LOGGER.info("%s: %s has %d holdings after aggregation", investor.slug, filing.report_date, len(holdings))
            quarters.append(holdings)

        stage = "compare"
        comparison = compare_holdings(quarters[0], quarters[1], resolver, settings.change_threshold)
        summarize_statuses(comparison.holdings)
        summarize_mapping(comparison.holdings)
        snapshot = build_snapshot(
            investor, comparison, prev_filing, curr_filing, datetime.now(timezone.utc)
        )

        if dry_run:
            LOGGER.info("%s: dry run, not storing\n%s", investor.slug, format_preview(snapshot.holdings))
        else:
            stage = "persist"
            if engine is None:
                raise RuntimeError("A database engine is required unless running dry")
            save_snapshot(engine, snapshot)
    except Exception as exc:
        if isinstance(exc, PipelineError):
            stage = exc.stage
        LOGGER.exception("Failed to process %s at stage %s: %s", investor.slug, stage, exc)
        return InvestorResult(slug=investor.slug, succeeded=False, stage=stage, message=str(exc))

    return InvestorResult(slug=investor.slug, succeeded=True, snapshot=snapshot)


def load_resolver(settings: Settings, source: FilingSource) -> IdentifierResolver:
    """Build the resolver chain, loading the reference list once per run."""

    securities: Sequence[ReferenceSecurity]
    try:
        securities = load_reference_securities(source=source, path=settings.reference_securities_path)
    except (PipelineError, OSError, ValueError) as exc:
        LOGGER.warning("Reference security list unavailable, name matching disabled: %s", exc)
        securities = ()
    return IdentifierResolver.default(securities)


def run_batch(
    settings: Settings,
    slug: Optional[str] = None,
    dry_run: bool = False,
    *,
    source: FilingSource | None = None,
    engine: Engine | None = None,
    resolver: IdentifierResolver | None = None,
) -> List[InvestorResult]:
    """Run the pipeline for every selected investor."""

    investors = select_investors(settings, slug)
    cancel_event = threading.Event()
    timer: threading.Timer | None = None
    if settings.job_timeout:
        timer = threading.Timer(settings.job_timeout, cancel_event.set)
        timer.daemon = True
        timer.start()

    try:
        source = source or create_source(settings, cancel_event)
        if not dry_run and engine is None:
            if not settings.database_url:
                raise RuntimeError(
                    "GURU_HOLDINGS_DATABASE_URL must be set or provide discrete database settings via the env file"
                )
            engine = create_db_engine(settings.database_url)
        if engine is not None:
            ensure_schema(engine)
        resolver = resolver or load_resolver(settings, source)

        workers = min(settings.max_workers, len(investors)) or 1
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="investor") as pool:
            futures = [
                pool.submit(
                    process_investor,
                    investor,
                    source,
                    resolver,
                    settings,
                    engine=engine,
                    dry_run=dry_run,
                )
                for investor in investors
            ]
            results = [future.result() for future in futures]
    finally:
        if timer is not None:
            timer.cancel()

    failed = [result for result in results if not result.succeeded]
    LOGGER.info("Batch finished: %d succeeded, %d failed", len(results) - len(failed), len(failed))
    for result in failed:
        LOGGER.warning("  %s failed at %s: %s", result.slug, result.stage, result.message)
    return results


def parse_args(args: Iterable[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--all", action="store_true", help="Process every tracked investor")
    target.add_argument("--investor", metavar="SLUG", help="Process a single investor, e.g. warren-buffett")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run the full pipeline without storing snapshots",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging output",
    )
    return parser.parse_args(args=args)


def main(argv: Iterable[str] | None = None) -> int:
    options = parse_args(argv)
    configure_logging(logging.DEBUG if options.verbose else None)
    settings = Settings.load()
    if options.dry_run:
        LOGGER.info("Dry run: snapshots will not be stored")

    try:
        results = run_batch(settings, slug=options.investor, dry_run=options.dry_run)
    except ValueError as exc:
        LOGGER.error("%s", exc)
        return 2
    return 0 if all(result.succeeded for result in results) else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
