"""Database integration utilities."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    select,
)
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import Engine

from .models import PortfolioSnapshot


metadata = MetaData()

LOGGER = logging.getLogger(__name__)

portfolio_snapshots = Table(
    "portfolio_snapshots",
    metadata,
    Column("slug", String(128), primary_key=True),
    Column("investor_name", String(255), nullable=False),
    Column("cik", String(10), nullable=False),
    Column("report_date_curr", Date, nullable=False),
    Column("document", JSON, nullable=False),
    Column("created_at", DateTime, nullable=False, default=datetime.utcnow),
    Column(
        "updated_at", DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    ),
)

ingest_schedule = Table(
    "ingest_schedule",
    metadata,
    Column("id", Integer, primary_key=True, default=1),
    Column("hour", Integer, nullable=False),
    Column("minute", Integer, nullable=False),
    Column("timezone", String(64), nullable=False, default="UTC"),
    Column("created_at", DateTime, nullable=False, default=datetime.utcnow),
    Column(
        "updated_at", DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    ),
)


DEFAULT_SCHEDULE = {"hour": 2, "minute": 0, "timezone": "UTC"}


def create_db_engine(database_url: str) -> Engine:
    """Create a SQLAlchemy engine."""

    LOGGER.debug("Creating database engine")
    return create_engine(database_url, future=True, pool_pre_ping=True)


@contextmanager
def session(engine: Engine) -> Iterator[Any]:
    """Provide a transactional scope around a series of operations."""

    with engine.begin() as conn:
        yield conn


def ensure_schema(engine: Engine) -> None:
    """Create tables if they do not exist."""

    LOGGER.debug("Ensuring database schema is present")
    metadata.create_all(engine)


def _insert(engine: Engine, table: Table):
    """Return a dialect specific INSERT supporting ``ON CONFLICT``."""

    if engine.dialect.name == "sqlite":
        return sqlite_insert(table)
    return pg_insert(table)


def save_snapshot(engine: Engine, snapshot: PortfolioSnapshot) -> None:
    """Replace the stored snapshot of one investor with ``snapshot``."""

    document = snapshot.to_document()
    with session(engine) as conn:
        stmt = _insert(engine, portfolio_snapshots).values(
            slug=snapshot.investor_slug,
            investor_name=snapshot.investor_name,
            cik=snapshot.cik,
            report_date_curr=snapshot.report_date_curr,
            document=document,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[portfolio_snapshots.c.slug],
            set_={
                "investor_name": stmt.excluded.investor_name,
                "cik": stmt.excluded.cik,
                "report_date_curr": stmt.excluded.report_date_curr,
                "document": stmt.excluded.document,
                "updated_at": datetime.utcnow(),
            },
        )
        conn.execute(stmt)
    LOGGER.info(
        "Stored snapshot %s (%d holdings, report date %s)",
        snapshot.investor_slug,
        len(snapshot.holdings),
        snapshot.report_date_curr,
    )


def fetch_snapshot(engine: Engine, slug: str) -> dict[str, Any] | None:
    """Return the stored document of one investor, if any."""

    LOGGER.debug("Loading snapshot %s", slug)
    with engine.connect() as conn:
        stmt = select(portfolio_snapshots.c.document).where(portfolio_snapshots.c.slug == slug)
        return conn.execute(stmt).scalar_one_or_none()


def fetch_snapshots_view(engine: Engine) -> list[dict[str, object]]:
    """Return one summary row per stored snapshot for presentation."""

    LOGGER.debug("Loading snapshots view data")
    with engine.connect() as conn:
        stmt = select(
            portfolio_snapshots.c.slug,
            portfolio_snapshots.c.investor_name,
            portfolio_snapshots.c.cik,
            portfolio_snapshots.c.report_date_curr,
            portfolio_snapshots.c.document,
            portfolio_snapshots.c.updated_at,
        ).order_by(portfolio_snapshots.c.investor_name)
        rows = conn.execute(stmt).all()

    view = []
    for row in rows:
        data = dict(row._mapping)
        document = data.pop("document") or {}
        data["total_value_curr"] = document.get("total_value_curr")
        data["holdings_count"] = document.get("holdings_count")
        data["report_date_prev"] = document.get("report_date_prev")
        view.append(data)
    return view


def get_or_create_schedule(engine: Engine) -> dict[str, int | str]:
    """Fetch the current batch schedule, seeding defaults when missing."""

    LOGGER.debug("Fetching batch schedule")
    with session(engine) as conn:
        row = conn.execute(select(ingest_schedule)).first()
        if row is not None:
            data = row._mapping
            return {
                "hour": data["hour"],
                "minute": data["minute"],
                "timezone": data["timezone"],
            }

        stmt = _insert(engine, ingest_schedule).values(
            id=1,
            hour=DEFAULT_SCHEDULE["hour"],
            minute=DEFAULT_SCHEDULE["minute"],
            timezone=DEFAULT_SCHEDULE["timezone"],
        )
        conn.execute(stmt.on_conflict_do_nothing())
        LOGGER.info(
            "Seeded default schedule %02d:%02d %s",
            DEFAULT_SCHEDULE["hour"],
            DEFAULT_SCHEDULE["minute"],
            DEFAULT_SCHEDULE["timezone"],
        )
        return dict(DEFAULT_SCHEDULE)


def update_schedule(engine: Engine, hour: int, minute: int, timezone: str = "UTC") -> dict[str, int | str]:
    """Persist a new batch schedule."""

    LOGGER.debug("Persisting schedule change to %02d:%02d %s", hour, minute, timezone)
    with session(engine) as conn:
        stmt = _insert(engine, ingest_schedule).values(
            id=1,
            hour=hour,
            minute=minute,
            timezone=timezone,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[ingest_schedule.c.id],
            set_={
                "hour": stmt.excluded.hour,
                "minute": stmt.excluded.minute,
                "timezone": stmt.excluded.timezone,
                "updated_at": datetime.utcnow(),
            },
        )
        conn.execute(stmt)

    return {"hour": hour, "minute": minute, "timezone": timezone}


__all__ = [
    "create_db_engine",
    "ensure_schema",
    "save_snapshot",
    "fetch_snapshot",
    "fetch_snapshots_view",
    "metadata",
    "portfolio_snapshots",
    "ingest_schedule",
    "DEFAULT_SCHEDULE",
    "get_or_create_schedule",
    "update_schedule",
]
