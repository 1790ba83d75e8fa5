"""FastAPI application exposing portfolio snapshots and schedule controls."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Tuple
from zoneinfo import ZoneInfo

import requests
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI, Form, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.engine import Engine

from .config import Settings
from .db import (
    create_db_engine,
    ensure_schema,
    fetch_snapshot,
    fetch_snapshots_view,
    get_or_create_schedule,
    update_schedule,
)
from .logging_utils import configure_logging
from .prices import PriceCache, apply_prices, load_price_snapshot
from .runner import run_batch

LOGGER = logging.getLogger(__name__)

JOB_ID = "daily-holdings-batch"
CACHE_CONTROL = "public, max-age=300"
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


def _format_schedule(schedule: Mapping[str, Any]) -> str:
    return f"{int(schedule['hour']):02d}:{int(schedule['minute']):02d}"


def _parse_time(value: str) -> Tuple[int, int]:
    value = value.strip()
    if not value or ":" not in value:
        raise ValueError("Time must be in HH:MM format")
    hour_str, minute_str = value.split(":", 1)
    hour = int(hour_str)
    minute = int(minute_str)
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError("Hours must be 0-23 and minutes 0-59")
    return hour, minute


def _load_prices(cache: PriceCache, location: str | None, timeout: float) -> dict[str, float]:
    """Return cached prices for ``location``; an unreachable snapshot yields none."""

    if not location:
        return {}
    try:
        return cache.get(location, lambda: load_price_snapshot(location, timeout=timeout))
    except (requests.RequestException, OSError, ValueError) as exc:
        LOGGER.warning("Price snapshot %s unavailable: %s", location, exc)
        return {}


def create_app(
    settings: Settings | None = None,
    *,
    engine: Engine | None = None,
    price_cache: PriceCache | None = None,
    enable_scheduler: bool = True,
) -> FastAPI:
    """Build the web application.

    Run with ``uvicorn --factory guru_holdings.app:create_app``. Tests pass an
    explicit ``engine`` and switch the scheduler off.
    """

    configure_logging()
    settings = settings or Settings.load()
    if engine is None:
        if not settings.database_url:
            raise RuntimeError(
                "GURU_HOLDINGS_DATABASE_URL must be set or provide discrete database settings via the env file"
            )
        engine = create_db_engine(settings.database_url)
    price_cache = price_cache or PriceCache(settings.price_cache_ttl)
    scheduler = AsyncIOScheduler()

    def batch_job() -> None:
        """Wrapper for running the holdings batch within the scheduler."""

        LOGGER.info("Running scheduled holdings batch")
        try:
            results = run_batch(settings, engine=engine)
        except Exception:  # pragma: no cover - defensive logging
            LOGGER.exception("Scheduled holdings batch failed")
            return
        failed = sum(1 for result in results if not result.succeeded)
        LOGGER.info("Scheduled holdings batch completed (%d of %d failed)", failed, len(results))

    def configure_job(schedule: Mapping[str, Any]) -> None:
        """Ensure the APScheduler job reflects the configured schedule."""

        trigger = CronTrigger(
            hour=schedule["hour"],
            minute=schedule["minute"],
            timezone=ZoneInfo(schedule["timezone"]),
        )
        if scheduler.get_job(JOB_ID):
            scheduler.reschedule_job(JOB_ID, trigger=trigger)
            action = "Rescheduled"
        else:
            scheduler.add_job(batch_job, trigger=trigger, id=JOB_ID, replace_existing=True)
            action = "Scheduled"
        LOGGER.info(
            "%s daily holdings batch for %02d:%02d %s",
            action,
            schedule["hour"],
            schedule["minute"],
            schedule["timezone"],
        )

    app = FastAPI(title="Guru Holdings", default_response_class=HTMLResponse)
    app.state.settings = settings
    app.state.engine = engine
    app.state.price_cache = price_cache
    app.state.scheduler = scheduler

    @app.on_event("startup")
    async def startup_event() -> None:
        LOGGER.info("Starting FastAPI application")
        ensure_schema(engine)
        if not enable_scheduler:
            return
        configure_job(get_or_create_schedule(engine))
        if not scheduler.running:
            scheduler.start()
            LOGGER.info("Scheduler started")

    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        if scheduler.running:
            scheduler.shutdown()
            LOGGER.info("Scheduler shut down")

    @app.get("/", response_class=HTMLResponse)
    async def dashboard(request: Request) -> HTMLResponse:
        LOGGER.debug("Rendering dashboard view")
        snapshots = fetch_snapshots_view(engine)
        schedule = get_or_create_schedule(engine)
        return templates.TemplateResponse(
            request,
            "dashboard.html",
            {
                "snapshots": snapshots,
                "schedule_time": _format_schedule(schedule),
                "schedule_timezone": schedule["timezone"],
            },
        )

    @app.get("/api/portfolios/{slug}", response_class=JSONResponse)
    def portfolio(slug: str) -> JSONResponse:
        document = fetch_snapshot(engine, slug)
        if document is None:
            LOGGER.info("Portfolio %s requested but not stored", slug)
            return JSONResponse({"error": "Portfolio not found"}, status_code=status.HTTP_404_NOT_FOUND)

        current = _load_prices(price_cache, settings.price_snapshot_url, settings.request_timeout)
        at_filing = _load_prices(price_cache, settings.filing_price_snapshot_url, settings.request_timeout)
        if current or at_filing:
            document = apply_prices(document, current, at_filing)
        return JSONResponse(
            {"success": True, "portfolio": document},
            headers={"Cache-Control": CACHE_CONTROL},
        )

    @app.get("/schedule", response_class=HTMLResponse)
    async def show_schedule(request: Request) -> HTMLResponse:
        LOGGER.debug("Rendering schedule view")
        schedule = get_or_create_schedule(engine)
        updated = request.query_params.get("updated")
        return templates.TemplateResponse(
            request,
            "schedule.html",
            {
                "schedule_time": _format_schedule(schedule),
                "schedule_timezone": schedule["timezone"],
                "updated": bool(updated),
                "error": None,
            },
        )

    @app.post("/schedule", response_class=HTMLResponse)
    async def update_schedule_view(request: Request, time: str = Form(...)) -> HTMLResponse:
        try:
            hour, minute = _parse_time(time)
        except ValueError as exc:
            schedule = get_or_create_schedule(engine)
            LOGGER.warning("Invalid schedule submitted: %s", exc)
            return templates.TemplateResponse(
                request,
                "schedule.html",
                {
                    "schedule_time": _format_schedule(schedule),
                    "schedule_timezone": schedule["timezone"],
                    "updated": False,
                    "error": str(exc),
                },
                status_code=status.HTTP_400_BAD_REQUEST,
            )

        schedule = update_schedule(engine, hour, minute)
        if enable_scheduler:
            configure_job(schedule)
        LOGGER.info("Updated schedule to %02d:%02d %s", hour, minute, schedule["timezone"])
        return RedirectResponse(url="/schedule?updated=1", status_code=status.HTTP_303_SEE_OTHER)

    return app


__all__ = ["create_app"]
