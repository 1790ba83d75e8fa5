"""Application configuration helpers."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
import os
from pathlib import Path
from typing import Mapping, Optional, Tuple
from urllib.parse import quote_plus

from .models import TrackedInvestor
from .sources.utils import parse_date


ENV_PREFIX = "GURU_HOLDINGS_"

DEFAULT_TRACKED_INVESTORS: Tuple[TrackedInvestor, ...] = (
    TrackedInvestor("Warren Buffett", "0001067983", "Berkshire Hathaway"),
    TrackedInvestor("Stanley Druckenmiller", "0001536411", "Duquesne Family Office"),
    TrackedInvestor("Bill Ackman", "0001336528", "Pershing Square Capital"),
    TrackedInvestor("Li Lu", "0001709323", "Himalaya Capital"),
    TrackedInvestor("Seth Klarman", "0001061768", "The Baupost Group"),
    TrackedInvestor("Howard Marks", "0000949509", "Oaktree Capital"),
    TrackedInvestor("Ray Dalio", "0001350694", "Bridgewater Associates"),
)

DEFAULT_USER_AGENT = "guru-holdings/1.0 (ops@example.com)"


def _resolve_env_file(candidate: str) -> Path | None:
    """Return the first matching environment file path if it exists."""

    path = Path(candidate)
    if path.is_absolute() and path.exists():
        return path

    search_roots = [Path.cwd(), Path(__file__).resolve().parent]
    search_roots.extend(Path(__file__).resolve().parents)

    seen: set[Path] = set()
    for root in search_roots:
        root = root.resolve()
        if root in seen:
            continue
        seen.add(root)
        potential = root / candidate
        if potential.exists():
            return potential
    return None


def _parse_env_file(path: Path) -> dict[str, str]:
    """Parse a dotenv-style file into a mapping."""

    variables: dict[str, str] = {}
    for raw_line in path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        variables[key.strip()] = value.strip().strip('"').strip("'")
    return variables


def _load_profile_env(env: Mapping[str, str]) -> dict[str, str]:
    """Load environment variables from the selected profile file."""

    explicit_file = env.get(f"{ENV_PREFIX}ENV_FILE")
    profile = env.get(f"{ENV_PREFIX}ENV", "local")
    candidate = explicit_file or f".env.{profile}"

    path = _resolve_env_file(candidate)
    if path is not None:
        return _parse_env_file(path)
    return {}


def _build_database_url(env: Mapping[str, str]) -> str | None:
    """Construct a SQLAlchemy URL from discrete environment variables."""

    host = env.get(f"{ENV_PREFIX}DB_HOST")
    if not host:
        return None

    username = env.get(f"{ENV_PREFIX}DB_USERNAME")
    if not username:
        raise RuntimeError(
            f"{ENV_PREFIX}DB_USERNAME must be set when using discrete database settings"
        )
    if f"{ENV_PREFIX}DB_PASSWORD" not in env:
        raise RuntimeError(
            f"{ENV_PREFIX}DB_PASSWORD must be set when using discrete database settings"
        )

    password = env.get(f"{ENV_PREFIX}DB_PASSWORD", "")
    port = env.get(f"{ENV_PREFIX}DB_PORT", "5432")
    database = env.get(f"{ENV_PREFIX}DB_NAME", "guru_holdings")
    driver = env.get(f"{ENV_PREFIX}DB_DRIVER", "postgresql+psycopg")

    auth = f"{quote_plus(username)}:{quote_plus(password)}"
    port_part = f":{port}" if port else ""
    return f"{driver}://{auth}@{host}{port_part}/{database}"


def _parse_investors(value: str) -> Tuple[TrackedInvestor, ...]:
    """Parse ``Name|CIK|Filing name`` lines into tracked investors."""

    investors = []
    for chunk in value.split("\n"):
        if not chunk.strip():
            continue
        parts = [part.strip() for part in chunk.split("|")]
        if len(parts) < 2 or not parts[0] or not parts[1].isdigit():
            raise RuntimeError(
                "Each investor definition must be of the form 'Name|CIK' or 'Name|CIK|Filing name'"
            )
        filing_name = parts[2] if len(parts) > 2 else ""
        investors.append(TrackedInvestor(parts[0], parts[1].zfill(10), filing_name))
    return tuple(investors)


def _number(env: Mapping[str, str], key: str, default: float, cast=float):
    raw = env.get(f"{ENV_PREFIX}{key}")
    if raw is None or not raw.strip():
        return cast(default)
    try:
        return cast(raw)
    except ValueError as exc:
        raise RuntimeError(f"{ENV_PREFIX}{key} must be numeric, got {raw!r}") from exc


def _optional_date(env: Mapping[str, str], key: str) -> Optional[date]:
    raw = env.get(f"{ENV_PREFIX}{key}")
    if not raw:
        return None
    try:
        return parse_date(raw)
    except ValueError as exc:
        raise RuntimeError(f"{ENV_PREFIX}{key} must be an ISO date, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Runtime configuration."""

    database_url: Optional[str]
    investors: Tuple[TrackedInvestor, ...] = DEFAULT_TRACKED_INVESTORS
    user_agent: str = DEFAULT_USER_AGENT
    request_delay: float = 0.2
    request_timeout: float = 30.0
    max_retries: int = 3
    backoff_factor: float = 0.5
    change_threshold: float = 0.01
    quarter_tolerance_days: int = 30
    quarter_end_curr: Optional[date] = None
    quarter_end_prev: Optional[date] = None
    reference_securities_path: Optional[Path] = None
    price_snapshot_url: Optional[str] = None
    filing_price_snapshot_url: Optional[str] = None
    price_cache_ttl: float = 3600.0
    max_workers: int = 2
    job_timeout: Optional[float] = None

    @staticmethod
    def load(env: Mapping[str, str] | None = None) -> "Settings":
        """Load settings from environment variables."""

        base_env = dict(env if env is not None else os.environ)
        file_env = _load_profile_env(base_env)
        # Environment variables set in the shell take precedence over the file.
        merged_env = {**file_env, **base_env}

        database_url = merged_env.get(f"{ENV_PREFIX}DATABASE_URL") or _build_database_url(merged_env)

        investors_env = merged_env.get(f"{ENV_PREFIX}INVESTORS")
        investors = _parse_investors(investors_env) if investors_env else DEFAULT_TRACKED_INVESTORS

        quarter_end_curr = _optional_date(merged_env, "QUARTER_END_CURR")
        quarter_end_prev = _optional_date(merged_env, "QUARTER_END_PREV")
        if (quarter_end_curr is None) != (quarter_end_prev is None):
            raise RuntimeError(
                f"{ENV_PREFIX}QUARTER_END_CURR and {ENV_PREFIX}QUARTER_END_PREV must be set together"
            )

        reference_path = merged_env.get(f"{ENV_PREFIX}REFERENCE_SECURITIES_PATH")
        job_timeout = _number(merged_env, "JOB_TIMEOUT", 0.0)

        return Settings(
            database_url=database_url,
            investors=investors,
            user_agent=merged_env.get(f"{ENV_PREFIX}USER_AGENT", DEFAULT_USER_AGENT),
            request_delay=_number(merged_env, "REQUEST_DELAY", 0.2),
            request_timeout=_number(merged_env, "REQUEST_TIMEOUT", 30.0),
            max_retries=_number(merged_env, "MAX_RETRIES", 3, int),
            backoff_factor=_number(merged_env, "BACKOFF_FACTOR", 0.5),
            change_threshold=_number(merged_env, "CHANGE_THRESHOLD", 0.01),
            quarter_tolerance_days=_number(merged_env, "QUARTER_TOLERANCE_DAYS", 30, int),
            quarter_end_curr=quarter_end_curr,
            quarter_end_prev=quarter_end_prev,
            reference_securities_path=Path(reference_path) if reference_path else None,
            price_snapshot_url=merged_env.get(f"{ENV_PREFIX}PRICE_SNAPSHOT_URL") or None,
            filing_price_snapshot_url=merged_env.get(f"{ENV_PREFIX}FILING_PRICE_SNAPSHOT_URL") or None,
            price_cache_ttl=_number(merged_env, "PRICE_CACHE_TTL", 3600.0),
            max_workers=max(1, _number(merged_env, "MAX_WORKERS", 2, int)),
            job_timeout=job_timeout or None,
        )

    def investor_by_slug(self, slug: str) -> TrackedInvestor | None:
        for investor in self.investors:
            if investor.slug == slug:
                return investor
        return None


__all__ = ["Settings", "DEFAULT_TRACKED_INVESTORS", "DEFAULT_USER_AGENT"]
