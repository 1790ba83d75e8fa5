"""SEC EDGAR data source implementation."""
from __future__ import annotations

import logging
import threading
from typing import Any

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..errors import UpstreamHTTPError
from .base import FilingSource
from .utils import RequestThrottle, numeric_cik, pad_cik, strip_dashes

LOGGER = logging.getLogger(__name__)

RETRY_STATUSES = (500, 502, 503, 504)
BODY_EXCERPT = 200


def build_session(user_agent: str, max_retries: int, backoff_factor: float) -> requests.Session:
    """Create a session that retries transient upstream failures.

    Only 5xx answers, connection failures and read timeouts are retried; 4xx
    answers are returned at once and surface as errors.
    """

    session = requests.Session()
    retries = Retry(
        total=max_retries,
        connect=max_retries,
        read=max_retries,
        status=max_retries,
        backoff_factor=backoff_factor,
        backoff_jitter=backoff_factor,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=frozenset({"GET"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retries)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    # The archive's fair-access policy requires a descriptive client identification.
    session.headers.update({"User-Agent": user_agent, "Accept-Encoding": "gzip, deflate"})
    return session


class EdgarSource(FilingSource):
    """Client for the SEC EDGAR submissions API and filing archive."""

    SUBMISSIONS_URL = "https://data.sec.gov/submissions"
    ARCHIVES_URL = "https://www.sec.gov/Archives/edgar/data"
    REFERENCE_URL = "https://www.sec.gov/files/company_tickers_exchange.json"

    def __init__(
        self,
        user_agent: str,
        *,
        request_delay: float = 0.2,
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff_factor: float = 0.5,
        session: requests.Session | None = None,
        throttle: RequestThrottle | None = None,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.timeout = timeout
        self.session = session or build_session(user_agent, max_retries, backoff_factor)
        self.throttle = throttle or RequestThrottle(request_delay, cancel_event)

    def _get(self, url: str) -> requests.Response:
        self.throttle.wait()
        LOGGER.debug("GET %s", url)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise UpstreamHTTPError(None, url, str(exc)) from exc
        if not response.ok:
            raise UpstreamHTTPError(response.status_code, url, response.text[:BODY_EXCERPT])
        return response

    def fetch_submissions(self, cik: str) -> dict[str, Any]:
        url = f"{self.SUBMISSIONS_URL}/CIK{pad_cik(cik)}.json"
        LOGGER.info("Fetching submissions index %s", url)
        return self._get(url).json()

    def fetch_submissions_page(self, name: str) -> dict[str, Any]:
        url = f"{self.SUBMISSIONS_URL}/{name}"
        LOGGER.info("Fetching submissions overflow page %s", url)
        return self._get(url).json()

    def filing_base_url(self, cik: str, accession_number: str) -> str:
        return f"{self.ARCHIVES_URL}/{numeric_cik(cik)}/{strip_dashes(accession_number)}"

    def fetch_filing_index(self, cik: str, accession_number: str) -> str:
        url = f"{self.filing_base_url(cik, accession_number)}/"
        LOGGER.info("Fetching filing directory %s", url)
        return self._get(url).text

    def fetch_document(self, url: str) -> bytes:
        LOGGER.info("Downloading document %s", url)
        return self._get(url).content

    def fetch_reference_securities(self) -> dict[str, Any]:
        LOGGER.info("Fetching reference security list %s", self.REFERENCE_URL)
        return self._get(self.REFERENCE_URL).json()


__all__ = ["EdgarSource", "build_session"]
