"""Tests for the EDGAR HTTP client and request throttle."""

import threading
from unittest import mock

import pytest
import requests

from guru_holdings.errors import PipelineCancelled, UpstreamHTTPError
from guru_holdings.sources import EdgarSource, RequestThrottle, create_source
from guru_holdings.sources.edgar import build_session
from guru_holdings.sources.utils import numeric_cik, pad_cik, parse_date, parse_int, parse_number


def _response(status_code=200, json_data=None, text="", content=b""):
    response = mock.Mock(spec=requests.Response)
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = json_data
    response.text = text
    response.content = content
    return response


@pytest.fixture
def session():
    return mock.Mock(spec=requests.Session)


@pytest.fixture
def throttle():
    return mock.Mock(spec=RequestThrottle)


@pytest.fixture
def source(session, throttle):
    return EdgarSource("tests (qa@example.com)", timeout=5.0, session=session, throttle=throttle)


class TestEdgarSource:
    """URLs, throttling and error mapping."""

    def test_submissions_url_pads_cik(self, source, session, throttle):
        """The submissions API takes a ten digit CIK."""
        session.get.return_value = _response(json_data={"cik": "1067983"})

        assert source.fetch_submissions("1067983") == {"cik": "1067983"}
        session.get.assert_called_once_with(
            "https://data.sec.gov/submissions/CIK0001067983.json", timeout=5.0
        )
        throttle.wait.assert_called_once()

    def test_filing_index_url(self, source, session):
        """Archive paths use the bare CIK and the accession without dashes."""
        session.get.return_value = _response(text="<html></html>")

        assert source.fetch_filing_index("0001067983", "0000950123-24-012345") == "<html></html>"
        session.get.assert_called_once_with(
            "https://www.sec.gov/Archives/edgar/data/1067983/000095012324012345/", timeout=5.0
        )

    def test_overflow_page_and_document(self, source, session):
        """Overflow pages and raw documents are fetched as given."""
        session.get.side_effect = [_response(json_data={"form": []}), _response(content=b"<xml/>")]

        assert source.fetch_submissions_page("CIK0001067983-submissions-001.json") == {"form": []}
        assert source.fetch_document("https://www.sec.gov/doc.xml") == b"<xml/>"
        assert session.get.call_args_list[0].args[0] == (
            "https://data.sec.gov/submissions/CIK0001067983-submissions-001.json"
        )

    def test_reference_securities(self, source, session):
        """The reference list comes from the tickers/exchange file."""
        session.get.return_value = _response(json_data={"fields": [], "data": []})

        source.fetch_reference_securities()

        assert session.get.call_args.args[0] == EdgarSource.REFERENCE_URL

    def test_http_error_carries_status_and_body(self, source, session):
        """A non-success answer surfaces the literal status."""
        session.get.return_value = _response(status_code=403, text="Request Rate Threshold Exceeded" * 20)

        with pytest.raises(UpstreamHTTPError) as excinfo:
            source.fetch_submissions("1")

        error = excinfo.value
        assert error.status_code == 403
        assert error.url.endswith("CIK0000000001.json")
        assert len(error.body) == 200
        assert "HTTP 403" in str(error)
        assert error.stage == "fetch"

    def test_transport_error_is_wrapped(self, source, session):
        """Timeouts and connection failures become upstream errors."""
        session.get.side_effect = requests.Timeout("read timed out")

        with pytest.raises(UpstreamHTTPError) as excinfo:
            source.fetch_document("https://www.sec.gov/doc.xml")

        assert excinfo.value.status_code is None
        assert "read timed out" in str(excinfo.value)


class TestBuildSession:
    """Retry policy and identification headers."""

    def test_retry_policy(self):
        """Only 5xx and transport failures are retried, with jitter."""
        session = build_session("tests (qa@example.com)", max_retries=4, backoff_factor=0.25)

        retries = session.get_adapter("https://data.sec.gov/").max_retries
        assert retries.total == 4
        assert set(retries.status_forcelist) == {500, 502, 503, 504}
        assert 404 not in retries.status_forcelist
        assert retries.backoff_factor == 0.25
        assert retries.raise_on_status is False
        assert session.headers["User-Agent"] == "tests (qa@example.com)"

    def test_create_source_uses_settings(self):
        """The factory wires settings into the client."""
        settings = mock.Mock(
            user_agent="ops (ops@example.com)",
            request_delay=0.1,
            request_timeout=12.0,
            max_retries=2,
            backoff_factor=0.5,
        )
        cancel = threading.Event()

        source = create_source(settings, cancel)

        assert isinstance(source, EdgarSource)
        assert source.timeout == 12.0
        assert source.throttle.delay == 0.1
        assert source.throttle.cancel_event is cancel
        assert source.session.headers["User-Agent"] == "ops (ops@example.com)"


class TestRequestThrottle:
    """The shared delay before every request."""

    def test_first_request_waits_full_delay(self):
        """Even the first request is delayed."""
        sleep = mock.Mock()
        throttle = RequestThrottle(0.2, clock=lambda: 100.0, sleep=sleep)

        throttle.wait()

        sleep.assert_called_once_with(0.2)

    def test_waits_only_the_remainder(self):
        """Time already elapsed counts toward the delay."""
        times = iter([100.0, 100.0, 100.15, 100.2])
        sleep = mock.Mock()
        throttle = RequestThrottle(0.2, clock=lambda: next(times), sleep=sleep)

        throttle.wait()
        throttle.wait()

        assert sleep.call_args_list[1].args[0] == pytest.approx(0.05)

    def test_no_sleep_when_delay_elapsed(self):
        """A slow caller is not delayed further."""
        times = iter([100.0, 100.0, 101.0, 101.0])
        sleep = mock.Mock()
        throttle = RequestThrottle(0.2, clock=lambda: next(times), sleep=sleep)

        throttle.wait()
        throttle.wait()

        assert sleep.call_count == 1

    def test_cancelled_before_request(self):
        """A set cancellation event stops the next request."""
        event = threading.Event()
        event.set()
        throttle = RequestThrottle(0.0, event, sleep=mock.Mock())

        with pytest.raises(PipelineCancelled):
            throttle.wait()

    def test_cancelled_while_sleeping(self):
        """Cancellation during the delay is honoured after waking."""
        event = threading.Event()
        throttle = RequestThrottle(0.2, event, clock=lambda: 0.0, sleep=lambda _: event.set())

        with pytest.raises(PipelineCancelled):
            throttle.wait()


class TestParsingHelpers:
    """Small value parsers."""

    def test_numbers(self):
        assert parse_number("1,234") == 1234.0
        assert parse_number(" 12.5 ") == 12.5
        assert parse_number("") is None
        assert parse_int("51,200") == 51200
        assert parse_int(None) is None

    def test_dates_and_ciks(self):
        assert parse_date("2024-06-30").isoformat() == "2024-06-30"
        assert parse_date("") is None
        assert pad_cik("1067983") == "0001067983"
        assert numeric_cik("0001067983") == "1067983"
