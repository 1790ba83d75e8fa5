"""Exceptions raised by the holdings reconciliation pipeline."""
from __future__ import annotations

from typing import Optional


class PipelineError(Exception):
    """Base class for failures that abort processing of a single investor."""

    stage = "pipeline"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class FilingNotFoundError(PipelineError):
    """The filer has no holdings reports in the submissions index."""

    stage = "locate"


class QuarterNotFoundError(PipelineError):
    """No holdings report matches the requested quarter-end."""

    stage = "locate"


class InformationTableNotFoundError(PipelineError):
    """A filing has no document that can be the holdings table."""

    stage = "locate"


class FilingParseError(PipelineError):
    """The holdings-table document has an unrecognised shape."""

    stage = "parse"


class UpstreamHTTPError(PipelineError):
    """The filings archive answered with a non-success status."""

    stage = "fetch"

    def __init__(self, status_code: Optional[int], url: str, body: str = "") -> None:
        detail = f"HTTP {status_code} for {url}" if status_code is not None else f"Request failed for {url}"
        if body:
            detail = f"{detail}: {body}"
        super().__init__(detail)
        self.status_code = status_code
        self.url = url
        self.body = body


class PipelineCancelled(PipelineError):
    """The batch was cancelled or ran past its deadline."""

    stage = "cancelled"


__all__ = [
    "PipelineError",
    "FilingNotFoundError",
    "QuarterNotFoundError",
    "InformationTableNotFoundError",
    "FilingParseError",
    "UpstreamHTTPError",
    "PipelineCancelled",
]
