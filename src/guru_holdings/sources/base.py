"""Base classes for reading the public filings archive."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class FilingSource(ABC):
    """Abstract source of submissions indexes and filing documents."""

    @abstractmethod
    def fetch_submissions(self, cik: str) -> dict[str, Any]:
        """Return the submissions index of a filer."""

    @abstractmethod
    def fetch_submissions_page(self, name: str) -> dict[str, Any]:
        """Return an overflow page listed under ``filings.files``."""

    @abstractmethod
    def filing_base_url(self, cik: str, accession_number: str) -> str:
        """Return the directory URL of a filing, without trailing slash."""

    @abstractmethod
    def fetch_filing_index(self, cik: str, accession_number: str) -> str:
        """Return the HTML directory listing of a filing."""

    @abstractmethod
    def fetch_document(self, url: str) -> bytes:
        """Return the raw bytes of a filing document."""

    @abstractmethod
    def fetch_reference_securities(self) -> dict[str, Any]:
        """Return the archive's ticker/exchange reference list."""


__all__ = ["FilingSource"]
