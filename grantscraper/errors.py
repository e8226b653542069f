from __future__ import annotations


class GrantScraperError(Exception):
    """Base class for pipeline errors."""


class SourceFetchError(GrantScraperError):
    """A page could not be fetched (network failure, timeout or non-2xx status)."""

    def __init__(self, url: str, *, status_code: int | None = None, reason: str | None = None) -> None:
        self.url = url
        self.status_code = status_code
        self.reason = reason
        detail = f"HTTP {status_code}" if status_code is not None else (reason or "request failed")
        super().__init__(f"{detail} for {url}")

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class SourceParseError(GrantScraperError):
    """A single listing did not have the markup shape its extractor expects."""


class ReconciliationContractError(GrantScraperError, ValueError):
    """Input handed to the reconciliation engine breaks its contract."""


class CorpusUnavailableError(GrantScraperError):
    """The persisted corpus could not be read or written."""
