"""Exception taxonomy for crawl sessions.

Per-target failures (`InvalidUrlError`, `FetchError`) are recovered inside the
orchestrator. `InvalidSeedError` and `ResourceClosedError` propagate out of
`CrawlOrchestrator.run`.
"""

from __future__ import annotations


class CrawlerError(Exception):
    """Base class for all crawler errors."""


class InvalidSeedError(CrawlerError, ValueError):
    """Seed URL cannot be normalized or max depth is out of range."""


class InvalidUrlError(CrawlerError, ValueError):
    """A URL string cannot be parsed into a supported absolute URL."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"{reason}: {url!r}")
        self.url = url
        self.reason = reason


class FetchError(CrawlerError):
    """A page could not be loaded."""

    def __init__(self, url: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url
        self.message = message
        self.status_code = status_code


class ResourceClosedError(CrawlerError, RuntimeError):
    """The fetcher was used after it had been released."""


__all__ = [
    "CrawlerError",
    "FetchError",
    "InvalidSeedError",
    "InvalidUrlError",
    "ResourceClosedError",
]
