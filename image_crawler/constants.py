"""Crawler defaults shared by config, normalizer, and CLI."""

from __future__ import annotations

from .types import FetchBackend


# Inclusive bounds for the configured crawl depth.
MIN_DEPTH = 0
MAX_DEPTH = 100

DEFAULT_MAX_DEPTH = 0
DEFAULT_MAX_PAGES: int | None = None
DEFAULT_CONCURRENCY = 1

DEFAULT_FETCH_BACKEND = FetchBackend.REQUESTS
DEFAULT_TIMEOUT_SECONDS = 20.0
DEFAULT_SELENIUM_WAIT_SECONDS: float | None = None
DEFAULT_USER_AGENT = "image-crawler/1.0"
DEFAULT_HTTP_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.8",
}

DEFAULT_SCHEME = "https"
DEFAULT_STRIP_WWW = True
DEFAULT_SORT_QUERY_PARAMS = True

DEFAULT_EXPORT_FOLDER = "./output"
DEFAULT_EXPORT_PREFIX = "crawl"

SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")
JSON_INDENT = 2

# Worker threads poll the frontier with this timeout so cancellation is noticed.
WORKER_POLL_SECONDS = 0.5
