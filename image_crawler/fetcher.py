"""Page loading with requests/selenium backends."""

from __future__ import annotations

import logging
import threading
import time
from typing import Protocol, runtime_checkable

import requests
from selenium import webdriver
from selenium.common.exceptions import WebDriverException
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.firefox.options import Options as FirefoxOptions

from .config import CrawlConfig
from .errors import FetchError, ResourceClosedError
from .parsers import HTMLParser
from .types import ContentKind, FetchBackend, FetchResult, PageContent


logger = logging.getLogger(__name__)


@runtime_checkable
class PageFetcher(Protocol):
    """Capability the orchestrator consumes: load a page, then release."""

    def fetch_page(self, url: str) -> PageContent:
        ...

    def close(self) -> None:
        ...


class Fetcher:
    """Fetch pages using either `requests` or a headless `selenium` browser.

    Concurrency model:
    - Requests backend is thread-friendly; each worker thread gets its own
      `requests.Session`.
    - Selenium backend is explicitly serialized with a lock because one shared
      browser instance is used, which is generally unstable under multithreaded use.

    `close` is idempotent; any fetch after it raises `ResourceClosedError`.
    """

    def __init__(self, config: CrawlConfig, *, html_parser: HTMLParser | None = None) -> None:
        self.config = config
        self.html_parser = html_parser or HTMLParser()

        self._thread_local = threading.local()
        self._sessions: list[requests.Session] = []
        self._sessions_lock = threading.Lock()

        self._selenium_lock = threading.Lock()
        self._selenium_driver = None

        self._closed = False
        self._closed_lock = threading.Lock()

    def fetch_page(self, url: str) -> PageContent:
        """Load `url` and extract its image sources and link targets.

        Raises `FetchError` when the page cannot be loaded or parsed. A
        successfully loaded non-HTML response yields an empty `PageContent`.
        """

        result = self.fetch(url)
        if not result.ok:
            message = result.error or (
                f"HTTP status {result.status_code}" if result.status_code is not None else "Unknown fetch failure"
            )
            raise FetchError(url, message, status_code=result.status_code)

        if result.content_kind not in {ContentKind.HTML, ContentKind.UNKNOWN}:
            logger.debug("Skipping extraction for %s content at %s", result.content_kind.value, url)
            return PageContent(url=url, final_url=result.final_url)

        try:
            return self.html_parser.parse(
                url=url,
                html=result.body or b"",
                final_url=result.final_url,
            )
        except Exception as exc:
            raise FetchError(url, f"Failed to parse page: {exc.__class__.__name__}: {exc}") from exc

    def fetch(self, url: str) -> FetchResult:
        """Fetch one URL with the configured backend."""

        if self.closed:
            raise ResourceClosedError(f"Fetcher is closed; cannot load {url}")

        if self.config.backend == FetchBackend.SELENIUM:
            return self._fetch_once_selenium(url)
        return self._fetch_once_requests(url)

    def close(self) -> None:
        """Close fetcher resources (HTTP sessions and the selenium browser)."""

        with self._closed_lock:
            if self._closed:
                return
            self._closed = True

        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()

        with self._selenium_lock:
            if self._selenium_driver is None:
                return
            try:
                self._selenium_driver.quit()
            except WebDriverException as exc:
                logger.debug("Ignoring error while quitting browser: %s", exc)
            finally:
                self._selenium_driver = None

    @property
    def closed(self) -> bool:
        with self._closed_lock:
            return self._closed

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _fetch_once_requests(self, url: str) -> FetchResult:
        started = time.perf_counter()
        session = self._thread_local_session()

        try:
            response = session.get(
                url,
                headers=self.config.headers(),
                timeout=self.config.timeout_seconds,
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            return _failed_result(url, FetchBackend.REQUESTS, started, f"{exc.__class__.__name__}: {exc}")

        return FetchResult(
            requested_url=url,
            final_url=response.url or url,
            status_code=response.status_code,
            content_type=response.headers.get("Content-Type"),
            body=response.content if response.content is not None else b"",
            backend=FetchBackend.REQUESTS,
            elapsed_ms=_elapsed_ms(started),
        )

    def _fetch_once_selenium(self, url: str) -> FetchResult:
        started = time.perf_counter()

        with self._selenium_lock:
            if self.closed:
                raise ResourceClosedError(f"Fetcher is closed; cannot load {url}")

            try:
                driver = self._get_or_create_selenium_driver()
            except RuntimeError as exc:
                return _failed_result(
                    url,
                    FetchBackend.SELENIUM,
                    started,
                    f"Failed to initialize selenium driver: {exc}",
                )

            try:
                driver.set_page_load_timeout(max(1, int(self.config.timeout_seconds)))
                driver.get(url)

                # Lazy galleries insert their <img> tags after the load event.
                if self.config.selenium_wait_seconds:
                    time.sleep(self.config.selenium_wait_seconds)

                final_url = driver.current_url or url
                page_source = driver.page_source or ""
            except WebDriverException as exc:
                return _failed_result(url, FetchBackend.SELENIUM, started, f"{exc.__class__.__name__}: {exc.msg or exc}")

        # The browser does not expose the HTTP status; a rendered DOM counts as 200.
        return FetchResult(
            requested_url=url,
            final_url=final_url,
            status_code=200,
            content_type="text/html; charset=utf-8",
            body=page_source.encode("utf-8", errors="replace"),
            backend=FetchBackend.SELENIUM,
            elapsed_ms=_elapsed_ms(started),
        )

    def _thread_local_session(self) -> requests.Session:
        session = getattr(self._thread_local, "session", None)
        if session is None:
            session = requests.Session()
            self._thread_local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def _get_or_create_selenium_driver(self):
        if self._selenium_driver is not None:
            return self._selenium_driver

        errors: list[str] = []
        launchers = (
            ("Chrome", lambda: webdriver.Chrome(options=self._chrome_options())),
            ("Firefox", lambda: webdriver.Firefox(options=self._firefox_options())),
        )
        for name, launch in launchers:
            try:
                self._selenium_driver = launch()
                logger.info("Started headless %s for page rendering", name)
                return self._selenium_driver
            except WebDriverException as exc:
                errors.append(f"{name}: {exc.msg or exc}")

        raise RuntimeError("; ".join(errors) or "No usable Selenium driver found")

    def _chrome_options(self) -> ChromeOptions:
        options = ChromeOptions()
        for argument in ("--headless=new", "--disable-gpu", "--no-sandbox", "--disable-dev-shm-usage"):
            options.add_argument(argument)
        options.add_argument(f"--user-agent={self.config.user_agent}")
        return options

    def _firefox_options(self) -> FirefoxOptions:
        options = FirefoxOptions()
        options.add_argument("-headless")
        options.set_preference("general.useragent.override", self.config.user_agent)
        return options


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def _failed_result(url: str, backend: FetchBackend, started: float, error: str) -> FetchResult:
    return FetchResult(
        requested_url=url,
        final_url=None,
        status_code=None,
        content_type=None,
        body=None,
        backend=backend,
        elapsed_ms=_elapsed_ms(started),
        error=error,
    )


__all__ = ["Fetcher", "PageFetcher"]
