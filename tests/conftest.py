import threading
import time

import pytest

from image_crawler.errors import FetchError, ResourceClosedError
from image_crawler.types import PageContent
from image_crawler.url import resolve_url


class FakeFetcher:
    """In-memory site graph: normalized URL -> (image srcs, link hrefs)."""

    def __init__(self, pages, *, failures=(), delay=0.0):
        self.pages = dict(pages)
        self.failures = set(failures)
        self.delay = delay
        self.calls = []
        self.close_calls = 0
        self._lock = threading.Lock()

    def fetch_page(self, url):
        if self.close_calls:
            raise ResourceClosedError(f"closed: {url}")

        with self._lock:
            self.calls.append(url)

        if self.delay:
            time.sleep(self.delay)

        if url in self.failures or url not in self.pages:
            raise FetchError(url, "HTTP status 404", status_code=404)

        images, links = self.pages[url]
        return PageContent(
            url=url,
            image_srcs=tuple(resolve_url(url, src) for src in images),
            link_hrefs=tuple(resolve_url(url, href) for href in links),
        )

    def close(self):
        self.close_calls += 1


class RecordingObserver:
    def __init__(self):
        self.events = []
        self._lock = threading.Lock()

    def __call__(self, event):
        with self._lock:
            self.events.append(event)

    def kinds(self):
        return [event.kind for event in self.events]


@pytest.fixture
def recorder():
    return RecordingObserver()


@pytest.fixture
def site():
    """A small site with subdomains, an external host, a cycle and a dead link."""

    return {
        "https://example.com/": (
            ["/img/logo.png", "https://cdn.example.com/hero.jpg"],
            ["/about", "https://blog.example.com/", "https://other.org/", "/missing"],
        ),
        "https://example.com/about": (
            ["/img/logo.png", "/img/team.jpg"],
            ["/", "/about/team"],
        ),
        "https://blog.example.com/": (
            ["https://blog.example.com/post.png"],
            ["https://example.com/about", "https://blog.example.com/post/1"],
        ),
        "https://example.com/about/team": (["/img/deep.png"], ["/"]),
        "https://blog.example.com/post/1": (["/cover.png"], []),
        "https://other.org/": (["/external.png"], []),
    }


@pytest.fixture
def make_fetcher():
    return FakeFetcher
