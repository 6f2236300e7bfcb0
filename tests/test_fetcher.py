from types import SimpleNamespace

import pytest
import requests

from image_crawler.config import CrawlConfig
from image_crawler.errors import FetchError, ResourceClosedError
from image_crawler.fetcher import Fetcher, PageFetcher
from image_crawler.types import FetchBackend


def _response(url, *, status=200, content_type="text/html; charset=utf-8", body=b""):
    return SimpleNamespace(url=url, status_code=status, headers={"Content-Type": content_type}, content=body)


@pytest.fixture
def fetcher():
    instance = Fetcher(CrawlConfig(seed_url="https://example.com", timeout_seconds=3.0, user_agent="test-agent"))
    yield instance
    instance.close()


def test_fetcher_satisfies_page_fetcher_protocol(fetcher):
    assert isinstance(fetcher, PageFetcher)


def test_fetch_page_parses_html(fetcher, monkeypatch):
    seen = {}

    def fake_get(self, url, headers=None, timeout=None, allow_redirects=True):
        seen.update(url=url, headers=headers, timeout=timeout)
        return _response(
            "https://example.com/landing",
            body=b'<img src="/a.png"><a href="/next">next</a>',
        )

    monkeypatch.setattr(requests.Session, "get", fake_get)

    page = fetcher.fetch_page("https://example.com/")

    assert seen["timeout"] == 3.0
    assert seen["headers"]["User-Agent"] == "test-agent"
    assert page.final_url == "https://example.com/landing"
    assert page.image_srcs == ("https://example.com/a.png",)
    assert page.link_hrefs == ("https://example.com/next",)


def test_non_2xx_status_raises_fetch_error(fetcher, monkeypatch):
    monkeypatch.setattr(
        requests.Session,
        "get",
        lambda self, url, **kwargs: _response(url, status=404, body=b"not found"),
    )

    with pytest.raises(FetchError) as exc_info:
        fetcher.fetch_page("https://example.com/missing")

    assert exc_info.value.status_code == 404
    assert exc_info.value.url == "https://example.com/missing"
    assert exc_info.value.message == "HTTP status 404"


def test_transport_error_raises_fetch_error(fetcher, monkeypatch):
    def fake_get(self, url, **kwargs):
        raise requests.ConnectionError("connection refused")

    monkeypatch.setattr(requests.Session, "get", fake_get)

    with pytest.raises(FetchError, match="ConnectionError"):
        fetcher.fetch_page("https://example.com/")


def test_non_html_response_yields_empty_page(fetcher, monkeypatch):
    monkeypatch.setattr(
        requests.Session,
        "get",
        lambda self, url, **kwargs: _response(url, content_type="image/png", body=b"\x89PNG"),
    )

    page = fetcher.fetch_page("https://example.com/logo.png")

    assert page.image_srcs == ()
    assert page.link_hrefs == ()


def test_fetch_result_metadata(fetcher, monkeypatch):
    monkeypatch.setattr(
        requests.Session,
        "get",
        lambda self, url, **kwargs: _response(url, body=b"<p>hi</p>"),
    )

    result = fetcher.fetch("https://example.com/")

    assert result.ok
    assert result.backend == FetchBackend.REQUESTS
    assert result.body == b"<p>hi</p>"
    assert result.elapsed_ms is not None


def test_close_is_idempotent_and_blocks_further_fetches(fetcher):
    fetcher.close()
    fetcher.close()

    assert fetcher.closed
    with pytest.raises(ResourceClosedError):
        fetcher.fetch_page("https://example.com/")


def test_context_manager_closes():
    with Fetcher(CrawlConfig(seed_url="https://example.com")) as instance:
        assert not instance.closed
    assert instance.closed
