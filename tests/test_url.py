import pytest

from image_crawler.errors import InvalidUrlError
from image_crawler.url import (
    host_from_url,
    is_same_site,
    normalize_url,
    resolve_url,
    try_normalize_url,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("example.com", "https://example.com/"),
        ("https://example.com", "https://example.com/"),
        ("  https://example.com/  ", "https://example.com/"),
        ("//cdn.example.com/img.png", "https://cdn.example.com/img.png"),
        ("HTTP://Example.COM/Path", "http://example.com/Path"),
        ("https://www.example.com/a/", "https://example.com/a"),
        ("https://www.com/", "https://www.com/"),
        ("https://example.com:443/x", "https://example.com/x"),
        ("http://example.com:80/x", "http://example.com/x"),
        ("https://example.com:8443/x", "https://example.com:8443/x"),
        ("localhost:8080/x", "https://localhost:8080/x"),
        ("https://example.com/a/b/../c/./d", "https://example.com/a/c/d"),
        ("https://example.com//a///b", "https://example.com/a/b"),
        ("https://example.com/a%7eb", "https://example.com/a~b"),
        ("https://example.com/a%2fb", "https://example.com/a%2Fb"),
        ("https://example.com/a b", "https://example.com/a%20b"),
        ("https://example.com/page#section", "https://example.com/page"),
        ("https://example.com/p?b=2&a=1", "https://example.com/p?a=1&b=2"),
        ("https://example.com/p?utm_source=x&id=7&UTM_medium=y", "https://example.com/p?id=7"),
        ("https://example.com/p?utm_campaign=z", "https://example.com/p"),
        ("https://bücher.example/", "https://xn--bcher-kva.example/"),
        ("http://[::1]:8080/", "http://[::1]:8080/"),
    ],
)
def test_normalize_url(raw, expected):
    assert normalize_url(raw) == expected


@pytest.mark.parametrize(
    "raw",
    [
        "example.com/a/../b?z=1&y=2#frag",
        "https://WWW.Example.com:443/%7Euser/x%2f/",
        "https://example.com/p?q=a+b&r=%20",
        "https://example.com/%2E%2E/x",
    ],
)
def test_normalize_url_is_idempotent(raw):
    once = normalize_url(raw)
    assert normalize_url(once) == once


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "   ",
        "ftp://example.com/file",
        "mailto:someone@example.com",
        "https://",
        "http://exa mple.com/",
        "https://example.com:99999/",
        "https://bad_host!.com/",
    ],
)
def test_normalize_url_rejects_invalid(raw):
    with pytest.raises(InvalidUrlError) as exc_info:
        normalize_url(raw)
    assert exc_info.value.reason


def test_normalize_url_options():
    url = "https://www.example.com/p/?b=1&a=2#frag:~:text=hello"

    assert normalize_url(url, strip_www=False) == "https://www.example.com/p?a=2&b=1"
    assert normalize_url(url, sort_query_params=False) == "https://example.com/p?b=1&a=2"
    assert normalize_url(url, remove_trailing_slash=False) == "https://example.com/p/?a=2&b=1"
    assert normalize_url(url, strip_fragment=False) == "https://example.com/p?a=2&b=1#frag"
    assert normalize_url("example.com", default_scheme="http") == "http://example.com/"


def test_try_normalize_url():
    assert try_normalize_url("example.com") == "https://example.com/"
    assert try_normalize_url("javascript:void(0)") is None
    assert try_normalize_url(None) is None


@pytest.mark.parametrize(
    ("href", "expected"),
    [
        ("/img/a.png", "https://example.com/img/a.png"),
        ("b.png", "https://example.com/dir/b.png"),
        ("../c.png", "https://example.com/c.png"),
        ("//cdn.example.com/d.png", "https://cdn.example.com/d.png"),
        ("https://other.org/e.png", "https://other.org/e.png"),
        ("?page=2", "https://example.com/dir/page.html?page=2"),
        ("", None),
        ("   ", None),
        (None, None),
        ("#top", None),
        ("javascript:void(0)", None),
        ("JavaScript:alert(1)", None),
        ("mailto:a@example.com", None),
        ("tel:+123", None),
        ("data:image/png;base64,AAAA", None),
    ],
)
def test_resolve_url(href, expected):
    assert resolve_url("https://example.com/dir/page.html", href) == expected


def test_host_from_url():
    assert host_from_url("https://Sub.Example.com:8080/x") == "sub.example.com"
    assert host_from_url("not a url") == ""


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://example.com/", True),
        ("https://blog.example.com/post", True),
        ("https://a.b.example.com/", True),
        ("https://notexample.com/", False),
        ("https://example.com.evil.org/", False),
        ("https://other.org/", False),
    ],
)
def test_is_same_site(url, expected):
    assert is_same_site(url, "example.com") is expected
