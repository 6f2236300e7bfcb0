"""URL normalization and host-scope helpers."""

from __future__ import annotations

import posixpath
import re
from typing import Sequence
from urllib.parse import parse_qsl, quote, urlencode, urljoin, urlsplit, urlunsplit

from .constants import DEFAULT_SCHEME, DEFAULT_SORT_QUERY_PARAMS, DEFAULT_STRIP_WWW
from .errors import InvalidUrlError


DEFAULT_ALLOWED_SCHEMES = ("http", "https")
SKIP_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "data:", "blob:")
TRACKING_QUERY_PARAM_PREFIXES = ("utm_",)
TEXT_FRAGMENT_DIRECTIVE = ":~:"

_SCHEME_RE = re.compile(r"^([a-zA-Z][a-zA-Z0-9+.\-]*):")
_PERCENT_ESCAPE_RE = re.compile(r"%([0-9a-fA-F]{2})")
_HOST_RE = re.compile(r"^[a-z0-9_\-]+(\.[a-z0-9_\-]+)*\.?$")
_UNRESERVED = frozenset("ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-._~")
_PATH_SAFE = "/:@!$&'()*+,;=-._~%"
_DEFAULT_PORTS = {"http": 80, "https": 443}


def _apply_default_scheme(raw: str, default_scheme: str) -> str:
    if raw.startswith("//"):
        return f"{default_scheme}:{raw}"

    match = _SCHEME_RE.match(raw)
    if match is None:
        return f"{default_scheme}://{raw}"

    # `host:8080/path` parses like a scheme; a digit after the colon means a port.
    rest = raw[match.end():]
    if not rest.startswith("//") and rest[:1].isdigit():
        return f"{default_scheme}://{raw}"

    return raw


def _normalize_host(hostname: str, *, strip_www: bool, raw: str) -> str:
    host = hostname.strip().lower()
    if not host:
        raise InvalidUrlError(raw, "URL has no host")

    if ":" in host:
        # IPv6 literal; urlsplit already validated the brackets.
        return f"[{host}]"

    try:
        host = host.encode("idna").decode("ascii")
    except UnicodeError as exc:
        raise InvalidUrlError(raw, f"Invalid host name ({exc})") from exc

    host = host.rstrip(".")
    if not _HOST_RE.match(host):
        raise InvalidUrlError(raw, "Invalid host name")

    if strip_www and host.startswith("www.") and host.count(".") >= 2:
        host = host[4:]
    return host


def _normalize_netloc(parsed_url, *, strip_www: bool, raw: str) -> str:
    host = _normalize_host(parsed_url.hostname or "", strip_www=strip_www, raw=raw)

    try:
        port = parsed_url.port
    except ValueError as exc:
        raise InvalidUrlError(raw, "Invalid port") from exc

    userinfo = ""
    if parsed_url.username:
        userinfo = quote(parsed_url.username, safe="")
        if parsed_url.password:
            userinfo += ":" + quote(parsed_url.password, safe="")
        userinfo += "@"

    if port is not None and port != _DEFAULT_PORTS.get(parsed_url.scheme.lower()):
        return f"{userinfo}{host}:{port}"
    return f"{userinfo}{host}"


def _canonical_percent_encoding(value: str, *, safe: str) -> str:
    """Decode escaped unreserved characters, uppercase the remaining escapes."""

    def _replace(match: re.Match[str]) -> str:
        char = chr(int(match.group(1), 16))
        if char in _UNRESERVED:
            return char
        return "%" + match.group(1).upper()

    decoded = _PERCENT_ESCAPE_RE.sub(_replace, value)
    return quote(decoded, safe=safe)


def _normalize_path(path: str, *, remove_trailing_slash: bool) -> str:
    if not path:
        return "/"

    # Escapes are decoded first so `%2E%2E` collapses like `..`.
    collapsed = re.sub(r"/{2,}", "/", _canonical_percent_encoding(path, safe=_PATH_SAFE))
    normalized = posixpath.normpath(collapsed)

    if collapsed.startswith("/") and not normalized.startswith("/"):
        normalized = "/" + normalized
    if normalized.startswith("//"):
        normalized = "/" + normalized.lstrip("/")

    if normalized in {"", "."}:
        normalized = "/"

    if not remove_trailing_slash and collapsed.endswith("/") and normalized != "/":
        normalized += "/"

    return normalized or "/"


def _is_tracking_query_key(key: str) -> bool:
    normalized = key.strip().lower()
    return any(normalized.startswith(prefix) for prefix in TRACKING_QUERY_PARAM_PREFIXES)


def _normalize_query(query: str, *, sort_query_params: bool) -> str:
    if not query:
        return ""

    pairs = parse_qsl(query, keep_blank_values=True)
    pairs = [(key, value) for key, value in pairs if not _is_tracking_query_key(key)]

    if sort_query_params:
        pairs = sorted(pairs, key=lambda item: (item[0], item[1]))

    if not pairs:
        return ""

    return urlencode(pairs, doseq=True)


def _strip_text_fragment(fragment: str) -> str:
    index = fragment.find(TEXT_FRAGMENT_DIRECTIVE)
    if index == -1:
        return fragment
    return fragment[:index]


def normalize_url(
    url: str,
    *,
    default_scheme: str = DEFAULT_SCHEME,
    strip_fragment: bool = True,
    strip_www: bool = DEFAULT_STRIP_WWW,
    sort_query_params: bool = DEFAULT_SORT_QUERY_PARAMS,
    remove_trailing_slash: bool = True,
    allowed_schemes: Sequence[str] = DEFAULT_ALLOWED_SCHEMES,
) -> str:
    """Canonicalize a URL so equivalent spellings collapse to one key.

    A missing scheme defaults to `default_scheme`. Fragments (and text-fragment
    directives) are dropped, scheme/host are lowercased, default ports and
    `utm_*` parameters are removed, and percent-escapes are made canonical.
    Path and query casing is preserved. The function is idempotent.

    Raises `InvalidUrlError` when the input cannot be parsed as a supported
    absolute URL.
    """

    if url is None:
        raise InvalidUrlError("", "URL is empty")

    raw = url.strip()
    if not raw:
        raise InvalidUrlError(url, "URL is empty")

    candidate = _apply_default_scheme(raw, default_scheme)

    try:
        parsed = urlsplit(candidate)
    except ValueError as exc:
        raise InvalidUrlError(url, f"Malformed URL ({exc})") from exc

    scheme = parsed.scheme.lower()
    if scheme not in {item.lower() for item in allowed_schemes}:
        raise InvalidUrlError(url, f"Unsupported scheme '{scheme}'")
    if not parsed.netloc:
        raise InvalidUrlError(url, "URL has no host")

    netloc = _normalize_netloc(parsed, strip_www=strip_www, raw=url)
    path = _normalize_path(parsed.path, remove_trailing_slash=remove_trailing_slash)
    query = _normalize_query(parsed.query, sort_query_params=sort_query_params)
    fragment = "" if strip_fragment else _strip_text_fragment(parsed.fragment)

    return urlunsplit((scheme, netloc, path, query, fragment))


def try_normalize_url(url: str | None, **kwargs) -> str | None:
    """Return the normalized URL or `None` instead of raising."""

    if url is None:
        return None
    try:
        return normalize_url(url, **kwargs)
    except InvalidUrlError:
        return None


def resolve_url(base_url: str, href: str | None) -> str | None:
    """Resolve a possibly relative reference against `base_url`.

    Returns `None` for empty values, same-document anchors and non-navigable
    schemes (`javascript:`, `mailto:`, ...). The result is absolute but not
    normalized.
    """

    if href is None:
        return None

    candidate = href.strip()
    if not candidate or candidate.startswith("#"):
        return None

    lowered = candidate.lower()
    if any(lowered.startswith(prefix) for prefix in SKIP_HREF_PREFIXES):
        return None

    try:
        return urljoin(base_url, candidate)
    except ValueError:
        return None


def host_from_url(url: str) -> str:
    """Extract the lowercased host of an absolute URL (empty when missing)."""

    try:
        host = urlsplit(url).hostname or ""
    except ValueError:
        return ""
    return host.strip().lower().rstrip(".")


def is_same_site(url: str, base_host: str) -> bool:
    """Return True when the URL host is `base_host` or one of its subdomains."""

    host = host_from_url(url)
    base = base_host.strip().lower().rstrip(".")
    if not host or not base:
        return False
    return host == base or host.endswith("." + base)


__all__ = [
    "DEFAULT_ALLOWED_SCHEMES",
    "SKIP_HREF_PREFIXES",
    "TEXT_FRAGMENT_DIRECTIVE",
    "TRACKING_QUERY_PARAM_PREFIXES",
    "host_from_url",
    "is_same_site",
    "normalize_url",
    "resolve_url",
    "try_normalize_url",
]
