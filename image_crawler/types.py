"""Core type definitions for the image crawler.

This module is intentionally dependency-light so other crawler modules can import
shared records without introducing cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from hashlib import sha256
import json


class ContentKind(str, Enum):
    """Coarse content categories of a fetched response."""

    HTML = "html"
    TEXT = "text"
    BINARY = "binary"
    UNKNOWN = "unknown"


class FetchBackend(str, Enum):
    """Backend used to load page content."""

    REQUESTS = "requests"
    SELENIUM = "selenium"


class TargetState(str, Enum):
    """Lifecycle of one URL inside a crawl session."""

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    VISITED = "visited"
    FAILED = "failed"


class CrawlEventKind(str, Enum):
    """Structured events emitted by the orchestrator to its observers."""

    SESSION_STARTED = "session_started"
    TARGET_DISCOVERED = "target_discovered"
    TARGET_DISCARDED = "target_discarded"
    TARGET_FETCHED = "target_fetched"
    TARGET_FAILED = "target_failed"
    IMAGE_RECORDED = "image_recorded"
    IMAGE_DUPLICATE = "image_duplicate"
    IMAGE_DISCARDED = "image_discarded"
    SESSION_CANCELLED = "session_cancelled"
    SESSION_FINISHED = "session_finished"


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for logs and stats."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def infer_content_kind(content_type: str | None) -> ContentKind:
    """Infer coarse content kind from an HTTP content type."""

    normalized = (content_type or "").split(";", maxsplit=1)[0].strip().lower()

    if normalized in {"text/html", "application/xhtml+xml"}:
        return ContentKind.HTML
    if normalized.startswith("text/"):
        return ContentKind.TEXT
    if normalized:
        return ContentKind.BINARY
    return ContentKind.UNKNOWN


@dataclass(frozen=True, slots=True)
class CrawlTarget:
    """One unit of work: a normalized URL and its hop count from the seed."""

    url: str
    depth: int
    referrer: str | None = None


@dataclass(frozen=True, slots=True)
class ImageRecord:
    """One discovered image reference."""

    image_url: str
    source_url: str
    depth: int

    @property
    def fingerprint(self) -> str:
        payload = json.dumps(self.to_json(), ensure_ascii=False, separators=(",", ":"))
        return sha256(payload.encode("utf-8")).hexdigest()

    def to_json(self) -> JSONDict:
        return {
            "imageUrl": self.image_url,
            "sourceUrl": self.source_url,
            "depth": self.depth,
        }


@dataclass(slots=True)
class FetchResult:
    """Result of attempting to load one URL."""

    requested_url: str
    final_url: str | None
    status_code: int | None
    content_type: str | None
    body: bytes | None
    backend: FetchBackend = FetchBackend.REQUESTS
    fetched_at: str = field(default_factory=utc_now_iso)
    elapsed_ms: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and self.status_code is not None
            and 200 <= self.status_code < 300
            and self.body is not None
        )

    @property
    def content_kind(self) -> ContentKind:
        return infer_content_kind(self.content_type)


@dataclass(frozen=True, slots=True)
class PageContent:
    """What the orchestrator consumes from a fetched page."""

    url: str
    final_url: str | None = None
    image_srcs: tuple[str, ...] = ()
    link_hrefs: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class CrawlEvent:
    """One structured event; `reason` is set for discards and failures."""

    kind: CrawlEventKind
    session_id: str
    url: str | None = None
    depth: int | None = None
    reason: str | None = None
    source_url: str | None = None
    image_count: int | None = None
    link_count: int | None = None
    created_at: str = field(default_factory=utc_now_iso)


@dataclass(slots=True)
class CrawlStats:
    """Simple mutable counters used for crawl summary reporting."""

    frontier_enqueued: int = 0
    frontier_skipped_seen: int = 0
    frontier_skipped_depth: int = 0
    frontier_skipped_out_of_scope: int = 0
    frontier_skipped_invalid: int = 0
    frontier_skipped_budget: int = 0

    fetched_ok: int = 0
    fetched_error: int = 0

    images_recorded: int = 0
    images_duplicate: int = 0
    images_discarded: int = 0

    cancelled: bool = False
    started_at: str = field(default_factory=utc_now_iso)
    finished_at: str | None = None

    def to_json(self) -> JSONDict:
        return {
            "frontier_enqueued": self.frontier_enqueued,
            "frontier_skipped_seen": self.frontier_skipped_seen,
            "frontier_skipped_depth": self.frontier_skipped_depth,
            "frontier_skipped_out_of_scope": self.frontier_skipped_out_of_scope,
            "frontier_skipped_invalid": self.frontier_skipped_invalid,
            "frontier_skipped_budget": self.frontier_skipped_budget,
            "fetched_ok": self.fetched_ok,
            "fetched_error": self.fetched_error,
            "images_recorded": self.images_recorded,
            "images_duplicate": self.images_duplicate,
            "images_discarded": self.images_discarded,
            "cancelled": self.cancelled,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }


__all__ = [
    "ContentKind",
    "CrawlEvent",
    "CrawlEventKind",
    "CrawlStats",
    "CrawlTarget",
    "FetchBackend",
    "FetchResult",
    "ImageRecord",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "PageContent",
    "TargetState",
    "infer_content_kind",
    "utc_now_iso",
]
