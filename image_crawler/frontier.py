"""Thread-safe frontier and visited tracker with depth and host-scope enforcement."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from .errors import InvalidUrlError
from .types import CrawlTarget, TargetState
from .url import is_same_site, normalize_url


class DiscoverStatus(str, Enum):
    """Result status for frontier discovery attempts."""

    ENQUEUED = "enqueued"
    SKIPPED_INVALID_URL = "skipped_invalid_url"
    SKIPPED_SEEN = "skipped_seen"
    SKIPPED_VISITED = "skipped_visited"
    SKIPPED_DEPTH = "skipped_depth"
    SKIPPED_OUT_OF_SCOPE = "skipped_out_of_scope"
    SKIPPED_BUDGET = "skipped_budget"
    SKIPPED_CLOSED = "skipped_closed"


@dataclass(frozen=True, slots=True)
class DiscoverResult:
    """Outcome of one discovery attempt."""

    status: DiscoverStatus
    normalized_url: str | None = None
    target: CrawlTarget | None = None
    error: str | None = None

    @property
    def accepted(self) -> bool:
        return self.status == DiscoverStatus.ENQUEUED


class Frontier:
    """Pending work queue plus the visited map of one crawl session.

    - `discover` is idempotent: a URL that is pending, in flight, visited or
      failed is never enqueued again.
    - Pending entries are popped in insertion order, which approximates a
      breadth-first traversal.
    - The depth recorded for a visited URL is the depth it was first enqueued
      at; later rediscoveries are dropped whatever their depth.
    - All operations are atomic with respect to each other, so several
      worker threads can share one frontier.
    """

    def __init__(
        self,
        *,
        base_host: str,
        max_depth: int,
        max_pages: int | None = None,
        normalizer: Callable[[str], str] = normalize_url,
    ) -> None:
        self.base_host = base_host
        self.max_depth = max_depth
        self.max_pages = max_pages

        self._normalize = normalizer
        self._cond = threading.Condition(threading.Lock())

        self._pending: dict[str, CrawlTarget] = {}
        self._in_flight: dict[str, CrawlTarget] = {}
        self._visited: dict[str, int] = {}
        self._failed: dict[str, int] = {}

        self._accepted_count = 0
        self._popped_count = 0
        self._closed = False

    def discover(self, url: str, depth: int, *, referrer: str | None = None) -> DiscoverResult:
        """Classify one URL and enqueue it if it qualifies."""

        try:
            normalized = self._normalize(url)
        except InvalidUrlError as exc:
            return DiscoverResult(DiscoverStatus.SKIPPED_INVALID_URL, error=str(exc))

        with self._cond:
            if self._closed:
                return DiscoverResult(DiscoverStatus.SKIPPED_CLOSED, normalized_url=normalized)

            if normalized in self._visited:
                return DiscoverResult(DiscoverStatus.SKIPPED_VISITED, normalized_url=normalized)

            if (
                normalized in self._pending
                or normalized in self._in_flight
                or normalized in self._failed
            ):
                return DiscoverResult(DiscoverStatus.SKIPPED_SEEN, normalized_url=normalized)

            if depth > self.max_depth:
                return DiscoverResult(DiscoverStatus.SKIPPED_DEPTH, normalized_url=normalized)

            if not is_same_site(normalized, self.base_host):
                return DiscoverResult(DiscoverStatus.SKIPPED_OUT_OF_SCOPE, normalized_url=normalized)

            if self.max_pages is not None and self._accepted_count >= self.max_pages:
                return DiscoverResult(DiscoverStatus.SKIPPED_BUDGET, normalized_url=normalized)

            target = CrawlTarget(url=normalized, depth=depth, referrer=referrer)
            self._pending[normalized] = target
            self._accepted_count += 1
            self._cond.notify()

        return DiscoverResult(DiscoverStatus.ENQUEUED, normalized_url=normalized, target=target)

    def pop_next(self, *, block: bool = False, timeout: float | None = None) -> CrawlTarget | None:
        """Remove and return the oldest pending target.

        Returns `None` when the frontier is closed or exhausted. In blocking
        mode the call waits while other workers still hold in-flight targets,
        since those may discover more work; a `timeout` bounds the wait and
        also yields `None`.
        """

        with self._cond:
            if block:
                self._cond.wait_for(
                    lambda: self._closed or bool(self._pending) or not self._in_flight,
                    timeout=timeout,
                )

            if self._closed or not self._pending:
                return None

            url = next(iter(self._pending))
            target = self._pending.pop(url)
            self._in_flight[url] = target
            self._popped_count += 1
            return target

    def mark_visited(self, url: str, depth: int) -> bool:
        """Record `url` as indexed. Returns False if it already was."""

        with self._cond:
            self._in_flight.pop(url, None)
            self._pending.pop(url, None)
            newly_added = url not in self._visited
            if newly_added:
                self._visited[url] = depth
            self._cond.notify_all()
        return newly_added

    def mark_failed(self, url: str, depth: int) -> None:
        """Record that `url` could not be indexed; it is never retried."""

        with self._cond:
            self._in_flight.pop(url, None)
            if url not in self._visited:
                self._failed.setdefault(url, depth)
            self._cond.notify_all()

    def close(self) -> None:
        """Stop handing out work and wake every blocked worker."""

        with self._cond:
            self._closed = True
            self._cond.notify_all()

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def is_visited(self, url: str) -> bool:
        with self._cond:
            return url in self._visited

    def state_of(self, url: str) -> TargetState | None:
        """Return the lifecycle state of a normalized URL, if known."""

        with self._cond:
            if url in self._visited:
                return TargetState.VISITED
            if url in self._failed:
                return TargetState.FAILED
            if url in self._in_flight:
                return TargetState.IN_FLIGHT
            if url in self._pending:
                return TargetState.PENDING
        return None

    def pending_count(self) -> int:
        with self._cond:
            return len(self._pending)

    def exhausted(self) -> bool:
        """Return True when nothing is pending or in flight."""

        with self._cond:
            return not self._pending and not self._in_flight

    def visited(self) -> dict[str, int]:
        """Return snapshot of visited URLs mapped to their first depth."""

        with self._cond:
            return dict(self._visited)

    def failed(self) -> dict[str, int]:
        with self._cond:
            return dict(self._failed)

    def snapshot(self) -> dict[str, int | bool]:
        """Return frontier counters for logs/stats reporting."""

        with self._cond:
            return {
                "closed": self._closed,
                "pending": len(self._pending),
                "in_flight": len(self._in_flight),
                "visited": len(self._visited),
                "failed": len(self._failed),
                "accepted": self._accepted_count,
                "popped": self._popped_count,
            }


__all__ = [
    "DiscoverResult",
    "DiscoverStatus",
    "Frontier",
]
