"""Thread-safe crawl statistics aggregation."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
import threading
from typing import Any, Mapping

from .frontier import DiscoverStatus
from .types import CrawlEvent, CrawlEventKind, CrawlStats


_DISCARD_FIELDS: dict[str, str] = {
    DiscoverStatus.SKIPPED_SEEN.value: "frontier_skipped_seen",
    DiscoverStatus.SKIPPED_VISITED.value: "frontier_skipped_seen",
    DiscoverStatus.SKIPPED_DEPTH.value: "frontier_skipped_depth",
    DiscoverStatus.SKIPPED_OUT_OF_SCOPE.value: "frontier_skipped_out_of_scope",
    DiscoverStatus.SKIPPED_INVALID_URL.value: "frontier_skipped_invalid",
    DiscoverStatus.SKIPPED_BUDGET.value: "frontier_skipped_budget",
}


class StatsCollector:
    """Observer that counts crawl events for the end-of-run summary.

    The collector is thread-safe and can be shared by concurrent workers.
    """

    def __init__(self, base: CrawlStats | None = None) -> None:
        self._lock = threading.Lock()
        self._core = base or CrawlStats()

        self._fetch_error_counts: dict[str, int] = defaultdict(int)
        self._depth_counts: dict[int, int] = defaultdict(int)
        self._frontier_snapshot: dict[str, int | bool] = {}

    def __call__(self, event: CrawlEvent) -> None:
        self.record_event(event)

    def record_event(self, event: CrawlEvent) -> None:
        """Update counters from one crawl event."""

        kind = event.kind
        with self._lock:
            if kind == CrawlEventKind.SESSION_STARTED:
                self._core.started_at = event.created_at
            elif kind == CrawlEventKind.TARGET_DISCOVERED:
                self._core.frontier_enqueued += 1
            elif kind == CrawlEventKind.TARGET_DISCARDED:
                name = _DISCARD_FIELDS.get(event.reason or "")
                if name is not None:
                    setattr(self._core, name, getattr(self._core, name) + 1)
            elif kind == CrawlEventKind.TARGET_FETCHED:
                self._core.fetched_ok += 1
                if event.depth is not None:
                    self._depth_counts[event.depth] += 1
            elif kind == CrawlEventKind.TARGET_FAILED:
                self._core.fetched_error += 1
                err_type = (event.reason or "").split(":", maxsplit=1)[0].strip() or "Unknown"
                self._fetch_error_counts[err_type] += 1
            elif kind == CrawlEventKind.IMAGE_RECORDED:
                self._core.images_recorded += 1
            elif kind == CrawlEventKind.IMAGE_DUPLICATE:
                self._core.images_duplicate += 1
            elif kind == CrawlEventKind.IMAGE_DISCARDED:
                self._core.images_discarded += 1
            elif kind == CrawlEventKind.SESSION_CANCELLED:
                self._core.cancelled = True
            elif kind == CrawlEventKind.SESSION_FINISHED:
                self._core.finished_at = event.created_at

    def record_frontier_snapshot(self, snapshot: Mapping[str, int | bool]) -> None:
        """Attach latest frontier snapshot for diagnostics."""

        with self._lock:
            self._frontier_snapshot = dict(snapshot)

    def core(self) -> CrawlStats:
        """Return a copy of the core `CrawlStats` record."""

        with self._lock:
            return CrawlStats(**{name: getattr(self._core, name) for name in CrawlStats.__slots__})

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable summary payload."""

        with self._lock:
            core = self._core.to_json()

            start = _parse_iso_utc(self._core.started_at)
            end = _parse_iso_utc(self._core.finished_at) if self._core.finished_at else datetime.now(
                timezone.utc
            )
            duration_seconds = max(0.0, (end - start).total_seconds())

            return {
                **core,
                "duration_seconds": duration_seconds,
                "fetched_by_depth": {str(depth): count for depth, count in sorted(self._depth_counts.items())},
                "fetch_error_type_counts": dict(self._fetch_error_counts),
                "frontier": dict(self._frontier_snapshot),
            }


def _parse_iso_utc(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


__all__ = ["StatsCollector"]
