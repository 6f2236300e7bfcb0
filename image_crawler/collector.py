"""Deduplicated, insertion-ordered store of discovered images."""

from __future__ import annotations

import threading
from typing import Callable, Iterator

from .types import ImageRecord
from .url import normalize_url


class ImageCollector:
    """Collect `ImageRecord`s keyed by the fingerprint of the full triple.

    The same image seen from two pages, or at two depths, yields two records;
    an identical triple collapses to one regardless of encounter order.
    """

    def __init__(self, *, normalizer: Callable[[str], str] = normalize_url) -> None:
        self._normalize = normalizer
        self._lock = threading.Lock()
        self._records: dict[str, ImageRecord] = {}

    def record(self, image_url: str, source_url: str, depth: int) -> bool:
        """Insert the triple if absent. Returns True when it was new.

        Raises `InvalidUrlError` when `image_url` cannot be normalized.
        """

        record = ImageRecord(
            image_url=self._normalize(image_url),
            source_url=source_url,
            depth=depth,
        )
        key = record.fingerprint

        with self._lock:
            if key in self._records:
                return False
            self._records[key] = record
        return True

    def snapshot(self) -> list[ImageRecord]:
        """Return all records in insertion order without mutating state."""

        with self._lock:
            return list(self._records.values())

    def __contains__(self, record: object) -> bool:
        if not isinstance(record, ImageRecord):
            return False
        with self._lock:
            return record.fingerprint in self._records

    def __iter__(self) -> Iterator[ImageRecord]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


__all__ = ["ImageCollector"]
