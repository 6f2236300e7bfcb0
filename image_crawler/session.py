"""Crawl session: the sole owner of one crawl's traversal state."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Callable, Mapping

from .collector import ImageCollector
from .constants import MAX_DEPTH, MIN_DEPTH
from .errors import InvalidSeedError, InvalidUrlError
from .frontier import Frontier
from .types import ImageRecord, utc_now_iso
from .url import host_from_url, normalize_url


def validate_seed(
    seed_url: str,
    max_depth: int,
    *,
    normalizer: Callable[[str], str] = normalize_url,
) -> str:
    """Return the normalized seed or raise `InvalidSeedError`."""

    if isinstance(max_depth, bool) or not isinstance(max_depth, int):
        raise InvalidSeedError(f"max_depth must be an integer, got {max_depth!r}")
    if not MIN_DEPTH <= max_depth <= MAX_DEPTH:
        raise InvalidSeedError(
            f"max_depth must be within [{MIN_DEPTH}, {MAX_DEPTH}], got {max_depth}"
        )

    try:
        normalized = normalizer(seed_url)
    except InvalidUrlError as exc:
        raise InvalidSeedError(f"Invalid seed URL: {exc}") from exc

    if not host_from_url(normalized):
        raise InvalidSeedError(f"Seed URL has no host: {seed_url!r}")
    return normalized


@dataclass(slots=True)
class CrawlSession:
    """Seed, limits and the frontier/collector pair of one crawl."""

    seed_url: str
    max_depth: int
    base_host: str
    frontier: Frontier
    collector: ImageCollector
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    started_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def start(
        cls,
        seed_url: str,
        max_depth: int,
        *,
        max_pages: int | None = None,
        normalizer_options: Mapping[str, Any] | None = None,
        session_id: str | None = None,
    ) -> "CrawlSession":
        """Validate the seed and build a fresh session around it."""

        normalizer = partial(normalize_url, **dict(normalizer_options or {}))
        normalized_seed = validate_seed(seed_url, max_depth, normalizer=normalizer)
        base_host = host_from_url(normalized_seed)

        session = cls(
            seed_url=normalized_seed,
            max_depth=max_depth,
            base_host=base_host,
            frontier=Frontier(
                base_host=base_host,
                max_depth=max_depth,
                max_pages=max_pages,
                normalizer=normalizer,
            ),
            collector=ImageCollector(normalizer=normalizer),
        )
        if session_id:
            session.session_id = session_id
        return session

    def snapshot(self) -> list[ImageRecord]:
        """Records collected so far, in insertion order."""

        return self.collector.snapshot()


__all__ = ["CrawlSession", "validate_seed"]
