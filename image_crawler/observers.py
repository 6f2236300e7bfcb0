"""Crawl event observers.

The orchestrator never writes to the terminal itself; it hands each
`CrawlEvent` to the observers it was given.
"""

from __future__ import annotations

import logging
from typing import Callable

from .types import CrawlEvent, CrawlEventKind


CrawlObserver = Callable[[CrawlEvent], None]

_QUIET_DISCARD_REASONS = {"skipped_seen", "skipped_visited"}


class LoggingObserver:
    """Render crawl events as log lines.

    Discoveries, discards and image hits go to DEBUG, fetched pages to INFO,
    failures to WARNING. With `verbose=False` the per-link and per-image
    chatter is not emitted at all.
    """

    def __init__(self, *, verbose: bool = False, logger: logging.Logger | None = None) -> None:
        self.verbose = verbose
        self.logger = logger or logging.getLogger("image_crawler.events")

    def __call__(self, event: CrawlEvent) -> None:
        ref = f"[REF:{event.session_id}]"
        kind = event.kind

        if kind == CrawlEventKind.SESSION_STARTED:
            self.logger.info("Crawl started %s url=%s depth=%s", ref, event.url, event.depth)
        elif kind == CrawlEventKind.TARGET_FETCHED:
            self.logger.info(
                "Indexed %s depth=%s images=%s links=%s",
                event.url,
                event.depth,
                event.image_count,
                event.link_count,
            )
        elif kind == CrawlEventKind.TARGET_FAILED:
            self.logger.warning("Skipping %s depth=%s: %s", event.url, event.depth, event.reason)
        elif kind == CrawlEventKind.SESSION_CANCELLED:
            self.logger.warning("Crawl cancelled %s; in-flight pages drained", ref)
        elif kind == CrawlEventKind.SESSION_FINISHED:
            self.logger.info("Crawl finished %s images=%s", ref, event.image_count)
        elif self.verbose:
            self._log_verbose(event)

    def _log_verbose(self, event: CrawlEvent) -> None:
        kind = event.kind
        if kind == CrawlEventKind.TARGET_DISCOVERED:
            self.logger.debug("Queued %s depth=%s from %s", event.url, event.depth, event.source_url)
        elif kind == CrawlEventKind.TARGET_DISCARDED:
            if event.reason in _QUIET_DISCARD_REASONS:
                return
            self.logger.debug("Discarded %s depth=%s (%s)", event.url, event.depth, event.reason)
        elif kind == CrawlEventKind.IMAGE_RECORDED:
            self.logger.debug("Image %s @ %s depth=%s", event.url, event.source_url, event.depth)
        elif kind == CrawlEventKind.IMAGE_DISCARDED:
            self.logger.debug("Ignored image %s @ %s (%s)", event.url, event.source_url, event.reason)


__all__ = ["CrawlObserver", "LoggingObserver"]
