"""Crawl orchestration: frontier loop, page indexing, termination and release."""

from __future__ import annotations

from contextlib import closing
import logging
import threading
from typing import Callable, Sequence

from .config import CrawlConfig
from .constants import WORKER_POLL_SECONDS
from .errors import FetchError, InvalidUrlError
from .fetcher import Fetcher, PageFetcher
from .frontier import DiscoverResult
from .observers import CrawlObserver
from .session import CrawlSession
from .types import CrawlEvent, CrawlEventKind, CrawlTarget, ImageRecord


logger = logging.getLogger(__name__)

FetcherFactory = Callable[[CrawlConfig], PageFetcher]


class CrawlOrchestrator:
    """Drive one crawl session from seed to exported image records.

    Each run owns exactly one fetcher and closes it on every exit path. With
    `config.concurrency > 1` targets are indexed by a pool of worker threads
    sharing the session frontier; otherwise the loop runs in the calling
    thread.
    """

    def __init__(
        self,
        config: CrawlConfig,
        *,
        fetcher: PageFetcher | None = None,
        fetcher_factory: FetcherFactory = Fetcher,
        observers: Sequence[CrawlObserver] = (),
    ) -> None:
        self.config = config
        self.session: CrawlSession | None = None

        self._fetcher = fetcher
        self._fetcher_factory = fetcher_factory
        self._observers: list[CrawlObserver] = list(observers)

        self._stop_event = threading.Event()
        self._cancel_requested = False
        self._state_lock = threading.Lock()

    def add_observer(self, observer: CrawlObserver) -> None:
        self._observers.append(observer)

    def run(self, seed_url: str | None = None, max_depth: int | None = None) -> list[ImageRecord]:
        """Crawl from the seed and return the deduplicated image records.

        Raises `InvalidSeedError` before any page is loaded when the seed or
        depth is invalid. Per-page failures are logged and skipped. After a
        fatal error the records collected so far remain available through
        `self.session`.
        """

        session = CrawlSession.start(
            self.config.seed_url if seed_url is None else seed_url,
            self.config.max_depth if max_depth is None else max_depth,
            max_pages=self.config.max_pages,
            normalizer_options=self.config.normalizer_options(),
        )

        with self._state_lock:
            self.session = session
            self._stop_event.clear()
            self._cancel_requested = False

        fetcher = self._acquire_fetcher()

        try:
            with closing(fetcher):
                self._emit(session, CrawlEventKind.SESSION_STARTED, url=session.seed_url, depth=session.max_depth)
                self._emit_discovery(session, session.frontier.discover(session.seed_url, 0), source_url=None)
                self._crawl(session, fetcher)
        finally:
            self._finish(session)

        return session.snapshot()

    def cancel(self) -> None:
        """Stop handing out new targets; in-flight pages finish normally."""

        with self._state_lock:
            self._cancel_requested = True
            session = self.session
        self._stop(session)

    @property
    def cancelled(self) -> bool:
        with self._state_lock:
            return self._cancel_requested

    def _acquire_fetcher(self) -> PageFetcher:
        # An injected fetcher belongs to the first run only.
        fetcher, self._fetcher = self._fetcher, None
        if fetcher is None:
            fetcher = self._fetcher_factory(self.config)
        return fetcher

    def _stop(self, session: CrawlSession | None) -> None:
        self._stop_event.set()
        if session is not None:
            session.frontier.close()

    def _crawl(self, session: CrawlSession, fetcher: PageFetcher) -> None:
        if self.config.concurrency == 1:
            try:
                self._worker(session, fetcher, block=False)
            except KeyboardInterrupt:
                self.cancel()
                raise
            return

        errors: list[BaseException] = []
        workers = [
            threading.Thread(
                target=self._guarded_worker,
                args=(session, fetcher, errors),
                name=f"crawler-worker-{idx}",
                daemon=True,
            )
            for idx in range(self.config.concurrency)
        ]

        for worker in workers:
            worker.start()

        try:
            for worker in workers:
                while worker.is_alive():
                    worker.join(timeout=WORKER_POLL_SECONDS)
        except KeyboardInterrupt:
            self.cancel()
            for worker in workers:
                worker.join()
            raise

        if errors:
            if isinstance(errors[0], KeyboardInterrupt):
                with self._state_lock:
                    self._cancel_requested = True
            raise errors[0]

    def _guarded_worker(
        self,
        session: CrawlSession,
        fetcher: PageFetcher,
        errors: list[BaseException],
    ) -> None:
        try:
            self._worker(session, fetcher, block=True)
        except BaseException as exc:
            logger.error("Worker %s stopped: %r", threading.current_thread().name, exc)
            errors.append(exc)
            self._stop(session)

    def _worker(self, session: CrawlSession, fetcher: PageFetcher, *, block: bool) -> None:
        frontier = session.frontier

        while not self._stop_event.is_set():
            target = frontier.pop_next(block=block, timeout=WORKER_POLL_SECONDS if block else None)
            if target is None:
                if frontier.closed or frontier.exhausted():
                    return
                continue

            if frontier.is_visited(target.url):
                # Clears the in-flight slot without re-indexing.
                frontier.mark_visited(target.url, target.depth)
                continue

            self._index(session, fetcher, target)

    def _index(self, session: CrawlSession, fetcher: PageFetcher, target: CrawlTarget) -> None:
        try:
            page = fetcher.fetch_page(target.url)
        except FetchError as exc:
            session.frontier.mark_failed(target.url, target.depth)
            self._emit(
                session,
                CrawlEventKind.TARGET_FAILED,
                url=target.url,
                depth=target.depth,
                reason=exc.message,
                source_url=target.referrer,
            )
            return
        except BaseException:
            # Free the in-flight slot so the frontier can still drain.
            session.frontier.mark_failed(target.url, target.depth)
            raise

        for image_src in page.image_srcs:
            try:
                added = session.collector.record(image_src, target.url, target.depth)
            except InvalidUrlError as exc:
                self._emit(
                    session,
                    CrawlEventKind.IMAGE_DISCARDED,
                    url=image_src,
                    depth=target.depth,
                    reason=exc.reason,
                    source_url=target.url,
                )
                continue

            self._emit(
                session,
                CrawlEventKind.IMAGE_RECORDED if added else CrawlEventKind.IMAGE_DUPLICATE,
                url=image_src,
                depth=target.depth,
                source_url=target.url,
            )

        for link in page.link_hrefs:
            result = session.frontier.discover(link, target.depth + 1, referrer=target.url)
            self._emit_discovery(session, result, source_url=target.url, raw_url=link)

        session.frontier.mark_visited(target.url, target.depth)
        self._emit(
            session,
            CrawlEventKind.TARGET_FETCHED,
            url=target.url,
            depth=target.depth,
            source_url=target.referrer,
            image_count=len(page.image_srcs),
            link_count=len(page.link_hrefs),
        )

    def _emit_discovery(
        self,
        session: CrawlSession,
        result: DiscoverResult,
        *,
        source_url: str | None,
        raw_url: str | None = None,
    ) -> None:
        if result.accepted and result.target is not None:
            self._emit(
                session,
                CrawlEventKind.TARGET_DISCOVERED,
                url=result.target.url,
                depth=result.target.depth,
                source_url=source_url,
            )
            return

        self._emit(
            session,
            CrawlEventKind.TARGET_DISCARDED,
            url=result.normalized_url or raw_url,
            reason=result.status.value,
            source_url=source_url,
        )

    def _finish(self, session: CrawlSession) -> None:
        if self.cancelled:
            self._emit(session, CrawlEventKind.SESSION_CANCELLED)
        self._emit(
            session,
            CrawlEventKind.SESSION_FINISHED,
            url=session.seed_url,
            image_count=len(session.collector),
        )

    def _emit(self, session: CrawlSession, kind: CrawlEventKind, **fields) -> None:
        event = CrawlEvent(kind=kind, session_id=session.session_id, **fields)
        for observer in self._observers:
            observer(event)


def crawl_images(
    seed_url: str,
    max_depth: int = 0,
    *,
    fetcher: PageFetcher | None = None,
    observers: Sequence[CrawlObserver] = (),
    **config_overrides,
) -> list[ImageRecord]:
    """Run one crawl with a default config and return its image records."""

    config = CrawlConfig(seed_url=seed_url, max_depth=max_depth, **config_overrides)
    return CrawlOrchestrator(config, fetcher=fetcher, observers=observers).run()


__all__ = [
    "CrawlOrchestrator",
    "FetcherFactory",
    "crawl_images",
]
