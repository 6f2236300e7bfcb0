"""Image crawler package: config, shared types, and crawl components."""

from .collector import ImageCollector
from .config import CrawlConfig, load_config, save_config
from .errors import CrawlerError, FetchError, InvalidSeedError, InvalidUrlError, ResourceClosedError
from .fetcher import Fetcher, PageFetcher
from .frontier import DiscoverResult, DiscoverStatus, Frontier
from .observers import CrawlObserver, LoggingObserver
from .orchestrator import CrawlOrchestrator, crawl_images
from .parsers import HTMLParser, HTMLParserConfig
from .session import CrawlSession, validate_seed
from .stats import StatsCollector
from .storage import Storage, result_document
from .types import (
    ContentKind,
    CrawlEvent,
    CrawlEventKind,
    CrawlStats,
    CrawlTarget,
    FetchBackend,
    FetchResult,
    ImageRecord,
    PageContent,
    TargetState,
    infer_content_kind,
    utc_now_iso,
)
from .url import host_from_url, is_same_site, normalize_url, resolve_url, try_normalize_url

__version__ = "1.0.0"

__all__ = [
    "ContentKind",
    "CrawlConfig",
    "CrawlEvent",
    "CrawlEventKind",
    "CrawlObserver",
    "CrawlOrchestrator",
    "CrawlSession",
    "CrawlStats",
    "CrawlTarget",
    "CrawlerError",
    "DiscoverResult",
    "DiscoverStatus",
    "FetchBackend",
    "FetchError",
    "FetchResult",
    "Fetcher",
    "Frontier",
    "HTMLParser",
    "HTMLParserConfig",
    "ImageCollector",
    "ImageRecord",
    "InvalidSeedError",
    "InvalidUrlError",
    "LoggingObserver",
    "PageContent",
    "PageFetcher",
    "ResourceClosedError",
    "StatsCollector",
    "Storage",
    "TargetState",
    "crawl_images",
    "host_from_url",
    "infer_content_kind",
    "is_same_site",
    "load_config",
    "normalize_url",
    "resolve_url",
    "result_document",
    "save_config",
    "try_normalize_url",
    "utc_now_iso",
    "validate_seed",
]
