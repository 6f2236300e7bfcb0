"""CLI entrypoint for image crawl execution."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any, Sequence, TextIO

from .config import CrawlConfig, load_config_payload
from .constants import JSON_INDENT, MAX_DEPTH, MIN_DEPTH
from .errors import InvalidSeedError
from .fetcher import Fetcher
from .observers import LoggingObserver
from .orchestrator import CrawlOrchestrator
from .session import CrawlSession
from .stats import StatsCollector
from .storage import Storage, result_document
from .types import FetchBackend


logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="image-crawler",
        description="Crawl a site from a seed URL and collect the images it references.",
    )

    parser.add_argument("-u", "--url", type=str, default=None, help="Seed URL to start crawling from.")
    parser.add_argument(
        "-d",
        "--depth",
        type=int,
        default=None,
        help=f"Maximum link depth ({MIN_DEPTH}-{MAX_DEPTH}). 0 crawls the seed page only.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML crawl config. Flags override its values.",
    )

    parser.add_argument(
        "--backend",
        type=str,
        choices=[backend.value for backend in FetchBackend],
        default=None,
        help="Page loader: plain HTTP (requests) or a headless browser (selenium).",
    )
    parser.add_argument("--concurrency", type=int, default=None)
    parser.add_argument(
        "--max-pages",
        type=int,
        default=None,
        help="Stop enqueueing after this many pages. Use 0 or negative to disable.",
    )
    parser.add_argument("--timeout", type=float, default=None, help="Per-page load timeout in seconds.")
    parser.add_argument("--user-agent", type=str, default=None)

    parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Export folder for result files and logs.",
    )
    parser.add_argument("--prefix", type=str, default=None, help="Export filename prefix.")
    parser.add_argument(
        "--stdout",
        action="store_true",
        help="Print the result document to stdout instead of writing an export file.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging (every discovered link and image).",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> CrawlConfig:
    if args.config is not None:
        payload: dict[str, Any] = load_config_payload(args.config)
    else:
        payload = {}

    if args.url is not None:
        payload["seed_url"] = args.url
    if not (payload.get("seed_url") or payload.get("url")):
        raise ValueError("No seed URL provided. Use --url or --config.")

    if args.depth is not None:
        payload["max_depth"] = args.depth
    if args.backend is not None:
        payload["backend"] = args.backend
    if args.concurrency is not None:
        payload["concurrency"] = args.concurrency
    if args.max_pages is not None:
        payload["max_pages"] = None if args.max_pages <= 0 else args.max_pages
    if args.timeout is not None:
        payload["timeout_seconds"] = args.timeout
    if args.user_agent is not None:
        payload["user_agent"] = args.user_agent

    if args.output_dir is not None:
        payload["export_folder"] = str(args.output_dir)
    if args.prefix is not None:
        payload["export_prefix"] = args.prefix
    if args.verbose:
        payload["verbose"] = True

    return CrawlConfig.from_dict(payload)


def setup_logging(log_dir: Path | None, verbose: bool, *, stream: TextIO | None = None) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(stream or sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_dir / "crawl.log", encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Browser drivers and the connection pool log every request at DEBUG.
    logging.getLogger("selenium").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def export_results(session: CrawlSession, storage: Storage, *, to_stdout: bool) -> Path | None:
    """Write the session's records to the export file, or stdout when asked."""

    records = session.snapshot()
    for record in records:
        logger.debug("Result image=%s source=%s depth=%d", record.image_url, record.source_url, record.depth)

    if to_stdout:
        print(json.dumps(result_document(records), ensure_ascii=False, indent=JSON_INDENT))
        logger.info("Exported %d images to stdout", len(records))
        return None

    path = storage.save_result(records, hostname=session.base_host, session_id=session.session_id)
    logger.info("Exported %d images to %s", len(records), path)
    return path


def print_summary(
    session: CrawlSession,
    stats: dict[str, Any],
    *,
    result_path: Path | None,
    stats_path: Path | None,
) -> None:
    print("\n=== Crawl Complete ===")
    print(f"session: {session.session_id}")
    print(f"seed: {session.seed_url}")
    print(f"max_depth: {session.max_depth}")
    print(f"result: {result_path}")
    print(f"stats: {stats_path}")

    print("\n--- Core Stats ---")
    for key in [
        "frontier_enqueued",
        "frontier_skipped_seen",
        "frontier_skipped_depth",
        "frontier_skipped_out_of_scope",
        "frontier_skipped_budget",
        "fetched_ok",
        "fetched_error",
        "images_recorded",
        "images_duplicate",
        "images_discarded",
        "cancelled",
        "duration_seconds",
    ]:
        if key in stats:
            print(f"{key}: {stats[key]}")


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(None if argv is None else list(argv))
    log_stream = sys.stderr if args.stdout else sys.stdout

    try:
        config = build_config(args)
    except Exception as exc:
        setup_logging(None, verbose=args.verbose, stream=log_stream)
        logging.error("Failed to build config: %s", exc)
        return 2

    storage = Storage(config.export_folder, prefix=config.export_prefix)
    setup_logging(storage.logs_dir, verbose=config.verbose, stream=log_stream)

    stats = StatsCollector()
    orchestrator = CrawlOrchestrator(
        config,
        fetcher_factory=Fetcher,
        observers=[LoggingObserver(verbose=config.verbose), stats],
    )

    exit_code = 0
    try:
        orchestrator.run()
    except InvalidSeedError as exc:
        logging.error("Invalid seed: %s", exc)
        return 2
    except KeyboardInterrupt:
        logging.error("Interrupted by user")
        exit_code = 130
    except Exception:
        logging.exception("Crawl failed")
        exit_code = 1

    session = orchestrator.session
    if session is None:
        return exit_code or 1

    # Records gathered before an interruption or failure are still exported.
    stats.record_frontier_snapshot(session.frontier.snapshot())
    stats_payload = stats.to_json()
    try:
        result_path = export_results(session, storage, to_stdout=args.stdout)
        stats_path = None
        if not args.stdout:
            stats_path = storage.save_stats(
                stats_payload,
                hostname=session.base_host,
                session_id=session.session_id,
            )
    except OSError:
        logging.exception("Failed to export results")
        return exit_code or 1

    if not args.stdout:
        print_summary(session, stats_payload, result_path=result_path, stats_path=stats_path)
    return exit_code


__all__ = [
    "build_config",
    "export_results",
    "main",
    "parse_args",
    "print_summary",
    "setup_logging",
]
