"""CLI entrypoint: build a spider from config/flags and crawl one seed."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import signal
import sys
from typing import Any, Callable

from .config import SpiderConfig, load_config
from .discoverers import CssSelectorDiscoverer, XPathExpressionDiscoverer
from .engine import Spider
from .events import EventDispatcher, EventLogger
from .exceptions import ConfigError, InvalidSeedError
from .filters import (
    AllowedHostsFilter,
    AllowedSchemeFilter,
    MaxContentLengthFilter,
    MimeTypeFilter,
    RestrictToBaseUriFilter,
    UriPatternFilter,
    UriWithQueryStringFilter,
)
from .interfaces import Fetcher, ResourceStore
from .stats import StatsCollector
from .storage import FileResourceStore, MemoryResourceStore
from .types import FetchBackend, TraversalAlgorithm
from .url import host_from_url

STOP_SIGNALS = tuple(
    getattr(signal, name) for name in ("SIGINT", "SIGTERM", "SIGHUP") if hasattr(signal, name)
)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Crawl a site from one seed URL.",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to JSON/YAML spider config.",
    )
    parser.add_argument(
        "--seed",
        type=str,
        default=None,
        help="Seed URL. Overrides the config seed if provided.",
    )
    parser.add_argument(
        "--output_dir",
        type=Path,
        default=None,
        help="Root output directory for raw bodies, manifests, and logs.",
    )
    parser.add_argument("--spider_id", type=str, default=None)

    parser.add_argument("--max_depth", type=int, default=None)
    parser.add_argument(
        "--max_queue_size",
        type=int,
        default=None,
        help="Maximum URIs accepted by the frontier. Use 0 to disable.",
    )
    parser.add_argument(
        "--download_limit",
        type=int,
        default=None,
        help="Stop after persisting this many resources. Use 0 to disable.",
    )
    parser.add_argument(
        "--traversal",
        type=str,
        choices=[item.value for item in TraversalAlgorithm],
        default=None,
    )

    parser.add_argument("--timeout_seconds", type=float, default=None)
    parser.add_argument("--retries", type=int, default=None)
    parser.add_argument("--retry_backoff_seconds", type=float, default=None)
    parser.add_argument("--rate_limit_seconds", type=float, default=None)
    parser.add_argument("--user_agent", type=str, default=None)
    parser.add_argument(
        "--backend",
        type=str,
        choices=[item.value for item in FetchBackend],
        default=None,
    )
    parser.add_argument(
        "--respect_robots",
        dest="respect_robots",
        action="store_true",
        default=None,
        help="Respect robots.txt (default comes from config).",
    )
    parser.add_argument(
        "--no_respect_robots",
        dest="respect_robots",
        action="store_false",
        help="Ignore robots.txt.",
    )

    parser.add_argument(
        "--css_selector",
        action="append",
        default=[],
        help="CSS selector for link discovery (repeatable).",
    )
    parser.add_argument(
        "--xpath",
        action="append",
        default=[],
        help="XPath expression for link discovery (repeatable).",
    )
    parser.add_argument(
        "--allowed_host",
        action="append",
        default=[],
        help="Host allowed for crawling (repeatable). Defaults to the seed host.",
    )
    parser.add_argument("--allow_subdomains", action="store_true", default=None)
    parser.add_argument("--restrict_to_base_uri", action="store_true", default=None)
    parser.add_argument("--skip_query_strings", action="store_true", default=None)
    parser.add_argument(
        "--exclude_pattern",
        action="append",
        default=[],
        help="Regex; matching URIs are never queued (repeatable).",
    )

    parser.add_argument(
        "--print_stats_json",
        action="store_true",
        help="Print full stats JSON in stdout after run.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> SpiderConfig:
    payload: dict[str, Any] = {} if args.config is None else load_config(args.config).to_dict()

    overrides = {
        "seed": args.seed,
        "spider_id": args.spider_id,
        "output_dir": None if args.output_dir is None else str(args.output_dir),
        "max_depth": args.max_depth,
        "max_queue_size": args.max_queue_size,
        "download_limit": args.download_limit,
        "traversal": args.traversal,
        "timeout_seconds": args.timeout_seconds,
        "retries": args.retries,
        "retry_backoff_seconds": args.retry_backoff_seconds,
        "rate_limit_seconds": args.rate_limit_seconds,
        "user_agent": args.user_agent,
        "backend": args.backend,
        "respect_robots": args.respect_robots,
        "allow_subdomains": args.allow_subdomains,
        "restrict_to_base_uri": args.restrict_to_base_uri,
        "skip_query_strings": args.skip_query_strings,
    }
    payload.update({key: value for key, value in overrides.items() if value is not None})

    if args.css_selector:
        payload["css_selectors"] = list(args.css_selector)
    if args.xpath:
        payload["xpath_expressions"] = list(args.xpath)
    if args.allowed_host:
        payload["allowed_hosts"] = list(args.allowed_host)
    if args.exclude_pattern:
        payload["uri_patterns"] = list(args.exclude_pattern)

    if not payload.get("seed"):
        raise ConfigError("No seed provided. Use --config or --seed.")

    if not payload.get("allowed_hosts"):
        seed_host = host_from_url(str(payload["seed"]))
        payload["allowed_hosts"] = [seed_host] if seed_host else []

    return SpiderConfig.from_dict(payload)


def build_spider(
    config: SpiderConfig,
    *,
    fetcher: Fetcher | None = None,
    store: ResourceStore | None = None,
) -> tuple[Spider, StatsCollector]:
    """Wire a `Spider` with the discoverers, filters, and listeners `config` asks for."""

    if store is None:
        store = FileResourceStore(config.output_dir) if config.output_dir else MemoryResourceStore()

    dispatcher = EventDispatcher()
    EventLogger().attach(dispatcher)
    stats = StatsCollector().attach(dispatcher)

    spider = Spider(config, fetcher=fetcher, store=store, dispatcher=dispatcher)

    for selector in config.css_selectors:
        spider.add_discoverer(CssSelectorDiscoverer(selector))
    for expression in config.xpath_expressions:
        spider.add_discoverer(XPathExpressionDiscoverer(expression))

    if config.allowed_schemes:
        spider.add_pre_fetch_filter(AllowedSchemeFilter(config.allowed_schemes))
    if config.allowed_hosts:
        spider.add_pre_fetch_filter(
            AllowedHostsFilter(config.allowed_hosts, allow_subdomains=config.allow_subdomains)
        )
    if config.restrict_to_base_uri:
        if not config.seed:
            raise ConfigError("restrict_to_base_uri requires a seed")
        spider.add_pre_fetch_filter(RestrictToBaseUriFilter(config.seed))
    if config.skip_query_strings:
        spider.add_pre_fetch_filter(UriWithQueryStringFilter())
    if config.uri_patterns:
        spider.add_pre_fetch_filter(UriPatternFilter(config.uri_patterns))

    if config.allowed_content_types:
        spider.add_post_fetch_filter(MimeTypeFilter(config.allowed_content_types))
    if config.max_content_length is not None:
        spider.add_post_fetch_filter(MaxContentLengthFilter(config.max_content_length))

    return spider, stats


def install_signal_handlers(spider: Spider) -> dict[int, Callable | int | None]:
    """Route stop signals to `spider.stop()`; returns the previous handlers."""

    def _handle(signum, frame) -> None:
        logging.warning("Received %s, stopping after the current request", signal.Signals(signum).name)
        spider.stop()

    previous: dict[int, Callable | int | None] = {}
    for signum in STOP_SIGNALS:
        previous[signum] = signal.signal(signum, _handle)
    return previous


def restore_signal_handlers(previous: dict[int, Callable | int | None]) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler if handler is not None else signal.SIG_DFL)


def setup_logging(log_dir: Path | None, verbose: bool) -> None:
    log_level = logging.DEBUG if verbose else logging.INFO

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(log_level)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_dir / "crawl.log", encoding="utf-8")
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # urllib3 logs every connection at DEBUG. Keep crawler logs readable.
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("selenium").setLevel(logging.WARNING)


def print_summary(spider: Spider, stats: dict[str, Any], *, print_stats_json: bool) -> None:
    print("\n=== Crawl Complete ===")
    print(f"spider_id: {spider.spider_id}")
    print(f"seed: {spider.seed}")
    print(f"outcome: {stats.get('outcome')}")
    if isinstance(spider.store, FileResourceStore):
        print(f"output: {spider.store.run_dir}")

    print("\n--- Core Stats ---")
    print(f"persisted: {len(stats.get('persisted', []))}")
    print(f"filtered_pre_fetch: {len(stats.get('filtered_pre_fetch', []))}")
    print(f"filtered_post_fetch: {len(stats.get('filtered_post_fetch', []))}")
    print(f"failed: {len(stats.get('failed', {}))}")
    print(f"seen: {len(spider.seen_uris())}")
    print(f"duration_seconds: {stats.get('duration_seconds')}")

    if print_stats_json:
        print("\n--- Full Stats JSON ---")
        print(json.dumps(stats, indent=2, sort_keys=True))


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(None if args.output_dir is None else args.output_dir / "logs", verbose=args.verbose)

    try:
        config = build_config(args)
        spider, stats = build_spider(config)
    except (ConfigError, OSError) as exc:
        logging.error("Failed to build config: %s", exc)
        return 2

    previous_handlers = install_signal_handlers(spider)
    try:
        outcome = spider.run(config.seed)
    except InvalidSeedError as exc:
        logging.error("%s", exc)
        return 2
    except Exception:
        logging.exception("Crawl failed")
        return 1
    finally:
        restore_signal_handlers(previous_handlers)

    stats.finish(outcome)
    summary = stats.to_json()
    if isinstance(spider.store, FileResourceStore):
        spider.store.save_crawl_stats(summary)
        spider.store.save_crawl_config(config.to_dict())

    print_summary(spider, summary, print_stats_json=args.print_stats_json)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
