"""Default values shared by config, fetcher, frontier, and CLI."""

from __future__ import annotations

from .types import FetchBackend, TraversalAlgorithm


DEFAULT_MAX_DEPTH = 3
DEFAULT_MAX_QUEUE_SIZE = 0
DEFAULT_DOWNLOAD_LIMIT = 0
DEFAULT_TRAVERSAL = TraversalAlgorithm.BREADTH_FIRST

DEFAULT_TIMEOUT_SECONDS = 20.0
DEFAULT_RETRIES = 2
DEFAULT_RETRY_BACKOFF_SECONDS = 1.0
DEFAULT_RATE_LIMIT_SECONDS = 0.0
DEFAULT_RESPECT_ROBOTS = True

DEFAULT_FETCH_BACKEND = FetchBackend.REQUESTS
DEFAULT_USER_AGENT = "spider/0.1 (+https://github.com/spider-crawl/spider)"
DEFAULT_HTTP_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.8",
}

DEFAULT_CSS_SELECTORS: tuple[str, ...] = ("a[href]",)
DEFAULT_ALLOWED_SCHEMES: tuple[str, ...] = ("http", "https")

DEFAULT_OUTPUT_DIR = "crawled_output"

ROBOTS_TIMEOUT_SECONDS = 10.0
JSON_INDENT = 2
SUPPORTED_CONFIG_SUFFIXES = (".json", ".yaml", ".yml")


__all__ = [
    "DEFAULT_ALLOWED_SCHEMES",
    "DEFAULT_CSS_SELECTORS",
    "DEFAULT_DOWNLOAD_LIMIT",
    "DEFAULT_FETCH_BACKEND",
    "DEFAULT_HTTP_HEADERS",
    "DEFAULT_MAX_DEPTH",
    "DEFAULT_MAX_QUEUE_SIZE",
    "DEFAULT_OUTPUT_DIR",
    "DEFAULT_RATE_LIMIT_SECONDS",
    "DEFAULT_RESPECT_ROBOTS",
    "DEFAULT_RETRIES",
    "DEFAULT_RETRY_BACKOFF_SECONDS",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_TRAVERSAL",
    "DEFAULT_USER_AGENT",
    "JSON_INDENT",
    "ROBOTS_TIMEOUT_SECONDS",
    "SUPPORTED_CONFIG_SUFFIXES",
]
