"""Spider package: crawl engine, frontier, collaborators, and shared types."""

from .config import SpiderConfig, load_config, save_config
from .discoverers import CssSelectorDiscoverer, XPathExpressionDiscoverer
from .engine import Spider
from .events import EventDispatcher, EventLogger
from .exceptions import ConfigError, FetchError, InvalidSeedError, QueueFull, SpiderError
from .fetcher import HttpFetcher
from .filters import (
    AllowedHostsFilter,
    AllowedSchemeFilter,
    MaxContentLengthFilter,
    MimeTypeFilter,
    RestrictToBaseUriFilter,
    UriPatternFilter,
    UriWithQueryStringFilter,
)
from .frontier import FrontierItem, InMemoryFrontier
from .interfaces import (
    Fetcher,
    Frontier,
    LinkExtractor,
    Notifier,
    PostFetchFilter,
    PreFetchFilter,
    ResourceStore,
)
from .stats import StatsCollector
from .storage import FileResourceStore, MemoryResourceStore
from .types import (
    ContentKind,
    CrawlEvent,
    CrawlOutcome,
    FetchBackend,
    FetchResult,
    Resource,
    SpiderEvent,
    TraversalAlgorithm,
    infer_content_kind,
    utc_now_iso,
)
from .url import FilterableURI, host_from_url, normalize_domain, normalize_url, resolve_url

__all__ = [
    "AllowedHostsFilter",
    "AllowedSchemeFilter",
    "ConfigError",
    "ContentKind",
    "CrawlEvent",
    "CrawlOutcome",
    "CssSelectorDiscoverer",
    "EventDispatcher",
    "EventLogger",
    "FetchBackend",
    "FetchError",
    "FetchResult",
    "Fetcher",
    "FileResourceStore",
    "FilterableURI",
    "Frontier",
    "FrontierItem",
    "HttpFetcher",
    "InMemoryFrontier",
    "InvalidSeedError",
    "LinkExtractor",
    "MaxContentLengthFilter",
    "MemoryResourceStore",
    "MimeTypeFilter",
    "Notifier",
    "PostFetchFilter",
    "PreFetchFilter",
    "QueueFull",
    "Resource",
    "ResourceStore",
    "RestrictToBaseUriFilter",
    "Spider",
    "SpiderConfig",
    "SpiderError",
    "SpiderEvent",
    "StatsCollector",
    "TraversalAlgorithm",
    "UriPatternFilter",
    "UriWithQueryStringFilter",
    "XPathExpressionDiscoverer",
    "host_from_url",
    "infer_content_kind",
    "load_config",
    "normalize_domain",
    "normalize_url",
    "resolve_url",
    "save_config",
    "utc_now_iso",
]
