"""Capability protocols for the collaborators the engine drives.

Each protocol is one small capability. The engine only ever calls these
methods and never inspects the concrete type behind them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

from .types import CrawlEvent, Resource
from .url import FilterableURI

if TYPE_CHECKING:
    from .engine import Spider
    from .frontier import FrontierItem


@runtime_checkable
class Fetcher(Protocol):
    """Turns a URI into a `Resource`."""

    def request(self, uri: FilterableURI) -> Resource:
        """Fetch `uri`, raising `FetchError` on network/protocol failure."""


@runtime_checkable
class ResourceStore(Protocol):
    """Durable (or in-memory) sink for fetched resources."""

    def set_spider_id(self, spider_id: str) -> None:
        """Bind the store to the crawl session that will write into it."""

    def persist(self, resource: Resource) -> None:
        """Persist one resource. Ownership of the resource transfers here."""

    def count(self) -> int:
        """Number of resources persisted in this run."""


@runtime_checkable
class Frontier(Protocol):
    """Pending URIs awaiting a visit."""

    max_depth: int
    max_size: int

    def add_uri(self, uri: FilterableURI, depth: int = 0) -> None:
        """Queue `uri`, raising `QueueFull` when the size bound is exceeded."""

    def next(self) -> "FrontierItem | None":
        """Pop the next pending item, or None once the frontier is exhausted."""


@runtime_checkable
class LinkExtractor(Protocol):
    """Proposes candidate URIs found in a resource."""

    def discover(self, spider: "Spider", resource: Resource) -> Sequence[str | FilterableURI]:
        """Return candidate links. Must not mutate engine state."""


@runtime_checkable
class PreFetchFilter(Protocol):
    def match(self, uri: FilterableURI) -> bool:
        """True rejects `uri` before it is ever queued or fetched."""


@runtime_checkable
class PostFetchFilter(Protocol):
    def match(self, resource: Resource) -> bool:
        """True rejects `resource` before it is persisted."""


@runtime_checkable
class Notifier(Protocol):
    def emit(self, event: CrawlEvent) -> None:
        """Deliver `event` to listeners. Must not raise."""


__all__ = [
    "Fetcher",
    "Frontier",
    "LinkExtractor",
    "Notifier",
    "PostFetchFilter",
    "PreFetchFilter",
    "ResourceStore",
]
