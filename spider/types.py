"""Core type definitions for the spider engine.

This module is intentionally dependency-light so other spider modules can import
shared records without introducing cycles. The only third-party import is
BeautifulSoup, which `Resource` uses to expose a lazily parsed document.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from hashlib import sha256
from typing import TYPE_CHECKING

from bs4 import BeautifulSoup

if TYPE_CHECKING:
    from .url import FilterableURI


class ContentKind(str, Enum):
    """Normalized content categories used across fetch/filter/storage."""

    HTML = "html"
    XML = "xml"
    PDF = "pdf"
    TEXT = "text"
    BINARY = "binary"
    UNKNOWN = "unknown"


class FetchBackend(str, Enum):
    """Backend used to fetch page content."""

    REQUESTS = "requests"
    SELENIUM = "selenium"


class TraversalAlgorithm(str, Enum):
    """Order in which the in-memory frontier hands out pending URIs."""

    BREADTH_FIRST = "breadth_first"
    DEPTH_FIRST = "depth_first"


class CrawlOutcome(str, Enum):
    """Terminal states of one crawl run. All of them are normal termination."""

    FRONTIER_EXHAUSTED = "frontier_exhausted"
    DOWNLOAD_LIMIT_REACHED = "download_limit_reached"
    USER_STOPPED = "user_stopped"


class SpiderEvent(str, Enum):
    """Lifecycle event names emitted by the engine."""

    PRE_REQUEST = "pre-request"
    POST_REQUEST = "post-request"
    REQUEST_ERROR = "request-error"
    FILTERED_PRE_FETCH = "filtered-pre-fetch"
    FILTERED_POST_FETCH = "filtered-post-fetch"
    RESOURCE_PERSISTED = "resource-persisted"
    USER_STOPPED = "user-stopped"


JSONPrimitive = str | int | float | bool | None
JSONValue = JSONPrimitive | list["JSONValue"] | dict[str, "JSONValue"]
JSONDict = dict[str, JSONValue]


def utc_now_iso() -> str:
    """Return an RFC3339-like UTC timestamp string for manifests/JSONL."""

    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def infer_content_kind(content_type: str | None, url: str) -> ContentKind:
    """Infer coarse content kind from HTTP content type and URL."""

    normalized = (content_type or "").split(";", maxsplit=1)[0].strip().lower()
    lower_url = url.lower()

    if "html" in normalized:
        return ContentKind.HTML
    if normalized.endswith("/xml") or normalized.endswith("+xml"):
        return ContentKind.XML
    if "application/pdf" in normalized or lower_url.endswith(".pdf"):
        return ContentKind.PDF
    if normalized.startswith("text/"):
        return ContentKind.TEXT
    if normalized:
        return ContentKind.BINARY
    return ContentKind.UNKNOWN


@dataclass(slots=True)
class FetchResult:
    """Raw outcome of downloading one URL."""

    requested_url: str
    final_url: str | None
    status_code: int | None
    content_type: str | None
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)
    backend: FetchBackend = FetchBackend.REQUESTS
    fetched_at: str = field(default_factory=utc_now_iso)
    elapsed_ms: int | None = None

    @property
    def content_length(self) -> int:
        return len(self.body)

    @property
    def body_sha256(self) -> str:
        return sha256(self.body).hexdigest()

    @property
    def normalized_content_kind(self) -> ContentKind:
        return infer_content_kind(self.content_type, self.final_url or self.requested_url)

    def to_json(self) -> JSONDict:
        return {
            "requested_url": self.requested_url,
            "final_url": self.final_url,
            "status_code": self.status_code,
            "content_type": self.content_type,
            "content_length": self.content_length,
            "body_sha256": self.body_sha256,
            "backend": self.backend.value,
            "fetched_at": self.fetched_at,
            "elapsed_ms": self.elapsed_ms,
        }


@dataclass(slots=True)
class Resource:
    """A fetched URI plus the depth at which it was discovered.

    The engine owns a resource for one loop iteration and then hands it to the
    resource store. `depth_found` is stamped by the engine from its visited set,
    not by the fetcher.
    """

    uri: "FilterableURI"
    response: FetchResult
    depth_found: int = 0
    _soup: BeautifulSoup | None = field(default=None, init=False, repr=False, compare=False)

    @property
    def base_url(self) -> str:
        """URL that relative links in this document resolve against.

        Falls back to the URI as written, since normalization drops the
        trailing slash that relative resolution depends on.
        """

        return self.response.final_url or self.uri.raw

    @property
    def content_type(self) -> str | None:
        return self.response.content_type

    @property
    def text(self) -> str:
        return self.response.body.decode("utf-8", errors="replace")

    @property
    def soup(self) -> BeautifulSoup:
        """Parsed document, built on first access and cached."""

        if self._soup is None:
            self._soup = BeautifulSoup(self.response.body, "lxml")
        return self._soup

    def to_json(self) -> JSONDict:
        return {
            "uri": str(self.uri),
            "depth_found": self.depth_found,
            "content_kind": self.response.normalized_content_kind.value,
            **self.response.to_json(),
        }


@dataclass(frozen=True, slots=True)
class CrawlEvent:
    """Payload delivered to lifecycle listeners."""

    name: SpiderEvent
    uri: str
    spider_id: str | None = None
    message: str | None = None
    metadata: dict[str, JSONValue] = field(default_factory=dict)
    created_at: str = field(default_factory=utc_now_iso)

    def to_json(self) -> JSONDict:
        return {
            "name": self.name.value,
            "uri": self.uri,
            "spider_id": self.spider_id,
            "message": self.message,
            "metadata": self.metadata,
            "created_at": self.created_at,
        }


__all__ = [
    "ContentKind",
    "CrawlEvent",
    "CrawlOutcome",
    "FetchBackend",
    "FetchResult",
    "JSONDict",
    "JSONPrimitive",
    "JSONValue",
    "Resource",
    "SpiderEvent",
    "TraversalAlgorithm",
    "infer_content_kind",
    "utc_now_iso",
]
