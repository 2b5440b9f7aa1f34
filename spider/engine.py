"""Crawl engine: the control loop, visited-set bookkeeping, and discovery gate."""

from __future__ import annotations

import hashlib
import logging
import threading
import time

from .config import SpiderConfig
from .events import EventDispatcher
from .exceptions import FetchError, InvalidSeedError, QueueFull
from .fetcher import HttpFetcher
from .frontier import InMemoryFrontier
from .interfaces import (
    Fetcher,
    Frontier,
    LinkExtractor,
    Notifier,
    PostFetchFilter,
    PreFetchFilter,
    ResourceStore,
)
from .storage import MemoryResourceStore
from .types import CrawlEvent, CrawlOutcome, JSONValue, Resource, SpiderEvent
from .url import FilterableURI

logger = logging.getLogger(__name__)


class Spider:
    """Drive frontier, fetcher, filters, discoverers, and store for one seed.

    Every loop iteration checks, in order: stop requested, frontier
    exhausted, download limit reached. It then fetches one URI, persists it,
    and feeds newly discovered links back into the frontier.

    The visited set maps each normalized URI to the depth it was first
    discovered at. A URI enters it at most once, whether it was queued or
    rejected by a pre-fetch filter, so no URI is filtered, queued, or fetched
    twice. Only the discovery step writes to it; the fetch step reads it to
    stamp `Resource.depth_found`.

    Collaborators not passed in are built from `config` and rebuilt for every
    run; injected collaborators are used as-is.
    """

    def __init__(
        self,
        config: SpiderConfig | None = None,
        *,
        fetcher: Fetcher | None = None,
        frontier: Frontier | None = None,
        store: ResourceStore | None = None,
        dispatcher: Notifier | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        self.config = config or SpiderConfig()

        self.spider_id = self.config.spider_id
        self.download_limit = self.config.download_limit

        self._owns_fetcher = fetcher is None
        self._owns_frontier = frontier is None
        # Explicit None checks: empty stores are falsy.
        self.fetcher: Fetcher = HttpFetcher(self.config) if fetcher is None else fetcher
        self.frontier: Frontier = self._build_frontier() if frontier is None else frontier
        self.store: ResourceStore = MemoryResourceStore() if store is None else store
        self.dispatcher: Notifier = EventDispatcher() if dispatcher is None else dispatcher

        self._discoverers: list[LinkExtractor] = []
        self._pre_fetch_filters: list[PreFetchFilter] = []
        self._post_fetch_filters: list[PostFetchFilter] = []

        self._stop_event = threading.Event() if stop_event is None else stop_event
        self._seen: dict[str, int] = {}
        self._persisted_count = 0
        self._seed: FilterableURI | None = None
        self._runs = 0

    def add_discoverer(self, discoverer: LinkExtractor) -> None:
        self._discoverers.append(discoverer)

    def add_pre_fetch_filter(self, pre_filter: PreFetchFilter) -> None:
        self._pre_fetch_filters.append(pre_filter)

    def add_post_fetch_filter(self, post_filter: PostFetchFilter) -> None:
        self._post_fetch_filters.append(post_filter)

    def stop(self) -> None:
        """Request a graceful stop, honoured at the next iteration boundary.

        Safe to call from signal handlers and other threads. An in-flight
        fetch always completes first.
        """

        self._stop_event.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    @property
    def persisted_count(self) -> int:
        return self._persisted_count

    @property
    def seed(self) -> FilterableURI | None:
        return self._seed

    def seen_uris(self) -> dict[str, int]:
        """Return a snapshot of the visited set (normalized URI -> depth)."""

        return dict(self._seen)

    def run(self, seed: str | FilterableURI) -> CrawlOutcome:
        """Crawl from `seed` until a terminal state is reached.

        Raises `InvalidSeedError` before doing anything else when the seed is
        not an absolute URI. Fetch failures of any kind, filter rejections,
        and a full frontier never end the run. Errors raised by the store,
        filters, or discoverers propagate.
        """

        try:
            seed_uri = FilterableURI.coerce(seed)
        except ValueError as exc:
            raise InvalidSeedError(str(seed)) from exc

        self._start_session(seed_uri)
        logger.info(
            "Spider %s starting at %s (max_depth=%s, download_limit=%s)",
            self.spider_id,
            seed_uri,
            self.frontier.max_depth,
            self.download_limit or "none",
        )

        try:
            outcome = self._crawl()
        finally:
            if self._owns_fetcher:
                self.fetcher.close()

        logger.info(
            "Spider %s finished: %s (persisted=%d, seen=%d)",
            self.spider_id,
            outcome.value,
            self._persisted_count,
            len(self._seen),
        )
        return outcome

    def discover(self, resource: Resource) -> list[FilterableURI]:
        """Run every discoverer and deduplicate their combined output.

        The first occurrence of each normalized URI wins and order is otherwise
        preserved. Candidates that are not absolute URIs are dropped. Engine
        state is not touched.
        """

        unique: dict[str, FilterableURI] = {}
        for discoverer in self._discoverers:
            for candidate in discoverer.discover(self, resource):
                try:
                    uri = FilterableURI.coerce(candidate)
                except ValueError:
                    logger.debug("Dropping unusable link %r found on %s", candidate, resource.uri)
                    continue
                unique.setdefault(uri.normalized, uri)
        return list(unique.values())

    def _start_session(self, seed_uri: FilterableURI) -> None:
        if self._runs:
            if self._owns_fetcher:
                self.fetcher = HttpFetcher(self.config)
            if self._owns_frontier:
                self.frontier = self._build_frontier()
        self._runs += 1

        self._stop_event.clear()
        self._seen = {}
        self._persisted_count = 0
        self._seed = seed_uri

        if self.spider_id is None:
            token = f"{seed_uri}{time.time()}".encode("utf-8")
            self.spider_id = hashlib.md5(token).hexdigest()
        self.store.set_spider_id(self.spider_id)

        self._seen[seed_uri.normalized] = 0
        self.frontier.add_uri(seed_uri, 0)

    def _build_frontier(self) -> InMemoryFrontier:
        return InMemoryFrontier(
            max_depth=self.config.max_depth,
            max_size=self.config.max_queue_size,
            traversal=self.config.traversal,
        )

    def _crawl(self) -> CrawlOutcome:
        while True:
            if self._stop_event.is_set():
                self._emit(SpiderEvent.USER_STOPPED, self._seed)
                return CrawlOutcome.USER_STOPPED

            item = self.frontier.next()
            if item is None:
                return CrawlOutcome.FRONTIER_EXHAUSTED

            if self.download_limit and self._persisted_count >= self.download_limit:
                return CrawlOutcome.DOWNLOAD_LIMIT_REACHED

            resource = self._fetch(item.uri)
            if resource is None:
                continue

            self.store.persist(resource)
            self._persisted_count += 1
            self._emit(SpiderEvent.RESOURCE_PERSISTED, item.uri)

            next_depth = resource.depth_found + 1
            if next_depth > self.frontier.max_depth:
                continue

            self._enqueue_discovered(resource, next_depth)

    def _fetch(self, uri: FilterableURI) -> Resource | None:
        self._emit(SpiderEvent.PRE_REQUEST, uri)
        try:
            resource = self.fetcher.request(uri)
            resource.depth_found = self._seen[uri.normalized]
        except Exception as exc:
            # Any fetch failure skips the URI; the run goes on.
            message = str(exc) if isinstance(exc, FetchError) else f"{type(exc).__name__}: {exc}"
            self._emit(
                SpiderEvent.REQUEST_ERROR,
                uri,
                message=message,
                metadata={"status_code": getattr(exc, "status_code", None)},
            )
            return None
        finally:
            self._emit(SpiderEvent.POST_REQUEST, uri)

        if self._matches_post_fetch_filter(resource):
            return None
        return resource

    def _enqueue_discovered(self, resource: Resource, next_depth: int) -> None:
        for uri in self.discover(resource):
            if uri.normalized in self._seen:
                continue

            if not self._matches_pre_fetch_filter(uri):
                try:
                    self.frontier.add_uri(uri, next_depth)
                except QueueFull as exc:
                    # Shed the rest of this batch; the URI stays marked as seen.
                    self._seen[uri.normalized] = next_depth
                    logger.info("Frontier full while expanding %s: %s", resource.uri, exc)
                    return

            self._seen[uri.normalized] = next_depth

    def _matches_pre_fetch_filter(self, uri: FilterableURI) -> bool:
        for pre_filter in self._pre_fetch_filters:
            if pre_filter.match(uri):
                self._emit(
                    SpiderEvent.FILTERED_PRE_FETCH,
                    uri,
                    metadata={"filter": type(pre_filter).__name__},
                )
                return True
        return False

    def _matches_post_fetch_filter(self, resource: Resource) -> bool:
        for post_filter in self._post_fetch_filters:
            if post_filter.match(resource):
                self._emit(
                    SpiderEvent.FILTERED_POST_FETCH,
                    resource.uri,
                    metadata={"filter": type(post_filter).__name__},
                )
                return True
        return False

    def _emit(
        self,
        name: SpiderEvent,
        uri: FilterableURI | None,
        *,
        message: str | None = None,
        metadata: dict[str, JSONValue] | None = None,
    ) -> None:
        self.dispatcher.emit(
            CrawlEvent(
                name=name,
                uri=str(uri) if uri is not None else "",
                spider_id=self.spider_id,
                message=message,
                metadata=metadata or {},
            )
        )


__all__ = ["Spider"]
