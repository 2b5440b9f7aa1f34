"""Shared fakes: an in-memory link graph served by a fetcher and an extractor."""

from typing import Iterable

import pytest

from spider import (
    FetchError,
    FetchResult,
    FilterableURI,
    InMemoryFrontier,
    MemoryResourceStore,
    Resource,
    Spider,
    SpiderConfig,
    TraversalAlgorithm,
)


def make_resource(
    url: str,
    body: bytes | str = b"",
    *,
    content_type: str | None = "text/html; charset=utf-8",
    depth: int = 0,
    final_url: str | None = None,
) -> Resource:
    if isinstance(body, str):
        body = body.encode("utf-8")
    return Resource(
        uri=FilterableURI(url),
        response=FetchResult(
            requested_url=url,
            final_url=final_url or url,
            status_code=200,
            content_type=content_type,
            body=body,
        ),
        depth_found=depth,
    )


class GraphFetcher:
    """Serves pages of a `{url: [links]}` graph; unknown URLs 404."""

    def __init__(
        self,
        graph: dict[str, list[str]],
        *,
        failing: Iterable[str] = (),
        content_types: dict[str, str] | None = None,
    ) -> None:
        self.graph = graph
        self.failing = set(failing)
        self.content_types = content_types or {}
        self.requested: list[str] = []
        self.closed = False

    def request(self, uri: FilterableURI) -> Resource:
        url = str(uri)
        self.requested.append(url)
        if url in self.failing:
            raise FetchError(url, "ConnectionError: connection refused")
        if url not in self.graph:
            raise FetchError(url, "HTTP status 404", status_code=404)

        anchors = "".join(f'<a href="{link}">{link}</a>' for link in self.graph[url])
        return make_resource(
            url,
            f"<html><body>{anchors}</body></html>",
            content_type=self.content_types.get(url, "text/html; charset=utf-8"),
        )

    def close(self) -> None:
        self.closed = True


class GraphExtractor:
    """Returns the graph's outgoing links for a resource, verbatim."""

    def __init__(self, graph: dict[str, list[str]]) -> None:
        self.graph = graph
        self.calls: list[str] = []

    def discover(self, spider: Spider, resource: Resource) -> list[str]:
        self.calls.append(str(resource.uri))
        return list(self.graph.get(str(resource.uri), []))


class EventRecorder:
    def __init__(self) -> None:
        self.events = []

    def __call__(self, event) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [event.name.value for event in self.events]

    def uris(self, name: str) -> list[str]:
        return [event.uri for event in self.events if event.name.value == name]


@pytest.fixture
def make_spider():
    def _make(
        graph: dict[str, list[str]],
        *,
        max_depth: int = 10,
        max_size: int = 0,
        traversal: TraversalAlgorithm = TraversalAlgorithm.BREADTH_FIRST,
        download_limit: int = 0,
        failing: Iterable[str] = (),
        content_types: dict[str, str] | None = None,
    ) -> Spider:
        spider = Spider(
            SpiderConfig(spider_id="test-spider", download_limit=download_limit),
            fetcher=GraphFetcher(graph, failing=failing, content_types=content_types),
            frontier=InMemoryFrontier(max_depth=max_depth, max_size=max_size, traversal=traversal),
            store=MemoryResourceStore(),
        )
        spider.add_discoverer(GraphExtractor(graph))
        return spider

    return _make


@pytest.fixture
def recorder():
    return EventRecorder()


def persisted_urls(spider: Spider) -> list[str]:
    return [str(resource.uri) for resource in spider.store.resources()]


@pytest.fixture
def persisted():
    return persisted_urls
