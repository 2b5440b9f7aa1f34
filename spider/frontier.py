"""Thread-safe in-memory frontier with depth and size bounds."""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass

from .constants import DEFAULT_MAX_DEPTH, DEFAULT_MAX_QUEUE_SIZE, DEFAULT_TRAVERSAL
from .exceptions import QueueFull
from .types import TraversalAlgorithm
from .url import FilterableURI

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FrontierItem:
    """A pending URI and the depth it was queued at."""

    uri: FilterableURI
    depth: int


class InMemoryFrontier:
    """Frontier queue backed by `queue.Queue` (FIFO) or `queue.LifoQueue` (LIFO).

    - Breadth-first traversal hands URIs out in insertion order, depth-first in
      reverse insertion order.
    - URIs deeper than `max_depth` are never accepted.
    - `max_size` bounds the number of URIs accepted over the whole run, not the
      number currently pending. 0 means unbounded. Exceeding it raises
      `QueueFull` instead of silently dropping.
    - Deduplication is the engine's job; the frontier accepts what it is given.
    """

    def __init__(
        self,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
        max_size: int = DEFAULT_MAX_QUEUE_SIZE,
        traversal: TraversalAlgorithm | str = DEFAULT_TRAVERSAL,
    ) -> None:
        if max_depth < 0:
            raise ValueError("max_depth must be >= 0")
        if max_size < 0:
            raise ValueError("max_size must be >= 0")

        self.max_depth = max_depth
        self.max_size = max_size
        self.traversal = TraversalAlgorithm(traversal)

        if self.traversal == TraversalAlgorithm.DEPTH_FIRST:
            self._queue: queue.Queue[FrontierItem] = queue.LifoQueue()
        else:
            self._queue = queue.Queue()
        self._lock = threading.Lock()
        self._accepted_count = 0

    def add_uri(self, uri: FilterableURI, depth: int = 0) -> None:
        """Enqueue one URI at `depth`.

        URIs deeper than `max_depth` are ignored. Raises `QueueFull` once
        `max_size` URIs have been accepted.
        """

        if depth > self.max_depth:
            logger.debug("Not queueing %s: depth %d exceeds %d", uri, depth, self.max_depth)
            return

        with self._lock:
            if self.max_size and self._accepted_count >= self.max_size:
                raise QueueFull(self.max_size)
            self._queue.put(FrontierItem(uri=uri, depth=depth))
            self._accepted_count += 1

    def next(self) -> FrontierItem | None:
        """Pop the next item without blocking; None when nothing is pending."""

        try:
            return self._queue.get(block=False)
        except queue.Empty:
            return None


__all__ = [
    "FrontierItem",
    "InMemoryFrontier",
]
