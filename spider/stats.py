"""Thread-safe crawl statistics collected from lifecycle events."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timezone
import threading
from typing import Any

from .events import EventDispatcher
from .types import CrawlEvent, CrawlOutcome, SpiderEvent, utc_now_iso


class StatsCollector:
    """Listen to spider events and summarize what happened to each URI.

    Attach with `StatsCollector().attach(dispatcher)`; the collector then
    keeps ordered lists of persisted, filtered, and failed URIs plus per-event
    counters.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

        self._event_counts: dict[str, int] = defaultdict(int)
        self._persisted: list[str] = []
        self._filtered_pre_fetch: list[str] = []
        self._filtered_post_fetch: list[str] = []
        self._failed: dict[str, str] = {}
        self._error_type_counts: dict[str, int] = defaultdict(int)

        self._started_at = utc_now_iso()
        self._finished_at: str | None = None
        self._outcome: CrawlOutcome | None = None

    def attach(self, dispatcher: EventDispatcher) -> "StatsCollector":
        dispatcher.subscribe_all(self)
        return self

    def __call__(self, event: CrawlEvent) -> None:
        with self._lock:
            self._event_counts[event.name.value] += 1

            if event.name == SpiderEvent.RESOURCE_PERSISTED:
                self._persisted.append(event.uri)
            elif event.name == SpiderEvent.FILTERED_PRE_FETCH:
                self._filtered_pre_fetch.append(event.uri)
            elif event.name == SpiderEvent.FILTERED_POST_FETCH:
                self._filtered_post_fetch.append(event.uri)
            elif event.name == SpiderEvent.REQUEST_ERROR:
                message = event.message or "Unknown fetch failure"
                self._failed[event.uri] = message
                err_type = message.split(":", maxsplit=1)[0].strip() if ":" in message else "FetchError"
                self._error_type_counts[err_type] += 1

    def finish(self, outcome: CrawlOutcome | None = None) -> None:
        """Mark crawl as finished."""

        with self._lock:
            self._finished_at = utc_now_iso()
            self._outcome = outcome

    @property
    def persisted(self) -> list[str]:
        with self._lock:
            return list(self._persisted)

    @property
    def filtered(self) -> list[str]:
        with self._lock:
            return self._filtered_pre_fetch + self._filtered_post_fetch

    @property
    def failed(self) -> dict[str, str]:
        with self._lock:
            return dict(self._failed)

    def count(self, event: SpiderEvent | str) -> int:
        with self._lock:
            return self._event_counts.get(SpiderEvent(event).value, 0)

    def to_json(self) -> dict[str, Any]:
        """Return a JSON-serializable summary payload."""

        with self._lock:
            start = _parse_iso_utc(self._started_at)
            end = _parse_iso_utc(self._finished_at) if self._finished_at else datetime.now(timezone.utc)
            duration_seconds = max(0.0, (end - start).total_seconds())
            persisted = len(self._persisted)

            return {
                "outcome": None if self._outcome is None else self._outcome.value,
                "started_at": self._started_at,
                "finished_at": self._finished_at,
                "duration_seconds": duration_seconds,
                "persisted_per_second": persisted / duration_seconds if duration_seconds > 0 else 0.0,
                "event_counts": dict(self._event_counts),
                "persisted": list(self._persisted),
                "filtered_pre_fetch": list(self._filtered_pre_fetch),
                "filtered_post_fetch": list(self._filtered_post_fetch),
                "failed": dict(self._failed),
                "error_type_counts": dict(self._error_type_counts),
            }


def _parse_iso_utc(value: str | None) -> datetime:
    if not value:
        return datetime.now(timezone.utc)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


__all__ = ["StatsCollector"]
