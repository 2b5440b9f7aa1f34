"""Lifecycle event dispatch for the crawl engine.

Listeners are plain callables receiving a `CrawlEvent`. They run synchronously
in registration order on the engine's thread. A failing listener is logged
and recorded; it never aborts the crawl loop or starves other listeners.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable

from .types import CrawlEvent, SpiderEvent

logger = logging.getLogger(__name__)

Listener = Callable[[CrawlEvent], None]


class EventDispatcher:
    """Callback registry keyed by `SpiderEvent`."""

    def __init__(self) -> None:
        self._listeners: dict[SpiderEvent, list[Listener]] = {event: [] for event in SpiderEvent}
        self._errors: dict[SpiderEvent, list[str]] = {}

    def subscribe(self, event: SpiderEvent | str, listener: Listener) -> None:
        """Register `listener` for one event name."""

        if not callable(listener):
            raise TypeError(f"Listener must be callable, got {type(listener)!r}")
        self._listeners[SpiderEvent(event)].append(listener)

    def subscribe_all(self, listener: Listener, events: Iterable[SpiderEvent] | None = None) -> None:
        """Register `listener` for every event (or the given subset)."""

        for event in events or SpiderEvent:
            self.subscribe(event, listener)

    def unsubscribe(self, event: SpiderEvent | str, listener: Listener | None = None) -> None:
        """Remove one listener, or all listeners for the event when None."""

        event = SpiderEvent(event)
        if listener is None:
            self._listeners[event] = []
        else:
            self._listeners[event] = [item for item in self._listeners[event] if item != listener]

    def emit(self, event: CrawlEvent) -> None:
        for listener in list(self._listeners[event.name]):
            try:
                listener(event)
            except Exception as exc:
                name = getattr(listener, "__qualname__", repr(listener))
                message = f"Listener {name} failed on {event.name.value}: {exc}"
                logger.warning(message)
                self._errors.setdefault(event.name, []).append(message)

    def has_listeners(self, event: SpiderEvent | str) -> bool:
        return bool(self._listeners[SpiderEvent(event)])

    @property
    def errors(self) -> dict[SpiderEvent, list[str]]:
        return self._errors


class EventLogger:
    """Listener that mirrors lifecycle events into the `logging` tree."""

    LEVELS = {
        SpiderEvent.PRE_REQUEST: logging.DEBUG,
        SpiderEvent.POST_REQUEST: logging.DEBUG,
        SpiderEvent.REQUEST_ERROR: logging.WARNING,
        SpiderEvent.FILTERED_PRE_FETCH: logging.DEBUG,
        SpiderEvent.FILTERED_POST_FETCH: logging.INFO,
        SpiderEvent.RESOURCE_PERSISTED: logging.INFO,
        SpiderEvent.USER_STOPPED: logging.WARNING,
    }

    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logging.getLogger("spider.crawl")

    def attach(self, dispatcher: EventDispatcher) -> "EventLogger":
        dispatcher.subscribe_all(self)
        return self

    def __call__(self, event: CrawlEvent) -> None:
        level = self.LEVELS.get(event.name, logging.INFO)
        if event.message:
            self.log.log(level, "%s %s: %s", event.name.value, event.uri, event.message)
        else:
            self.log.log(level, "%s %s", event.name.value, event.uri)


__all__ = [
    "EventDispatcher",
    "EventLogger",
    "Listener",
]
