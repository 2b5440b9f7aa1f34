"""Exception hierarchy raised by the spider engine and its collaborators."""

from __future__ import annotations


class SpiderError(Exception):
    """Base exception for all spider errors."""


class InvalidSeedError(SpiderError, ValueError):
    """Raised when a crawl is started with a seed that cannot be normalized."""

    def __init__(self, seed: str) -> None:
        super().__init__(f"Invalid seed URI: {seed!r}")
        self.seed = seed


class FetchError(SpiderError):
    """Raised by fetchers on network, protocol, or policy failures."""

    def __init__(
        self,
        uri: str,
        message: str,
        *,
        status_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.uri = uri
        self.message = message
        self.status_code = status_code
        self.cause = cause


class QueueFull(SpiderError):
    """Raised by a frontier when accepting a URI would exceed its size bound."""

    def __init__(self, max_size: int) -> None:
        super().__init__(f"Maximum queue size of {max_size} reached")
        self.max_size = max_size


class ConfigError(SpiderError, ValueError):
    """Raised for invalid configuration values."""


__all__ = [
    "ConfigError",
    "FetchError",
    "InvalidSeedError",
    "QueueFull",
    "SpiderError",
]
