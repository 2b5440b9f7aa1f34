"""Pre-fetch (URI) and post-fetch (resource) filters.

Every filter exposes `match(...) -> bool`; True means *reject*. Filters are
pure predicates and keep no per-crawl state.
"""

from __future__ import annotations

import re
from typing import Iterable

from .types import Resource
from .url import FilterableURI, matching_allowed_domain, normalize_domain


class AllowedSchemeFilter:
    """Reject URIs whose scheme is not in the allowed list."""

    def __init__(self, schemes: Iterable[str] = ("http", "https")) -> None:
        self.schemes = frozenset(scheme.lower() for scheme in schemes)

    def match(self, uri: FilterableURI) -> bool:
        return uri.scheme not in self.schemes


class AllowedHostsFilter:
    """Reject URIs whose host is not one of the allowed hosts.

    Hosts compare after `www.` stripping; with `allow_subdomains` a host also
    passes when it sits below an allowed one.
    """

    def __init__(self, hosts: Iterable[str], *, allow_subdomains: bool = False) -> None:
        self.hosts = [host for host in (normalize_domain(item) for item in hosts) if host]
        if not self.hosts:
            raise ValueError("AllowedHostsFilter requires at least one host")
        self.allow_subdomains = allow_subdomains

    def match(self, uri: FilterableURI) -> bool:
        return matching_allowed_domain(
            str(uri),
            self.hosts,
            allow_subdomains=self.allow_subdomains,
        ) is None


class RestrictToBaseUriFilter:
    """Reject URIs outside the scheme, host, and path of a base URI."""

    def __init__(self, base_uri: str | FilterableURI) -> None:
        self.base_uri = FilterableURI.coerce(base_uri)

    def match(self, uri: FilterableURI) -> bool:
        return not uri.is_under(self.base_uri)


class UriWithQueryStringFilter:
    """Reject URIs that carry a query string."""

    def match(self, uri: FilterableURI) -> bool:
        return bool(uri.query)


class UriPatternFilter:
    """Reject URIs matching any of the given regular expressions."""

    def __init__(self, patterns: Iterable[str]) -> None:
        self.patterns = [re.compile(pattern) for pattern in patterns]

    def match(self, uri: FilterableURI) -> bool:
        normalized = str(uri)
        return any(pattern.search(normalized) for pattern in self.patterns)


class MimeTypeFilter:
    """Reject resources whose content type is not allowed.

    Entries may be exact types (`text/html`) or major-type wildcards
    (`text/*`). A missing content type is rejected.
    """

    def __init__(self, allowed: Iterable[str] = ("text/html",)) -> None:
        self.allowed = frozenset(item.strip().lower() for item in allowed if item.strip())

    def match(self, resource: Resource) -> bool:
        content_type = (resource.content_type or "").split(";", maxsplit=1)[0].strip().lower()
        if not content_type:
            return True
        major = content_type.split("/", maxsplit=1)[0]
        return content_type not in self.allowed and f"{major}/*" not in self.allowed


class MaxContentLengthFilter:
    """Reject resources whose body is larger than `max_bytes`."""

    def __init__(self, max_bytes: int) -> None:
        if max_bytes <= 0:
            raise ValueError("max_bytes must be > 0")
        self.max_bytes = max_bytes

    def match(self, resource: Resource) -> bool:
        return resource.response.content_length > self.max_bytes


__all__ = [
    "AllowedHostsFilter",
    "AllowedSchemeFilter",
    "MaxContentLengthFilter",
    "MimeTypeFilter",
    "RestrictToBaseUriFilter",
    "UriPatternFilter",
    "UriWithQueryStringFilter",
]
