"""URL normalization, host helpers, and the `FilterableURI` value type."""

from __future__ import annotations

import posixpath
import re
from typing import Iterable, Sequence
from urllib.parse import (
    SplitResult,
    quote,
    unquote_plus,
    urljoin,
    urlsplit,
    urlunsplit,
)


SKIP_HREF_PREFIXES = ("javascript:", "mailto:", "tel:", "data:")
TRACKING_QUERY_PARAM_PREFIXES = ("utm_",)
TRACKING_QUERY_PARAMS = {
    "fbclid",
    "gclid",
    "mc_cid",
    "mc_eid",
    "mkt_tok",
    "igshid",
    "ref_src",
}
DEFAULT_PORTS = {"http": 80, "https": 443, "ftp": 21}


def normalize_domain(domain_or_url: str) -> str:
    """Normalize a domain (or URL containing one) for matching.

    This strips `www.` and leading/trailing dots and lowercases the host.
    """

    raw = (domain_or_url or "").strip().lower()
    if not raw:
        return ""

    parsed = urlsplit(raw if "://" in raw else f"//{raw}")
    host = (parsed.hostname or "").strip().lower()
    if host.startswith("www."):
        host = host[4:]
    return host.strip(".")


def host_from_url(url: str) -> str:
    """Extract normalized host from URL."""

    return normalize_domain(urlsplit(url).hostname or "")


def _canonical_netloc(parsed: SplitResult, *, strip_default_port: bool) -> str:
    host = (parsed.hostname or "").lower()
    if not host:
        return ""

    userinfo = ""
    if parsed.username:
        userinfo = quote(parsed.username, safe="")
        if parsed.password:
            userinfo += ":" + quote(parsed.password, safe="")
        userinfo += "@"

    try:
        port = parsed.port
    except ValueError:
        return ""

    if port is not None and strip_default_port and DEFAULT_PORTS.get(parsed.scheme.lower()) == port:
        port = None

    if port is None:
        return f"{userinfo}{host}"
    return f"{userinfo}{host}:{port}"


def _canonical_path(path: str, *, remove_trailing_slash: bool) -> str:
    if not path:
        return "/"

    collapsed = re.sub(r"/{2,}", "/", path)
    resolved = posixpath.normpath(collapsed)
    if not resolved.startswith("/"):
        resolved = "/" + resolved
    if resolved == "/.":
        resolved = "/"

    if remove_trailing_slash and resolved != "/":
        resolved = resolved.rstrip("/")
    return resolved or "/"


def _is_tracking_param(key: str) -> bool:
    lowered = key.strip().lower()
    return lowered in TRACKING_QUERY_PARAMS or lowered.startswith(TRACKING_QUERY_PARAM_PREFIXES)


def _canonical_query(query: str, *, strip_tracking_params: bool, sort_query_params: bool) -> str:
    """Filter and order query parameters without re-encoding them.

    Each parameter keeps its original spelling, so valueless keys stay bare
    (`?flag` is not rewritten to `?flag=`).
    """

    if not query:
        return ""

    params = [param for param in re.split(r"[&;]", query) if param]
    if strip_tracking_params:
        params = [
            param for param in params if not _is_tracking_param(unquote_plus(param.split("=", 1)[0]))
        ]
    if sort_query_params:
        params.sort(key=lambda param: param.partition("="))
    return "&".join(params)


def normalize_url(
    url: str,
    *,
    strip_default_port: bool = True,
    strip_tracking_params: bool = True,
    sort_query_params: bool = True,
    remove_trailing_slash: bool = True,
    allowed_schemes: Sequence[str] | None = None,
) -> str | None:
    """Canonicalize an absolute URL for dedup and frontier consistency.

    Fragments are always dropped. Returns `None` for relative or malformed URLs
    and, when `allowed_schemes` is given, for URLs outside those schemes.
    """

    raw = (url or "").strip()
    if not raw:
        return None

    parsed = urlsplit(raw)
    scheme = parsed.scheme.lower()
    if not scheme or not parsed.netloc:
        return None
    if allowed_schemes is not None and scheme not in {item.lower() for item in allowed_schemes}:
        return None

    netloc = _canonical_netloc(parsed, strip_default_port=strip_default_port)
    if not netloc:
        return None

    path = _canonical_path(parsed.path, remove_trailing_slash=remove_trailing_slash)
    query = _canonical_query(
        parsed.query,
        strip_tracking_params=strip_tracking_params,
        sort_query_params=sort_query_params,
    )
    return urlunsplit((scheme, netloc, path, query, ""))


def resolve_url(base_url: str, href: str | None) -> str | None:
    """Resolve a possibly relative link against `base_url`.

    Returns `None` for empty hrefs, bare fragments, and non-navigational
    schemes like `javascript:` or `mailto:`.
    """

    if href is None:
        return None

    candidate = href.strip()
    if not candidate or candidate.startswith("#"):
        return None
    if candidate.lower().startswith(SKIP_HREF_PREFIXES):
        return None

    return urljoin(base_url, candidate)


def matching_allowed_domain(
    url_or_host: str,
    allowed_domains: Iterable[str],
    *,
    allow_subdomains: bool = True,
) -> str | None:
    """Return the most specific allowed domain matching a URL/host, or None."""

    host = host_from_url(url_or_host) if "://" in url_or_host else normalize_domain(url_or_host)
    if not host:
        return None

    matches = []
    for domain in allowed_domains:
        domain = normalize_domain(domain)
        if not domain:
            continue
        if host == domain or (allow_subdomains and host.endswith("." + domain)):
            matches.append(domain)

    if not matches:
        return None
    return max(matches, key=len)


class FilterableURI:
    """Normalized absolute URI used for frontier membership and dedup.

    Equality and hashing use the normalized form, so two URIs that normalize
    identically are the same entity everywhere in the engine.
    """

    __slots__ = ("raw", "normalized", "_parts")

    def __init__(self, uri: "str | FilterableURI") -> None:
        raw = uri.raw if isinstance(uri, FilterableURI) else str(uri)
        normalized = normalize_url(raw)
        if normalized is None:
            raise ValueError(f"Cannot normalize URI: {raw!r}")

        self.raw = raw
        self.normalized = normalized
        self._parts = urlsplit(normalized)

    @classmethod
    def coerce(cls, uri: "str | FilterableURI") -> "FilterableURI":
        """Return `uri` unchanged when it is already filterable."""

        if isinstance(uri, cls):
            return uri
        return cls(uri)

    @property
    def scheme(self) -> str:
        return self._parts.scheme

    @property
    def host(self) -> str:
        return (self._parts.hostname or "").lower()

    @property
    def path(self) -> str:
        return self._parts.path

    @property
    def query(self) -> str:
        return self._parts.query

    def is_under(self, base: "FilterableURI") -> bool:
        """True when this URI shares scheme and host with `base` and sits below its path."""

        if (self.scheme, self._parts.netloc) != (base.scheme, base._parts.netloc):
            return False
        base_path = base.path.rstrip("/")
        return self.path == base.path or self.path.startswith(base_path + "/")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FilterableURI):
            return NotImplemented
        return self.normalized == other.normalized

    def __hash__(self) -> int:
        return hash(self.normalized)

    def __str__(self) -> str:
        return self.normalized

    def __repr__(self) -> str:
        return f"FilterableURI({self.normalized!r})"


__all__ = [
    "DEFAULT_PORTS",
    "FilterableURI",
    "SKIP_HREF_PREFIXES",
    "TRACKING_QUERY_PARAM_PREFIXES",
    "TRACKING_QUERY_PARAMS",
    "host_from_url",
    "matching_allowed_domain",
    "normalize_domain",
    "normalize_url",
    "resolve_url",
]
