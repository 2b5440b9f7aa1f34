"""Typed spider configuration with JSON/YAML load/save helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml  # type: ignore

from .constants import (
    DEFAULT_ALLOWED_SCHEMES,
    DEFAULT_CSS_SELECTORS,
    DEFAULT_DOWNLOAD_LIMIT,
    DEFAULT_FETCH_BACKEND,
    DEFAULT_HTTP_HEADERS,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_QUEUE_SIZE,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_RATE_LIMIT_SECONDS,
    DEFAULT_RESPECT_ROBOTS,
    DEFAULT_RETRIES,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_TRAVERSAL,
    DEFAULT_USER_AGENT,
    JSON_INDENT,
    SUPPORTED_CONFIG_SUFFIXES,
)
from .exceptions import ConfigError
from .types import FetchBackend, JSONDict, JSONValue, TraversalAlgorithm
from .url import normalize_domain


def _as_float(value: Any, key: str) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid float for '{key}': {value!r}") from exc


def _as_int(value: Any, key: str) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid int for '{key}': {value!r}") from exc


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigError(f"Invalid bool for '{key}': {value!r}")


def _as_str_list(value: Any, key: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    raise ConfigError(f"Invalid list for '{key}': {value!r}")


def _to_enum(enum_cls, value: Any, key: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as exc:
        choices = ", ".join(item.value for item in enum_cls)
        raise ConfigError(f"Invalid value for '{key}': {value!r} (expected one of: {choices})") from exc


@dataclass(slots=True)
class SpiderConfig:
    """Top-level configuration used to wire a `Spider` and its collaborators."""

    seed: str | None = None
    spider_id: str | None = None

    max_depth: int = DEFAULT_MAX_DEPTH
    max_queue_size: int = DEFAULT_MAX_QUEUE_SIZE
    traversal: TraversalAlgorithm = DEFAULT_TRAVERSAL
    download_limit: int = DEFAULT_DOWNLOAD_LIMIT

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    retries: int = DEFAULT_RETRIES
    retry_backoff_seconds: float = DEFAULT_RETRY_BACKOFF_SECONDS
    rate_limit_seconds: float = DEFAULT_RATE_LIMIT_SECONDS

    user_agent: str = DEFAULT_USER_AGENT
    default_headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HTTP_HEADERS))
    respect_robots: bool = DEFAULT_RESPECT_ROBOTS

    backend: FetchBackend = DEFAULT_FETCH_BACKEND
    selenium_wait_selector: str | None = None
    selenium_wait_seconds: float | None = None

    css_selectors: list[str] = field(default_factory=lambda: list(DEFAULT_CSS_SELECTORS))
    xpath_expressions: list[str] = field(default_factory=list)

    allowed_schemes: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_SCHEMES))
    allowed_hosts: list[str] = field(default_factory=list)
    allow_subdomains: bool = False
    restrict_to_base_uri: bool = False
    skip_query_strings: bool = False
    uri_patterns: list[str] = field(default_factory=list)

    allowed_content_types: list[str] = field(default_factory=list)
    max_content_length: int | None = None

    output_dir: str | None = DEFAULT_OUTPUT_DIR
    metadata: dict[str, JSONValue] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.seed is not None:
            self.seed = self.seed.strip() or None

        self.traversal = _to_enum(TraversalAlgorithm, self.traversal, "traversal")
        self.backend = _to_enum(FetchBackend, self.backend, "backend")

        if self.max_depth < 0:
            raise ConfigError("max_depth must be >= 0")
        if self.max_queue_size < 0:
            raise ConfigError("max_queue_size must be >= 0 (0 disables the bound)")
        if self.download_limit < 0:
            raise ConfigError("download_limit must be >= 0 (0 disables the limit)")
        if self.timeout_seconds <= 0:
            raise ConfigError("timeout_seconds must be > 0")
        if self.retries < 0:
            raise ConfigError("retries must be >= 0")
        if self.retry_backoff_seconds < 0:
            raise ConfigError("retry_backoff_seconds must be >= 0")
        if self.rate_limit_seconds < 0:
            raise ConfigError("rate_limit_seconds must be >= 0")
        if self.max_content_length is not None and self.max_content_length <= 0:
            raise ConfigError("max_content_length must be > 0 when set")

        self.allowed_schemes = [scheme.strip().lower() for scheme in self.allowed_schemes if scheme.strip()]
        self.allowed_hosts = [host for host in (normalize_domain(item) for item in self.allowed_hosts) if host]
        self.allowed_content_types = [
            item.strip().lower() for item in self.allowed_content_types if item.strip()
        ]

    def request_headers(self) -> dict[str, str]:
        """Return request headers with the configured User-Agent applied."""

        merged = dict(self.default_headers)
        merged.setdefault("User-Agent", self.user_agent)
        return merged

    def to_dict(self) -> JSONDict:
        """Serialize config for manifests and reproducibility."""

        return {
            "seed": self.seed,
            "spider_id": self.spider_id,
            "max_depth": self.max_depth,
            "max_queue_size": self.max_queue_size,
            "traversal": self.traversal.value,
            "download_limit": self.download_limit,
            "timeout_seconds": self.timeout_seconds,
            "retries": self.retries,
            "retry_backoff_seconds": self.retry_backoff_seconds,
            "rate_limit_seconds": self.rate_limit_seconds,
            "user_agent": self.user_agent,
            "default_headers": self.default_headers,
            "respect_robots": self.respect_robots,
            "backend": self.backend.value,
            "selenium_wait_selector": self.selenium_wait_selector,
            "selenium_wait_seconds": self.selenium_wait_seconds,
            "css_selectors": self.css_selectors,
            "xpath_expressions": self.xpath_expressions,
            "allowed_schemes": self.allowed_schemes,
            "allowed_hosts": self.allowed_hosts,
            "allow_subdomains": self.allow_subdomains,
            "restrict_to_base_uri": self.restrict_to_base_uri,
            "skip_query_strings": self.skip_query_strings,
            "uri_patterns": self.uri_patterns,
            "allowed_content_types": self.allowed_content_types,
            "max_content_length": self.max_content_length,
            "output_dir": self.output_dir,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SpiderConfig":
        """Build config from a parsed dictionary; unknown keys are rejected."""

        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(payload) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

        defaults = cls()
        get = payload.get

        return cls(
            seed=None if get("seed") is None else str(get("seed")),
            spider_id=None if get("spider_id") is None else str(get("spider_id")),
            max_depth=_as_int(get("max_depth", defaults.max_depth), "max_depth"),
            max_queue_size=_as_int(get("max_queue_size", defaults.max_queue_size), "max_queue_size"),
            traversal=get("traversal", defaults.traversal),
            download_limit=_as_int(get("download_limit", defaults.download_limit), "download_limit"),
            timeout_seconds=_as_float(get("timeout_seconds", defaults.timeout_seconds), "timeout_seconds"),
            retries=_as_int(get("retries", defaults.retries), "retries"),
            retry_backoff_seconds=_as_float(
                get("retry_backoff_seconds", defaults.retry_backoff_seconds),
                "retry_backoff_seconds",
            ),
            rate_limit_seconds=_as_float(
                get("rate_limit_seconds", defaults.rate_limit_seconds),
                "rate_limit_seconds",
            ),
            user_agent=str(get("user_agent", defaults.user_agent)),
            default_headers={
                str(k): str(v) for k, v in dict(get("default_headers", defaults.default_headers)).items()
            },
            respect_robots=_as_bool(get("respect_robots", defaults.respect_robots), "respect_robots"),
            backend=get("backend", defaults.backend),
            selenium_wait_selector=(
                None if get("selenium_wait_selector") is None else str(get("selenium_wait_selector"))
            ),
            selenium_wait_seconds=_as_float(get("selenium_wait_seconds"), "selenium_wait_seconds"),
            css_selectors=_as_str_list(get("css_selectors", defaults.css_selectors), "css_selectors"),
            xpath_expressions=_as_str_list(get("xpath_expressions"), "xpath_expressions"),
            allowed_schemes=_as_str_list(get("allowed_schemes", defaults.allowed_schemes), "allowed_schemes"),
            allowed_hosts=_as_str_list(get("allowed_hosts"), "allowed_hosts"),
            allow_subdomains=_as_bool(get("allow_subdomains", defaults.allow_subdomains), "allow_subdomains"),
            restrict_to_base_uri=_as_bool(
                get("restrict_to_base_uri", defaults.restrict_to_base_uri),
                "restrict_to_base_uri",
            ),
            skip_query_strings=_as_bool(
                get("skip_query_strings", defaults.skip_query_strings),
                "skip_query_strings",
            ),
            uri_patterns=_as_str_list(get("uri_patterns"), "uri_patterns"),
            allowed_content_types=_as_str_list(get("allowed_content_types"), "allowed_content_types"),
            max_content_length=_as_int(get("max_content_length"), "max_content_length"),
            output_dir=None if get("output_dir", defaults.output_dir) is None else str(
                get("output_dir", defaults.output_dir)
            ),
            metadata=dict(get("metadata") or {}),
        )


def _load_yaml(path: Path) -> dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"YAML config at {path} must be a mapping at top level")
    return data


def load_config(path: str | Path) -> SpiderConfig:
    """Load SpiderConfig from a JSON/YAML path."""

    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ConfigError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    if suffix == ".json":
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    else:
        payload = _load_yaml(config_path)

    if not isinstance(payload, dict):
        raise ConfigError(f"Config at {config_path} must be a mapping")

    return SpiderConfig.from_dict(payload)


def save_config(config: SpiderConfig, path: str | Path) -> None:
    """Save SpiderConfig as JSON or YAML based on file extension."""

    out_path = Path(path)
    suffix = out_path.suffix.lower()
    if suffix not in SUPPORTED_CONFIG_SUFFIXES:
        raise ConfigError(
            f"Unsupported config suffix '{suffix}'. Supported: {SUPPORTED_CONFIG_SUFFIXES}"
        )

    out_path.parent.mkdir(parents=True, exist_ok=True)
    payload = config.to_dict()

    if suffix == ".json":
        out_path.write_text(
            json.dumps(payload, indent=JSON_INDENT, sort_keys=True) + "\n",
            encoding="utf-8",
        )
    else:
        out_path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")


__all__ = [
    "SpiderConfig",
    "load_config",
    "save_config",
]
