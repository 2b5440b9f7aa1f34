"""Resource stores: an in-memory default and a filesystem-backed store.

FileResourceStore owns its on-disk layout. Other modules should use this API
instead of building paths manually.
"""

from __future__ import annotations

import hashlib
import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Iterator, Mapping

from .types import ContentKind, JSONDict, Resource
from .url import host_from_url


RAW_SUBDIR_BY_KIND: dict[ContentKind, str] = {
    ContentKind.HTML: "html",
    ContentKind.XML: "xml",
    ContentKind.PDF: "pdf",
    ContentKind.TEXT: "text",
    ContentKind.BINARY: "binary",
    ContentKind.UNKNOWN: "unknown",
}

RAW_EXTENSION_BY_KIND: dict[ContentKind, str] = {
    ContentKind.HTML: ".html",
    ContentKind.XML: ".xml",
    ContentKind.PDF: ".pdf",
    ContentKind.TEXT: ".txt",
    ContentKind.BINARY: ".bin",
    ContentKind.UNKNOWN: ".bin",
}

DEFAULT_SPIDER_ID = "default"


class MemoryResourceStore:
    """Keep persisted resources in a list, in persistence order."""

    def __init__(self) -> None:
        self.spider_id: str | None = None
        self._resources: list[Resource] = []
        self._lock = threading.Lock()

    def set_spider_id(self, spider_id: str) -> None:
        """Start a new run; resources from the previous run are dropped."""

        with self._lock:
            self.spider_id = spider_id
            self._resources = []

    def persist(self, resource: Resource) -> None:
        with self._lock:
            self._resources.append(resource)

    def count(self) -> int:
        with self._lock:
            return len(self._resources)

    def resources(self) -> list[Resource]:
        """Return a snapshot of persisted resources."""

        with self._lock:
            return list(self._resources)

    def __iter__(self) -> Iterator[Resource]:
        return iter(self.resources())

    def __len__(self) -> int:
        return self.count()


class FileResourceStore:
    """Persist fetched resources under `<output_dir>/<spider_id>/`.

    Layout:
    - `raw/<kind>/<host>/<sha256(url)>.<ext>`: response bodies
    - `manifests/resources.jsonl`: one metadata row per persisted resource
    - `manifests/crawl_stats.json`, `manifests/crawl_config.json`: run summaries
    """

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)
        self.spider_id = DEFAULT_SPIDER_ID

        self._jsonl_lock = threading.Lock()
        self._raw_lock = threading.Lock()
        self._count_lock = threading.Lock()
        self._count = 0

    def set_spider_id(self, spider_id: str) -> None:
        self.spider_id = spider_id
        with self._count_lock:
            self._count = 0

    @property
    def run_dir(self) -> Path:
        return self.output_dir / self.spider_id

    @property
    def raw_dir(self) -> Path:
        return self.run_dir / "raw"

    @property
    def manifests_dir(self) -> Path:
        return self.run_dir / "manifests"

    @property
    def resources_path(self) -> Path:
        return self.manifests_dir / "resources.jsonl"

    @property
    def crawl_stats_path(self) -> Path:
        return self.manifests_dir / "crawl_stats.json"

    @property
    def crawl_config_path(self) -> Path:
        return self.manifests_dir / "crawl_config.json"

    @property
    def paths(self) -> JSONDict:
        """Return important output paths for logging/CLI status messages."""

        return {
            "run_dir": str(self.run_dir),
            "raw_dir": str(self.raw_dir),
            "resources": str(self.resources_path),
            "crawl_stats": str(self.crawl_stats_path),
            "crawl_config": str(self.crawl_config_path),
        }

    def raw_path_for(self, url: str, content_kind: ContentKind) -> Path:
        """Build deterministic raw-file path for a URL + content kind."""

        host = host_from_url(url) or "unknown"
        host = "".join(char if (char.isalnum() or char in {".", "-", "_"}) else "_" for char in host)
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()
        return (
            self.raw_dir
            / RAW_SUBDIR_BY_KIND[content_kind]
            / host
            / f"{digest}{RAW_EXTENSION_BY_KIND[content_kind]}"
        )

    def persist(self, resource: Resource) -> None:
        url = str(resource.uri)
        path = self.raw_path_for(url, resource.response.normalized_content_kind)
        path.parent.mkdir(parents=True, exist_ok=True)

        with self._raw_lock:
            self._atomic_write_bytes(path, resource.response.body)

        row = resource.to_json()
        row["raw_path"] = str(path.relative_to(self.run_dir))
        self._append_jsonl(self.resources_path, row)

        with self._count_lock:
            self._count += 1

    def count(self) -> int:
        with self._count_lock:
            return self._count

    def iter_rows(self) -> Iterator[dict[str, Any]]:
        """Yield metadata rows written by this spider id, skipping corrupt lines."""

        if not self.resources_path.exists():
            return
        with self.resources_path.open("r", encoding="utf-8") as handle:
            for line in handle:
                line = line.strip()
                if not line:
                    continue
                try:
                    yield json.loads(line)
                except json.JSONDecodeError:
                    continue

    def read_raw(self, url: str) -> bytes | None:
        """Return persisted body bytes for URL if present."""

        for content_kind in ContentKind:
            candidate = self.raw_path_for(url, content_kind)
            if candidate.exists():
                return candidate.read_bytes()
        return None

    def save_crawl_stats(self, stats: Mapping[str, Any]) -> None:
        self._atomic_write_json(self.crawl_stats_path, stats)

    def save_crawl_config(self, config: Mapping[str, Any]) -> None:
        self._atomic_write_json(self.crawl_config_path, config)

    def _append_jsonl(self, path: Path, payload: Mapping[str, Any]) -> None:
        line = json.dumps(payload, ensure_ascii=False, sort_keys=True)
        with self._jsonl_lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")

    @staticmethod
    def _atomic_write_bytes(path: Path, data: bytes) -> None:
        tmp_fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=path.name + ".",
            suffix=".tmp",
        )
        try:
            with os.fdopen(tmp_fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise

    @classmethod
    def _atomic_write_json(cls, path: Path, payload: Mapping[str, Any]) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps(dict(payload), ensure_ascii=False, indent=2, sort_keys=True) + "\n"
        cls._atomic_write_bytes(path, content.encode("utf-8"))


__all__ = [
    "DEFAULT_SPIDER_ID",
    "FileResourceStore",
    "MemoryResourceStore",
    "RAW_EXTENSION_BY_KIND",
    "RAW_SUBDIR_BY_KIND",
]
