"""Tests for the in-memory and filesystem resource stores."""

import json

from conftest import make_resource
from spider import ContentKind, FileResourceStore, MemoryResourceStore


class TestMemoryResourceStore:
    def test_persist_keeps_order(self):
        store = MemoryResourceStore()
        store.set_spider_id("s1")

        store.persist(make_resource("https://example.com/a"))
        store.persist(make_resource("https://example.com/b"))

        assert store.spider_id == "s1"
        assert store.count() == 2
        assert len(store) == 2
        assert [str(resource.uri) for resource in store] == [
            "https://example.com/a",
            "https://example.com/b",
        ]

    def test_empty_store_is_falsy_but_usable(self):
        store = MemoryResourceStore()

        assert not store
        assert store.resources() == []

    def test_new_run_drops_previous_resources(self):
        store = MemoryResourceStore()
        store.set_spider_id("first")
        store.persist(make_resource("https://example.com/a"))

        store.set_spider_id("second")

        assert store.spider_id == "second"
        assert store.count() == 0
        assert store.resources() == []


class TestFileResourceStore:
    def test_layout_uses_spider_id(self, tmp_path):
        store = FileResourceStore(tmp_path)
        store.set_spider_id("run-1")

        assert store.run_dir == tmp_path / "run-1"
        assert store.resources_path == tmp_path / "run-1" / "manifests" / "resources.jsonl"
        assert store.paths["crawl_stats"].endswith("crawl_stats.json")

    def test_persist_writes_body_and_manifest_row(self, tmp_path):
        store = FileResourceStore(tmp_path)
        store.set_spider_id("run-1")
        resource = make_resource("https://www.example.com/docs", "<html>hi</html>", depth=2)

        store.persist(resource)

        assert store.count() == 1
        rows = list(store.iter_rows())
        assert len(rows) == 1
        row = rows[0]
        assert row["uri"] == "https://www.example.com/docs"
        assert row["depth_found"] == 2
        assert row["content_kind"] == "html"
        assert row["raw_path"].startswith("raw/html/example.com/")
        assert (store.run_dir / row["raw_path"]).read_bytes() == b"<html>hi</html>"
        assert store.read_raw("https://www.example.com/docs") == b"<html>hi</html>"

    def test_raw_path_is_deterministic(self, tmp_path):
        store = FileResourceStore(tmp_path)

        first = store.raw_path_for("https://example.com/a", ContentKind.PDF)
        second = store.raw_path_for("https://example.com/a", ContentKind.PDF)

        assert first == second
        assert first.suffix == ".pdf"
        assert first.parent.name == "example.com"

    def test_set_spider_id_resets_count(self, tmp_path):
        store = FileResourceStore(tmp_path)
        store.persist(make_resource("https://example.com/"))

        store.set_spider_id("next")

        assert store.count() == 0

    def test_iter_rows_skips_corrupt_lines(self, tmp_path):
        store = FileResourceStore(tmp_path)
        store.persist(make_resource("https://example.com/"))
        with store.resources_path.open("a", encoding="utf-8") as handle:
            handle.write("{not json\n\n")

        assert len(list(store.iter_rows())) == 1

    def test_read_raw_missing(self, tmp_path):
        assert FileResourceStore(tmp_path).read_raw("https://example.com/nothing") is None

    def test_save_crawl_summaries(self, tmp_path):
        store = FileResourceStore(tmp_path)
        store.set_spider_id("run-1")

        store.save_crawl_stats({"outcome": "frontier_exhausted"})
        store.save_crawl_config({"seed": "https://example.com/"})

        assert json.loads(store.crawl_stats_path.read_text())["outcome"] == "frontier_exhausted"
        assert json.loads(store.crawl_config_path.read_text())["seed"] == "https://example.com/"
        assert not list(store.manifests_dir.glob("*.tmp"))
