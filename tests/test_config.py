"""Tests for SpiderConfig and its JSON/YAML helpers."""

import json

import pytest
import yaml

from spider import ConfigError, FetchBackend, SpiderConfig, TraversalAlgorithm, load_config, save_config


class TestSpiderConfig:
    def test_defaults(self):
        config = SpiderConfig()

        assert config.max_depth == 3
        assert config.max_queue_size == 0
        assert config.download_limit == 0
        assert config.traversal == TraversalAlgorithm.BREADTH_FIRST
        assert config.backend == FetchBackend.REQUESTS
        assert config.css_selectors == ["a[href]"]
        assert config.allowed_schemes == ["http", "https"]

    def test_enum_values_are_coerced(self):
        config = SpiderConfig(traversal="Depth_First", backend="selenium")

        assert config.traversal == TraversalAlgorithm.DEPTH_FIRST
        assert config.backend == FetchBackend.SELENIUM

    def test_invalid_enum_value(self):
        with pytest.raises(ConfigError, match="traversal"):
            SpiderConfig(traversal="random_walk")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_depth": -1},
            {"max_queue_size": -1},
            {"download_limit": -1},
            {"timeout_seconds": 0},
            {"retries": -1},
            {"rate_limit_seconds": -0.5},
            {"max_content_length": 0},
        ],
    )
    def test_invalid_bounds(self, kwargs):
        with pytest.raises(ConfigError):
            SpiderConfig(**kwargs)

    def test_normalizes_hosts_schemes_and_types(self):
        config = SpiderConfig(
            allowed_hosts=["WWW.Example.com", ""],
            allowed_schemes=["HTTPS", " "],
            allowed_content_types=[" Text/HTML "],
            seed="  ",
        )

        assert config.allowed_hosts == ["example.com"]
        assert config.allowed_schemes == ["https"]
        assert config.allowed_content_types == ["text/html"]
        assert config.seed is None

    def test_request_headers_apply_user_agent(self):
        config = SpiderConfig(user_agent="test-agent/1.0")

        headers = config.request_headers()

        assert headers["User-Agent"] == "test-agent/1.0"
        assert "Accept" in headers

    def test_dict_round_trip(self):
        config = SpiderConfig(seed="https://example.com/", max_depth=5, uri_patterns=[r"\.pdf$"])

        assert SpiderConfig.from_dict(config.to_dict()) == config

    def test_from_dict_rejects_unknown_keys(self):
        with pytest.raises(ConfigError, match="max_pages"):
            SpiderConfig.from_dict({"max_pages": 10})

    def test_from_dict_type_errors(self):
        with pytest.raises(ConfigError):
            SpiderConfig.from_dict({"max_depth": "deep"})
        with pytest.raises(ConfigError):
            SpiderConfig.from_dict({"respect_robots": "yes"})
        with pytest.raises(ConfigError):
            SpiderConfig.from_dict({"css_selectors": 5})

    def test_from_dict_accepts_single_string_list(self):
        config = SpiderConfig.from_dict({"allowed_hosts": "example.com"})

        assert config.allowed_hosts == ["example.com"]


class TestConfigFiles:
    def test_load_yaml(self, tmp_path):
        path = tmp_path / "spider.yaml"
        path.write_text(
            yaml.safe_dump({"seed": "https://example.com/", "max_depth": 1, "traversal": "depth_first"}),
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.seed == "https://example.com/"
        assert config.max_depth == 1
        assert config.traversal == TraversalAlgorithm.DEPTH_FIRST

    def test_load_json(self, tmp_path):
        path = tmp_path / "spider.json"
        path.write_text(json.dumps({"download_limit": 7}), encoding="utf-8")

        assert load_config(path).download_limit == 7

    def test_empty_yaml_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("", encoding="utf-8")

        assert load_config(path) == SpiderConfig()

    def test_yaml_must_be_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            load_config(path)

    def test_unsupported_suffix(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "spider.toml")

    @pytest.mark.parametrize("name", ["out.json", "out.yaml"])
    def test_save_and_load(self, tmp_path, name):
        config = SpiderConfig(seed="https://example.com/", allowed_hosts=["example.com"], retries=4)
        path = tmp_path / "nested" / name

        save_config(config, path)

        assert load_config(path) == config
