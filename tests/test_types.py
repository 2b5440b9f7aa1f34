"""Tests for shared records."""

import pytest

from conftest import make_resource
from spider import (
    ContentKind,
    CssSelectorDiscoverer,
    FetchResult,
    FilterableURI,
    Resource,
    infer_content_kind,
)


class TestInferContentKind:
    @pytest.mark.parametrize(
        "content_type, url, expected",
        [
            ("text/html; charset=utf-8", "https://example.com/", ContentKind.HTML),
            ("application/xhtml+xml", "https://example.com/", ContentKind.HTML),
            ("application/rss+xml", "https://example.com/feed", ContentKind.XML),
            ("text/xml", "https://example.com/sitemap", ContentKind.XML),
            ("application/pdf", "https://example.com/file", ContentKind.PDF),
            ("application/octet-stream", "https://example.com/paper.PDF", ContentKind.PDF),
            ("text/plain", "https://example.com/a.txt", ContentKind.TEXT),
            ("image/png", "https://example.com/a.png", ContentKind.BINARY),
            (None, "https://example.com/", ContentKind.UNKNOWN),
        ],
    )
    def test_kinds(self, content_type, url, expected):
        assert infer_content_kind(content_type, url) == expected


class TestResource:
    def test_soup_is_cached(self):
        resource = make_resource("https://example.com/", "<title>Hi</title>")

        assert resource.soup is resource.soup
        assert resource.soup.title.get_text() == "Hi"

    def test_to_json(self):
        resource = make_resource("https://example.com/a", b"abc", depth=3)

        payload = resource.to_json()

        assert payload["uri"] == "https://example.com/a"
        assert payload["depth_found"] == 3
        assert payload["content_kind"] == "html"
        assert payload["content_length"] == 3
        assert payload["body_sha256"] == resource.response.body_sha256

    def test_text_replaces_invalid_bytes(self):
        assert make_resource("https://example.com/", b"ok\xff").text == "ok\ufffd"

    def test_base_url_falls_back_to_raw_uri(self):
        resource = Resource(
            uri=FilterableURI("https://example.com/section/"),
            response=FetchResult(
                requested_url="https://example.com/section/",
                final_url=None,
                status_code=200,
                content_type="text/html",
                body=b'<a href="blog">b</a>',
            ),
        )

        assert resource.base_url == "https://example.com/section/"
        assert CssSelectorDiscoverer().discover(None, resource) == ["https://example.com/section/blog"]
