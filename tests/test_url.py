"""Tests for URL normalization and FilterableURI."""

import pytest

from spider.url import (
    FilterableURI,
    host_from_url,
    matching_allowed_domain,
    normalize_domain,
    normalize_url,
    resolve_url,
)


class TestNormalizeUrl:
    def test_lowercases_scheme_and_host(self):
        assert normalize_url("HTTPS://Example.COM/Path") == "https://example.com/Path"

    def test_drops_fragment(self):
        assert normalize_url("https://example.com/a#top") == "https://example.com/a"

    def test_strips_default_port(self):
        assert normalize_url("https://example.com:443/a") == "https://example.com/a"
        assert normalize_url("http://example.com:8080/a") == "http://example.com:8080/a"

    def test_trailing_slash_and_dot_segments(self):
        assert normalize_url("https://example.com/a/b/../c/") == "https://example.com/a/c"
        assert normalize_url("https://example.com//a///b") == "https://example.com/a/b"

    def test_root_path_is_kept(self):
        assert normalize_url("https://example.com") == "https://example.com/"
        assert normalize_url("https://example.com/") == "https://example.com/"

    def test_query_is_sorted_and_tracking_params_removed(self):
        url = "https://example.com/s?b=2&utm_source=x&a=1&fbclid=abc"
        assert normalize_url(url) == "https://example.com/s?a=1&b=2"

    def test_valueless_query_keys_stay_bare(self):
        assert normalize_url("https://example.com/s?flag") == "https://example.com/s?flag"
        assert normalize_url("https://example.com/s?b=2&flag&a=1") == "https://example.com/s?a=1&b=2&flag"

    def test_relative_and_empty_urls_are_rejected(self):
        assert normalize_url("/only/a/path") is None
        assert normalize_url("") is None
        assert normalize_url("   ") is None

    def test_allowed_schemes(self):
        assert normalize_url("ftp://example.com/f", allowed_schemes=["http", "https"]) is None
        assert normalize_url("ftp://example.com/f", allowed_schemes=["FTP"]) == "ftp://example.com/f"

    def test_invalid_port_is_rejected(self):
        assert normalize_url("http://example.com:notaport/") is None


class TestResolveUrl:
    def test_relative_href(self):
        assert resolve_url("https://example.com/docs/", "page") == "https://example.com/docs/page"

    @pytest.mark.parametrize(
        "href",
        [None, "", "  ", "#anchor", "javascript:void(0)", "mailto:a@b.c", "tel:123", "data:text/plain,x"],
    )
    def test_non_navigational_hrefs(self, href):
        assert resolve_url("https://example.com/", href) is None


class TestDomains:
    def test_normalize_domain(self):
        assert normalize_domain("WWW.Example.com.") == "example.com"
        assert normalize_domain("https://www.example.com/path") == "example.com"
        assert normalize_domain("") == ""

    def test_host_from_url(self):
        assert host_from_url("https://www.cmu.edu/about") == "cmu.edu"

    def test_matching_allowed_domain_prefers_most_specific(self):
        allowed = ["cmu.edu", "cs.cmu.edu"]
        assert matching_allowed_domain("https://www.cs.cmu.edu/x", allowed) == "cs.cmu.edu"
        assert matching_allowed_domain("https://other.org/", allowed) is None

    def test_subdomains_can_be_disallowed(self):
        assert matching_allowed_domain("news.cmu.edu", ["cmu.edu"], allow_subdomains=False) is None


class TestFilterableURI:
    def test_equality_uses_normalized_form(self):
        assert FilterableURI("http://a.com/x/") == FilterableURI("HTTP://A.COM:80/x#frag")
        assert len({FilterableURI("http://a.com/x"), FilterableURI("http://a.com/x/")}) == 1

    def test_keeps_raw_spelling(self):
        uri = FilterableURI("HTTP://A.com/x/")
        assert uri.raw == "HTTP://A.com/x/"
        assert str(uri) == "http://a.com/x"

    def test_components(self):
        uri = FilterableURI("https://docs.example.com/guide?page=2")
        assert uri.scheme == "https"
        assert uri.host == "docs.example.com"
        assert uri.path == "/guide"
        assert uri.query == "page=2"

    def test_rejects_relative(self):
        with pytest.raises(ValueError):
            FilterableURI("guide/intro")

    def test_coerce_returns_same_instance(self):
        uri = FilterableURI("https://example.com/")
        assert FilterableURI.coerce(uri) is uri
        assert FilterableURI.coerce("https://example.com") == uri

    def test_is_under(self):
        base = FilterableURI("https://example.com/docs/")
        assert FilterableURI("https://example.com/docs").is_under(base)
        assert FilterableURI("https://example.com/docs/a/b").is_under(base)
        assert not FilterableURI("https://example.com/docsextra").is_under(base)
        assert not FilterableURI("http://example.com/docs/a").is_under(base)
        assert not FilterableURI("https://other.com/docs/a").is_under(base)

    def test_everything_is_under_root(self):
        root = FilterableURI("https://example.com/")
        assert FilterableURI("https://example.com/any/path").is_under(root)

    def test_not_equal_to_plain_string(self):
        assert FilterableURI("https://example.com/") != "https://example.com/"
