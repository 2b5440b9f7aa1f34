"""Tests for CSS selector and XPath link discoverers."""

from conftest import make_resource
from spider import CssSelectorDiscoverer, XPathExpressionDiscoverer


PAGE = """
<html>
  <body>
    <nav>
      <a href="/docs/">Docs</a>
      <a href="blog">Blog</a>
    </nav>
    <div id="content">
      <a href="https://other.org/ref">Ref</a>
      <a href="#top">Top</a>
      <a href="mailto:team@example.com">Mail</a>
      <a href="/private" rel="nofollow">Private</a>
      <a href="/docs/">Docs again</a>
      <a>No href</a>
    </div>
  </body>
</html>
"""


class TestCssSelectorDiscoverer:
    def test_resolves_links_in_document_order(self):
        resource = make_resource("https://example.com/section/", PAGE)

        links = CssSelectorDiscoverer().discover(None, resource)

        assert links == [
            "https://example.com/docs/",
            "https://example.com/section/blog",
            "https://other.org/ref",
            "https://example.com/docs/",
        ]

    def test_scoped_selector(self):
        resource = make_resource("https://example.com/", PAGE)

        links = CssSelectorDiscoverer("nav a[href]").discover(None, resource)

        assert links == ["https://example.com/docs/", "https://example.com/blog"]

    def test_include_nofollow(self):
        resource = make_resource("https://example.com/", PAGE)

        links = CssSelectorDiscoverer("#content a[href]", include_nofollow=True).discover(None, resource)

        assert "https://example.com/private" in links

    def test_resolves_against_final_url(self):
        resource = make_resource(
            "https://example.com/old",
            '<a href="next">n</a>',
            final_url="https://example.com/new/",
        )

        assert CssSelectorDiscoverer().discover(None, resource) == ["https://example.com/new/next"]

    def test_skips_non_markup_content(self):
        resource = make_resource("https://example.com/a.pdf", PAGE, content_type="application/pdf")

        assert CssSelectorDiscoverer().discover(None, resource) == []

    def test_empty_body(self):
        assert CssSelectorDiscoverer().discover(None, make_resource("https://example.com/", b"  ")) == []


class TestXPathExpressionDiscoverer:
    def test_element_results(self):
        resource = make_resource("https://example.com/", PAGE)

        links = XPathExpressionDiscoverer("//nav/a").discover(None, resource)

        assert links == ["https://example.com/docs/", "https://example.com/blog"]

    def test_attribute_results(self):
        resource = make_resource("https://example.com/", PAGE)

        links = XPathExpressionDiscoverer("//div[@id='content']/a/@href").discover(None, resource)

        assert links == ["https://other.org/ref", "https://example.com/docs/"]

    def test_comment_only_body_yields_nothing(self):
        resource = make_resource("http://a/", b"<!-- nothing here -->")

        assert XPathExpressionDiscoverer("//a").discover(None, resource) == []

    def test_non_list_result_yields_nothing(self):
        resource = make_resource("https://example.com/", PAGE)

        assert XPathExpressionDiscoverer("count(//a)").discover(None, resource) == []
