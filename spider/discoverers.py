"""Link extractors ("discoverers") that turn a fetched document into candidate URIs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from lxml import etree, html as lxml_html

from .types import ContentKind, Resource
from .url import resolve_url

if TYPE_CHECKING:
    from .engine import Spider


DISCOVERABLE_KINDS = frozenset({ContentKind.HTML, ContentKind.XML, ContentKind.UNKNOWN})


def _rel_values(value: str | list[str] | None) -> set[str]:
    if not value:
        return set()
    if isinstance(value, str):
        value = value.split()
    return {item.lower() for item in value}


class _HrefDiscoverer:
    """Shared href resolution for selector-based discoverers."""

    def __init__(self, *, include_nofollow: bool = False) -> None:
        self.include_nofollow = include_nofollow

    def discover(self, spider: "Spider", resource: Resource) -> list[str]:
        if resource.response.normalized_content_kind not in DISCOVERABLE_KINDS:
            return []
        if not resource.response.body.strip():
            return []
        return self._resolve_all(resource.base_url, self._hrefs(resource))

    def _hrefs(self, resource: Resource) -> Iterable[tuple[str | None, set[str]]]:
        raise NotImplementedError

    def _resolve_all(self, base_url: str, hrefs: Iterable[tuple[str | None, set[str]]]) -> list[str]:
        links: list[str] = []
        for href, rel in hrefs:
            if not self.include_nofollow and "nofollow" in rel:
                continue
            resolved = resolve_url(base_url, href)
            if resolved:
                links.append(resolved)
        return links


class CssSelectorDiscoverer(_HrefDiscoverer):
    """Discover links from elements matching a CSS selector.

    The selector should match elements carrying an `href` attribute, e.g.
    `"a[href]"` or `"nav a"`. Links are returned in document order, duplicates
    included; the engine deduplicates.
    """

    def __init__(self, selector: str = "a[href]", *, include_nofollow: bool = False) -> None:
        super().__init__(include_nofollow=include_nofollow)
        self.selector = selector

    def _hrefs(self, resource: Resource) -> Iterable[tuple[str | None, set[str]]]:
        for element in resource.soup.select(self.selector):
            yield element.get("href"), _rel_values(element.get("rel"))

    def __repr__(self) -> str:
        return f"CssSelectorDiscoverer({self.selector!r})"


class XPathExpressionDiscoverer(_HrefDiscoverer):
    """Discover links from an XPath expression.

    The expression may select elements (their `href` is used) or attribute
    values directly, e.g. `"//a"` or `"//div[@id='content']//a/@href"`.
    """

    def __init__(self, expression: str = "//a", *, include_nofollow: bool = False) -> None:
        super().__init__(include_nofollow=include_nofollow)
        self.expression = expression
        self._xpath = etree.XPath(expression)

    def _hrefs(self, resource: Resource) -> Iterable[tuple[str | None, set[str]]]:
        try:
            document = lxml_html.fromstring(resource.response.body)
        except (etree.ParserError, etree.XMLSyntaxError):
            # Comment-only or element-less bodies have no document root.
            return
        result = self._xpath(document)
        if not isinstance(result, list):
            return

        for node in result:
            if isinstance(node, str):
                parent = node.getparent() if hasattr(node, "getparent") else None
                rel = _rel_values(parent.get("rel")) if parent is not None else set()
                yield str(node), rel
            elif isinstance(node, etree._Element):
                yield node.get("href"), _rel_values(node.get("rel"))

    def __repr__(self) -> str:
        return f"XPathExpressionDiscoverer({self.expression!r})"


__all__ = [
    "CssSelectorDiscoverer",
    "DISCOVERABLE_KINDS",
    "XPathExpressionDiscoverer",
]
