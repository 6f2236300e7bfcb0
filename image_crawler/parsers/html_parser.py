"""HTML parser: image source and hyperlink discovery."""

from __future__ import annotations

from dataclasses import dataclass

from bs4 import BeautifulSoup

from ..types import PageContent
from ..url import resolve_url


@dataclass(slots=True)
class HTMLParserConfig:
    """Config for HTML extraction."""

    features: str = "lxml"
    image_tags: tuple[str, ...] = ("img",)
    link_tags: tuple[str, ...] = ("a", "area")
    honor_base_href: bool = True


class HTMLParser:
    """Extract image sources and link targets the way a browser DOM exposes them.

    `<img src>` mirrors `document.images` and `<a href>`/`<area href>` mirrors
    `document.links`. Values are resolved against `<base href>` (when present)
    or the page URL, returned in document order with duplicates removed.
    """

    def __init__(self, config: HTMLParserConfig | None = None) -> None:
        self.config = config or HTMLParserConfig()

    def parse(
        self,
        *,
        url: str,
        html: str | bytes,
        final_url: str | None = None,
    ) -> PageContent:
        page_url = final_url or url
        soup = BeautifulSoup(self._coerce_html_text(html), self.config.features)
        base_url = self._base_url(soup, page_url)

        image_srcs = self._collect(soup, self.config.image_tags, "src", base_url)
        link_hrefs = self._collect(soup, self.config.link_tags, "href", base_url)

        return PageContent(
            url=url,
            final_url=final_url,
            image_srcs=tuple(image_srcs),
            link_hrefs=tuple(link_hrefs),
        )

    def _base_url(self, soup: BeautifulSoup, page_url: str) -> str:
        if not self.config.honor_base_href:
            return page_url
        base_tag = soup.find("base", href=True)
        if base_tag is None:
            return page_url
        return resolve_url(page_url, base_tag.get("href")) or page_url

    @staticmethod
    def _collect(
        soup: BeautifulSoup,
        tags: tuple[str, ...],
        attribute: str,
        base_url: str,
    ) -> list[str]:
        out: list[str] = []
        seen: set[str] = set()

        for element in soup.find_all(list(tags)):
            value = element.get(attribute)
            if not value or not isinstance(value, str):
                continue

            resolved = resolve_url(base_url, value)
            if not resolved or resolved in seen:
                continue

            seen.add(resolved)
            out.append(resolved)

        return out

    @staticmethod
    def _coerce_html_text(html: str | bytes) -> str:
        if isinstance(html, bytes):
            return html.decode("utf-8", errors="replace")
        return html


__all__ = [
    "HTMLParser",
    "HTMLParserConfig",
]
