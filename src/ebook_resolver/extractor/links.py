"""Pattern-based anchor extraction from static HTML."""

import re
from collections.abc import Sequence
from functools import lru_cache

from bs4 import BeautifulSoup
from pydantic import BaseModel, ConfigDict

from ebook_resolver.utils.url_utils import ipfs_to_gateway, is_http_url, is_onion, make_absolute


@lru_cache(maxsize=256)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


class LinkSelector(BaseModel):
    """Match anchors by a regex on one attribute and/or a regex on their text.

    Both patterns are case-insensitive ``re.search`` patterns; a selector
    with neither pattern matches every anchor carrying the attribute.
    """

    model_config = ConfigDict(frozen=True)

    attribute_pattern: str | None = None
    text_pattern: str | None = None
    attribute: str = "href"

    def matches(self, value: str, text: str) -> bool:
        if self.attribute_pattern and not _compile(self.attribute_pattern).search(value):
            return False
        if self.text_pattern and not _compile(self.text_pattern).search(text):
            return False
        return True


def parse_anchors(html: str, attribute: str = "href") -> list[tuple[str, str]]:
    """Return ``(attribute value, stripped text)`` for every anchor, in document order."""
    if not html:
        return []
    soup = BeautifulSoup(html, "lxml")
    anchors = []
    for a in soup.find_all("a"):
        value = a.get(attribute)
        if value:
            anchors.append((value.strip(), a.get_text(" ", strip=True)))
    return anchors


def extract_links(
    html: str,
    selectors: Sequence[LinkSelector],
    base_url: str | None = None,
) -> list[str]:
    """Extract links using the first selector that matches anything.

    Selectors are tried in order and never merged, so their order encodes
    how much each pattern is trusted. Relative links are resolved against
    ``base_url``; links that are not http(s) or point at onion hosts are
    dropped before a selector is considered to have matched.
    """
    parsed: dict[str, list[tuple[str, str]]] = {}

    for selector in selectors:
        if selector.attribute not in parsed:
            parsed[selector.attribute] = parse_anchors(html, selector.attribute)

        links: list[str] = []
        for value, text in parsed[selector.attribute]:
            if not selector.matches(value, text):
                continue
            link = make_absolute(base_url, value) if base_url else ipfs_to_gateway(value)
            if not is_http_url(link) or is_onion(link):
                continue
            if link not in links:
                links.append(link)

        if links:
            return links

    return []
