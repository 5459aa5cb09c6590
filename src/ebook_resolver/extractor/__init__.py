"""Link extraction from HTML pages."""

from ebook_resolver.extractor.links import LinkSelector, extract_links, parse_anchors

__all__ = [
    "LinkSelector",
    "extract_links",
    "parse_anchors",
]
