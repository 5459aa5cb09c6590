"""Build the ordered mirror chain for an entry page."""

import logging

from ebook_resolver.extractor.links import extract_links
from ebook_resolver.mirrors.registry import MirrorFamily, MirrorRegistry
from ebook_resolver.models import MirrorCandidate, ResolutionHints
from ebook_resolver.utils.url_utils import extract_md5, normalize_url

logger = logging.getLogger(__name__)


def plan_mirrors(
    entry_page_html: str,
    entry_url: str = "",
    hints: ResolutionHints | None = None,
    families: list[MirrorFamily] | None = None,
) -> list[MirrorCandidate]:
    """Return one candidate per recognized mirror family, sorted by priority.

    Families absent from the page are omitted. When ``hints.file_hash`` is
    set, links embedding a different MD5 are ignored.
    """
    hints = hints or ResolutionHints()
    base_url = hints.mirror_base_url or entry_url or None
    families = families if families is not None else MirrorRegistry.list_families()

    candidates: list[MirrorCandidate] = []
    seen: set[str] = set()

    for family in families:
        for selector in family.entry_selectors:
            links = extract_links(entry_page_html, [selector], base_url=base_url)
            if hints.file_hash:
                links = [
                    link for link in links
                    if extract_md5(link) in (None, hints.file_hash)
                ]
            links = [link for link in links if normalize_url(link) not in seen]
            if not links:
                continue

            url = links[0]
            seen.add(normalize_url(url))
            candidates.append(
                MirrorCandidate(
                    kind=family.kind,
                    locator_pattern=selector.attribute_pattern or selector.text_pattern or "",
                    requires_browser=family.requires_browser,
                    priority=family.priority,
                    url=url,
                    family=family.name,
                )
            )
            logger.debug("Mirror %s found: %s", family.name, url)
            break

    candidates.sort(key=lambda c: c.priority)
    return candidates
