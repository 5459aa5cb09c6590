"""Registry of known mirror families."""

from pydantic import BaseModel

from ebook_resolver.extractor.links import LinkSelector
from ebook_resolver.models import MirrorKind

_FILE_EXT = r"\.(epub|mobi|azw3?|pdf|djvu|fb2)(\?|$)"


class MirrorFamily(BaseModel):
    """How to recognize one kind of mirror on an entry page and how to follow it."""

    name: str
    description: str
    kind: MirrorKind
    priority: int
    requires_browser: bool = False

    # Recognizes the mirror link on the entry page, most specific first
    entry_selectors: list[LinkSelector]
    # Locates the next hop on the mirror's own page (intermediate pages only)
    next_hop_selectors: list[LinkSelector] = []


# Fallback for pages reached by following a next hop one level further.
FILE_LINK_SELECTORS: list[LinkSelector] = [
    LinkSelector(attribute_pattern=r"/get\.php\?", text_pattern=r"^\s*GET\s*$"),
    LinkSelector(attribute_pattern=r"/get\.php\?"),
    LinkSelector(attribute_pattern=_FILE_EXT),
    LinkSelector(attribute_pattern=r"cloudflare"),
    LinkSelector(attribute_pattern=r"(^ipfs://|/ipfs/)"),
    LinkSelector(attribute_pattern=r"/(dl|download)/"),
    LinkSelector(text_pattern=r"^\s*(GET|Download)\s*$"),
]


LIBRARY_LOL_FAMILY = MirrorFamily(
    name="library-lol",
    description="Content-addressed archive keyed by MD5",
    kind=MirrorKind.DIRECT_LINK_PATTERN,
    priority=0,
    entry_selectors=[LinkSelector(attribute_pattern=r"library\.lol/main/[0-9a-f]{32}")],
)

IPFS_FAMILY = MirrorFamily(
    name="ipfs",
    description="IPFS and CDN gateways serving the file by content hash",
    kind=MirrorKind.DIRECT_LINK_PATTERN,
    priority=1,
    entry_selectors=[
        LinkSelector(attribute_pattern=r"cloudflare-ipfs\.com/ipfs/"),
        LinkSelector(attribute_pattern=r"(ipfs\.io|dweb\.link)/ipfs/"),
        LinkSelector(attribute_pattern=r"^ipfs://"),
    ],
)

ANNAS_ARCHIVE_FAMILY = MirrorFamily(
    name="annas-archive",
    description="Anna's Archive record page with download options",
    kind=MirrorKind.INTERMEDIATE_REDIRECT_PAGE,
    priority=10,
    entry_selectors=[LinkSelector(attribute_pattern=r"annas-archive\.[a-z]+/md5/")],
    next_hop_selectors=[
        LinkSelector(attribute_pattern=r"/slow_download/"),
        LinkSelector(attribute_pattern=r"/fast_download/"),
        LinkSelector(attribute_pattern=r"cloudflare"),
        LinkSelector(attribute_pattern=r"(^ipfs://|ipfs\.io)"),
        LinkSelector(attribute_pattern=_FILE_EXT),
    ],
)

RANDOMBOOK_FAMILY = MirrorFamily(
    name="randombook",
    description="Redirect-hosting mirror that may forward to a file host",
    kind=MirrorKind.INTERMEDIATE_REDIRECT_PAGE,
    priority=20,
    entry_selectors=[LinkSelector(attribute_pattern=r"randombook\.org/book")],
    next_hop_selectors=[
        LinkSelector(attribute_pattern=r"/dl/"),
        LinkSelector(attribute_pattern=r"/download/"),
        LinkSelector(attribute_pattern=_FILE_EXT),
        LinkSelector(attribute_pattern=r"cloudflare"),
    ],
)

ADS_GATE_FAMILY = MirrorFamily(
    name="libgen-ads",
    description="The aggregator's own ad-gated download page",
    kind=MirrorKind.AD_GATED_PAGE,
    priority=30,
    requires_browser=True,
    entry_selectors=[LinkSelector(attribute_pattern=r"/ads\.php\?md5=")],
)


class MirrorRegistry:
    """Registry of mirror families."""

    _families: dict[str, MirrorFamily] = {
        "library-lol": LIBRARY_LOL_FAMILY,
        "ipfs": IPFS_FAMILY,
        "annas-archive": ANNAS_ARCHIVE_FAMILY,
        "randombook": RANDOMBOOK_FAMILY,
        "libgen-ads": ADS_GATE_FAMILY,
    }

    @classmethod
    def register(cls, family: MirrorFamily) -> None:
        """Register a new family, replacing one with the same name."""
        cls._families[family.name] = family

    @classmethod
    def get(cls, name: str) -> MirrorFamily | None:
        """Get a family by name."""
        return cls._families.get(name)

    @classmethod
    def list_families(cls) -> list[MirrorFamily]:
        """List all registered families, most reliable first."""
        return sorted(cls._families.values(), key=lambda f: f.priority)
