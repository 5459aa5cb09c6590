"""Mirror families and mirror-chain planning."""

from ebook_resolver.mirrors.planner import plan_mirrors
from ebook_resolver.mirrors.registry import FILE_LINK_SELECTORS, MirrorFamily, MirrorRegistry

__all__ = [
    "FILE_LINK_SELECTORS",
    "MirrorFamily",
    "MirrorRegistry",
    "plan_mirrors",
]
