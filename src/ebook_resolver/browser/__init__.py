"""Headless browser navigation for gated mirrors."""

from ebook_resolver.browser.base import (
    AnchorInfo,
    BoundingBox,
    BrowserSession,
    DownloadPayload,
    PageHandle,
    PopupRegistry,
    SessionFactory,
)
from ebook_resolver.browser.evasion import HumanBehavior, simulate_human_approach
from ebook_resolver.browser.navigator import Navigator, NavState, is_genuine_download_link
from ebook_resolver.browser.playwright_session import PlaywrightPage, PlaywrightSession

__all__ = [
    "AnchorInfo",
    "BoundingBox",
    "BrowserSession",
    "DownloadPayload",
    "HumanBehavior",
    "Navigator",
    "NavState",
    "PageHandle",
    "PlaywrightPage",
    "PlaywrightSession",
    "PopupRegistry",
    "SessionFactory",
    "is_genuine_download_link",
    "simulate_human_approach",
]
