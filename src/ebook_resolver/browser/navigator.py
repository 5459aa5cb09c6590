"""Headless navigation through ad-gated download pages."""

import asyncio
import logging
import random
import re
from dataclasses import dataclass
from enum import Enum

from ebook_resolver.browser.base import AnchorInfo, BrowserSession, DownloadPayload, SessionFactory
from ebook_resolver.browser.evasion import HumanBehavior
from ebook_resolver.browser.playwright_session import PlaywrightSession
from ebook_resolver.config import BrowserConfig, EvasionConfig
from ebook_resolver.errors import BrowserError, NavigationTimeout
from ebook_resolver.models import (
    Failed,
    FailureReason,
    ResolutionOutcome,
    ResolvedBytes,
    ResolvedUrl,
)
from ebook_resolver.utils.url_utils import is_binary_url, is_download_url, is_excluded_link

logger = logging.getLogger(__name__)


class NavState(str, Enum):
    """States of one navigation; RESOLVED and EXHAUSTED are terminal."""

    IDLE = "idle"
    LOADED = "loaded"
    LINK_FOUND = "link_found"
    CLICK_PENDING = "click_pending"
    POST_CLICK_LOADED = "post_click_loaded"
    RESOLVED = "resolved"
    EXHAUSTED = "exhausted"


@dataclass
class ClickResult:
    """What happened after one click."""

    download: DownloadPayload | None = None
    navigated_to: str | None = None
    popup: bool = False


def is_genuine_download_link(anchor: AnchorInfo, tokens: list[str], href_pattern: str) -> bool:
    """Exact text token, download-endpoint href and visibility must all hold.

    Decoy anchors on gate pages copy the real button but miss at least one
    of the three.
    """
    if not anchor.visible:
        return False
    text = anchor.text.strip().casefold()
    if text not in {token.casefold() for token in tokens}:
        return False
    return re.search(href_pattern, anchor.href, re.IGNORECASE) is not None


class Navigator:
    """Drive one browser session from a gate page to a file.

    Each call to :meth:`navigate` opens its own session and always closes
    it, whatever the outcome.
    """

    def __init__(
        self,
        config: BrowserConfig | None = None,
        evasion: EvasionConfig | None = None,
        session_factory: SessionFactory | None = None,
        rng: random.Random | None = None,
    ):
        self.config = config or BrowserConfig()
        self.behavior = HumanBehavior(evasion or EvasionConfig(), rng=rng)
        self._session_factory = session_factory or (lambda: PlaywrightSession(self.config))

    async def navigate(self, url: str) -> ResolutionOutcome:
        """Resolve a gate page URL to a file URL or file bytes."""
        logger.info("Opening browser for %s", url)
        try:
            async with self._session_factory() as session:
                outcome = await self._run(session, url)
        except NavigationTimeout as e:
            logger.info("Navigation timed out: %s", e)
            return Failed(reason=FailureReason.TIMEOUT, original_url=url, message=str(e))
        except BrowserError as e:
            logger.warning("Browser failure on %s: %s", url, e)
            return Failed(reason=FailureReason.NETWORK_ERROR, original_url=url, message=str(e))
        return outcome

    async def _run(self, session: BrowserSession, url: str) -> ResolutionOutcome:
        page = session.page
        state = NavState.IDLE

        await page.goto(url, self.config.navigation_timeout_ms)
        state = self._transition(state, NavState.LOADED, page.url)
        # Ads opened while loading would otherwise be mistaken for a click challenge
        await session.close_popups()
        # Responses from the gate page load itself are not click results
        session.drain_intercepted()

        challenged = False
        for _ in range(self.config.max_click_hops):
            anchor = await self._wait_for_link(session)
            if anchor is None:
                break
            state = self._transition(state, NavState.LINK_FOUND, anchor.href)

            outcome, was_challenged = await self._click_through(session, anchor)
            challenged = challenged or was_challenged
            if isinstance(outcome, (ResolvedUrl, ResolvedBytes)):
                self._transition(state, NavState.RESOLVED, url)
                return outcome
            if outcome is None:
                break
            # Landed on another page: scan it for the next gate
            state = self._transition(state, NavState.POST_CLICK_LOADED, outcome)

        for intercepted in session.drain_intercepted():
            if is_download_url(intercepted) and not is_excluded_link(intercepted):
                logger.info("Using intercepted file URL %s", intercepted)
                self._transition(state, NavState.RESOLVED, url)
                return ResolvedUrl(url=intercepted)

        self._transition(state, NavState.EXHAUSTED, url)
        if challenged:
            return Failed(
                reason=FailureReason.BOT_CHALLENGE_UNRESOLVED,
                original_url=url,
                message="Popup challenge persisted after retrying the click",
            )
        return Failed(
            reason=FailureReason.NO_MIRROR_FOUND,
            original_url=url,
            message="No qualifying download link produced a file",
        )

    @staticmethod
    def _transition(current: NavState, new: NavState, detail: str) -> NavState:
        logger.debug("Navigator %s -> %s (%s)", current.value, new.value, detail)
        return new

    async def _wait_for_link(self, session: BrowserSession) -> AnchorInfo | None:
        """Poll the rendered DOM until a genuine download link shows up."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.link_wait_timeout_ms / 1000
        while True:
            for anchor in await session.page.anchors():
                if is_genuine_download_link(
                    anchor, self.config.link_text_tokens, self.config.link_href_pattern
                ):
                    return anchor
            if loop.time() >= deadline:
                logger.info("No qualifying link on %s", session.page.url)
                return None
            await asyncio.sleep(self.config.link_poll_interval_ms / 1000)

    async def _click_through(
        self, session: BrowserSession, anchor: AnchorInfo
    ) -> tuple[ResolutionOutcome | str | None, bool]:
        """Click ``anchor``, retrying after popup challenges.

        Returns a resolved outcome, the URL of a non-file page the click
        navigated to, or None, plus whether a popup challenge was seen.
        """
        challenged = False
        for attempt in range(1 + self.config.challenge_retries):
            result = await self._click_once(session, anchor)

            if result.popup:
                challenged = True
                logger.info("Popup challenge after click %d, dismissing", attempt + 1)
                await asyncio.sleep(self.config.popup_dismiss_delay_ms / 1000)
                await session.close_popups()
                continue

            if result.download is not None:
                return (
                    ResolvedBytes(
                        data=result.download.data,
                        suggested_name=result.download.suggested_name,
                    ),
                    challenged,
                )

            if result.navigated_to:
                if is_binary_url(result.navigated_to):
                    return ResolvedUrl(url=result.navigated_to), challenged
                return result.navigated_to, challenged

            return None, challenged

        return None, challenged

    async def _click_once(self, session: BrowserSession, anchor: AnchorInfo) -> ClickResult:
        """Click once and race download, navigation and popup; first real event wins."""
        page = session.page
        # Popups still open from earlier steps would win the race below
        await session.close_popups()
        await self.behavior.approach(page, anchor)

        outcome_ms = self.config.click_outcome_timeout_ms
        # Insertion order is precedence when several finish in the same batch
        tasks = {
            "download": asyncio.create_task(page.wait_for_download(self.config.download_timeout_ms)),
            "navigation": asyncio.create_task(page.wait_for_navigation(outcome_ms)),
            "popup": asyncio.create_task(session.next_popup(outcome_ms)),
        }
        try:
            await page.click(anchor, self.config.click_outcome_timeout_ms)

            pending = set(tasks.values())
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for kind, task in tasks.items():
                    if task not in done:
                        continue
                    value = task.result()
                    if value is None:
                        continue
                    if kind == "download":
                        return ClickResult(download=value)
                    if kind == "navigation":
                        return ClickResult(navigated_to=value)
                    return ClickResult(popup=True)
            return ClickResult()
        finally:
            for task in tasks.values():
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)
