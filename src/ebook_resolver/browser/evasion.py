"""Human-like pointer and scroll behavior before gated clicks."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable

from ebook_resolver.browser.base import AnchorInfo, PageHandle
from ebook_resolver.config import EvasionConfig
from ebook_resolver.errors import ResolverError

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class HumanBehavior:
    """Randomized approach to a target element.

    None of this affects correctness. Every sub-step is best effort: a
    failing move or scroll is logged and the sequence carries on so the
    click always happens.
    """

    def __init__(
        self,
        config: EvasionConfig,
        rng: random.Random | None = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self.rng = rng or random.Random()
        self._sleep = sleep

    async def _dwell(self) -> None:
        ms = self.rng.uniform(self.config.dwell_min_ms, self.config.dwell_max_ms)
        await self._sleep(ms / 1000)

    async def _step(self, name: str, action: Awaitable[None]) -> bool:
        try:
            await action
            return True
        except ResolverError:
            logger.debug("Evasion step '%s' failed, continuing", name, exc_info=True)
            return False

    async def approach(self, page: PageHandle, target: AnchorInfo) -> None:
        """Wander, scroll, then glide onto ``target`` with slight jitter."""
        if not self.config.enabled:
            return

        width, height = page.viewport_size
        for _ in range(self.config.waypoints):
            x = self.rng.uniform(0.1, 0.9) * width
            y = self.rng.uniform(0.1, 0.9) * height
            await self._step("wander", page.move_pointer(x, y, self.config.pointer_steps))
            await self._dwell()

        scroll = self.rng.randint(self.config.scroll_min_px, self.config.scroll_max_px)
        await self._step("scroll", page.scroll_by(scroll))
        await self._dwell()

        await self._step("scroll into view", page.scroll_into_view(target))
        await self._dwell()

        try:
            box = await page.bounding_box(target)
        except ResolverError:
            logger.debug("Could not measure target anchor", exc_info=True)
            box = None
        if box is not None:
            jitter = self.config.jitter_px
            x = box.x + box.width / 2 + self.rng.uniform(-jitter, jitter)
            y = box.y + box.height / 2 + self.rng.uniform(-jitter, jitter)
            await self._step("approach target", page.move_pointer(x, y, self.config.pointer_steps))
            await self._dwell()


async def simulate_human_approach(
    page: PageHandle,
    target: AnchorInfo,
    config: EvasionConfig | None = None,
    rng: random.Random | None = None,
) -> None:
    """Run one randomized approach with a throwaway HumanBehavior."""
    await HumanBehavior(config or EvasionConfig(), rng=rng).approach(page, target)
