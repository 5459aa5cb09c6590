"""Playwright implementation of the page and session abstractions."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

import aiofiles
from playwright.async_api import (
    Browser,
    BrowserContext,
    Page,
    Playwright,
    Response,
    async_playwright,
)
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ebook_resolver.browser.base import (
    AnchorInfo,
    BoundingBox,
    BrowserSession,
    DownloadPayload,
    PageHandle,
)
from ebook_resolver.config import BrowserConfig
from ebook_resolver.errors import BrowserError, NavigationTimeout
from ebook_resolver.utils.filename import filename_from_url
from ebook_resolver.utils.url_utils import is_binary_url

logger = logging.getLogger(__name__)

_FILE_CONTENT_TYPES = (
    "application/epub+zip",
    "application/x-mobipocket-ebook",
    "application/vnd.amazon.ebook",
    "application/pdf",
    "application/octet-stream",
)

# Tags every anchor with its index so a later click hits the scanned element.
_SCAN_ANCHORS_JS = """() => Array.from(document.querySelectorAll('a')).map((a, i) => {
    a.setAttribute('data-resolver-idx', String(i));
    const style = window.getComputedStyle(a);
    const rect = a.getBoundingClientRect();
    const visible = style.display !== 'none'
        && style.visibility !== 'hidden'
        && parseFloat(style.opacity || '1') > 0
        && rect.width > 0 && rect.height > 0;
    return {
        index: i,
        text: (a.innerText || a.textContent || '').trim(),
        href: a.href || '',
        visible: visible,
    };
})"""


@contextmanager
def _translated(action: str) -> Iterator[None]:
    """Re-raise Playwright errors as resolver errors."""
    try:
        yield
    except PlaywrightTimeoutError as e:
        raise NavigationTimeout(f"{action} timed out") from e
    except PlaywrightError as e:
        raise BrowserError(f"{action} failed: {e}") from e


class PlaywrightPage(PageHandle):
    """PageHandle backed by a Playwright page."""

    def __init__(self, page: Page, config: BrowserConfig):
        self._page = page
        self.config = config

    @property
    def url(self) -> str:
        return self._page.url

    @property
    def viewport_size(self) -> tuple[int, int]:
        size = self._page.viewport_size
        if not size:
            return (self.config.viewport_width, self.config.viewport_height)
        return (size["width"], size["height"])

    def _locator(self, anchor: AnchorInfo):
        return self._page.locator(f'a[data-resolver-idx="{anchor.index}"]')

    async def goto(self, url: str, timeout_ms: int) -> None:
        with _translated(f"navigation to {url}"):
            await self._page.goto(url, wait_until="domcontentloaded", timeout=timeout_ms)
        # Ad-heavy gate pages rarely go fully idle; the DOM is usable regardless.
        try:
            await self._page.wait_for_load_state("networkidle", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            logger.debug("Network never went idle on %s", url)

    async def anchors(self) -> list[AnchorInfo]:
        with _translated("anchor scan"):
            raw = await self._page.evaluate(_SCAN_ANCHORS_JS)
        return [AnchorInfo.model_validate(item) for item in raw]

    async def click(self, anchor: AnchorInfo, timeout_ms: int) -> None:
        with _translated(f"click on anchor {anchor.index}"):
            await self._locator(anchor).click(timeout=timeout_ms, no_wait_after=True)

    async def wait_for_download(self, timeout_ms: int) -> DownloadPayload | None:
        try:
            download = await self._page.wait_for_event("download", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            return None
        except PlaywrightError as e:
            raise BrowserError(f"download wait failed: {e}") from e
        with _translated("download"):
            failure = await download.failure()
            if failure:
                raise BrowserError(f"download failed: {failure}")
            path = await download.path()
        async with aiofiles.open(path, "rb") as f:
            data = await f.read()
        name = download.suggested_filename or filename_from_url(download.url)
        logger.info("Downloaded %s (%d bytes)", name, len(data))
        return DownloadPayload(data=data, suggested_name=name)

    async def wait_for_navigation(self, timeout_ms: int) -> str | None:
        main_frame = self._page.main_frame
        try:
            await self._page.wait_for_event(
                "framenavigated",
                predicate=lambda frame: frame == main_frame,
                timeout=timeout_ms,
            )
            await self._page.wait_for_load_state("domcontentloaded", timeout=timeout_ms)
        except PlaywrightTimeoutError:
            return None
        except PlaywrightError as e:
            raise BrowserError(f"navigation wait failed: {e}") from e
        return self._page.url

    async def scroll_into_view(self, anchor: AnchorInfo) -> None:
        with _translated("scroll into view"):
            await self._locator(anchor).scroll_into_view_if_needed(timeout=5000)

    async def bounding_box(self, anchor: AnchorInfo) -> BoundingBox | None:
        with _translated("bounding box"):
            box = await self._locator(anchor).bounding_box(timeout=5000)
        return BoundingBox.model_validate(box) if box else None

    async def move_pointer(self, x: float, y: float, steps: int = 1) -> None:
        with _translated("pointer move"):
            await self._page.mouse.move(x, y, steps=steps)

    async def scroll_by(self, delta_y: float) -> None:
        with _translated("scroll"):
            await self._page.mouse.wheel(0, delta_y)

    async def close(self) -> None:
        with _translated("page close"):
            await self._page.close()


class PlaywrightSession(BrowserSession):
    """A fresh Chromium browser and context for one resolution."""

    def __init__(self, config: BrowserConfig):
        super().__init__()
        self.config = config
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._main: Page | None = None

    async def __aenter__(self) -> "PlaywrightSession":
        """Launch Chromium and open the main page."""
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.config.headless,
                args=self.config.launch_args,
            )
            self._context = await self._browser.new_context(
                user_agent=self.config.user_agent,
                viewport={
                    "width": self.config.viewport_width,
                    "height": self.config.viewport_height,
                },
                ignore_https_errors=True,
                accept_downloads=True,
            )
            self._main = await self._context.new_page()
        except PlaywrightError as e:
            await self.__aexit__(None, None, None)
            raise BrowserError(f"browser launch failed: {e}") from e
        except BaseException:
            # async with skips __aexit__ when __aenter__ raises; cancellation lands here
            await self.__aexit__(None, None, None)
            raise

        self._main.on("response", self._handle_response)
        self._context.on("page", self._handle_page)
        self._page = PlaywrightPage(self._main, self.config)
        return self

    def _handle_page(self, page: Page) -> None:
        if page is self._main:
            return
        logger.debug("Popup opened: %s", page.url)
        page.on("response", self._handle_response)
        self._on_popup(PlaywrightPage(page, self.config))

    def _handle_response(self, response: Response) -> None:
        url = response.url
        content_type = response.headers.get("content-type", "").lower()
        disposition = response.headers.get("content-disposition", "").lower()
        if (
            is_binary_url(url)
            or "attachment" in disposition
            or content_type.startswith(_FILE_CONTENT_TYPES)
        ):
            logger.debug("Intercepted file-like response: %s", url)
            self._on_file_response(url)

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close popups and tear down Playwright; errors are logged, never raised."""
        try:
            await self.close_popups()
        except Exception:
            logger.debug("Failed to close popups during cleanup", exc_info=True)
        for name in ("_context", "_browser"):
            resource = getattr(self, name)
            if resource is None:
                continue
            try:
                await resource.close()
            except Exception:
                logger.warning("Failed to close browser %s", name.lstrip("_"), exc_info=True)
            setattr(self, name, None)
        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception:
                logger.warning("Failed to stop Playwright", exc_info=True)
            self._playwright = None
        self._main = None
        self._page = None
