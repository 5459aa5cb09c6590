"""Page and session abstractions over a headless browser."""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class AnchorInfo(BaseModel):
    """An anchor as rendered in the live DOM."""

    index: int
    text: str
    href: str
    visible: bool


class BoundingBox(BaseModel):
    x: float
    y: float
    width: float
    height: float


class DownloadPayload(BaseModel):
    """A browser download read fully into memory."""

    data: bytes = Field(repr=False)
    suggested_name: str


class PageHandle(ABC):
    """Capabilities the navigator needs from one browser page."""

    @property
    @abstractmethod
    def url(self) -> str:
        """Current page URL."""

    @property
    def viewport_size(self) -> tuple[int, int]:
        return (1280, 720)

    @abstractmethod
    async def goto(self, url: str, timeout_ms: int) -> None:
        """Navigate and wait for the page to settle.

        Raises NavigationTimeout or BrowserError.
        """

    @abstractmethod
    async def anchors(self) -> list[AnchorInfo]:
        """Snapshot all anchors of the rendered DOM with absolute hrefs."""

    @abstractmethod
    async def click(self, anchor: AnchorInfo, timeout_ms: int) -> None:
        """Click a previously scanned anchor."""

    @abstractmethod
    async def wait_for_download(self, timeout_ms: int) -> DownloadPayload | None:
        """Wait for a download to start and read it; None on timeout."""

    @abstractmethod
    async def wait_for_navigation(self, timeout_ms: int) -> str | None:
        """Wait for the main frame to navigate; returns the new URL or None on timeout."""

    @abstractmethod
    async def scroll_into_view(self, anchor: AnchorInfo) -> None:
        """Scroll an anchor into the viewport."""

    @abstractmethod
    async def bounding_box(self, anchor: AnchorInfo) -> BoundingBox | None:
        """Viewport-relative box of an anchor, or None if not rendered."""

    @abstractmethod
    async def move_pointer(self, x: float, y: float, steps: int = 1) -> None:
        """Move the mouse pointer in ``steps`` interpolated moves."""

    @abstractmethod
    async def scroll_by(self, delta_y: float) -> None:
        """Scroll the page vertically with the mouse wheel."""

    @abstractmethod
    async def close(self) -> None:
        """Close this page."""


class PopupRegistry:
    """Secondary pages opened during one session, closed at checkpoints."""

    def __init__(self):
        self._pages: list[PageHandle] = []

    def record(self, page: PageHandle) -> None:
        self._pages.append(page)

    def __len__(self) -> int:
        return len(self._pages)

    def __iter__(self) -> Iterator[PageHandle]:
        return iter(self._pages)

    async def close_all(self) -> int:
        """Force-close every recorded popup; close errors are logged and ignored."""
        pages, self._pages = self._pages, []
        for page in pages:
            try:
                await page.close()
            except Exception:
                logger.debug("Failed to close popup", exc_info=True)
        return len(pages)


class BrowserSession(ABC):
    """One isolated browsing context, owned by a single resolution.

    Browser event handlers only enqueue popups and intercepted file URLs;
    the navigator drains both queues explicitly after each click.
    """

    def __init__(self):
        self.popups = PopupRegistry()
        self._popup_queue: asyncio.Queue[PageHandle] = asyncio.Queue()
        self._intercepted: asyncio.Queue[str] = asyncio.Queue()
        self._page: PageHandle | None = None

    @property
    def page(self) -> PageHandle:
        if self._page is None:
            raise RuntimeError("Session not started. Use 'async with' context manager.")
        return self._page

    def _on_popup(self, page: PageHandle) -> None:
        self._popup_queue.put_nowait(page)

    def _on_file_response(self, url: str) -> None:
        self._intercepted.put_nowait(url)

    async def next_popup(self, timeout_ms: int) -> PageHandle | None:
        """Wait for the next popup, record it and return it; None on timeout."""
        try:
            page = await asyncio.wait_for(self._popup_queue.get(), timeout_ms / 1000)
        except asyncio.TimeoutError:
            return None
        self.popups.record(page)
        return page

    def drain_popups(self) -> list[PageHandle]:
        """Move all queued popups into the registry without waiting."""
        drained = []
        while not self._popup_queue.empty():
            page = self._popup_queue.get_nowait()
            self.popups.record(page)
            drained.append(page)
        return drained

    def drain_intercepted(self) -> list[str]:
        """Return file-like URLs seen on the network since the last drain."""
        urls = []
        while not self._intercepted.empty():
            urls.append(self._intercepted.get_nowait())
        return urls

    async def close_popups(self) -> int:
        self.drain_popups()
        return await self.popups.close_all()

    @abstractmethod
    async def __aenter__(self) -> "BrowserSession":
        """Launch the browser and open the main page."""

    @abstractmethod
    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close popups, pages and the browser; never raises."""


SessionFactory = Callable[[], BrowserSession]
