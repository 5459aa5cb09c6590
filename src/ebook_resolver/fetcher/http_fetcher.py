"""Plain HTTP fetcher with browser-like request headers."""

import logging

import httpx

from ebook_resolver.config import FetcherConfig
from ebook_resolver.fetcher.base import BaseFetcher, FetchResult

logger = logging.getLogger(__name__)


class HttpFetcher(BaseFetcher):
    """HTTP fetcher without JavaScript rendering."""

    def __init__(self, config: FetcherConfig, transport: httpx.AsyncBaseTransport | None = None):
        super().__init__(config)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.config.user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        }

    async def __aenter__(self):
        """Initialize HTTP client."""
        self._client = httpx.AsyncClient(
            headers=self._headers(),
            follow_redirects=True,
            max_redirects=self.config.max_redirects,
            timeout=self.config.timeout_ms / 1000,
            verify=not self.config.accept_invalid_certs,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Clean up HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, url: str, referer: str | None = None) -> FetchResult:
        """Fetch a page via HTTP."""
        if not self._client:
            raise RuntimeError("Fetcher not initialized. Use 'async with' context manager.")

        headers = {"Referer": referer} if referer else None
        try:
            response = await self._client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            logger.debug("Timed out fetching %s", url, exc_info=True)
            return FetchResult(
                url=url, final_url=url, html="", status_code=0,
                error=f"timeout: {e}", timed_out=True,
            )
        except httpx.TooManyRedirects as e:
            logger.debug("Redirect limit hit fetching %s", url)
            return FetchResult(
                url=url, final_url=url, html="", status_code=0,
                error=f"too many redirects: {e}", permanent=True,
            )
        except httpx.HTTPError as e:
            logger.debug("Transport error fetching %s", url, exc_info=True)
            return FetchResult(url=url, final_url=url, html="", status_code=0, error=str(e))

        retry_after: float | None = None
        if response.status_code == 429:
            retry_after = self._parse_retry_after(response.headers.get("retry-after"))

        error = None
        if not 200 <= response.status_code < 300:
            error = f"HTTP {response.status_code}"

        return FetchResult(
            url=url,
            final_url=str(response.url),
            html=response.text,
            status_code=response.status_code,
            error=error,
            retry_after=retry_after,
        )
