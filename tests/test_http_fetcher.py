import unittest

import httpx

from ebook_resolver.config import FetcherConfig
from ebook_resolver.fetcher import HttpFetcher

URL = "https://libgen.li/file.php?md5=0123456789abcdef0123456789abcdef"


def _fetcher(handler, **overrides):
    config = FetcherConfig(retry_base_delay=0.0, **overrides)
    return HttpFetcher(config, transport=httpx.MockTransport(handler))


class TestHttpFetcher(unittest.IsolatedAsyncioTestCase):
    async def test_sends_browser_headers_and_referer(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, text="<html>ok</html>")

        async with _fetcher(handler, user_agent="TestAgent/1.0") as fetcher:
            result = await fetcher.fetch(URL, referer="https://libgen.li/")

        self.assertTrue(result.success)
        self.assertEqual(result.html, "<html>ok</html>")
        self.assertEqual(seen[0].headers["user-agent"], "TestAgent/1.0")
        self.assertEqual(seen[0].headers["referer"], "https://libgen.li/")

    async def test_follows_redirects(self):
        def handler(request):
            if request.url.path == "/old":
                return httpx.Response(302, headers={"location": "https://libgen.li/new"})
            return httpx.Response(200, text="moved")

        async with _fetcher(handler) as fetcher:
            result = await fetcher.fetch("https://libgen.li/old")

        self.assertEqual(result.final_url, "https://libgen.li/new")
        self.assertEqual(result.html, "moved")

    async def test_non_2xx_is_an_error(self):
        async with _fetcher(lambda request: httpx.Response(404)) as fetcher:
            result = await fetcher.fetch(URL)

        self.assertFalse(result.success)
        self.assertEqual(result.status_code, 404)
        self.assertEqual(result.error, "HTTP 404")
        self.assertFalse(result.timed_out)

    async def test_timeout_is_flagged_and_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ReadTimeout("slow mirror", request=request)

        async with _fetcher(handler, max_retries=3) as fetcher:
            result = await fetcher.fetch_with_retry(URL)

        self.assertTrue(result.timed_out)
        self.assertFalse(result.success)
        self.assertEqual(len(calls), 1)

    async def test_connection_error_is_reported(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with _fetcher(handler, max_retries=0) as fetcher:
            result = await fetcher.fetch_with_retry(URL)

        self.assertEqual(result.status_code, 0)
        self.assertIn("refused", result.error)
        self.assertFalse(result.timed_out)

    async def test_redirect_loop_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(302, headers={"location": "https://libgen.li/loop"})

        async with _fetcher(handler, max_redirects=2, max_retries=3) as fetcher:
            result = await fetcher.fetch_with_retry("https://libgen.li/loop")

        self.assertFalse(result.success)
        self.assertTrue(result.permanent)
        self.assertEqual(result.attempts, 1)
        self.assertEqual(len(calls), 3)

    async def test_server_error_is_retried(self):
        responses = [httpx.Response(503), httpx.Response(200, text="second try")]

        async with _fetcher(lambda request: responses.pop(0), max_retries=1) as fetcher:
            result = await fetcher.fetch_with_retry(URL)

        self.assertTrue(result.success)
        self.assertEqual(result.attempts, 2)
        self.assertEqual(result.html, "second try")

    async def test_rate_limit_reads_retry_after(self):
        handler = lambda request: httpx.Response(429, headers={"retry-after": "0"})

        async with _fetcher(handler, max_retries=0) as fetcher:
            result = await fetcher.fetch(URL)

        self.assertEqual(result.retry_after, 0.0)

    async def test_fetch_requires_context_manager(self):
        fetcher = _fetcher(lambda request: httpx.Response(200))
        with self.assertRaises(RuntimeError):
            await fetcher.fetch(URL)


if __name__ == "__main__":
    unittest.main()
