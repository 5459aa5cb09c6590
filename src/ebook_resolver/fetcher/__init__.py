"""Plain HTTP page fetching."""

from ebook_resolver.fetcher.base import BaseFetcher, FetchResult
from ebook_resolver.fetcher.http_fetcher import HttpFetcher

__all__ = [
    "BaseFetcher",
    "FetchResult",
    "HttpFetcher",
]
