"""Filename and content-type helpers for downloaded ebooks."""

import re
from urllib.parse import unquote, urlparse

_INVALID_CHARS_RE = re.compile(r'[<>:"/\\|?*]')

_CONTENT_TYPES: dict[str, str] = {
    "epub": "application/epub+zip",
    "mobi": "application/x-mobipocket-ebook",
    "azw3": "application/vnd.amazon.ebook",
    "pdf": "application/pdf",
    "txt": "text/plain",
}


def content_type_for(file_format: str | None) -> str:
    """Map an ebook format to its MIME type."""
    return _CONTENT_TYPES.get((file_format or "").lower(), "application/octet-stream")


def readable_filename(title: str, author: str, file_format: str) -> str:
    """Build a ``Title - Author.ext`` filename, at most 150 chars before the extension."""
    clean_title = re.sub(r"\s+", " ", _INVALID_CHARS_RE.sub("", title)).strip()
    clean_author = re.sub(r"\s+", " ", _INVALID_CHARS_RE.sub("", author)).strip()
    combined = f"{clean_title} - {clean_author}"
    if len(combined) > 150:
        combined = combined[:150].strip()
    return f"{combined}.{file_format.lower()}"


def filename_from_url(url: str, default: str = "download.bin") -> str:
    """Guess a filename from the last path segment of a URL."""
    segment = unquote(urlparse(url).path.rstrip("/").rsplit("/", 1)[-1])
    segment = _INVALID_CHARS_RE.sub("", segment).strip()
    if not segment or "." not in segment:
        return default
    return segment
