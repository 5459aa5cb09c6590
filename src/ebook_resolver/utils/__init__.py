"""Utility functions."""

from ebook_resolver.utils.filename import (
    content_type_for,
    filename_from_url,
    readable_filename,
)
from ebook_resolver.utils.url_utils import (
    is_download_url,
    make_absolute,
    normalize_url,
)

__all__ = [
    "content_type_for",
    "filename_from_url",
    "readable_filename",
    "is_download_url",
    "make_absolute",
    "normalize_url",
]
