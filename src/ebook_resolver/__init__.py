"""Resolve ebook catalog entries to downloadable files."""

__version__ = "0.1.0"
