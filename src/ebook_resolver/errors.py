"""Exceptions raised by the browser automation layer.

Expected resolution failures are returned as ``Failed`` outcomes; these
exceptions only cross the boundary between a page adapter and the
navigator, which converts them.
"""


class ResolverError(Exception):
    """Base class for resolver exceptions."""


class NavigationTimeout(ResolverError):
    """A page load or browser wait exceeded its budget."""


class BrowserError(ResolverError):
    """The browser failed to launch, navigate or interact."""
