"""
Exception hierarchy for webgrab.

All exceptions inherit from WebgrabError to allow catching all crawl-related errors.
"""

from datetime import datetime
from typing import Any


class WebgrabError(Exception):
    """Base exception for all webgrab errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.timestamp = datetime.utcnow()


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(WebgrabError):
    """Site list, pattern or settings could not be loaded. Fatal at startup."""

    pass


# =============================================================================
# Reference Errors
# =============================================================================


class InvalidReferenceError(WebgrabError):
    """A discovered href could not be turned into an absolute URI."""

    def __init__(self, href: str, base_uri: str, reason: str):
        super().__init__(
            f"Invalid reference {href!r} on {base_uri}: {reason}",
            {"href": href, "base_uri": base_uri},
        )
        self.href = href
        self.base_uri = base_uri
        self.reason = reason


# =============================================================================
# Fetch Errors
# =============================================================================


class FetchError(WebgrabError):
    """Retrieving or rendering a URI failed."""

    def __init__(self, uri: str, message: str, status_code: int | None = None):
        super().__init__(
            f"Fetch failed for {uri}: {message}",
            {"uri": uri, "status_code": status_code},
        )
        self.uri = uri
        self.status_code = status_code


class HeadersError(FetchError):
    """The HEAD request used to sniff the content type failed."""

    def __init__(self, uri: str, message: str):
        super().__init__(uri, f"failure in get_headers: {message}")


class RenderError(FetchError):
    """The browser session could not load the page."""

    def __init__(self, uri: str, message: str):
        super().__init__(uri, f"render failed: {message}")
