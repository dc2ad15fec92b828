"""Utility modules for webgrab."""

from webgrab.utils.logging import CrawlerLogger, get_logger, setup_logging
from webgrab.utils.url_utils import canonicalize, get_host

__all__ = [
    "CrawlerLogger",
    "canonicalize",
    "get_host",
    "get_logger",
    "setup_logging",
]
