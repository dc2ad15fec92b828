"""
webgrab

Populates an offline web cache by crawling outward from a list of seed sites,
loading HTML pages in a pool of browser sessions.
"""

__version__ = "0.2.0"

from webgrab.config import CrawlConfig, WebgrabSettings, load_config, load_site_list
from webgrab.exceptions import WebgrabError
from webgrab.models import CrawlPolicy, FetchOutcome, FrontierEntry, RawLink
from webgrab.core.crawler import Crawler, run_crawl

__all__ = [
    "Crawler",
    "CrawlConfig",
    "CrawlPolicy",
    "FetchOutcome",
    "FrontierEntry",
    "RawLink",
    "WebgrabError",
    "WebgrabSettings",
    "load_config",
    "load_site_list",
    "run_crawl",
]
