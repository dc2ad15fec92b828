"""Core crawl modules."""

from webgrab.core.crawler import Crawler, CrawlerStats, run_crawl
from webgrab.core.fetcher import FetchCapability, FetcherConfig, PageFetcher
from webgrab.core.frontier import Frontier
from webgrab.core.policy import admit_child
from webgrab.core.renderer import BrowserPool, BrowserSession, RenderedPage
from webgrab.core.scheduler import ResourceScheduler, TaskCallback

__all__ = [
    # Driver
    "Crawler",
    "CrawlerStats",
    "run_crawl",
    # Frontier
    "Frontier",
    "admit_child",
    # Scheduling
    "ResourceScheduler",
    "TaskCallback",
    # Fetching
    "BrowserPool",
    "BrowserSession",
    "FetchCapability",
    "FetcherConfig",
    "PageFetcher",
    "RenderedPage",
]
