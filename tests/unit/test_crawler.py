"""
Tests for the crawl driver.
"""

import re
from collections.abc import Callable
from typing import Any

import pytest

from webgrab.core.crawler import Crawler, CrawlerStats
from webgrab.exceptions import RenderError
from webgrab.models import CrawlPolicy, FetchOutcome, FrontierEntry


SITE = {
    "https://ex.com/": ["/a", "a#x", "https://other.com/b", "", "#", None],
    "https://ex.com/a": ["/", "/c", "http://[::1"],
    "https://ex.com/c": ["/a", "/d"],
    "https://ex.com/d": [],
}


class TestCrawler:
    """Tests for Crawler."""

    @pytest.mark.asyncio
    async def test_crawls_same_host(self, make_fetcher: Callable) -> None:
        """Test a crawl from one seed until nothing is left."""
        fetcher = make_fetcher(SITE)
        crawler = Crawler(
            seeds=[FrontierEntry("https://ex.com/")],
            fetcher=fetcher,
            resources=["r1", "r2"],
        )

        stats = await crawler.crawl()

        assert sorted(fetcher.fetched) == [
            "https://ex.com/",
            "https://ex.com/a",
            "https://ex.com/c",
            "https://ex.com/d",
        ]
        assert stats.pages_crawled == 4
        assert stats.pages_failed == 0
        assert stats.invalid_references == 1
        assert stats.links_rejected == 1
        assert stats.finished_at is not None
        assert crawler.frontier.seen == set(fetcher.fetched)
        assert not crawler.frontier.pending
        assert not crawler.frontier.in_flight

    @pytest.mark.asyncio
    async def test_fetches_each_uri_once(self, make_fetcher: Callable) -> None:
        """Test that pages linking to each other are fetched once each."""
        site = {
            "https://ex.com/": ["/1", "/2", "/3"],
            "https://ex.com/1": ["/", "/2", "/3"],
            "https://ex.com/2": ["/", "/1", "/3"],
            "https://ex.com/3": ["/", "/1", "/2"],
        }
        fetcher = make_fetcher(site)
        crawler = Crawler([FrontierEntry("https://ex.com/")], fetcher, resources=["r1", "r2", "r3"])

        stats = await crawler.crawl()

        assert len(fetcher.fetched) == len(set(fetcher.fetched)) == 4
        assert stats.links_admitted == 3
        assert stats.batches == 2

    @pytest.mark.asyncio
    async def test_concurrency_bounded_by_resources(self, make_fetcher: Callable) -> None:
        """Test that no more fetches run than there are resources."""
        site: dict = {"https://ex.com/": [f"/{i}" for i in range(20)]}
        site.update({f"https://ex.com/{i}": [] for i in range(20)})
        fetcher = make_fetcher(site)
        crawler = Crawler([FrontierEntry("https://ex.com/")], fetcher, resources=["r1", "r2"])

        await crawler.crawl()

        assert len(fetcher.fetched) == 21
        assert fetcher.max_concurrent <= 2
        assert set(fetcher.resources) == {"r1", "r2"}

    @pytest.mark.asyncio
    async def test_failed_fetch_is_not_retried(self, make_fetcher: Callable) -> None:
        """Test that a failed URI is marked seen and not fetched again."""
        site = {
            "https://ex.com/": ["/broken", "/ok"],
            "https://ex.com/broken": RenderError("https://ex.com/broken", "timeout"),
            "https://ex.com/ok": ["/broken", "/"],
        }
        fetcher = make_fetcher(site)
        crawler = Crawler([FrontierEntry("https://ex.com/")], fetcher, resources=["r1"])

        stats = await crawler.crawl()

        assert fetcher.fetched.count("https://ex.com/broken") == 1
        assert stats.pages_failed == 1
        assert stats.pages_crawled == 2
        assert "https://ex.com/broken" in crawler.frontier.seen

    @pytest.mark.asyncio
    async def test_failed_seed_ends_crawl(self, make_fetcher: Callable) -> None:
        """Test that a crawl whose only seed fails still terminates."""
        fetcher = make_fetcher({})
        crawler = Crawler([FrontierEntry("https://ex.com/")], fetcher, resources=["r1"])

        stats = await crawler.crawl()

        assert stats.pages_failed == 1
        assert stats.pages_crawled == 0

    @pytest.mark.asyncio
    async def test_depth_limit(self, make_fetcher: Callable) -> None:
        """Test that depth counts levels of children below the seed."""
        site = {
            "https://ex.com/": ["/1"],
            "https://ex.com/1": ["/2"],
            "https://ex.com/2": ["/3"],
            "https://ex.com/3": ["/4"],
        }
        fetcher = make_fetcher(site)
        seed = FrontierEntry("https://ex.com/", CrawlPolicy(depth_remaining=2))
        crawler = Crawler([seed], fetcher, resources=["r1"])

        await crawler.crawl()

        assert fetcher.fetched == ["https://ex.com/", "https://ex.com/1", "https://ex.com/2"]

    @pytest.mark.asyncio
    async def test_depth_zero_fetches_seed_only(self, make_fetcher: Callable) -> None:
        """Test that a depth 0 seed is fetched without its children."""
        fetcher = make_fetcher(SITE)
        seed = FrontierEntry("https://ex.com/", CrawlPolicy(depth_remaining=0))
        crawler = Crawler([seed], fetcher, resources=["r1"])

        stats = await crawler.crawl()

        assert fetcher.fetched == ["https://ex.com/"]
        assert stats.links_admitted == 0

    @pytest.mark.asyncio
    async def test_references_only(self, make_fetcher: Callable) -> None:
        """Test that the last level is reported instead of fetched."""
        site = {
            "https://ex.com/": ["/1"],
            "https://ex.com/1": ["/2"],
            "https://ex.com/2": ["/3"],
        }
        fetcher = make_fetcher(site)
        seed = FrontierEntry("https://ex.com/", CrawlPolicy(depth_remaining=2))
        crawler = Crawler([seed], fetcher, resources=["r1"], references_only=True)

        stats = await crawler.crawl()

        assert fetcher.fetched == ["https://ex.com/", "https://ex.com/1"]
        assert stats.links_referenced == 1
        assert not crawler.frontier.is_known("https://ex.com/2")

    @pytest.mark.asyncio
    async def test_allow_children_follows_other_host(self, make_fetcher: Callable) -> None:
        """Test that allowed cross-host children are fetched but not expanded."""
        site = {
            "https://ex.com/": ["https://cdn.ex.org/lib.js", "https://other.com/"],
            "https://cdn.ex.org/lib.js": ["https://cdn.ex.org/more"],
        }
        fetcher = make_fetcher(site)
        policy = CrawlPolicy(
            allow_children=(re.compile(r"cdn\.ex\.org", re.IGNORECASE),),
            deny_expand=(re.compile(r"\.js$"),),
        )
        crawler = Crawler([FrontierEntry("https://ex.com/", policy)], fetcher, resources=["r1"])

        await crawler.crawl()

        assert fetcher.fetched == ["https://ex.com/", "https://cdn.ex.org/lib.js"]

    @pytest.mark.asyncio
    async def test_duplicate_seeds(self, make_fetcher: Callable) -> None:
        """Test that a repeated seed is fetched once."""
        fetcher = make_fetcher({"https://ex.com/": []})
        seeds = [FrontierEntry("https://ex.com/"), FrontierEntry("https://ex.com/")]
        crawler = Crawler(seeds, fetcher, resources=["r1"])

        stats = await crawler.crawl()

        assert fetcher.fetched == ["https://ex.com/"]
        assert stats.sites_queued == 1

    @pytest.mark.asyncio
    async def test_requires_resources(self, make_fetcher: Callable) -> None:
        """Test that a crawl without resources is refused."""
        crawler = Crawler([FrontierEntry("https://ex.com/")], make_fetcher({}))

        with pytest.raises(RuntimeError):
            await crawler.crawl()

    @pytest.mark.asyncio
    async def test_with_page_fetcher_sessions(self, make_session: Callable) -> None:
        """Test that fetches run on the registered sessions."""
        session = make_session("s1", {"https://ex.com/": ["/a"], "https://ex.com/a": []})

        class SessionFetcher:
            async def fetch(self, uri: str, resource: Any) -> FetchOutcome:
                page = await resource.load(uri)
                return FetchOutcome.rendered(uri, "text/html", page.document_uri, page.hrefs)

        crawler = Crawler([FrontierEntry("https://ex.com/")], SessionFetcher(), resources=[session])

        await crawler.crawl()

        assert session.loaded == ["https://ex.com/", "https://ex.com/a"]


class TestCrawlerStats:
    """Tests for CrawlerStats."""

    def test_to_dict(self) -> None:
        """Test statistics serialization."""
        stats = CrawlerStats(pages_crawled=3, pages_failed=1)

        data = stats.to_dict()

        assert data["pages_crawled"] == 3
        assert data["pages_failed"] == 1
        assert data["finished_at"] is None
        assert data["duration_seconds"] >= 0
