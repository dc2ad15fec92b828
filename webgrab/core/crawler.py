"""
Main crawl driver for webgrab.

Feeds frontier entries to the resource scheduler in batches and admits the
links each fetch discovers back into the frontier.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from webgrab.config import CrawlConfig
from webgrab.core.fetcher import FetchCapability, FetcherConfig, PageFetcher
from webgrab.core.frontier import Frontier
from webgrab.core.renderer import BrowserPool
from webgrab.core.scheduler import ResourceScheduler, TaskCallback
from webgrab.exceptions import InvalidReferenceError
from webgrab.models import FetchOutcome, FrontierEntry
from webgrab.utils.logging import CrawlerLogger
from webgrab.utils.url_utils import canonicalize
from webgrab.utils import metrics


@dataclass
class CrawlerStats:
    """Statistics for the crawl."""

    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: datetime | None = None
    sites_queued: int = 0
    pages_crawled: int = 0
    pages_failed: int = 0
    links_discovered: int = 0
    links_admitted: int = 0
    links_duplicate: int = 0
    links_rejected: int = 0
    links_referenced: int = 0
    invalid_references: int = 0
    batches: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": (
                (self.finished_at or datetime.utcnow()) - self.started_at
            ).total_seconds(),
            "sites_queued": self.sites_queued,
            "pages_crawled": self.pages_crawled,
            "pages_failed": self.pages_failed,
            "links_discovered": self.links_discovered,
            "links_admitted": self.links_admitted,
            "links_duplicate": self.links_duplicate,
            "links_rejected": self.links_rejected,
            "links_referenced": self.links_referenced,
            "invalid_references": self.invalid_references,
            "batches": self.batches,
        }


class Crawler:
    """
    Crawl driver.

    Each pass submits every entry currently queued in the frontier as one
    scheduler task, then waits for the scheduler to drain before looking at
    what those fetches admitted. The crawl ends after a pass with nothing to
    submit.
    """

    def __init__(
        self,
        seeds: Sequence[FrontierEntry],
        fetcher: FetchCapability,
        resources: Sequence[Any] = (),
        references_only: bool = False,
        scheduler: ResourceScheduler | None = None,
        logger: CrawlerLogger | None = None,
    ):
        """
        Initialize the crawler.

        Args:
            seeds: Normalized seed entries.
            fetcher: Fetch capability called with (uri, resource).
            resources: Resources to register with the scheduler.
            references_only: Report, rather than fetch, children whose
                remaining depth would reach zero.
            scheduler: Scheduler to use (created if None).
            logger: Logger instance.
        """
        self.seeds = list(seeds)
        self.fetcher = fetcher
        self.logger = logger or CrawlerLogger("crawler")
        self.frontier = Frontier(references_only=references_only, logger=self.logger)
        self.scheduler = scheduler or ResourceScheduler(logger=self.logger)
        for resource in resources:
            self.scheduler.add_resource(resource)

        self._stats = CrawlerStats()

    @property
    def stats(self) -> CrawlerStats:
        return self._stats

    async def crawl(self) -> CrawlerStats:
        """
        Run the crawl to completion.

        Returns:
            Crawl statistics.
        """
        if not self.scheduler.resource_count:
            raise RuntimeError("the scheduler has no resources to run fetches with")

        added = self.frontier.seed(self.seeds)
        self._stats.sites_queued += added
        self.logger.info("Added seed sites", count=added)

        while True:
            submitted = self._submit_batch()
            if not submitted:
                break

            await self.scheduler.drain()
            self._stats.batches += 1
            self.logger.drain_reached(batch=self._stats.batches, submitted=submitted)
            self.logger.crawl_progress(
                pages_crawled=self._stats.pages_crawled,
                pages_failed=self._stats.pages_failed,
                queue_size=self.frontier.queue_size,
                seen=len(self.frontier.seen),
            )

        self._stats.finished_at = datetime.utcnow()
        self.logger.crawl_summary(self._stats.to_dict())
        return self._stats

    def _submit_batch(self) -> int:
        """Submit every queued frontier entry to the scheduler."""
        submitted = 0
        entry = self.frontier.next()
        while entry is not None:
            self.logger.entry_dequeued(entry.uri, entry.policy.depth_remaining)
            self.scheduler.add_task(
                self._make_job(entry),
                TaskCallback(
                    on_success=lambda outcome, entry=entry: self._on_fetched(entry, outcome),
                    on_failure=lambda error, entry=entry: self._on_failed(entry, error),
                ),
            )
            submitted += 1
            entry = self.frontier.next()
        metrics.update_queue_size(self.frontier.queue_size)
        return submitted

    def _make_job(self, entry: FrontierEntry):
        """Build the scheduler job that fetches one entry."""

        async def job(resource: Any) -> FetchOutcome:
            self.frontier.mark_started(entry.uri)
            self.logger.fetch_start(entry.uri, resource=repr(resource))
            return await self.fetcher.fetch(entry.uri, resource)

        return job

    def _on_fetched(self, entry: FrontierEntry, outcome: FetchOutcome) -> None:
        """Admit the references of a fetched page."""
        self.frontier.mark_seen(entry.uri)
        self._stats.pages_crawled += 1
        metrics.record_fetch("success")
        self.logger.fetch_success(
            entry.uri,
            content_type=outcome.content_type,
            references=len(outcome.raw_links),
        )

        refs = []
        invalid = 0
        for link in outcome.raw_links:
            try:
                ref = canonicalize(link.href, link.base_uri)
            except InvalidReferenceError as e:
                invalid += 1
                self.logger.invalid_reference(e.href, e.base_uri, e.reason)
                continue
            if ref is not None:
                refs.append(ref)

        result = self.frontier.admit_discovered(entry, refs)

        self._stats.links_discovered += len(refs)
        self._stats.invalid_references += invalid
        self._stats.links_admitted += result.admitted
        self._stats.links_duplicate += result.duplicates
        self._stats.links_rejected += result.rejected
        self._stats.links_referenced += result.referenced
        self._stats.sites_queued += result.admitted
        metrics.record_admission(
            admitted=result.admitted,
            duplicates=result.duplicates,
            rejected=result.rejected,
            referenced=result.referenced,
            invalid=invalid,
        )
        self.logger.children_summary(
            entry.uri,
            admitted=result.admitted,
            duplicates=result.duplicates,
            rejected=result.rejected,
            referenced=result.referenced,
            queue_size=self.frontier.queue_size,
        )

    def _on_failed(self, entry: FrontierEntry, error: BaseException) -> None:
        """Record a failed fetch. The URI is not fetched again."""
        self.frontier.mark_seen(entry.uri)
        self._stats.pages_failed += 1
        metrics.record_fetch("failure")
        self.logger.fetch_error(
            entry.uri,
            error=str(error),
            error_type=type(error).__name__,
        )

    def get_stats(self) -> dict[str, Any]:
        """Get current crawl statistics."""
        return self._stats.to_dict()


async def run_crawl(config: CrawlConfig, logger: CrawlerLogger | None = None) -> CrawlerStats:
    """
    Run a crawl with browser sessions and an HTTP client built from config.

    The browsers are closed after the crawl, whether it succeeds or not.

    Args:
        config: Crawl configuration.
        logger: Logger instance.

    Returns:
        Crawl statistics.
    """
    logger = logger or CrawlerLogger("crawler")

    if config.metrics_port:
        metrics.serve_metrics(config.metrics_port)
        logger.info("Serving metrics", port=config.metrics_port)

    fetcher_config = FetcherConfig(
        timeout_seconds=config.request_timeout_seconds,
        verify=config.verify,
    )
    async with BrowserPool(config.render, logger=logger) as pool:
        async with PageFetcher(fetcher_config, logger=logger) as fetcher:
            crawler = Crawler(
                seeds=config.seeds,
                fetcher=fetcher,
                resources=pool.sessions,
                references_only=config.references_only,
                logger=logger,
            )
            return await crawler.crawl()
