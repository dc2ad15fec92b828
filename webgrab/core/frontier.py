"""
Crawl frontier for webgrab.

Tracks which URIs are queued, being fetched, and done, and admits newly
discovered links according to the policy of the page they were found on.
"""

from collections import deque
from collections.abc import Iterable

from webgrab.core.policy import admit_child
from webgrab.models import AdmissionResult, FrontierEntry
from webgrab.utils.logging import CrawlerLogger
from webgrab.utils.url_utils import get_host


class Frontier:
    """
    FIFO crawl frontier with deduplication.

    A URI moves pending -> in_flight -> seen and is queued at most once for
    the lifetime of the frontier. The three sets are always disjoint.

    The frontier is not thread-safe; it is meant to be mutated only from
    the event loop running the crawl.
    """

    def __init__(
        self,
        references_only: bool = False,
        logger: CrawlerLogger | None = None,
    ):
        """
        Initialize the frontier.

        Args:
            references_only: Report, rather than queue, children whose
                remaining depth would reach zero.
            logger: Logger instance.
        """
        self.references_only = references_only
        self.logger = logger or CrawlerLogger("frontier")

        self._seen: set[str] = set()
        self._pending: set[str] = set()
        self._in_flight: set[str] = set()
        self._queue: deque[FrontierEntry] = deque()

    @property
    def seen(self) -> frozenset[str]:
        return frozenset(self._seen)

    @property
    def pending(self) -> frozenset[str]:
        return frozenset(self._pending)

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    def __len__(self) -> int:
        return len(self._queue)

    def has_pending(self) -> bool:
        """Check if there are entries waiting in the queue."""
        return bool(self._queue)

    def is_known(self, uri: str) -> bool:
        """Check if a URI was ever queued."""
        return uri in self._seen or uri in self._pending or uri in self._in_flight

    def _enqueue(self, entry: FrontierEntry) -> None:
        self._pending.add(entry.uri)
        self._queue.append(entry)

    def seed(self, entries: Iterable[FrontierEntry]) -> int:
        """
        Queue the starting entries.

        Args:
            entries: Seed entries with their policies.

        Returns:
            Number of entries queued (URIs already known are skipped).
        """
        added = 0
        for entry in entries:
            if self.is_known(entry.uri):
                continue
            self._enqueue(entry)
            added += 1
        return added

    def next(self) -> FrontierEntry | None:
        """
        Pop the oldest queued entry.

        The URI stays pending until mark_started is called.

        Returns:
            The entry, or None if the queue is empty.
        """
        if not self._queue:
            return None
        return self._queue.popleft()

    def mark_started(self, uri: str) -> None:
        """Record that the fetch of a dequeued URI has started."""
        self._pending.discard(uri)
        self._in_flight.add(uri)

    def mark_seen(self, uri: str) -> None:
        """Record that the fetch of a URI has completed, successfully or not."""
        self._pending.discard(uri)
        self._in_flight.discard(uri)
        self._seen.add(uri)

    def admit_discovered(
        self,
        parent: FrontierEntry,
        refs: Iterable[str],
    ) -> AdmissionResult:
        """
        Admit canonical references discovered on a fetched page.

        Args:
            parent: Entry of the page the references were found on.
            refs: Canonical URIs of the references.

        Returns:
            Counts of admitted, duplicate, rejected and referenced URIs.
        """
        result = AdmissionResult()
        parent_host = get_host(parent.uri)

        for ref in dict.fromkeys(refs):
            if self.is_known(ref):
                result.duplicates += 1
                continue

            decision = admit_child(
                parent.policy,
                parent_host,
                ref,
                references_only=self.references_only,
            )
            if decision is None:
                result.rejected += 1
                self.logger.child_rejected(ref, parent.uri)
            elif decision.enqueue:
                self._enqueue(FrontierEntry(uri=ref, policy=decision.policy))
                result.admitted += 1
                self.logger.child_admitted(
                    ref, parent.uri, depth_remaining=decision.policy.depth_remaining
                )
            else:
                result.referenced += 1
                self.logger.child_referenced(ref, parent.uri)

        return result
