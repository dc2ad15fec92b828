"""
Prometheus metrics for webgrab.

Provides instrumentation for monitoring crawl progress.
"""

from prometheus_client import Counter, Gauge, start_http_server

# =============================================================================
# Fetch Metrics
# =============================================================================

FETCH_TOTAL = Counter(
    "webgrab_fetch_total",
    "Total number of fetch operations",
    ["status"],
)

# =============================================================================
# Frontier Metrics
# =============================================================================

LINKS_TOTAL = Counter(
    "webgrab_links_total",
    "Discovered references by admission outcome",
    ["outcome"],
)

QUEUE_SIZE = Gauge(
    "webgrab_queue_size",
    "Number of URIs waiting in the frontier queue",
)

# =============================================================================
# Scheduler Metrics
# =============================================================================

ACTIVE_TASKS = Gauge(
    "webgrab_active_tasks",
    "Number of tasks currently holding a resource",
)

POOL_SIZE = Gauge(
    "webgrab_pool_size",
    "Number of resources registered with the scheduler",
)


# =============================================================================
# Helper Functions
# =============================================================================


def record_fetch(status: str) -> None:
    """Record a finished fetch ("success" or "failure")."""
    FETCH_TOTAL.labels(status=status).inc()


def record_admission(
    admitted: int,
    duplicates: int,
    rejected: int,
    referenced: int,
    invalid: int = 0,
) -> None:
    """Record the admission outcome counts for one page."""
    for outcome, count in (
        ("admitted", admitted),
        ("duplicate", duplicates),
        ("rejected", rejected),
        ("referenced", referenced),
        ("invalid", invalid),
    ):
        if count:
            LINKS_TOTAL.labels(outcome=outcome).inc(count)


def update_scheduler_metrics(active: int, resources: int) -> None:
    """Update scheduler gauges."""
    ACTIVE_TASKS.set(active)
    POOL_SIZE.set(resources)


def update_queue_size(size: int) -> None:
    """Update the frontier queue gauge."""
    QUEUE_SIZE.set(size)


def serve_metrics(port: int) -> None:
    """Expose metrics over HTTP on the given port."""
    start_http_server(port)
