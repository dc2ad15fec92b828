"""
Pytest configuration and shared fixtures.
"""

import asyncio
import re
from collections.abc import Callable
from typing import Any

import pytest

from webgrab.core.renderer import RenderedPage
from webgrab.exceptions import FetchError
from webgrab.models import CrawlPolicy, FetchOutcome, FrontierEntry


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


async def wait_for(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll the event loop until predicate() is true or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not reached before timeout")
        await asyncio.sleep(0.001)


# =============================================================================
# Fake Resources
# =============================================================================


class FakeSession:
    """Browser session stand-in that serves canned pages."""

    def __init__(self, name: str = "session", pages: dict[str, list[str | None]] | None = None):
        self.name = name
        self.pages = pages or {}
        self.loaded: list[str] = []

    def __repr__(self) -> str:
        return f"FakeSession({self.name!r})"

    async def load(self, uri: str) -> RenderedPage:
        self.loaded.append(uri)
        await asyncio.sleep(0)
        return RenderedPage(uri=uri, document_uri=uri, hrefs=list(self.pages.get(uri, [])))


class FakeFetcher:
    """
    Fetch capability serving a fixed site map.

    ``site`` maps a URI to the raw hrefs found on it, or to an exception to
    raise. URIs missing from the map fail with FetchError.
    """

    def __init__(self, site: dict[str, list[str | None] | Exception]):
        self.site = site
        self.fetched: list[str] = []
        self.resources: list[Any] = []
        self.concurrent = 0
        self.max_concurrent = 0

    async def fetch(self, uri: str, resource: Any) -> FetchOutcome:
        self.fetched.append(uri)
        self.resources.append(resource)
        self.concurrent += 1
        self.max_concurrent = max(self.max_concurrent, self.concurrent)
        try:
            await asyncio.sleep(0)
            page = self.site.get(uri)
            if page is None:
                raise FetchError(uri, "not found", status_code=404)
            if isinstance(page, Exception):
                raise page
            return FetchOutcome.rendered(uri, "text/html", document_uri=uri, hrefs=page)
        finally:
            self.concurrent -= 1


@pytest.fixture
def fake_session() -> FakeSession:
    """A single fake browser session."""
    return FakeSession()


# =============================================================================
# Sample Policies
# =============================================================================


def patterns(*sources: str) -> tuple[re.Pattern, ...]:
    """Compile pattern sources the way the site list does."""
    return tuple(re.compile(source, re.IGNORECASE) for source in sources)


@pytest.fixture
def default_policy() -> CrawlPolicy:
    """Policy used for plain string seeds."""
    return CrawlPolicy()


@pytest.fixture
def example_entry(default_policy: CrawlPolicy) -> FrontierEntry:
    """Seed entry for https://ex.com/ with the default policy."""
    return FrontierEntry(uri="https://ex.com/", policy=default_policy)


@pytest.fixture
def make_fetcher() -> Callable[..., FakeFetcher]:
    """Factory for fake fetchers over a site map."""
    return FakeFetcher


@pytest.fixture
def make_session() -> Callable[..., FakeSession]:
    """Factory for fake browser sessions."""
    return FakeSession


@pytest.fixture
def compile_patterns() -> Callable[..., tuple[re.Pattern, ...]]:
    """Compile case-insensitive patterns."""
    return patterns


@pytest.fixture
def until() -> Callable[..., Any]:
    """Await a condition on the running event loop."""
    return wait_for
