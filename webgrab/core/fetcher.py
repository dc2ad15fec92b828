"""
Page fetcher for webgrab.

Fetches one URI for the offline cache:
1. HEAD request to sniff the content type
2. Non-HTML content is downloaded with a plain GET
3. HTML is loaded in a browser session, which harvests the anchor hrefs
"""

import ssl
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from webgrab.exceptions import FetchError, HeadersError
from webgrab.models import FetchOutcome
from webgrab.utils.logging import CrawlerLogger

HTML_CONTENT_TYPES = ("text/html", "application/xhtml+xml")


class FetchCapability(Protocol):
    """Anything the crawl driver can use to fetch a URI with a pooled resource."""

    async def fetch(self, uri: str, resource: Any) -> FetchOutcome: ...


def is_html_content_type(content_type: str | None) -> bool:
    """Check if a Content-Type header names an HTML document."""
    if not content_type:
        return False
    return content_type.strip().lower().startswith(HTML_CONTENT_TYPES)


async def get_headers(client: httpx.AsyncClient, uri: str) -> httpx.Headers:
    """
    Get the HTTP headers for a URI with a HEAD request.

    Args:
        client: HTTP client.
        uri: The web resource to query.

    Returns:
        The response headers.

    Raises:
        HeadersError: If the request fails.
    """
    try:
        response = await client.head(uri, headers={"Connection": "keep-alive"})
    except httpx.HTTPError as e:
        raise HeadersError(uri, str(e)) from e
    return response.headers


@dataclass
class FetcherConfig:
    """Configuration for the page fetcher."""

    timeout_seconds: float = 30.0
    # True, False, or a path to a CA bundle
    verify: bool | str = True
    follow_redirects: bool = True


class PageFetcher:
    """
    Fetch capability backed by httpx and browser sessions.

    The resource passed to fetch() must provide ``async load(uri)``
    returning an object with ``document_uri`` and ``hrefs``.
    """

    def __init__(
        self,
        config: FetcherConfig | None = None,
        client: httpx.AsyncClient | None = None,
        logger: CrawlerLogger | None = None,
    ):
        """
        Initialize the fetcher.

        Args:
            config: Fetcher configuration.
            client: HTTP client to use (created from config if None).
            logger: Logger instance.
        """
        self.config = config or FetcherConfig()
        self.logger = logger or CrawlerLogger("fetcher")
        self._external_client = client is not None
        self._client = client

    async def start(self) -> None:
        """Initialize the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_seconds),
                follow_redirects=self.config.follow_redirects,
                verify=self._ssl_verify(),
            )

    def _ssl_verify(self) -> bool | ssl.SSLContext:
        """Build the TLS verification setting, loading a custom CA if configured."""
        if isinstance(self.config.verify, str):
            return ssl.create_default_context(cafile=self.config.verify)
        return self.config.verify

    async def stop(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._external_client:
            await self._client.aclose()
        if not self._external_client:
            self._client = None

    async def fetch(self, uri: str, resource: Any) -> FetchOutcome:
        """
        Fetch a URI for the cache.

        Args:
            uri: URI to fetch.
            resource: Browser session used to render HTML.

        Returns:
            FetchOutcome with the raw links of HTML pages.

        Raises:
            FetchError: If the URI could not be retrieved or rendered.
        """
        if self._client is None:
            await self.start()
        assert self._client is not None

        headers = await get_headers(self._client, uri)
        content_type = headers.get("content-type")

        # Don't ask the browser to download non-html
        if not is_html_content_type(content_type):
            self.logger.debug("Downloading non-html uri", uri=uri, content_type=content_type)
            await self._download(uri)
            return FetchOutcome.downloaded(uri, content_type)

        try:
            page = await resource.load(uri)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(uri, str(e)) from e

        return FetchOutcome.rendered(
            uri=uri,
            content_type=content_type,
            document_uri=page.document_uri,
            hrefs=page.hrefs,
        )

    async def _download(self, uri: str) -> None:
        """GET a URI so that it passes through the cache."""
        assert self._client is not None
        try:
            async with self._client.stream("GET", uri) as response:
                async for _ in response.aiter_bytes():
                    pass
        except httpx.HTTPError as e:
            raise FetchError(uri, str(e)) from e

    async def __aenter__(self) -> "PageFetcher":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        await self.stop()
