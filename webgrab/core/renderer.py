"""
Browser sessions for webgrab.

Uses Playwright to load pages in a real browser, so the caching proxy in
front of it sees every request the page makes, and to harvest anchor hrefs.

Features:
- Firefox or Chromium, optionally on a persistent Firefox profile
- Certificate errors ignored (the caching proxy re-signs TLS)
- Optional delay after load for late-arriving content
- A fixed pool of sessions, each used by one page load at a time
"""

import asyncio
import shutil
import tempfile
from dataclasses import dataclass
from typing import Any

from playwright.async_api import async_playwright

from webgrab.config import RenderConfig
from webgrab.exceptions import RenderError
from webgrab.utils.logging import CrawlerLogger

# Runs in the page; returns the raw attribute, not the resolved .href property
HARVEST_HREFS_SCRIPT = "elements => elements.map(element => element.getAttribute('href'))"

# Firefox lock files, left behind by a running browser, that block a profile copy
PROFILE_LOCK_FILES = ("lock", ".parentlock", "parent.lock")


@dataclass
class RenderedPage:
    """What a session harvested from a loaded page."""

    uri: str
    document_uri: str
    hrefs: list[str | None]


class BrowserSession:
    """
    One browser page, reused for successive loads.

    A session must only be used by one load at a time; the resource
    scheduler guarantees this.
    """

    def __init__(
        self,
        name: str,
        context: Any,
        page: Any,
        config: RenderConfig,
        browser: Any = None,
        logger: CrawlerLogger | None = None,
    ):
        self.name = name
        self.config = config
        self.logger = logger or CrawlerLogger("browser_session")
        self._browser = browser
        self._context = context
        self._page = page

    def __repr__(self) -> str:
        return f"BrowserSession({self.name!r})"

    async def load(self, uri: str) -> RenderedPage:
        """
        Load a page and collect the raw href of every anchor.

        Args:
            uri: URI to load.

        Returns:
            RenderedPage with the document URI and raw hrefs.

        Raises:
            RenderError: If navigation or harvesting fails.
        """
        cfg = self.config
        self.logger.debug("Loading page", uri=uri, session=self.name)
        try:
            await self._page.goto(
                uri,
                wait_until=cfg.wait_until.value,
                timeout=cfg.timeout * 1000,  # Convert to ms
            )

            # Some content arrives after the initial load
            if cfg.delay:
                await asyncio.sleep(cfg.delay)

            document_uri = await self._page.evaluate("() => document.documentURI")
            hrefs = await self._page.eval_on_selector_all("a", HARVEST_HREFS_SCRIPT)
        except Exception as e:
            raise RenderError(uri, str(e)) from e

        self.logger.debug("Page loaded", uri=uri, references=len(hrefs), session=self.name)
        return RenderedPage(uri=uri, document_uri=document_uri, hrefs=list(hrefs))

    async def close(self) -> None:
        """Close the session's page, context and browser."""
        try:
            await self._context.close()
        finally:
            if self._browser is not None:
                await self._browser.close()


class BrowserPool:
    """
    Launches a fixed number of browser sessions.

    The sessions are handed to the resource scheduler as resources and
    closed once the crawl has finished.
    """

    def __init__(
        self,
        config: RenderConfig | None = None,
        logger: CrawlerLogger | None = None,
    ):
        """
        Initialize the browser pool.

        Args:
            config: Render configuration.
            logger: Logger instance.
        """
        self.config = config or RenderConfig()
        self.logger = logger or CrawlerLogger("browser_pool")

        self._playwright = None
        self._sessions: list[BrowserSession] = []
        self._profile_copies: list[str] = []

    @property
    def sessions(self) -> list[BrowserSession]:
        return list(self._sessions)

    async def start(self) -> list[BrowserSession]:
        """Start Playwright and launch every session."""
        if self._sessions:
            return self.sessions

        self._playwright = await async_playwright().start()
        try:
            for index in range(self.config.browser_count):
                self._sessions.append(await self._launch(f"{self.config.browser.value}-{index}"))
        except Exception:
            await self.close()
            raise

        self.logger.info(
            "Browser pool started",
            browser=self.config.browser.value,
            sessions=len(self._sessions),
            headless=self.config.headless,
        )
        return self.sessions

    async def _launch(self, name: str) -> BrowserSession:
        """Launch one session."""
        cfg = self.config
        browser_type = getattr(self._playwright, cfg.browser.value)

        if cfg.profile:
            # A profile is locked while in use, so every session runs on its own copy
            profile_dir = await asyncio.to_thread(self._copy_profile, name)
            context = await browser_type.launch_persistent_context(
                profile_dir,
                headless=cfg.headless,
                ignore_https_errors=True,
            )
            browser = None
        else:
            browser = await browser_type.launch(headless=cfg.headless)
            context = await browser.new_context(ignore_https_errors=True)

        page = await context.new_page()
        return BrowserSession(
            name=name,
            context=context,
            page=page,
            config=cfg,
            browser=browser,
            logger=self.logger,
        )

    def _copy_profile(self, name: str) -> str:
        """Copy the configured profile into a fresh temporary directory."""
        target = tempfile.mkdtemp(prefix=f"webgrab-{name}-")
        self._profile_copies.append(target)
        shutil.copytree(
            self.config.profile,
            target,
            ignore=shutil.ignore_patterns(*PROFILE_LOCK_FILES),
            dirs_exist_ok=True,
        )
        return target

    async def close(self) -> None:
        """Close every session and stop Playwright."""
        sessions, self._sessions = self._sessions, []
        for session in sessions:
            try:
                await session.close()
            except Exception as e:
                self.logger.warning("Failed to close browser session", session=session.name, error=str(e))

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        copies, self._profile_copies = self._profile_copies, []
        for copy in copies:
            shutil.rmtree(copy, ignore_errors=True)

        self.logger.info("Browser pool closed")

    async def __aenter__(self) -> "BrowserPool":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
