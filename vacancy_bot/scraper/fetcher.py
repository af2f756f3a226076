"""Vacancy Bot — Page Fetcher.

Loads job-board pages through a real browser, since both boards render
their listings with JavaScript. The pipeline only depends on the
PageFetcher protocol; BrowserFetcher is the Playwright implementation
and tests substitute in-memory fakes.

Lifetime: one fetcher per pipeline run, used as an async context manager
so the browser is closed on every exit path.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType
from typing import Optional, Protocol

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from vacancy_bot.config import BrowserConfig
from vacancy_bot.utils.logger import get_logger

logger = get_logger(__name__)

# First <h1> on the page, else the document title
_TITLE_SCRIPT = """() => {
    const h1 = document.querySelector('h1');
    const text = h1 ? h1.innerText.trim() : '';
    return text || document.title || '';
}"""


class NavigationError(Exception):
    """A page could not be loaded (timeout, DNS, refused connection).

    Attributes:
        url: The URL that failed.
    """

    def __init__(self, url: str, message: str) -> None:
        super().__init__(f"{url}: {message}")
        self.url = url


@dataclass(frozen=True)
class SearchPage:
    """Rendered search results page."""

    url: str
    html: str


@dataclass(frozen=True)
class PageContent:
    """Visible content of one vacancy detail page.

    Attributes:
        url: Page URL as requested.
        title: First heading, or the document title.
        body_text: All visible text of the page body.
    """

    url: str
    title: str
    body_text: str


class PageFetcher(Protocol):
    """What the scrape pipeline needs from a page loader."""

    async def __aenter__(self) -> "PageFetcher": ...

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None: ...

    async def open_search(self, url: str) -> SearchPage: ...

    async def fetch(self, url: str) -> PageContent: ...

    async def capture(self, path: Path) -> Optional[Path]: ...


class BrowserFetcher:
    """Playwright Chromium fetcher.

    The search page stays open in the main tab (so it can be captured
    for diagnostics); every detail page gets its own tab, closed right
    after reading.

    Usage::

        async with BrowserFetcher(config) as fetcher:
            search = await fetcher.open_search(url)
            page = await fetcher.fetch(link)
    """

    def __init__(self, config: BrowserConfig) -> None:
        self._config = config
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def context(self) -> BrowserContext:
        if self._context is None:
            raise RuntimeError("BrowserFetcher not entered — use 'async with'")
        return self._context

    async def __aenter__(self) -> "BrowserFetcher":
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self._config.headless,
            )
            self._context = await self._browser.new_context(
                user_agent=self._config.user_agent,
                viewport={
                    "width": self._config.viewport_width,
                    "height": self._config.viewport_height,
                },
            )
            self._page = await self._context.new_page()
        except BaseException:
            await self.close()
            raise
        logger.debug("Browser started (headless=%s)", self._config.headless)
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close context, browser and driver. Safe to call twice."""
        context, self._context = self._context, None
        browser, self._browser = self._browser, None
        playwright, self._playwright = self._playwright, None
        self._page = None

        try:
            if context is not None:
                await context.close()
            if browser is not None:
                await browser.close()
        except PlaywrightError as e:
            logger.warning("Error while closing browser: %s", e)
        finally:
            if playwright is not None:
                await playwright.stop()
                logger.debug("Browser closed")

    async def _goto(self, page: Page, url: str, timeout_ms: int) -> None:
        try:
            await page.goto(url, timeout=timeout_ms, wait_until=self._config.wait_until)
        except PlaywrightTimeoutError as e:
            raise NavigationError(url, f"timed out after {timeout_ms} ms") from e
        except PlaywrightError as e:
            raise NavigationError(url, str(e).splitlines()[0] if str(e) else "navigation failed") from e

    async def open_search(self, url: str) -> SearchPage:
        """Load the search page in the main tab and wait for it to settle.

        Raises:
            NavigationError: If the page cannot be loaded.
        """
        if self._page is None:
            raise RuntimeError("BrowserFetcher not entered — use 'async with'")

        logger.info("Opening search page: %s", url)
        await self._goto(self._page, url, self._config.search_timeout_ms)
        await asyncio.sleep(self._config.search_settle_seconds)
        return SearchPage(url=self._page.url or url, html=await self._page.content())

    async def fetch(self, url: str) -> PageContent:
        """Load a detail page in a new tab and read its visible text.

        Raises:
            NavigationError: If the page cannot be loaded.
        """
        page = await self.context.new_page()
        try:
            await self._goto(page, url, self._config.detail_timeout_ms)
            await asyncio.sleep(self._config.detail_settle_seconds)
            title = await page.evaluate(_TITLE_SCRIPT)
            body_text = await page.inner_text("body")
        finally:
            await page.close()

        return PageContent(url=url, title=str(title or "").strip(), body_text=body_text or "")

    async def capture(self, path: Path) -> Optional[Path]:
        """Screenshot the search tab for diagnostics.

        Returns:
            The written path, or None if there is nothing to capture or
            the screenshot failed.
        """
        if self._page is None:
            return None
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            await self._page.screenshot(path=str(path))
        except PlaywrightError as e:
            logger.warning("Screenshot failed: %s", e)
            return None
        logger.info("Diagnostic screenshot saved to %s", path)
        return path
