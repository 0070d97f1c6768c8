"""
Document fetchers for the scrapers.

Two ways of getting a page:
- HttpFetcher: plain async GET with a desktop browser identity (httpx).
  Good enough for server-rendered pages (Cricbuzz, Wikipedia).
- BrowserFetcher: headless Chromium via Playwright with stealth applied,
  for pages that only render their content from scripts (CricTracker).

Both raise FetchError for anything that keeps them from returning a
document: non-2xx status, timeouts, DNS failures, browser launch problems.
Neither retries; the orchestrator moves on to the next source instead.
"""

import asyncio
import logging
from typing import Optional

import httpx
from playwright.async_api import Browser, BrowserContext, Error as PlaywrightError
from playwright.async_api import Page, async_playwright
from playwright_stealth import Stealth

from cricpulse.config import settings
from cricpulse.errors import FetchError

logger = logging.getLogger(__name__)

# Stealth configuration to avoid bot detection (Cloudflare, etc.)
_stealth = Stealth()


def browser_headers(user_agent: Optional[str] = None) -> dict[str, str]:
    """Request headers resembling a desktop Chrome navigation."""
    return {
        "User-Agent": user_agent or settings.scrape_user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    }


class HttpFetcher:
    """
    Plain HTTP fetcher.

    Args:
        client: Optional pre-built httpx.AsyncClient. Tests pass one with an
            httpx.MockTransport; otherwise a client is created per fetch.
        timeout: Request timeout in seconds (default settings.scrape_http_timeout)
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
    ):
        self._client = client
        self.timeout = timeout if timeout is not None else settings.scrape_http_timeout

    async def fetch(self, url: str) -> str:
        """
        GET `url` and return the response body.

        Raises:
            FetchError: On non-2xx status or any transport failure
        """
        if self._client is not None:
            return await self._get(self._client, url)

        async with httpx.AsyncClient(
            headers=browser_headers(),
            timeout=self.timeout,
            follow_redirects=True,
        ) as client:
            return await self._get(client, url)

    async def _get(self, client: httpx.AsyncClient, url: str) -> str:
        try:
            response = await client.get(url, headers=browser_headers())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise FetchError(url, f"HTTP {status}", status_code=status) from e
        except httpx.TimeoutException as e:
            raise FetchError(url, "timed out") from e
        except httpx.HTTPError as e:
            raise FetchError(url, f"{type(e).__name__}: {e}") from e

        logger.debug(f"Fetched {url} ({len(response.text)} chars)")
        return response.text


class BrowserFetcher:
    """
    Headless Chromium fetcher for script-rendered pages.

    Use as an async context manager so the browser is always closed:

        async with BrowserFetcher() as browser:
            html = await browser.fetch(url, wait_for_selector="article")
    """

    def __init__(self, headless: Optional[bool] = None):
        """
        Args:
            headless: Whether to run the browser headless.
                      If None, uses settings.scrape_headless
        """
        self.headless = headless if headless is not None else settings.scrape_headless
        self.timeout = settings.scrape_timeout
        self.render_wait = settings.scrape_render_wait

        # Playwright objects (initialized in __aenter__)
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def __aenter__(self) -> "BrowserFetcher":
        """
        Start Playwright and a Chromium context with a realistic fingerprint.

        Raises:
            FetchError: If the browser cannot be launched
        """
        try:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=self.headless)
            self._context = await self._browser.new_context(
                user_agent=settings.scrape_user_agent,
                viewport={"width": 1920, "height": 1080},
                locale="en-US",
            )
            self._context.set_default_timeout(self.timeout)
        except PlaywrightError as e:
            await self._close()
            raise FetchError("chromium://launch", f"browser unavailable: {e}") from e
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self._close()

    async def _close(self) -> None:
        if self._context:
            await self._context.close()
        if self._browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()
        self._context = self._browser = self._playwright = None

    async def new_page(self) -> Page:
        """Create a new page with stealth applied."""
        if not self._context:
            raise RuntimeError("Browser not started. Use 'async with' context manager.")

        page = await self._context.new_page()
        await _stealth.apply_stealth_async(page)
        return page

    async def fetch(self, url: str, wait_for_selector: Optional[str] = None) -> str:
        """
        Load `url`, let its scripts render, and return the resulting HTML.

        Args:
            url: Page to load
            wait_for_selector: Optional CSS selector to wait for. A selector
                that never appears is not an error; whatever rendered is returned.

        Raises:
            FetchError: If the page cannot be opened, navigated or read
        """
        try:
            page = await self.new_page()
        except PlaywrightError as e:
            raise FetchError(url, f"page unavailable: {e}") from e

        try:
            try:
                await page.goto(url, wait_until="domcontentloaded", timeout=self.timeout)
            except PlaywrightError as e:
                raise FetchError(url, f"navigation failed: {e}") from e

            if wait_for_selector:
                try:
                    await page.wait_for_selector(wait_for_selector, timeout=self.timeout)
                except PlaywrightError:
                    logger.info(f"Selector '{wait_for_selector}' not found on {url}")

            await asyncio.sleep(self.render_wait)
            try:
                return await page.content()
            except PlaywrightError as e:
                raise FetchError(url, f"content unavailable: {e}") from e
        finally:
            try:
                await page.close()
            except PlaywrightError as e:
                logger.debug(f"Page close failed for {url}: {e}")
