"""Headless browser fetcher for JavaScript-rendered listing pages."""

import asyncio
import logging
import time
from typing import Optional

from playwright.async_api import (
    Browser,
    Error as PlaywrightError,
    Route,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from listing_ingest import metrics
from listing_ingest.config import settings
from listing_ingest.errors import FetchError
from listing_ingest.ingest.base import BaseFetcher, RawDocument
from listing_ingest.ingest.sources import SourceConfig

logger = logging.getLogger(__name__)

# Resource types aborted before download; listing markup does not need them
BLOCKED_RESOURCE_TYPES = frozenset({"image", "font", "stylesheet", "media"})

BROWSER_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
]


class HeadlessFetcher(BaseFetcher):
    """Render listing pages in Chromium and return the settled DOM."""

    strategy = "rendered"

    def __init__(
        self,
        timeout: Optional[float] = None,
        settle_seconds: Optional[float] = None,
        user_agent: Optional[str] = None,
    ):
        """
        Initialize headless browser fetcher.

        Args:
            timeout: Deadline in seconds for one fetch call across all candidate URLs
            settle_seconds: Minimum wait after navigation for client-side rendering
            user_agent: User-Agent for the browser context
        """
        self.timeout = timeout or settings.scraper_timeout_seconds
        self.settle_seconds = (
            settle_seconds if settle_seconds is not None else settings.render_settle_seconds
        )
        self.user_agent = user_agent or settings.scraper_user_agent

        self._playwright = None
        self._browser: Optional[Browser] = None
        self._init_lock = asyncio.Lock()

    async def _ensure_browser(self) -> Browser:
        async with self._init_lock:
            if self._playwright is None:
                self._playwright = await async_playwright().start()
            if self._browser is not None and not self._browser.is_connected():
                logger.warning("Browser disconnected, relaunching")
                self._browser = None
            if self._browser is None:
                self._browser = await self._playwright.chromium.launch(
                    headless=True,
                    args=BROWSER_ARGS,
                )
            return self._browser

    async def close(self):
        """Close browser and cleanup."""
        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    @staticmethod
    async def _block_heavy_resources(route: Route) -> None:
        if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
            await route.abort()
        else:
            await route.continue_()

    async def fetch(self, source: SourceConfig, city: str) -> RawDocument:
        """
        Render the first candidate search URL that loads.

        Each call gets its own browser context so cookies and storage never
        leak between fetches. ``timeout`` bounds the whole call, shared by all
        candidate URLs.

        Raises:
            FetchError: Browser or context failure, deadline exceeded, or every
                candidate URL failed
        """
        deadline = time.monotonic() + self.timeout
        try:
            browser = await self._ensure_browser()
        except PlaywrightError as e:
            metrics.fetch_attempts_total.labels(source=source.id, status="error").inc()
            raise FetchError(source.id, None, f"browser launch failed: {e}") from e

        settle_ms = int(self.settle_seconds * 1000)
        urls = source.search_urls_for(city)
        last_error: Optional[FetchError] = None

        try:
            context = await browser.new_context(user_agent=self.user_agent)
        except PlaywrightError as e:
            # A crashed browser is relaunched on the next attempt
            self._browser = None
            metrics.fetch_attempts_total.labels(source=source.id, status="error").inc()
            raise FetchError(source.id, None, f"browser context failed: {e}") from e

        try:
            try:
                await context.route("**/*", self._block_heavy_resources)
                page = await context.new_page()
            except PlaywrightError as e:
                self._browser = None
                metrics.fetch_attempts_total.labels(source=source.id, status="error").inc()
                raise FetchError(source.id, None, f"page setup failed: {e}") from e

            for url in urls:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    last_error = FetchError(source.id, url, f"timed out after {self.timeout}s")
                    metrics.fetch_attempts_total.labels(source=source.id, status="error").inc()
                    break

                started = time.monotonic()
                logger.info(f"[{source.name}] Rendering {url}")
                try:
                    await page.goto(
                        url, wait_until="domcontentloaded", timeout=max(1, int(remaining * 1000))
                    )
                    await page.wait_for_timeout(settle_ms)
                    html = await page.content()
                except PlaywrightTimeoutError as e:
                    last_error = FetchError(source.id, url, f"navigation timed out: {e}")
                except PlaywrightError as e:
                    last_error = FetchError(source.id, url, str(e))
                else:
                    metrics.fetch_attempts_total.labels(source=source.id, status="success").inc()
                    metrics.fetch_duration_seconds.labels(source=source.id).observe(
                        time.monotonic() - started
                    )
                    logger.info(f"[{source.name}] Rendered {len(html)} chars from {url}")
                    return RawDocument(
                        source_id=source.id,
                        url=url,
                        html=html,
                        strategy=self.strategy,
                    )

                metrics.fetch_attempts_total.labels(source=source.id, status="error").inc()
                logger.warning(f"[{source.name}] {last_error}")
        finally:
            try:
                await context.close()
            except PlaywrightError as e:
                logger.debug(f"[{source.name}] Context close failed: {e}")

        raise last_error or FetchError(source.id, None, "no candidate URLs configured")
