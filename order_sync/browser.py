#!/usr/bin/env python3
"""
Browser session built on Playwright.

The listing page lives in one long-lived tab; every invoice is opened in its
own tab, parsed with BeautifulSoup and closed again.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from bs4 import BeautifulSoup
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page, TimeoutError as PlaywrightTimeoutError, async_playwright

from .errors import ExtractionError

logger = logging.getLogger(__name__)

NAVIGATION_TIMEOUT_MS = 30000


class BrowserSession:
    """Persistent-profile Chromium session used as an async context manager"""

    def __init__(self, profile_dir: Union[str, Path], headless: bool = False):
        """
        Args:
            profile_dir: Browser profile directory (keeps the retail site login)
            headless: Run without a visible window
        """
        self.profile_dir = Path(profile_dir)
        self.headless = headless
        self._playwright = None
        self._context = None
        self._listing: Optional[Page] = None

    async def __aenter__(self) -> 'BrowserSession':
        self.profile_dir.mkdir(parents=True, exist_ok=True)
        self._playwright = await async_playwright().start()
        self._context = await self._playwright.chromium.launch_persistent_context(
            str(self.profile_dir), headless=self.headless
        )
        pages = self._context.pages
        self._listing = pages[0] if pages else await self._context.new_page()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        try:
            if self._context is not None:
                await self._context.close()
        finally:
            if self._playwright is not None:
                await self._playwright.stop()

    @property
    def current_url(self) -> str:
        return self._listing.url

    async def goto(self, url: str):
        """Load a listing page in the main tab"""
        logger.info(f"Opening {url}")
        await self._listing.goto(url, wait_until='load')

    async def current_document(self) -> BeautifulSoup:
        """Parse the listing page currently shown in the main tab"""
        return BeautifulSoup(await self._listing.content(), 'html.parser')

    async def open(self, url: str) -> Page:
        """
        Open a URL in a new tab and wait for its load event

        No navigation timeout is applied here; callers bound the wait.

        Raises:
            ExtractionError: if no tab can be opened or the page cannot be loaded
        """
        try:
            page = await self._context.new_page()
        except PlaywrightError as e:
            raise ExtractionError(f"Could not open a tab for {url}: {e}") from e
        try:
            await page.goto(url, wait_until='load', timeout=0)
        except PlaywrightError as e:
            await page.close()
            raise ExtractionError(f"Could not load {url}: {e}") from e
        except BaseException:
            await page.close()
            raise
        return page

    async def close(self, page: Page):
        if page.is_closed():
            return
        try:
            await page.close()
        except PlaywrightError as e:
            logger.warning(f"Could not close tab {page.url}: {e}")

    @asynccontextmanager
    async def opened(self, url: str) -> AsyncIterator[BeautifulSoup]:
        """Parsed document of a URL; the tab is closed on every exit path"""
        page = await self.open(url)
        try:
            try:
                content = await page.content()
            except PlaywrightError as e:
                raise ExtractionError(f"Could not read {url}: {e}") from e
            yield BeautifulSoup(content, 'html.parser')
        finally:
            await self.close(page)

    async def click(self, selector: str) -> bool:
        """
        Click the first element matching selector in the listing tab and wait
        for the resulting navigation

        Returns:
            False if nothing matched or the click did not navigate
        """
        element = await self._listing.query_selector(selector)
        if element is None:
            logger.debug(f"Nothing to click for {selector!r}")
            return False
        try:
            async with self._listing.expect_navigation(wait_until='load', timeout=NAVIGATION_TIMEOUT_MS):
                await element.click()
        except PlaywrightTimeoutError:
            logger.warning(f"Clicking {selector!r} did not load a new page")
            return False
        return True
