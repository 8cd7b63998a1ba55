"""Document fetching with a patchright browser.

One browser context per session; each ``fetch`` opens and closes its own page.
"""

import logging
from types import TracebackType
from typing import Protocol

from patchright.async_api import Browser, BrowserContext, Playwright, async_playwright
from patchright.async_api import Error as PlaywrightError
from pydantic import BaseModel, ConfigDict

from jobingest.core.config import BrowserConfig

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """The document could not be retrieved."""


class FetchedDocument(BaseModel):
    """Raw page HTML as served for ``url`` (after redirects)."""

    model_config = ConfigDict(frozen=True)

    url: str
    html: str
    content_type: str = "text/html"


class DocumentFetcher(Protocol):
    async def fetch(self, url: str) -> FetchedDocument: ...


class BrowserFetcher:
    """Async context manager that owns one patchright browser + context.

    Usage::

        async with BrowserFetcher(config) as fetcher:
            doc = await fetcher.fetch("https://...")
    """

    def __init__(self, config: BrowserConfig) -> None:
        self._config = config
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None

    @property
    def context(self) -> BrowserContext:
        """The browser context for this session. Raises if not entered."""
        if self._context is None:
            msg = "BrowserFetcher not entered, use 'async with'"
            raise RuntimeError(msg)
        return self._context

    async def __aenter__(self) -> "BrowserFetcher":
        pw = await async_playwright().start()
        self._playwright = pw
        self._browser = await pw.chromium.launch(headless=self._config.headless)

        if self._config.user_agent:
            self._context = await self._browser.new_context(user_agent=self._config.user_agent)
        else:
            self._context = await self._browser.new_context()
        self._context.set_default_timeout(self._config.timeout_ms)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._context is not None:
            await self._context.close()
        if self._browser is not None:
            await self._browser.close()
        if self._playwright is not None:
            await self._playwright.stop()

    async def fetch(self, url: str) -> FetchedDocument:
        """Load ``url`` and return its rendered HTML.

        Raises:
            FetchError: On navigation failure, timeout, or an HTTP error status.
        """
        page = await self.context.new_page()
        try:
            logger.info("Fetching %s", url)
            response = await page.goto(url, wait_until="domcontentloaded")
            if response is not None and response.status >= 400:
                msg = f"HTTP {response.status} fetching {url}"
                raise FetchError(msg)
            html = await page.content()
            content_type = "text/html"
            if response is not None:
                content_type = response.headers.get("content-type", content_type)
            logger.debug("Fetched %d chars from %s (%s)", len(html), page.url, content_type)
            return FetchedDocument(url=page.url, html=html, content_type=content_type)
        except PlaywrightError as e:
            msg = f"Failed to fetch {url}: {e}"
            raise FetchError(msg) from e
        finally:
            await page.close()
