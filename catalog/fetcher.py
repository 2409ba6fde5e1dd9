"""Plain HTTP access to the catalog via Crawl4AI's HTTP crawler strategy."""

from __future__ import annotations

import logging
from typing import Optional

from crawl4ai import AsyncWebCrawler, CacheMode, CrawlerRunConfig
from crawl4ai.async_configs import HTTPCrawlerConfig
from crawl4ai.async_crawler_strategy import AsyncHTTPCrawlerStrategy

from .crawler import FetchError

LOGGER = logging.getLogger(__name__)


class CatalogFetcher:
    """Shared GET client for listing, detail and directory pages.

    Use as an async context manager so one underlying session serves every
    pipeline in a run.
    """

    def __init__(self, *, verify_ssl: bool = True) -> None:
        self._http_config = HTTPCrawlerConfig(method="GET", follow_redirects=True, verify_ssl=verify_ssl)
        self._crawler: Optional[AsyncWebCrawler] = None

    async def __aenter__(self) -> "CatalogFetcher":
        strategy = AsyncHTTPCrawlerStrategy(browser_config=self._http_config)
        self._crawler = AsyncWebCrawler(crawler_strategy=strategy)
        await self._crawler.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._crawler is not None:
            await self._crawler.__aexit__(exc_type, exc, tb)
            self._crawler = None

    async def fetch(self, url: str) -> str:
        if self._crawler is None:
            raise RuntimeError("CatalogFetcher must be entered with 'async with' before fetching")

        try:
            result = await self._crawler.arun(url=url, config=CrawlerRunConfig(cache_mode=CacheMode.BYPASS))
        except Exception as exc:
            raise FetchError(url, None, str(exc)) from exc

        status = getattr(result, "status_code", None)
        if not result.success or (status is not None and not 200 <= status < 300):
            raise FetchError(url, status, result.error_message or "")

        LOGGER.debug("Fetched %s (%s)", url, status)
        return result.html or ""
