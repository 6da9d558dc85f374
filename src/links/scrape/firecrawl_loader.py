"""Firecrawl page loader implementation."""

from __future__ import annotations

import logging

from firecrawl import AsyncFirecrawl

from .http_loader import build_page
from .models import ScrapedPage, ScrapeError, ScrapeOptions

logger = logging.getLogger(__name__)


class FirecrawlLoader:
    """Loads pages using the Firecrawl API, for hosts that need a rendering backend."""

    def __init__(self, api_key: str, api_url: str = "") -> None:
        kwargs: dict = {"api_key": api_key}
        if api_url:
            kwargs["api_url"] = api_url
        self._client = AsyncFirecrawl(**kwargs)

    async def load(self, url: str, options: ScrapeOptions) -> ScrapedPage:
        """Scrape a single URL via Firecrawl and parse its raw HTML locally."""
        try:
            response = await self._client.scrape(url, formats=["rawHtml"])
        except Exception as exc:
            logger.warning("firecrawl scrape failed", extra={"url": url}, exc_info=True)
            raise ScrapeError(f"Firecrawl scrape failed: {exc}") from exc

        # Some Firecrawl versions return a dict, newer ones a Document object
        if isinstance(response, dict):
            raw_html = response.get("rawHtml") or response.get("raw_html") or ""
        else:
            raw_html = getattr(response, "raw_html", None) or getattr(response, "rawHtml", None) or ""

        if not raw_html:
            raise ScrapeError(f"Firecrawl returned no HTML for {url}")

        logger.debug("firecrawl loaded", extra={"url": url, "html_length": len(raw_html)})
        return build_page(url, raw_html, options)
