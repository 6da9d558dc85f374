"""Page fetching submodule with pluggable loader registry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .firecrawl_loader import FirecrawlLoader
from .http_loader import HttpPageLoader
from .models import PageLoader, ScrapedPage, ScrapeError, ScrapeOptions
from .registry import ScraperRegistry

if TYPE_CHECKING:
    from src.config import Settings

__all__ = [
    "FirecrawlLoader",
    "HttpPageLoader",
    "PageLoader",
    "ScrapeError",
    "ScrapeOptions",
    "ScrapedPage",
    "ScraperRegistry",
    "build_default_registry",
    "scrape",
]

logger = logging.getLogger(__name__)


def build_default_registry(settings: Settings) -> ScraperRegistry:
    """Build the default scraper registry with configured loader instances."""
    registry = ScraperRegistry()

    patterns = tuple(p.strip() for p in settings.firecrawl_host_patterns.split(",") if p.strip())
    if settings.firecrawl_api_key and patterns:
        firecrawl = FirecrawlLoader(
            api_key=settings.firecrawl_api_key,
            api_url=settings.firecrawl_api_url,
        )
        registry.register(patterns=patterns, loader=firecrawl)
    elif patterns:
        logger.warning("firecrawl host patterns set without an api key, ignoring", extra={"patterns": patterns})

    # Default catch-all: plain HTTP for any unmatched host
    registry.set_default(
        HttpPageLoader(timeout=settings.fetch_timeout_seconds, user_agent=settings.user_agent),
    )
    return registry


async def scrape(url: str, options: ScrapeOptions, registry: ScraperRegistry) -> ScrapedPage:
    """Fetch one URL with the loader registered for its host."""
    loader = registry.get_loader(url)
    if loader is None:
        raise ScrapeError(f"No loader registered for {url}")

    logger.debug("loader selected", extra={"url": url, "loader": type(loader).__name__})
    return await loader.load(url, options)
