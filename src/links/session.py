"""Request-scoped crawl state and the deduplicating fetch in front of the scrapers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from src.api.schemas import ExtractedLinks, LinkExtractionOptions
from src.links.extraction import LinkSets, extract_links_from_html, merge_links
from src.links.scrape import ScrapedPage, ScraperRegistry, ScrapeOptions, scrape
from src.links.timing import utc_now_iso

logger = logging.getLogger(__name__)


@dataclass
class CrawlSession:
    """Everything one crawl request accumulates while its phases run.

    All phases share one session on a single event loop. Mutations happen
    between awaits, so the collections need no further locking.
    """

    root_url: str
    registry: ScraperRegistry
    link_options: LinkExtractionOptions = field(default_factory=LinkExtractionOptions)
    cleaned_html: bool = False
    robots: bool = False
    sitemap_xml: bool = False
    keep_extracted_links: bool = False

    visited: dict[str, str] = field(default_factory=dict)  # url -> lastVisited
    pages: dict[str, ScrapedPage] = field(default_factory=dict)
    skipped_urls: dict[str, str] = field(default_factory=dict)  # url -> reason
    link_sets: LinkSets = field(default_factory=LinkSets)
    extracted_links_map: dict[str, ExtractedLinks] = field(default_factory=dict)
    _fetches: dict[str, asyncio.Task[ScrapedPage | None]] = field(default_factory=dict, repr=False)

    async def scrape_if_not_visited(self, url: str) -> ScrapedPage | None:
        """Fetch *url* at most once per session.

        Concurrent callers for the same URL share one fetch. A failed fetch is
        recorded as a skipped URL and returns ``None``.
        """
        fetch = self._fetches.get(url)
        if fetch is None:
            fetch = asyncio.create_task(self._scrape(url))
            self._fetches[url] = fetch
        return await fetch

    async def _scrape(self, url: str) -> ScrapedPage | None:
        is_root = url == self.root_url
        options = ScrapeOptions(
            metadata=True,
            cleaned_html=self.cleaned_html,
            robots=is_root and self.robots,
            sitemap_xml=is_root and self.sitemap_xml,
        )
        try:
            page = await scrape(url, options, self.registry)
        except Exception as exc:
            logger.warning("scrape failed, skipping", extra={"url": url, "error": str(exc)})
            self.skipped_urls[url] = f"Failed to scrape: {exc}"
            return None

        self.visited[url] = utc_now_iso()
        self.pages[url] = page
        return page

    def merge_page_links(self, url: str, page: ScrapedPage) -> ExtractedLinks:
        """Extract the links of a fetched page and add them to the crawl-wide sets."""
        links = extract_links_from_html(
            page.raw_html,
            base_url=url,
            root_url=self.root_url,
            options=self.link_options,
            skipped_urls=self.skipped_urls,
        )
        if self.keep_extracted_links:
            self.extracted_links_map[url] = links
        merge_links(links, self.link_sets)
        return links

    @property
    def fetch_count(self) -> int:
        return len(self._fetches)
