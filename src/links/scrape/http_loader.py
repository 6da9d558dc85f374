"""Plain HTTP page loader (httpx + BeautifulSoup)."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

import httpx
from bs4 import BeautifulSoup

from src.api.schemas import MetaFiles

from .models import ScrapedPage, ScrapeError, ScrapeOptions
from .parsing import clean_html, parse_description, parse_metadata, parse_title

logger = logging.getLogger(__name__)

_PAGE_CONTENT_TYPES = ("text/html", "application/xhtml+xml", "text/plain", "application/xml", "text/xml")


def build_page(url: str, raw_html: str, options: ScrapeOptions) -> ScrapedPage:
    """Turn fetched HTML into a :class:`ScrapedPage` honouring *options*."""
    soup = BeautifulSoup(raw_html, "lxml")
    page = ScrapedPage(
        url=url,
        raw_html=raw_html,
        title=parse_title(soup),
        description=parse_description(soup),
    )
    if options.metadata:
        page.metadata = parse_metadata(soup, url)
    if options.cleaned_html:
        page.cleaned_html = clean_html(soup)
    return page


class HttpPageLoader:
    """Fetches pages directly over HTTP."""

    def __init__(self, *, timeout: float = 15.0, user_agent: str = "Sitetree-Bot/1.0") -> None:
        self._timeout = timeout
        self._user_agent = user_agent

    async def load(self, url: str, options: ScrapeOptions) -> ScrapedPage:
        logger.debug("http loading", extra={"url": url})
        try:
            async with httpx.AsyncClient(
                follow_redirects=True,
                headers={
                    "User-Agent": self._user_agent,
                    "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8",
                },
                timeout=self._timeout,
            ) as client:
                resp = await client.get(url)
                if resp.status_code >= 400:
                    raise ScrapeError(f"HTTP {resp.status_code} fetching {url}")
                content_type = resp.headers.get("content-type", "").lower()
                if content_type and not content_type.startswith(_PAGE_CONTENT_TYPES):
                    raise ScrapeError(f"Unsupported content type {content_type.split(';')[0]}")
                page = build_page(url, resp.text, options)
                if options.robots or options.sitemap_xml:
                    page.meta_files = await self._load_meta_files(client, url, options)
        except httpx.TimeoutException as exc:
            raise ScrapeError(f"Timed out fetching {url}") from exc
        except httpx.HTTPError as exc:
            raise ScrapeError(f"{type(exc).__name__}: {exc}") from exc

        logger.debug("http loaded", extra={"url": url, "html_length": len(page.raw_html)})
        return page

    async def _load_meta_files(
        self, client: httpx.AsyncClient, url: str, options: ScrapeOptions
    ) -> MetaFiles | None:
        parts = urlsplit(url)
        origin = f"{parts.scheme}://{parts.netloc}"

        robots = await self._fetch_text(client, f"{origin}/robots.txt")
        sitemap = None
        if options.sitemap_xml:
            sitemap_url = f"{origin}/sitemap.xml"
            for line in (robots or "").splitlines():
                if line.lower().startswith("sitemap:"):
                    sitemap_url = line.split(":", 1)[1].strip()
                    break
            sitemap = await self._fetch_text(client, sitemap_url)

        meta_files = MetaFiles(
            robots=robots if options.robots else None,
            sitemap_xml=sitemap,
        )
        if meta_files.robots is None and meta_files.sitemap_xml is None:
            return None
        return meta_files

    async def _fetch_text(self, client: httpx.AsyncClient, url: str) -> str | None:
        try:
            resp = await client.get(url)
            resp.raise_for_status()
        except httpx.HTTPError:
            logger.warning("meta file fetch failed", extra={"url": url}, exc_info=True)
            return None
        return resp.text or None
