"""Data models for the scrape submodule."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from src.api.schemas import MetaFiles, PageMetadata


class ScrapeError(Exception):
    """A page could not be fetched or parsed."""


@dataclass(frozen=True)
class ScrapeOptions:
    """What to extract besides the raw HTML."""

    metadata: bool = True
    cleaned_html: bool = False
    robots: bool = False
    sitemap_xml: bool = False


@dataclass
class ScrapedPage:
    """A single fetched web page."""

    url: str
    raw_html: str = ""
    title: str = ""
    description: str = ""
    metadata: PageMetadata | None = None
    cleaned_html: str | None = None
    meta_files: MetaFiles | None = None


class PageLoader(Protocol):
    """Protocol for page loaders. Implementations raise :class:`ScrapeError` on failure."""

    async def load(self, url: str, options: ScrapeOptions) -> ScrapedPage: ...
