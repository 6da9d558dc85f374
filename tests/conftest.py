"""Shared fixtures: fake Redis, site-tree cache and a scripted page loader."""

import asyncio
import logging

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis

from src.cache.redis import RetryConfig, SiteTreeCache
from src.links.scrape import ScrapedPage, ScrapeError, ScrapeOptions, ScraperRegistry
from src.links.scrape.http_loader import build_page


def make_html(title: str, *hrefs: str, body: str = "") -> str:
    links = "".join(f'<a href="{href}">{href}</a>' for href in hrefs)
    return (
        f"<html lang='en'><head><title>{title}</title>"
        f"<meta name='description' content='{title} page'></head>"
        f"<body><nav>menu</nav><main><h1>{title}</h1>{body}{links}</main></body></html>"
    )


class FakeLoader:
    """Serves canned HTML per URL and records every load call."""

    def __init__(self, pages: dict[str, str] | None = None, failures: set[str] | None = None) -> None:
        self.pages = dict(pages or {})
        self.failures = set(failures or ())
        self.calls: list[str] = []
        self.options: dict[str, ScrapeOptions] = {}

    async def load(self, url: str, options: ScrapeOptions) -> ScrapedPage:
        self.calls.append(url)
        self.options[url] = options
        await asyncio.sleep(0)
        if url in self.failures or url not in self.pages:
            raise ScrapeError(f"HTTP 404 fetching {url}")
        return build_page(url, self.pages[url], options)


SITE = {
    "https://example.com": make_html("Home", "/about", "/docs", "/docs/intro", "https://other.org/x"),
    "https://example.com/about": make_html("About", "/", "/team"),
    "https://example.com/docs": make_html("Docs", "/docs/intro", "/docs/api"),
    "https://example.com/docs/intro": make_html("Intro", "/docs", "/docs/api", body="<script>x()</script><p>Hello</p>"),
    "https://example.com/docs/api": make_html("API"),
    "https://example.com/team": make_html("Team"),
}


@pytest.fixture
def fake_loader() -> FakeLoader:
    return FakeLoader(SITE)


@pytest.fixture
def registry(fake_loader: FakeLoader) -> ScraperRegistry:
    registry = ScraperRegistry()
    registry.set_default(fake_loader)
    return registry


@pytest.fixture
def make_registry():
    """Build a registry whose default loader serves the given pages."""

    def _make(pages: dict[str, str], failures: set[str] | None = None) -> tuple[ScraperRegistry, FakeLoader]:
        loader = FakeLoader(pages, failures)
        registry = ScraperRegistry()
        registry.set_default(loader)
        return registry, loader

    return _make


@pytest_asyncio.fixture
async def fake_redis():
    client = FakeRedis(decode_responses=True)
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def site_tree_cache(fake_redis):
    """SiteTreeCache backed by an in-memory FakeRedis instance."""
    yield SiteTreeCache(
        fake_redis,
        freshness_seconds=86400,
        ttl_seconds=86400 * 4,
        retry=RetryConfig(max_attempts=3, base_delay=0.0),
    )


@pytest.fixture
def restore_logging():
    """Undo setup_logging changes to the root logger after the test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
