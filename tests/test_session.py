"""Crawl session tests: deduplicated fetching and link accumulation."""

import asyncio

import pytest

from src.api.schemas import LinkExtractionOptions
from src.links.session import CrawlSession

pytestmark = pytest.mark.asyncio

ROOT = "https://example.com"


async def test_concurrent_requests_share_one_fetch(registry, fake_loader):
    session = CrawlSession(root_url=ROOT, registry=registry)

    pages = await asyncio.gather(*(session.scrape_if_not_visited(f"{ROOT}/docs") for _ in range(5)))

    assert fake_loader.calls == [f"{ROOT}/docs"]
    assert all(page is pages[0] for page in pages)
    assert session.fetch_count == 1
    assert f"{ROOT}/docs" in session.visited


async def test_repeat_request_after_completion_is_not_refetched(registry, fake_loader):
    session = CrawlSession(root_url=ROOT, registry=registry)

    first = await session.scrape_if_not_visited(ROOT)
    second = await session.scrape_if_not_visited(ROOT)

    assert first is second
    assert fake_loader.calls == [ROOT]


async def test_failed_fetch_is_recorded_and_not_retried(registry, fake_loader):
    session = CrawlSession(root_url=ROOT, registry=registry)

    assert await session.scrape_if_not_visited(f"{ROOT}/missing") is None
    assert await session.scrape_if_not_visited(f"{ROOT}/missing") is None

    assert fake_loader.calls == [f"{ROOT}/missing"]
    assert session.skipped_urls[f"{ROOT}/missing"].startswith("Failed to scrape: HTTP 404")
    assert f"{ROOT}/missing" not in session.visited


async def test_meta_files_requested_for_root_only(registry, fake_loader):
    session = CrawlSession(root_url=ROOT, registry=registry, robots=True, sitemap_xml=True, cleaned_html=True)

    await asyncio.gather(session.scrape_if_not_visited(ROOT), session.scrape_if_not_visited(f"{ROOT}/about"))

    assert fake_loader.options[ROOT].robots
    assert fake_loader.options[ROOT].sitemap_xml
    assert not fake_loader.options[f"{ROOT}/about"].robots
    assert not fake_loader.options[f"{ROOT}/about"].sitemap_xml
    assert fake_loader.options[f"{ROOT}/about"].cleaned_html


async def test_merge_page_links_accumulates(registry):
    session = CrawlSession(
        root_url=ROOT,
        registry=registry,
        link_options=LinkExtractionOptions(include_external=True),
        keep_extracted_links=True,
    )

    root = await session.scrape_if_not_visited(ROOT)
    about = await session.scrape_if_not_visited(f"{ROOT}/about")
    session.merge_page_links(ROOT, root)
    links = session.merge_page_links(f"{ROOT}/about", about)

    assert links.internal == [f"{ROOT}/team"]
    assert list(session.link_sets.internal) == [f"{ROOT}/about", f"{ROOT}/docs", f"{ROOT}/docs/intro", f"{ROOT}/team"]
    assert list(session.link_sets.external) == ["https://other.org/x"]
    assert set(session.extracted_links_map) == {ROOT, f"{ROOT}/about"}


async def test_extracted_links_not_kept_unless_requested(registry):
    session = CrawlSession(root_url=ROOT, registry=registry)
    page = await session.scrape_if_not_visited(ROOT)
    session.merge_page_links(ROOT, page)

    assert session.extracted_links_map == {}
