"""Crawl orchestration for a links request: fetch kin pages, build the site tree, cache it."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field

from src.api.schemas import CacheMetadata, ExtractedLinks, LinksRequest, LinksResponse, Tree, VisitedUrl
from src.cache.redis import SiteTreeCache
from src.links.accounting import categorize_skipped_urls, extract_visited_urls, merge_visited_urls
from src.links.errors import LinksProcessingError
from src.links.response import build_error_response, build_success_response
from src.links.scrape import ScrapedPage, ScraperRegistry
from src.links.session import CrawlSession
from src.links.timing import format_duration, utc_now_iso
from src.links.topology import get_ancestor_paths, get_descendant_paths, normalize_url, resolve_root_url
from src.links.tree import build_links_tree, merge_new_links_into_tree, process_extracted_links_in_tree
from src.links.urls import validate_target_url

logger = logging.getLogger(__name__)


@dataclass
class TargetOk:
    page: ScrapedPage
    links: ExtractedLinks


@dataclass
class TargetFailed:
    reason: str | None = None


TargetOutcome = TargetOk | TargetFailed


@dataclass
class _Crawl:
    """Phases of one crawl over a shared session."""

    session: CrawlSession
    target_url: str
    max_kin: int
    cache_fresh: bool = False
    cached_visited: set[str] = field(default_factory=set)

    def _known_fresh(self, url: str) -> bool:
        return self.cache_fresh and url in self.cached_visited

    def _can_skip(self, url: str) -> bool:
        # A page from a fresh cache adds nothing new to the link graph unless its content is wanted.
        return not self.session.cleaned_html and self._known_fresh(url)

    async def process_target(self) -> TargetOutcome:
        page = await self.session.scrape_if_not_visited(self.target_url)
        if page is None or not page.raw_html:
            return TargetFailed(self.session.skipped_urls.get(self.target_url, "Empty response"))
        try:
            links = self.session.merge_page_links(self.target_url, page)
        except Exception as exc:
            logger.warning("target link extraction failed", extra={"url": self.target_url}, exc_info=True)
            return TargetFailed(f"Failed to process: {exc}")
        return TargetOk(page=page, links=links)

    async def process_root(self) -> None:
        root_url = self.session.root_url
        try:
            wants_meta_files = self.session.robots or self.session.sitemap_xml
            if self._can_skip(root_url) and not wants_meta_files:
                logger.debug("root fresh in cache, skipping", extra={"url": root_url})
                return
            page = await self.session.scrape_if_not_visited(root_url)
            if page is None:
                return
            if self._can_skip(root_url):
                # Fetched for robots.txt and the sitemap only.
                return
            links = self.session.merge_page_links(root_url, page)
            descendants = get_descendant_paths(root_url, links.internal or [])
            if descendants:
                await self.process_kin(descendants[: self.max_kin])
        except Exception as exc:
            logger.warning("root processing failed", extra={"url": root_url}, exc_info=True)
            self.session.skipped_urls[root_url] = f"Failed to process: {exc}"

    async def process_kin(self, paths: list[str]) -> None:
        """Fetch and merge *paths* concurrently; one failure never affects the others."""
        results = await asyncio.gather(*(self._process_kin_path(path) for path in paths), return_exceptions=True)
        for path, result in zip(paths, results):
            if isinstance(result, Exception):
                self.session.skipped_urls[path] = f"Failed to process: {result}"

    async def _process_kin_path(self, path: str) -> None:
        if self._can_skip(path):
            return
        try:
            page = await self.session.scrape_if_not_visited(path)
            if page is None:
                return
            if self._known_fresh(path):
                # Fetched for its cleaned HTML only; its links are already in the cached tree.
                return
            self.session.merge_page_links(path, page)
        except Exception as exc:
            logger.warning("kin processing failed", extra={"url": path}, exc_info=True)
            self.session.skipped_urls[path] = f"Failed to process: {exc}"


class LinksProcessor:
    """Answers links requests: crawls the target's relatives and maintains the site-tree cache."""

    def __init__(
        self,
        registry: ScraperRegistry,
        cache: SiteTreeCache | None = None,
        *,
        max_kin_limit: int = 30,
        max_visited_urls: int = 1000,
    ) -> None:
        self._registry = registry
        self._cache = cache
        self._max_kin = max_kin_limit
        self._max_visited = max_visited_urls

    async def process_links_request(self, request: LinksRequest) -> LinksResponse:
        """Crawl around ``request.url`` and return the site tree or flat link data.

        Raises :class:`URLError` for an unusable URL and
        :class:`LinksProcessingError` when the tree cannot be built. A target
        page that cannot be fetched yields an error response, not an exception.
        """
        started = time.perf_counter()
        timestamp = utc_now_iso()
        with_tree = request.tree

        # Same canonical form as the tree nodes and discovered links.
        validated = validate_target_url(request.url)
        target_url = normalize_url(validated, validated, request.link_extraction_options.remove_query_params)
        ancestors = get_ancestor_paths(target_url)
        root_url = resolve_root_url(target_url, request.subdomain_as_root_url)
        logger.info("links request", extra={"url": target_url, "root_url": root_url})

        session = CrawlSession(
            root_url=root_url,
            registry=self._registry,
            link_options=request.link_extraction_options,
            cleaned_html=request.cleaned_html,
            robots=request.robots,
            sitemap_xml=request.sitemap_xml,
            keep_extracted_links=request.extracted_links,
        )

        existing_tree: Tree | None = None
        cached_visited: list[VisitedUrl] = []
        if self._cache is not None:
            cached = await self._cache.read(root_url)
            if cached is not None:
                existing_tree = cached.tree
                cached_visited = extract_visited_urls(existing_tree)
        cache_fresh = existing_tree is not None

        crawl = _Crawl(
            session=session,
            target_url=target_url,
            max_kin=self._max_kin,
            cache_fresh=cache_fresh,
            cached_visited={item.url for item in cached_visited},
        )

        phases = [crawl.process_target()]
        if target_url != root_url:
            phases.append(crawl.process_root())
        ancestors_except_root = [url for url in ancestors if url != root_url][: self._max_kin]
        if ancestors_except_root:
            phases.append(crawl.process_kin(ancestors_except_root))

        outcome, *_ = await asyncio.gather(*phases)
        if isinstance(outcome, TargetFailed):
            logger.info("target fetch failed", extra={"url": target_url, "reason": outcome.reason})
            return build_error_response(target_url, with_tree=with_tree, existing_tree=existing_tree)

        if target_url == root_url:
            descendants = get_descendant_paths(target_url, session.link_sets.internal)
            if descendants:
                await crawl.process_kin(descendants[: self._max_kin])

        try:
            response = await self._finish(
                request, session, outcome,
                target_url=target_url,
                timestamp=timestamp,
                ancestors=ancestors,
                existing_tree=existing_tree,
                cached_visited=cached_visited,
                started=started,
            )
        except Exception as exc:
            logger.exception("links processing failed", extra={"url": target_url})
            raise LinksProcessingError(
                f"{type(exc).__name__}: {exc}",
                tree=existing_tree if with_tree else None,
            ) from exc

        logger.info(
            "links request complete",
            extra={
                "url": target_url,
                "root_url": root_url,
                "cached": cache_fresh,
                "fetches": session.fetch_count,
                "internal_links": len(session.link_sets.internal),
                "skipped": len(session.skipped_urls),
            },
        )
        return response

    async def _finish(
        self,
        request: LinksRequest,
        session: CrawlSession,
        outcome: TargetOk,
        *,
        target_url: str,
        timestamp: str,
        ancestors: list[str],
        existing_tree: Tree | None,
        cached_visited: list[VisitedUrl],
        started: float,
    ) -> LinksResponse:
        root_url = session.root_url
        internal_links = list(session.link_sets.internal)
        visited_urls = merge_visited_urls(cached_visited, session.visited, self._max_visited)
        metadata_cache = {url: page.metadata for url, page in session.pages.items() if page.metadata}

        if existing_tree is not None and internal_links:
            # The cached tree stays untouched for the error response.
            tree = merge_new_links_into_tree(
                existing_tree.model_copy(deep=True),
                internal_links,
                visited_urls=visited_urls,
                metadata_cache=metadata_cache,
                extracted_links_map=session.extracted_links_map,
                folder_first=request.folder_first,
                links_order=request.links_order,
            )
        else:
            tree = build_links_tree(
                internal_links,
                root_url,
                visited_urls=visited_urls,
                metadata_cache=metadata_cache,
                extracted_links_map=session.extracted_links_map,
                folder_first=request.folder_first,
                links_order=request.links_order,
            )

        if self._cache is not None:
            await self._cache.write(
                root_url,
                tree,
                CacheMetadata(
                    title=outcome.page.title or None,
                    description=outcome.page.description or None,
                    timestamp=utc_now_iso(),
                ),
            )

        # Response-only enrichment; never written to the cache.
        if request.tree and (request.cleaned_html or not request.metadata):
            cleaned_html_cache = {url: page.cleaned_html for url, page in session.pages.items() if page.cleaned_html}
            tree = merge_new_links_into_tree(
                tree,
                [],
                visited_urls=visited_urls,
                cleaned_html_cache=cleaned_html_cache,
                strip_metadata=not request.metadata,
                folder_first=request.folder_first,
                links_order=request.links_order,
            )

        tree = process_extracted_links_in_tree(tree, request.extracted_links, request.link_extraction_options)
        skipped = (
            categorize_skipped_urls(session.skipped_urls, root_url, tree.children)
            if session.skipped_urls
            else None
        )
        root_page = session.pages.get(root_url)

        return build_success_response(
            target_url=target_url,
            timestamp=timestamp,
            cached=existing_tree is not None,
            ancestors=ancestors or None,
            tree=tree,
            with_tree=request.tree,
            execution_time=format_duration((time.perf_counter() - started) * 1000),
            target_page=outcome.page,
            target_links=outcome.links,
            meta_files=root_page.meta_files if root_page else None,
            skipped_urls=skipped,
            include_metadata=request.metadata,
            include_cleaned_html=request.cleaned_html,
            include_extracted_links=request.extracted_links,
        )
