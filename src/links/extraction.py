"""Per-page link extraction and the crawl-wide link sets it feeds."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from src.api.schemas import ExtractedLinks, LinkExtractionOptions, MediaLinks
from src.links.topology import extract_root_domain, get_root_url, normalize_url
from src.links.urls import validate_url

logger = logging.getLogger(__name__)

MEDIA_EXTENSIONS: dict[str, tuple[str, ...]] = {
    "images": (".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".ico"),
    "videos": (".mp4", ".webm", ".ogg", ".mov", ".avi"),
    "documents": (".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx"),
}

# Build/CMS asset directories that never lead to content pages.
FRAMEWORK_PATTERNS = (
    "/_next/",
    "/static/js/",
    "/static/css/",
    "/static/media/",
    "/_nuxt/",
    "/assets/js/",
    "/assets/css/",
    "/wp-content/",
    "/wp-includes/",
    "/wp-admin/",
    "/_sites/",
    "/cdn-cgi/",
)

_LINK_SELECTOR = "a[href], img[src], video[src], source[src], iframe[src], audio[src]"
_IGNORED_PREFIXES = ("javascript:", "data:")


@dataclass
class LinkSets:
    """Links discovered across a whole crawl, in first-seen order. Union-only."""

    internal: dict[str, None] = field(default_factory=dict)
    external: dict[str, None] = field(default_factory=dict)
    images: dict[str, None] = field(default_factory=dict)
    videos: dict[str, None] = field(default_factory=dict)
    documents: dict[str, None] = field(default_factory=dict)


def media_kind(url: str) -> str | None:
    """``images``/``videos``/``documents`` when *url* ends with a known media extension."""
    lowered = url.lower()
    for kind, extensions in MEDIA_EXTENSIONS.items():
        if lowered.endswith(extensions):
            return kind
    return None


def is_framework_resource(url: str) -> bool:
    try:
        path = urlsplit(url).path
    except ValueError:
        return False
    return any(pattern in path for pattern in FRAMEWORK_PATTERNS)


def _is_excluded(url: str, patterns: list[str]) -> bool:
    for pattern in patterns:
        try:
            if re.search(pattern, url):
                return True
        except re.error:
            logger.debug("ignoring invalid exclude pattern", extra={"pattern": pattern})
    return False


def _collect(
    raw: str,
    base_url: str,
    options: LinkExtractionOptions,
    links: dict[str, None],
    skipped_urls: dict[str, str] | None,
) -> None:
    if raw.lower().startswith(_IGNORED_PREFIXES) or _is_excluded(raw, options.exclude_patterns):
        return

    url = normalize_url(raw, base_url, options.remove_query_params)
    if is_framework_resource(url):
        return

    result = validate_url(url)
    if result.normalized_url:
        links[result.normalized_url] = None
    elif result.error and skipped_urls is not None:
        skipped_urls[url] = result.error


def categorize_links(
    links: dict[str, None],
    base_url: str,
    root_url: str,
    options: LinkExtractionOptions,
) -> ExtractedLinks:
    """Split *links* into internal, external and media links of one page."""
    base_host = urlsplit(base_url).hostname or ""
    root_host = urlsplit(root_url).hostname or ""
    site_domains = {extract_root_domain(base_host), extract_root_domain(root_host)}

    internal: list[str] = []
    external: list[str] = []
    media: dict[str, list[str]] = {kind: [] for kind in MEDIA_EXTENSIONS}

    for url in links:
        parts = urlsplit(url)
        kind = media_kind(url)
        if kind:
            media[kind].append(url)
            continue

        host = parts.hostname or ""
        if host in (base_host, root_host) or extract_root_domain(host) in site_domains:
            # The bare origin is the tree root itself, not a link worth following.
            if parts.path not in ("", "/"):
                internal.append(url)
        else:
            external.append(url)

    extracted = ExtractedLinks(internal=internal)
    if options.include_external and external:
        extracted.external = sorted(external)
    if options.include_media and any(media.values()):
        extracted.media = MediaLinks(
            images=sorted(media["images"]) or None,
            videos=sorted(media["videos"]) or None,
            documents=sorted(media["documents"]) or None,
        )
    return extracted


def extract_links_from_html(
    html: str | None,
    base_url: str,
    root_url: str | None = None,
    options: LinkExtractionOptions | None = None,
    skipped_urls: dict[str, str] | None = None,
) -> ExtractedLinks:
    """Extract the links of one page.

    Anchors and media sources are resolved against *base_url*, filtered and
    validated. Links that fail validation are recorded in *skipped_urls* with
    the reason. Internal links keep page order; external and media links are
    sorted and only present when the matching option is enabled.
    """
    if not html:
        return ExtractedLinks()

    options = options or LinkExtractionOptions()
    soup = BeautifulSoup(html, "lxml")

    links: dict[str, None] = {}
    for element in soup.select(_LINK_SELECTOR):
        if element.name == "a":
            href = (element.get("href") or "").strip()
            if href and not href.startswith("#"):
                _collect(href, base_url, options, links, skipped_urls)
        else:
            src = (element.get("src") or "").strip()
            if src:
                _collect(src, base_url, options, links, skipped_urls)

    return categorize_links(links, base_url, root_url or get_root_url(base_url), options)


def merge_links(page_links: ExtractedLinks, link_sets: LinkSets) -> None:
    """Add one page's links to the crawl-wide sets. Idempotent."""
    link_sets.internal.update(dict.fromkeys(page_links.internal or ()))
    link_sets.external.update(dict.fromkeys(page_links.external or ()))
    if page_links.media:
        link_sets.images.update(dict.fromkeys(page_links.media.images or ()))
        link_sets.videos.update(dict.fromkeys(page_links.media.videos or ()))
        link_sets.documents.update(dict.fromkeys(page_links.media.documents or ()))
