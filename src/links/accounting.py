"""Skipped and visited URL bookkeeping."""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from urllib.parse import urlsplit

from src.api.schemas import SkippedLinks, SkippedMedia, SkippedUrl, Tree, VisitedUrl
from src.links.extraction import media_kind
from src.links.timing import parse_iso, utc_now_iso

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def extract_visited_urls(tree: Tree) -> list[VisitedUrl]:
    """Every node of *tree* that was actually fetched, breadth first."""
    visited: list[VisitedUrl] = []
    queue = deque([tree])
    while queue:
        node = queue.popleft()
        if node.last_visited:
            visited.append(VisitedUrl(url=node.url, last_visited=node.last_visited))
        queue.extend(node.children or ())
    return visited


def merge_visited_urls(
    previous: list[VisitedUrl],
    visited_now: dict[str, str],
    limit: int = 1000,
) -> list[VisitedUrl]:
    """Union of cached and fresh visits, fresh timestamps winning, newest first, at most *limit*."""
    merged: dict[str, VisitedUrl] = {item.url: item for item in previous}
    for url, timestamp in visited_now.items():
        merged[url] = VisitedUrl(url=url, last_visited=timestamp or utc_now_iso())

    ordered = sorted(
        merged.values(),
        key=lambda item: parse_iso(item.last_visited) or _OLDEST,
        reverse=True,
    )
    return ordered[:limit]


def categorize_skipped_urls(
    skipped_urls: dict[str, str],
    root_url: str,
    children: list[Tree] | None = None,
) -> SkippedLinks | None:
    """Group skipped URLs by what they point at, not by why they were skipped.

    URLs already shown as error nodes among *children* are left out. Returns
    ``None`` when nothing remains.
    """
    error_urls = {child.url for child in children or () if child.error}
    root_host = urlsplit(root_url).hostname or ""

    groups: dict[str, list[SkippedUrl]] = {
        "internal": [], "external": [], "images": [], "videos": [], "documents": [], "other": [],
    }
    for url, reason in skipped_urls.items():
        if not url or url in error_urls:
            continue
        entry = SkippedUrl(url=url, reason=reason)

        kind = media_kind(url)
        if kind:
            groups[kind].append(entry)
            continue

        try:
            parts = urlsplit(url)
            host = parts.hostname or ""
        except ValueError:
            groups["other"].append(entry)
            continue

        if parts.scheme not in ("http", "https") or not host:
            groups["other"].append(entry)
        elif root_host and (host == root_host or host.endswith(f".{root_host}")):
            groups["internal"].append(entry)
        else:
            groups["external"].append(entry)

    if not any(groups.values()):
        return None

    media = None
    if groups["images"] or groups["videos"] or groups["documents"]:
        media = SkippedMedia(
            images=groups["images"] or None,
            videos=groups["videos"] or None,
            documents=groups["documents"] or None,
        )
    return SkippedLinks(
        internal=groups["internal"] or None,
        external=groups["external"] or None,
        media=media,
        other=groups["other"] or None,
    )
