"""Site tree construction: build from a flat URL set or merge into a cached tree."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Iterator
from typing import Literal
from urllib.parse import urlsplit

from src.api.schemas import ExtractedLinks, LinkExtractionOptions, PageMetadata, Tree, VisitedUrl
from src.links.topology import get_tree_name, normalize_url, path_segments
from src.links.timing import utc_now_iso

logger = logging.getLogger(__name__)

LinksOrder = Literal["page", "alphabetical"]


def iter_nodes(tree: Tree) -> Iterator[Tree]:
    """Breadth-first walk over every node of *tree*."""
    queue = deque([tree])
    while queue:
        node = queue.popleft()
        yield node
        queue.extend(node.children or ())


def count_tree_links(tree: Tree | None) -> int:
    if tree is None:
        return 0
    return sum(1 for _ in iter_nodes(tree))


def sort_node_children(
    children: list[Tree],
    folder_first: bool = True,
    links_order: LinksOrder = "page",
) -> list[Tree]:
    """Order siblings: folders (nodes with children) first if asked, then by page or URL order."""
    if len(children) <= 1:
        return children
    ordered = sorted(children, key=lambda node: node.url) if links_order == "alphabetical" else list(children)
    if folder_first:
        ordered.sort(key=lambda node: not node.children)
    return ordered


class _TreeIndex:
    """URL -> node lookup over one tree, placing new URLs relative to the root."""

    def __init__(
        self,
        root: Tree,
        *,
        now: str,
        visited: dict[str, str | None],
        metadata_cache: dict[str, PageMetadata] | None,
        cleaned_html_cache: dict[str, str] | None,
        extracted_links_map: dict[str, ExtractedLinks] | None,
    ) -> None:
        self.root = root
        self.now = now
        self.visited = visited
        self.metadata_cache = metadata_cache or {}
        self.cleaned_html_cache = cleaned_html_cache or {}
        self.extracted_links_map = extracted_links_map or {}
        self.nodes: dict[str, Tree] = {node.url: node for node in iter_nodes(root)}

        parts = urlsplit(root.url)
        self._scheme = parts.scheme
        self._root_host = parts.hostname or ""
        self._root_segments = path_segments(root.url)

    def new_node(self, url: str, name: str) -> Tree:
        return Tree(
            url=url,
            name=name,
            last_visited=self.visited.get(url),
            last_updated=self.now,
            metadata=self.metadata_cache.get(url),
            cleaned_html=self.cleaned_html_cache.get(url),
            extracted_links=self.extracted_links_map.get(url),
            children=[],
        )

    def _chain(self, url: str) -> list[tuple[str, str]] | None:
        """(node url, node name) for every level between the root and *url*, or ``None`` if outside the tree."""
        parts = urlsplit(url)
        host = parts.hostname or ""
        segments = path_segments(url)

        if host == self._root_host:
            depth = len(self._root_segments)
            if segments[:depth] != self._root_segments:
                return None
            base = self.root.url
            relative = segments[depth:]
            chain: list[tuple[str, str]] = []
        elif not self._root_segments and host.endswith(f".{self._root_host}"):
            base = f"{self._scheme}://{host}"
            relative = segments
            chain = [(base, host[: -len(self._root_host) - 1])]
        else:
            return None

        current = base
        for segment in relative:
            current = f"{current}/{segment}"
            chain.append((current, segment))
        return chain

    def insert(self, link: str) -> None:
        url = normalize_url(link, self.root.url, True)
        if url in self.nodes:
            return

        chain = self._chain(url)
        if chain is None:
            logger.debug("link outside tree root, skipping", extra={"url": url, "root_url": self.root.url})
            return

        parent = self.root
        for node_url, name in chain:
            node = self.nodes.get(node_url)
            if node is None:
                node = self.new_node(node_url, name)
                self.nodes[node_url] = node
                if parent.children is None:
                    parent.children = []
                parent.children.append(node)
            parent = node


def _finalize(root: Tree, folder_first: bool, links_order: LinksOrder) -> Tree:
    for node in iter_nodes(root):
        if not node.children:
            node.children = None
        else:
            node.children = sort_node_children(node.children, folder_first, links_order)
    root.total_urls = count_tree_links(root)
    return root


def build_links_tree(
    internal_links: Iterable[str] | None,
    root_url: str,
    *,
    visited_urls: Iterable[VisitedUrl] = (),
    metadata_cache: dict[str, PageMetadata] | None = None,
    extracted_links_map: dict[str, ExtractedLinks] | None = None,
    folder_first: bool = True,
    links_order: LinksOrder = "page",
) -> Tree:
    """Reduce a flat set of internal URLs into a tree rooted at *root_url*.

    Each path segment below the root becomes one level; subdomains of the root
    host hang off the root as their own nodes. URLs outside the root are left
    out. Every node carries the metadata, extracted links and ``lastVisited``
    known for its URL.
    """
    now = utc_now_iso()
    root_url = normalize_url(root_url, root_url, True)
    visited = {item.url: item.last_visited for item in visited_urls}
    extracted_links_map = extracted_links_map or {}
    metadata_cache = metadata_cache or {}

    root = Tree(
        url=root_url,
        root_url=root_url,
        name=get_tree_name(root_url),
        last_visited=visited.get(root_url),
        last_updated=now,
        metadata=metadata_cache.get(root_url),
        extracted_links=extracted_links_map.get(root_url),
        children=[],
    )
    index = _TreeIndex(
        root,
        now=now,
        visited=visited,
        metadata_cache=metadata_cache,
        cleaned_html_cache=None,
        extracted_links_map=extracted_links_map,
    )
    for link in internal_links or ():
        index.insert(link)
    return _finalize(root, folder_first, links_order)


def merge_new_links_into_tree(
    existing_tree: Tree,
    new_links: Iterable[str],
    *,
    visited_urls: Iterable[VisitedUrl] = (),
    metadata_cache: dict[str, PageMetadata] | None = None,
    cleaned_html_cache: dict[str, str] | None = None,
    extracted_links_map: dict[str, ExtractedLinks] | None = None,
    strip_metadata: bool = False,
    folder_first: bool = True,
    links_order: LinksOrder = "page",
) -> Tree:
    """Update *existing_tree* in place with newly discovered URLs and fresh page data.

    Nodes are identified by URL. An existing node gets its ``lastUpdated``
    refreshed only when its ``lastVisited`` or metadata actually changes; the
    root's is always refreshed. Cleaned HTML is attached without counting as a
    change, and *strip_metadata* removes metadata from every node.
    """
    now = utc_now_iso()
    visited = {item.url: item.last_visited for item in visited_urls}
    metadata_cache = metadata_cache or {}
    cleaned_html_cache = cleaned_html_cache or {}
    extracted_links_map = extracted_links_map or {}

    tree = existing_tree
    tree.last_updated = now
    tree.name = tree.name or get_tree_name(tree.url)
    tree.root_url = tree.root_url or tree.url

    for node in iter_nodes(tree):
        changed = False
        last_visited = visited.get(node.url)
        if last_visited and last_visited != node.last_visited:
            node.last_visited = last_visited
            changed = True
        metadata = metadata_cache.get(node.url)
        if metadata is not None and metadata != node.metadata:
            node.metadata = metadata
            changed = True
        if node.url in cleaned_html_cache:
            node.cleaned_html = cleaned_html_cache[node.url]
        if node.url in extracted_links_map:
            node.extracted_links = extracted_links_map[node.url]
        if strip_metadata:
            node.metadata = None
        if changed:
            node.last_updated = now

    index = _TreeIndex(
        tree,
        now=now,
        visited=visited,
        metadata_cache=None if strip_metadata else metadata_cache,
        cleaned_html_cache=cleaned_html_cache,
        extracted_links_map=extracted_links_map,
    )
    added = 0
    for link in new_links:
        before = len(index.nodes)
        index.insert(link)
        added += len(index.nodes) - before
    logger.debug("merged links into cached tree", extra={"root_url": tree.url, "nodes_added": added})
    return _finalize(tree, folder_first, links_order)


def process_extracted_links_in_tree(
    tree: Tree | None,
    include_extracted_links: bool,
    options: LinkExtractionOptions | None = None,
) -> Tree | None:
    """Drop per-node extracted links, or trim them to the link kinds the caller enabled."""
    if tree is None:
        return None
    options = options or LinkExtractionOptions()
    for node in iter_nodes(tree):
        links = node.extracted_links
        if links is None:
            continue
        if not include_extracted_links:
            node.extracted_links = None
            continue
        projected = ExtractedLinks(
            internal=links.internal,
            external=links.external if options.include_external else None,
            media=links.media if options.include_media else None,
        )
        if not (projected.internal or projected.external or projected.media):
            projected = None
        node.extracted_links = projected
    return tree
