"""URL topology: roots, ancestors, descendants and platform handling."""

from __future__ import annotations

import logging
from functools import lru_cache
from urllib.parse import urljoin, urlsplit, urlunsplit

import tldextract

logger = logging.getLogger(__name__)

# Shared hosting origins where the first path segment (user/org) is the logical site root.
PLATFORM_ORIGINS = frozenset({
    "https://github.com",
    "https://www.github.com",
    "https://gist.github.com",
    "https://www.gist.github.com",
    "https://gitlab.com",
    "https://www.gitlab.com",
    "https://bitbucket.org",
    "https://www.bitbucket.org",
    "https://dev.azure.com",
    "https://www.dev.azure.com",
    "https://gitea.com",
    "https://www.gitea.com",
    "https://sourceforge.net",
    "https://www.sourceforge.net",
    "https://code.google.com",
    "https://www.notion.so",
    "https://notion.so",
    "https://atlassian.net",
})

# Bundled public suffix snapshot only; never fetched at runtime.
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())


def normalize_url(url: str, base: str = "", remove_query_params: bool = True) -> str:
    """Resolve *url* against *base* and canonicalise it.

    The fragment is always dropped, the query optionally, the host is
    lower-cased and a trailing slash removed. Relative URLs without a base and
    unparseable input are returned unchanged.
    """
    if not url:
        return url or ""

    if url.startswith(("http://", "https://")):
        absolute = url
    elif base:
        absolute = urljoin(base, url)
    else:
        return url

    try:
        parts = urlsplit(absolute)
    except ValueError:
        logger.warning("could not normalize url", extra={"url": url})
        return url

    query = "" if remove_query_params else parts.query
    normalized = urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, query, ""))
    if normalized.endswith("/"):
        normalized = normalized[:-1]
    return normalized


def path_segments(url: str) -> list[str]:
    return [segment for segment in urlsplit(url).path.split("/") if segment]


def get_origin(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{parts.netloc.lower()}"


@lru_cache(maxsize=1024)
def extract_root_domain(hostname: str) -> str:
    """Registrable domain of *hostname* (``docs.example.co.uk`` -> ``example.co.uk``)."""
    if not hostname:
        return hostname
    extracted = _tld_extract(hostname)
    if not extracted.domain or not extracted.suffix:
        return hostname
    return f"{extracted.domain}.{extracted.suffix}"


def get_root_url(url: str) -> str:
    parts = urlsplit(url)
    return f"{parts.scheme}://{extract_root_domain(parts.hostname or '')}"


def is_platform_url(url: str) -> bool:
    return get_origin(url) in PLATFORM_ORIGINS


def resolve_root_url(url: str, subdomain_as_root_url: bool = True) -> str:
    """Root a site tree is built under; also the site-tree cache key.

    Platform URLs root at their first path segment (``github.com/owner``).
    Other URLs root at their origin, or at the registrable domain when
    *subdomain_as_root_url* is false.
    """
    if is_platform_url(url):
        segments = path_segments(url)
        origin = get_origin(url)
        return f"{origin}/{segments[0]}" if segments else origin
    if subdomain_as_root_url:
        return get_origin(url)
    return get_root_url(url)


def get_ancestor_paths(url: str) -> list[str]:
    """The registrable root (when it differs from *url*) and every proper path prefix of *url*."""
    ancestors: list[str] = []
    root = get_root_url(url)
    if root and root != url:
        ancestors.append(root)

    current = get_origin(url)
    for segment in path_segments(url)[:-1]:
        current = f"{current}/{segment}"
        ancestors.append(current)
    return ancestors


def get_descendant_paths(
    base_url: str,
    internal_urls: list[str] | dict[str, None] | set[str],
    max_steps: int | None = None,
) -> list[str]:
    """Same-host URLs whose path strictly extends *base_url*'s path, shallowest first."""
    base = normalize_url(base_url)
    base_host = urlsplit(base).hostname
    base_segments = path_segments(base)

    descendants: list[tuple[int, str]] = []
    for link in internal_urls:
        try:
            normalized = normalize_url(link)
            parts = urlsplit(normalized)
        except ValueError:
            logger.debug("skipping unparseable link", extra={"url": link})
            continue
        if parts.hostname != base_host:
            continue

        segments = path_segments(normalized)
        if len(segments) <= len(base_segments) or segments[: len(base_segments)] != base_segments:
            continue
        steps = len(segments) - len(base_segments)
        if max_steps and steps > max_steps:
            continue
        descendants.append((len(segments), normalized))

    descendants.sort(key=lambda item: item[0])
    return [url for _, url in descendants]


def get_tree_name(url: str) -> str:
    """Display name of a tree root: the host, or ``host/owner[/repo]`` on platforms."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    host = parts.hostname or ""
    if not host:
        return url
    if f"{parts.scheme}://{host}" in PLATFORM_ORIGINS:
        segments = path_segments(url)
        if segments:
            return "/".join([host, *segments[:2]])
    return host
