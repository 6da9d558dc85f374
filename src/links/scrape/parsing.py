"""HTML parsing shared by the page loaders: title, metadata and cleaned content."""

from __future__ import annotations

from urllib.parse import urljoin

from bs4 import BeautifulSoup, Comment

from src.api.schemas import PageMetadata

# Page chrome and non-content elements dropped from cleaned HTML
_STRIP_TAGS = ("script", "style", "noscript", "iframe", "nav", "header", "footer", "aside", "form", "svg")

_OPEN_GRAPH = {
    "og_title": "og:title",
    "og_description": "og:description",
    "og_image": "og:image",
    "og_url": "og:url",
    "og_type": "og:type",
    "og_site_name": "og:site_name",
}

_TWITTER = {
    "twitter_card": "twitter:card",
    "twitter_site": "twitter:site",
    "twitter_creator": "twitter:creator",
    "twitter_title": "twitter:title",
    "twitter_description": "twitter:description",
    "twitter_image": "twitter:image",
}


def _meta(soup: BeautifulSoup, key: str) -> str | None:
    tag = soup.find("meta", attrs={"name": key}) or soup.find("meta", attrs={"property": key})
    if tag is None:
        return None
    content = (tag.get("content") or "").strip()
    return content or None


def _link_href(soup: BeautifulSoup, rel: str, base_url: str) -> str | None:
    tag = soup.find("link", rel=rel, href=True)
    if tag is None:
        return None
    return urljoin(base_url, tag["href"].strip())


def parse_title(soup: BeautifulSoup) -> str:
    if soup.title and soup.title.string:
        return soup.title.string.strip()
    return _meta(soup, "og:title") or ""


def parse_description(soup: BeautifulSoup) -> str:
    return _meta(soup, "description") or _meta(soup, "og:description") or ""


def parse_metadata(soup: BeautifulSoup, url: str) -> PageMetadata:
    """Collect standard, Open Graph and Twitter card metadata of a page."""
    html_tag = soup.find("html")
    keywords = _meta(soup, "keywords")
    values: dict = {
        "title": parse_title(soup) or None,
        "description": parse_description(soup) or None,
        "language": (html_tag.get("lang") or None) if html_tag else None,
        "canonical": _link_href(soup, "canonical", url),
        "robots": _meta(soup, "robots"),
        "author": _meta(soup, "author"),
        "keywords": [k.strip() for k in keywords.split(",") if k.strip()] if keywords else None,
        "favicon": _link_href(soup, "icon", url),
    }
    for field_name, key in (_OPEN_GRAPH | _TWITTER).items():
        values[field_name] = _meta(soup, key)
    return PageMetadata(**values)


def clean_html(soup: BeautifulSoup) -> str:
    """Main content subtree without scripts, styles and page chrome. Mutates *soup*."""
    root = soup.find("main") or soup.find("article") or soup.body or soup
    for element in root.find_all(_STRIP_TAGS):
        element.decompose()
    for comment in root.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()
    return str(root).strip()
