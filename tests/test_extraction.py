"""Link extraction tests."""

from src.api.schemas import ExtractedLinks, LinkExtractionOptions, MediaLinks
from src.links.extraction import (
    LinkSets,
    extract_links_from_html,
    is_framework_resource,
    media_kind,
    merge_links,
)

PAGE = """
<html><head><title>Home</title></head><body>
<a href="/docs">Docs</a>
<a href="/docs/intro#section">Intro</a>
<a href="https://blog.example.com/post">Blog</a>
<a href="https://other.org/page">Other</a>
<a href="#top">Top</a>
<a href="javascript:void(0)">JS</a>
<a href="mailto:hi@example.com">Mail</a>
<a href="/_next/static/chunk.js">chunk</a>
<a href="/">Home</a>
<img src="/images/logo.png">
<video src="https://cdn.example.com/clip.mp4"></video>
<a href="/docs">Docs again</a>
</body></html>
"""


def test_internal_links_in_page_order():
    links = extract_links_from_html(PAGE, "https://example.com", "https://example.com")

    assert links.internal == [
        "https://example.com/docs",
        "https://example.com/docs/intro",
        "https://blog.example.com/post",
    ]
    assert links.external is None
    assert links.media is None


def test_external_and_media_only_when_enabled():
    options = LinkExtractionOptions(include_external=True, include_media=True)
    links = extract_links_from_html(PAGE, "https://example.com", "https://example.com", options)

    assert links.external == ["https://other.org/page"]
    assert links.media.images == ["https://example.com/images/logo.png"]
    assert links.media.videos == ["https://cdn.example.com/clip.mp4"]
    assert links.media.documents is None


def test_invalid_links_are_recorded_as_skipped():
    skipped: dict[str, str] = {}
    extract_links_from_html(PAGE, "https://example.com", skipped_urls=skipped)

    assert skipped == {"mailto:hi@example.com": "Protocol not allowed"}


def test_exclude_patterns_apply_to_raw_href():
    options = LinkExtractionOptions(exclude_patterns=[r"/docs/intro", "[invalid"])
    links = extract_links_from_html(PAGE, "https://example.com", options=options)

    assert "https://example.com/docs/intro" not in links.internal
    assert "https://example.com/docs" in links.internal


def test_query_params_kept_when_requested():
    html = '<a href="/search?q=1">s</a><a href="/list?page=2">l</a>'
    keep = extract_links_from_html(html, "https://example.com", options=LinkExtractionOptions(remove_query_params=False))
    drop = extract_links_from_html(html, "https://example.com")

    assert keep.internal == ["https://example.com/search?q=1", "https://example.com/list?page=2"]
    assert drop.internal == ["https://example.com/search", "https://example.com/list"]


def test_relative_links_resolve_against_page():
    html = '<a href="child">c</a><a href="../up">u</a>'
    links = extract_links_from_html(html, "https://example.com/docs/guide/")

    assert links.internal == ["https://example.com/docs/guide/child", "https://example.com/docs/up"]


def test_empty_html_yields_no_links():
    assert extract_links_from_html("", "https://example.com") == ExtractedLinks()
    assert extract_links_from_html(None, "https://example.com") == ExtractedLinks()


def test_media_kind_and_framework_detection():
    assert media_kind("https://example.com/a.JPG") == "images"
    assert media_kind("https://example.com/talk.webm") == "videos"
    assert media_kind("https://example.com/paper.pdf") == "documents"
    assert media_kind("https://example.com/page") is None
    assert is_framework_resource("https://example.com/wp-content/uploads/x")
    assert not is_framework_resource("https://example.com/blog/static-sites")


def test_merge_links_is_idempotent_and_ordered():
    sets = LinkSets()
    first = ExtractedLinks(
        internal=["https://example.com/b", "https://example.com/a"],
        media=MediaLinks(images=["https://example.com/x.png"]),
    )
    second = ExtractedLinks(internal=["https://example.com/a", "https://example.com/c"])

    merge_links(first, sets)
    merge_links(second, sets)
    merge_links(first, sets)

    assert list(sets.internal) == ["https://example.com/b", "https://example.com/a", "https://example.com/c"]
    assert list(sets.images) == ["https://example.com/x.png"]
    assert not sets.external
