"""Response shaping tests."""

from src.api.schemas import ExtractedLinks, MetaFiles, PageMetadata, SkippedLinks, SkippedUrl, Tree
from src.links.response import (
    DEFAULT_TARGET_ERROR,
    build_error_response,
    build_success_response,
    clean_empty_values,
    to_payload,
)
from src.links.scrape import ScrapedPage
from src.links.timing import format_duration, parse_iso, utc_now_iso


def _page():
    return ScrapedPage(
        url="https://example.com/docs",
        raw_html="<html></html>",
        title="Docs",
        description="All the docs",
        metadata=PageMetadata(title="Docs", og_title="Docs OG"),
        cleaned_html="<main>Docs</main>",
    )


def _build(with_tree: bool, **overrides):
    kwargs = dict(
        target_url="https://example.com/docs",
        timestamp="2024-01-01T00:00:00.000Z",
        cached=False,
        ancestors=["https://example.com"],
        tree=Tree(url="https://example.com", children=[Tree(url="https://example.com/docs")]),
        with_tree=with_tree,
        execution_time="1.20s",
        target_page=_page(),
        target_links=ExtractedLinks(internal=["https://example.com/docs/a"]),
        meta_files=MetaFiles(robots="User-agent: *"),
        skipped_urls=SkippedLinks(internal=[SkippedUrl(url="https://example.com/x", reason="Failed to scrape: 404")]),
        include_metadata=True,
        include_cleaned_html=True,
        include_extracted_links=True,
    )
    kwargs.update(overrides)
    return build_success_response(**kwargs)


def test_clean_empty_values():
    value = {
        "a": None,
        "b": "  ",
        "c": [],
        "d": {},
        "e": {"f": None},
        "g": False,
        "h": 0,
        "i": [None, "x", {}],
        "j": {"k": "v"},
    }
    assert clean_empty_values(value) == {"g": False, "h": 0, "i": ["x"], "j": {"k": "v"}}


def test_tree_mode_puts_content_on_tree_root():
    payload = to_payload(_build(with_tree=True))

    assert payload["success"] is True
    assert payload["cached"] is False
    assert payload["targetUrl"] == "https://example.com/docs"
    for key in ("title", "description", "metadata", "cleanedHtml", "extractedLinks", "executionTime", "skippedUrls"):
        assert key not in payload
    tree = payload["tree"]
    assert tree["title"] == "Docs"
    assert tree["description"] == "All the docs"
    assert tree["executionTime"] == "1.20s"
    assert tree["metaFiles"] == {"robots": "User-agent: *"}
    assert tree["skippedUrls"]["internal"][0]["reason"] == "Failed to scrape: 404"


def test_flat_mode_puts_content_on_response_root():
    payload = to_payload(_build(with_tree=False))

    assert "tree" not in payload
    assert payload["title"] == "Docs"
    assert payload["description"] == "All the docs"
    assert payload["metadata"] == {"title": "Docs", "ogTitle": "Docs OG"}
    assert payload["cleanedHtml"] == "<main>Docs</main>"
    assert payload["extractedLinks"] == {"internal": ["https://example.com/docs/a"]}
    assert payload["executionTime"] == "1.20s"
    assert payload["metaFiles"]["robots"] == "User-agent: *"
    assert payload["ancestors"] == ["https://example.com"]


def test_flat_mode_honours_include_flags():
    payload = to_payload(
        _build(with_tree=False, include_metadata=False, include_cleaned_html=False, include_extracted_links=False)
    )

    assert payload["title"] == "Docs"
    assert "metadata" not in payload
    assert "cleanedHtml" not in payload
    assert "extractedLinks" not in payload


def test_error_response_with_and_without_tree():
    tree = Tree(url="https://example.com", name="example.com")

    with_tree = to_payload(build_error_response("https://example.com/x", with_tree=True, existing_tree=tree))
    without = to_payload(build_error_response("https://example.com/x", with_tree=False, existing_tree=tree))

    assert with_tree["success"] is False
    assert with_tree["error"] == DEFAULT_TARGET_ERROR
    assert with_tree["tree"]["url"] == "https://example.com"
    assert "tree" not in without
    assert without["targetUrl"] == "https://example.com/x"


def test_error_response_custom_message():
    payload = to_payload(build_error_response("bad", with_tree=False, error="Invalid URL format"))
    assert payload["error"] == "Invalid URL format"


def test_format_duration():
    assert format_duration(812.4) == "812.40ms"
    assert format_duration(1520) == "1.52s"
    assert format_duration(123100) == "2m 3.10s"


def test_timestamps_round_trip():
    now = utc_now_iso()
    assert now.endswith("Z")
    assert parse_iso(now) is not None
    assert parse_iso("not a date") is None
    assert parse_iso("2024-01-01T00:00:00").tzinfo is not None
