"""URL topology tests."""

from src.links.topology import (
    extract_root_domain,
    get_ancestor_paths,
    get_descendant_paths,
    get_root_url,
    get_tree_name,
    is_platform_url,
    normalize_url,
    resolve_root_url,
)


def test_normalize_resolves_relative_and_drops_fragment():
    assert normalize_url("/docs/intro#install", "https://example.com/") == "https://example.com/docs/intro"


def test_normalize_lowercases_host_and_strips_trailing_slash():
    assert normalize_url("https://Example.COM/Docs/?page=2") == "https://example.com/Docs"


def test_normalize_can_keep_query():
    assert normalize_url("https://example.com/search?q=1", remove_query_params=False) == "https://example.com/search?q=1"


def test_normalize_relative_without_base_is_unchanged():
    assert normalize_url("/docs") == "/docs"
    assert normalize_url("") == ""


def test_extract_root_domain_handles_multi_part_suffix():
    assert extract_root_domain("docs.example.co.uk") == "example.co.uk"
    assert extract_root_domain("blog.example.com") == "example.com"


def test_extract_root_domain_returns_host_without_suffix():
    assert extract_root_domain("localhost") == "localhost"


def test_get_root_url_collapses_subdomains():
    assert get_root_url("https://blog.example.com/post/1") == "https://example.com"


def test_platform_detection():
    assert is_platform_url("https://github.com/owner/repo")
    assert is_platform_url("https://gitlab.com/group")
    assert not is_platform_url("https://example.com/owner")


def test_resolve_root_for_platform_uses_first_segment():
    assert resolve_root_url("https://github.com/owner/repo/issues") == "https://github.com/owner"
    assert resolve_root_url("https://github.com/owner/repo/issues", subdomain_as_root_url=False) == "https://github.com/owner"


def test_resolve_root_for_bare_platform_origin():
    assert resolve_root_url("https://github.com") == "https://github.com"


def test_resolve_root_subdomain_flag():
    assert resolve_root_url("https://docs.example.com/guide") == "https://docs.example.com"
    assert resolve_root_url("https://docs.example.com/guide", subdomain_as_root_url=False) == "https://example.com"


def test_ancestor_paths():
    assert get_ancestor_paths("https://example.com/docs/guide/intro") == [
        "https://example.com",
        "https://example.com/docs",
        "https://example.com/docs/guide",
    ]


def test_ancestor_paths_of_root_are_empty():
    assert get_ancestor_paths("https://example.com") == []


def test_ancestor_paths_on_subdomain_include_registrable_root():
    assert get_ancestor_paths("https://blog.example.com/2024/post") == [
        "https://example.com",
        "https://blog.example.com/2024",
    ]


def test_descendant_paths_are_same_host_and_shallowest_first():
    links = [
        "https://example.com/docs/a/b",
        "https://example.com/docs/a",
        "https://example.com/blog/x",
        "https://other.com/docs/a",
        "https://example.com/docs",
        "https://example.com/documents",
    ]
    assert get_descendant_paths("https://example.com/docs", links) == [
        "https://example.com/docs/a",
        "https://example.com/docs/a/b",
    ]


def test_descendant_paths_max_steps():
    links = ["https://example.com/docs/a/b", "https://example.com/docs/a"]
    assert get_descendant_paths("https://example.com/docs", links, max_steps=1) == ["https://example.com/docs/a"]


def test_descendant_paths_of_origin():
    links = {"https://example.com/a": None, "https://example.com/b/c": None}
    assert get_descendant_paths("https://example.com", links) == ["https://example.com/a", "https://example.com/b/c"]


def test_tree_name():
    assert get_tree_name("https://example.com/docs") == "example.com"
    assert get_tree_name("https://github.com/owner") == "github.com/owner"
    assert get_tree_name("https://github.com/owner/repo/tree/main") == "github.com/owner/repo"
    assert get_tree_name("https://github.com") == "github.com"
