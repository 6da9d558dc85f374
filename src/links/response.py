"""Shaping of the final links response."""

from __future__ import annotations

from typing import Any

from src.api.schemas import (
    ExtractedLinks,
    LinksErrorResponse,
    LinksResponse,
    LinksSuccessResponse,
    MetaFiles,
    SkippedLinks,
    Tree,
)
from src.links.scrape import ScrapedPage
from src.links.timing import utc_now_iso

DEFAULT_TARGET_ERROR = (
    "Failed to scrape target URL. The URL may be unreachable, a placeholder URL, "
    "or returning an error status."
)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict)):
        return not value
    return False


def clean_empty_values(value: Any) -> Any:
    """Recursively drop ``None``, blank strings, empty lists and empty dicts."""
    if isinstance(value, dict):
        cleaned = {key: clean_empty_values(item) for key, item in value.items()}
        return {key: item for key, item in cleaned.items() if not _is_empty(item)}
    if isinstance(value, list):
        cleaned_items = [clean_empty_values(item) for item in value]
        return [item for item in cleaned_items if not _is_empty(item)]
    return value


def to_payload(response: LinksResponse) -> dict[str, Any]:
    """JSON-ready camelCase dict of *response* without empty fields."""
    return clean_empty_values(response.model_dump(by_alias=True, mode="json"))


def build_error_response(
    target_url: str,
    *,
    with_tree: bool,
    existing_tree: Tree | None = None,
    error: str = DEFAULT_TARGET_ERROR,
) -> LinksErrorResponse:
    """Error shape, carrying the fresh cached tree when the caller wanted a tree."""
    return LinksErrorResponse(
        target_url=target_url,
        error=error,
        timestamp=utc_now_iso(),
        tree=existing_tree if with_tree and existing_tree is not None else None,
    )


def build_success_response(
    *,
    target_url: str,
    timestamp: str,
    cached: bool,
    ancestors: list[str] | None,
    tree: Tree | None,
    with_tree: bool,
    execution_time: str,
    target_page: ScrapedPage | None,
    target_links: ExtractedLinks | None,
    meta_files: MetaFiles | None,
    skipped_urls: SkippedLinks | None,
    include_metadata: bool,
    include_cleaned_html: bool,
    include_extracted_links: bool,
) -> LinksSuccessResponse:
    """Place content either on the tree root or on the response root, never both.

    With a tree, the target page's title and description, execution time,
    skipped URLs and meta files sit on the tree root and the remaining page
    content on the tree nodes. Without one, the target page's
    title, description, metadata, links and cleaned HTML go on the response.
    """
    if with_tree and tree is not None:
        if target_page is not None:
            tree.title = target_page.title or None
            tree.description = target_page.description or None
        tree.execution_time = execution_time
        tree.skipped_urls = skipped_urls
        tree.meta_files = meta_files
        return LinksSuccessResponse(
            cached=cached,
            target_url=target_url,
            timestamp=timestamp,
            ancestors=ancestors,
            tree=tree,
        )

    page = target_page
    return LinksSuccessResponse(
        cached=cached,
        target_url=target_url,
        timestamp=timestamp,
        ancestors=ancestors,
        execution_time=execution_time,
        title=page.title if page else None,
        description=page.description if page else None,
        metadata=page.metadata if page and include_metadata else None,
        extracted_links=target_links if include_extracted_links else None,
        cleaned_html=page.cleaned_html if page and include_cleaned_html else None,
        meta_files=meta_files,
        skipped_urls=skipped_urls,
    )
