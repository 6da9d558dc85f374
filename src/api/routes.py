"""GET /links and POST /links endpoint handlers."""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from src.api.schemas import LinkExtractionOptions, LinksRequest
from src.links.errors import LinksProcessingError, URLError
from src.links.processor import LinksProcessor
from src.links.response import build_error_response, to_payload

router = APIRouter()


def _get_processor(request: Request) -> LinksProcessor:
    return request.app.state.processor


async def _respond(body: LinksRequest, processor: LinksProcessor) -> JSONResponse:
    try:
        response = await processor.process_links_request(body)
    except URLError as exc:
        error = build_error_response(body.url, with_tree=False, error=str(exc))
        return JSONResponse(to_payload(error), status_code=400)
    except LinksProcessingError as exc:
        error = build_error_response(body.url, with_tree=True, existing_tree=exc.tree, error=str(exc))
        return JSONResponse(to_payload(error), status_code=500)
    return JSONResponse(to_payload(response))


@router.post("/links")
async def post_links(
    body: LinksRequest,
    processor: LinksProcessor = Depends(_get_processor),
):
    return await _respond(body, processor)


@router.get("/links")
async def get_links(
    url: str,
    tree: bool = True,
    metadata: bool = True,
    cleaned_html: bool = Query(False, alias="cleanedHtml"),
    robots: bool = False,
    sitemap_xml: bool = Query(False, alias="sitemapXML"),
    subdomain_as_root_url: bool = Query(True, alias="subdomainAsRootUrl"),
    folder_first: bool = Query(True, alias="folderFirst"),
    links_order: Literal["page", "alphabetical"] = Query("page", alias="linksOrder"),
    extracted_links: bool = Query(True, alias="extractedLinks"),
    include_external: bool = Query(False, alias="includeExternal"),
    include_media: bool = Query(False, alias="includeMedia"),
    remove_query_params: bool = Query(True, alias="removeQueryParams"),
    exclude_patterns: list[str] = Query([], alias="excludePatterns"),
    processor: LinksProcessor = Depends(_get_processor),
):
    body = LinksRequest(
        url=url,
        tree=tree,
        metadata=metadata,
        cleaned_html=cleaned_html,
        robots=robots,
        sitemap_xml=sitemap_xml,
        subdomain_as_root_url=subdomain_as_root_url,
        folder_first=folder_first,
        links_order=links_order,
        extracted_links=extracted_links,
        link_extraction_options=LinkExtractionOptions(
            include_external=include_external,
            include_media=include_media,
            remove_query_params=remove_query_params,
            exclude_patterns=exclude_patterns,
        ),
    )
    return await _respond(body, processor)
