"""Request/response Pydantic models."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LinkExtractionOptions(_CamelModel):
    include_external: bool = False
    include_media: bool = False
    remove_query_params: bool = True
    exclude_patterns: list[str] = []


class LinksRequest(_CamelModel):
    url: str
    tree: bool = True
    metadata: bool = True
    cleaned_html: bool = False
    robots: bool = False
    sitemap_xml: bool = Field(default=False, alias="sitemapXML")
    subdomain_as_root_url: bool = True
    folder_first: bool = True
    links_order: Literal["page", "alphabetical"] = "page"
    extracted_links: bool = True
    link_extraction_options: LinkExtractionOptions = LinkExtractionOptions()


class PageMetadata(_CamelModel):
    title: str | None = None
    description: str | None = None
    language: str | None = None
    canonical: str | None = None
    robots: str | None = None
    author: str | None = None
    keywords: list[str] | None = None
    favicon: str | None = None
    og_title: str | None = None
    og_description: str | None = None
    og_image: str | None = None
    og_url: str | None = None
    og_type: str | None = None
    og_site_name: str | None = None
    twitter_card: str | None = None
    twitter_site: str | None = None
    twitter_creator: str | None = None
    twitter_title: str | None = None
    twitter_description: str | None = None
    twitter_image: str | None = None


class MetaFiles(_CamelModel):
    robots: str | None = None
    sitemap_xml: str | None = Field(default=None, alias="sitemapXML")


class MediaLinks(_CamelModel):
    images: list[str] | None = None
    videos: list[str] | None = None
    documents: list[str] | None = None


class ExtractedLinks(_CamelModel):
    internal: list[str] | None = None
    external: list[str] | None = None
    media: MediaLinks | None = None


class VisitedUrl(_CamelModel):
    url: str
    last_visited: str | None = None


class SkippedUrl(_CamelModel):
    url: str
    reason: str


class SkippedMedia(_CamelModel):
    images: list[SkippedUrl] | None = None
    videos: list[SkippedUrl] | None = None
    documents: list[SkippedUrl] | None = None


class SkippedLinks(_CamelModel):
    internal: list[SkippedUrl] | None = None
    external: list[SkippedUrl] | None = None
    media: SkippedMedia | None = None
    other: list[SkippedUrl] | None = None


class Tree(_CamelModel):
    """One URL of the site map and everything discovered beneath it."""

    url: str
    root_url: str | None = None
    name: str | None = None
    title: str | None = None
    description: str | None = None
    total_urls: int | None = None
    execution_time: str | None = None
    last_updated: str | None = None
    last_visited: str | None = None
    error: str | None = None
    metadata: PageMetadata | None = None
    cleaned_html: str | None = None
    meta_files: MetaFiles | None = None
    extracted_links: ExtractedLinks | None = None
    skipped_urls: SkippedLinks | None = None
    children: list[Tree] | None = None


class CacheMetadata(_CamelModel):
    title: str | None = None
    description: str | None = None
    timestamp: str | None = None


class LinksSuccessResponse(_CamelModel):
    success: Literal[True] = True
    cached: bool = False
    target_url: str
    timestamp: str
    ancestors: list[str] | None = None
    execution_time: str | None = None
    title: str | None = None
    description: str | None = None
    metadata: PageMetadata | None = None
    extracted_links: ExtractedLinks | None = None
    cleaned_html: str | None = None
    meta_files: MetaFiles | None = None
    skipped_urls: SkippedLinks | None = None
    tree: Tree | None = None


class LinksErrorResponse(_CamelModel):
    success: Literal[False] = False
    target_url: str
    error: str
    timestamp: str
    tree: Tree | None = None


LinksResponse = LinksSuccessResponse | LinksErrorResponse
