"""Exceptions raised by the links pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.api.schemas import Tree


class URLError(ValueError):
    """The requested URL cannot be crawled (missing, malformed, unsafe or not a page)."""


class LinksProcessingError(RuntimeError):
    """Unexpected failure while building the tree or shaping the response.

    ``tree`` holds the fresh cached tree, when there was one and the caller
    asked for a tree, so the error response can still carry it.
    """

    def __init__(self, message: str, tree: Tree | None = None) -> None:
        super().__init__(message)
        self.tree = tree
