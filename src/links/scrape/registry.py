"""URL loader registry with regex hostname matching."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlparse

if TYPE_CHECKING:
    from .models import PageLoader


@dataclass
class LoaderRegistration:
    patterns: tuple[str, ...]  # hostname regexes
    loader: PageLoader


class ScraperRegistry:
    """Registry mapping hostname patterns to loader instances."""

    def __init__(self) -> None:
        self._registrations: list[LoaderRegistration] = []
        self._default_loader: PageLoader | None = None

    def register(self, patterns: tuple[str, ...], loader: PageLoader) -> None:
        self._registrations.append(LoaderRegistration(patterns=patterns, loader=loader))

    def set_default(self, loader: PageLoader) -> None:
        self._default_loader = loader

    def get_loader(self, url: str) -> PageLoader | None:
        """First registered loader whose pattern matches the URL's host, else the default."""
        hostname = urlparse(url).hostname or ""
        for registration in self._registrations:
            if any(re.match(pattern, hostname) for pattern in registration.patterns):
                return registration.loader
        return self._default_loader
