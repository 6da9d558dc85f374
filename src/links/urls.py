"""URL validation and normalisation for crawl targets and discovered links."""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlsplit, urlunsplit

from src.links.errors import URLError

MAX_URL_LENGTH = 2048

_UNSAFE_HOST_PATTERNS = (
    re.compile(r"^(localhost|127\.0\.0\.1|0\.0\.0\.0|\[?::1\]?)"),
    re.compile(r"^192\.168\."),
    re.compile(r"^10\."),
    re.compile(r"^172\.(1[6-9]|2[0-9]|3[0-1])\."),
    re.compile(r"^169\.254\."),
    re.compile(r"^fc00:"),
    re.compile(r"^fe80:"),
    re.compile(r"\.(local|internal|localhost)$"),
    re.compile(r"^(.*\.)?docker"),
)

_IPV4 = re.compile(r"^\d{1,3}(\.\d{1,3}){3}$")
_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+-]*:(?!\d)")

BLOCKED_EXTENSIONS = frozenset({
    ".pdf", ".doc", ".docx", ".xls", ".xlsx",
    ".zip", ".rar", ".exe", ".dmg", ".pkg", ".iso", ".tar", ".gz", ".7z",
    ".mp3", ".mp4", ".avi", ".mov",
    ".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp",
})


@dataclass(frozen=True)
class UrlValidation:
    """Outcome of :func:`validate_url`."""

    is_valid: bool
    normalized_url: str | None = None
    error: str | None = None
    unsafe: bool = False


def _normalize(scheme: str, hostname: str, port: int | None, path: str, query: str) -> str:
    if (scheme == "http" and port == 80) or (scheme == "https" and port == 443):
        port = None
    if hostname.startswith("www.") and hostname.count(".") > 1:
        hostname = hostname[4:]
    netloc = f"{hostname}:{port}" if port else hostname
    if path == "/":
        path = ""
    return urlunsplit((scheme, netloc, path, query, ""))


def validate_url(url: str) -> UrlValidation:
    """Check that *url* is a public http(s) page address and normalise it.

    Bare domains get ``https://`` prepended. The normalised form drops the
    fragment, default ports, a leading ``www.`` and a lone ``/`` path, and keeps
    the query string.
    """
    if not url or len(url) > MAX_URL_LENGTH:
        return UrlValidation(False, error="URL is empty or exceeds maximum length")

    candidate = url.strip()
    if _SCHEME.match(candidate) and not candidate.lower().startswith(("http://", "https://")):
        return UrlValidation(False, error="Protocol not allowed", unsafe=True)
    if not candidate.lower().startswith(("http://", "https://")):
        candidate = f"https://{candidate.lstrip('/')}"

    try:
        parts = urlsplit(candidate)
        port = parts.port
    except ValueError:
        return UrlValidation(False, error="Invalid URL format")

    hostname = (parts.hostname or "").lower()
    if not hostname or "." not in hostname and not hostname.startswith("localhost"):
        return UrlValidation(False, error="Invalid URL format")

    for pattern in _UNSAFE_HOST_PATTERNS:
        if pattern.search(hostname):
            return UrlValidation(False, error="URL is not allowed for security reasons", unsafe=True)

    if not _IPV4.match(hostname):
        tld = hostname.rsplit(".", 1)[-1]
        if len(tld) < 2 or not tld.isalpha():
            return UrlValidation(False, error="Invalid domain TLD")

    normalized = _normalize(parts.scheme.lower(), hostname, port, parts.path, parts.query)
    return UrlValidation(True, normalized_url=normalized)


def blocked_extension(url: str) -> str | None:
    """Return the file extension of *url* when it points at a non-page resource."""
    path = urlsplit(url).path.lower()
    match = re.search(r"\.[^/.]+$", path)
    if match and match.group(0) in BLOCKED_EXTENSIONS:
        return match.group(0)
    return None


def validate_target_url(url: str | None) -> str:
    """Validate the URL a caller asked to crawl and return its normalised form.

    Raises :class:`URLError` when the URL is missing, malformed, unsafe or
    points at a file the scrapers cannot turn into a page.
    """
    if not url:
        raise URLError("URL parameter is required")

    result = validate_url(url)
    if not result.is_valid or not result.normalized_url:
        raise URLError(result.error or "Invalid URL format")

    extension = blocked_extension(result.normalized_url)
    if extension:
        raise URLError(f"URL has blocked extension: {extension}")

    return result.normalized_url
