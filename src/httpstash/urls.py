"""URL normalization.

Fragments are client-side only and never reach the origin, so two URLs that
differ only in their fragment name the same cached resource.
"""

from __future__ import annotations

from urllib.parse import urldefrag

import httpx

from httpstash.errors import InvalidURLError


def normalize_url(url: str | httpx.URL) -> str:
    """Validate *url* and return it with any fragment removed."""
    try:
        parsed = httpx.URL(url.strip() if isinstance(url, str) else url)
    except httpx.InvalidURL as exc:
        raise InvalidURLError(f"Invalid URL {str(url)!r}: {exc}") from exc

    if parsed.scheme not in ("http", "https"):
        raise InvalidURLError(f"URL must use http or https scheme: {str(url)!r}")
    if not parsed.host:
        raise InvalidURLError(f"URL has no host: {str(url)!r}")

    return urldefrag(str(parsed)).url
