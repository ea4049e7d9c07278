from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class CacheRecord(BaseModel):
    """Everything the metadata store knows about one normalized URL."""

    model_config = ConfigDict(frozen=True)

    path: str  # Relative to the cache root, forward slashes
    last_modified: str | None = None  # Last-Modified header, verbatim
    etag: str | None = None  # ETag header, verbatim (quotes included)
    expires: str | None = None  # Expires header; stored, not yet consulted
