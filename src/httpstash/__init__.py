"""httpstash: a local, persistent cache for HTTP resources."""

from __future__ import annotations

__version__ = "0.1.0"

from httpstash.cache import Cache  # noqa: E402
from httpstash.errors import (  # noqa: E402
    CorruptRecordError,
    ErrorCode,
    HttpStashError,
    HttpStatusError,
    InvalidURLError,
    NotFoundError,
    PathError,
    StoreError,
    StoreInitError,
    TransportError,
)
from httpstash.models.cache import CacheRecord  # noqa: E402

__all__ = [
    "__version__",
    "Cache",
    "CacheRecord",
    # errors
    "ErrorCode",
    "HttpStashError",
    "StoreInitError",
    "StoreError",
    "CorruptRecordError",
    "NotFoundError",
    "PathError",
    "TransportError",
    "HttpStatusError",
    "InvalidURLError",
]
