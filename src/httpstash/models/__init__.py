from __future__ import annotations

from httpstash.models.cache import CacheRecord

__all__ = [
    "CacheRecord",
]
