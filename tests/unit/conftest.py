"""Unit-specific fixtures (in-memory SQLite, scripted transport)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from httpstash.cache import Cache
from httpstash.db import MetadataStore

if TYPE_CHECKING:
    from pathlib import Path

    from fakes import FakeTransport


@pytest.fixture()
async def store():
    """In-memory metadata store for unit tests."""
    s = await MetadataStore.open(":memory:")
    yield s
    await s.close()


@pytest.fixture()
async def cache(tmp_path: Path, transport: FakeTransport):
    """Cache rooted in a fresh temporary directory, talking to the fake transport."""
    c = await Cache.open(tmp_path / "http-cache-test", transport)
    yield c
    await c.close()
