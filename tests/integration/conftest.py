"""Integration test fixtures.

Provides a Cache wired to a real httpx client whose traffic is intercepted
by respx, so requests travel through the full transport stack.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
import respx

from httpstash.cache import Cache

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator
    from pathlib import Path


@pytest.fixture()
def router() -> Iterator[respx.MockRouter]:
    with respx.mock(assert_all_mocked=True, assert_all_called=False) as mock:
        yield mock


@pytest.fixture()
async def live_cache(tmp_path: Path, router: respx.MockRouter) -> AsyncIterator[Cache]:
    """Cache owning its own HttpxTransport."""
    async with await Cache.open(tmp_path / "root") as cache:
        yield cache
