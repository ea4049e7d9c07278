"""Shared fixtures for unit and integration tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
import structlog
from fakes import FakeTransport


@pytest.fixture()
def transport() -> Iterator[FakeTransport]:
    """Scripted transport; fails the test if a scripted request is never sent."""
    t = FakeTransport()
    yield t
    t.assert_done()


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    yield
    structlog.reset_defaults()
