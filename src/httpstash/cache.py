"""The public entry point: a directory-backed cache of HTTP bodies.

A cache root holds the metadata store (``cache.db``) and a ``content/``
directory of response bodies. Deleting the root is always safe; the cache
is pure derived state and is rebuilt on the next fetch.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO

import structlog

from httpstash.db import MetadataStore
from httpstash.revalidate import resolve
from httpstash.transport import HttpxTransport, build_http_client
from httpstash.urls import normalize_url

if TYPE_CHECKING:
    from httpstash.config import FetcherSettings, Settings
    from httpstash.transport import Transport

log = structlog.get_logger()

DB_FILENAME = "cache.db"


class Cache:
    """Local cache of HTTP response bodies rooted at a directory.

    URLs not seen before are downloaded and recorded; previously seen URLs
    are revalidated with the origin and served from disk when unchanged,
    or when the origin cannot be reached.

    Use :meth:`open` rather than the constructor::

        async with await Cache.open(Path("~/.cache/myapp").expanduser()) as cache:
            with await cache.fetch("https://example.com/data.json") as fh:
                data = fh.read()
    """

    def __init__(
        self,
        root: Path,
        store: MetadataStore,
        transport: Transport,
        *,
        owned_transport: HttpxTransport | None = None,
    ) -> None:
        self._root = root
        self._store = store
        self._transport = transport
        self._owned_transport = owned_transport

    @classmethod
    async def open(
        cls,
        root: str | os.PathLike[str],
        transport: Transport | None = None,
        *,
        fetcher_settings: FetcherSettings | None = None,
    ) -> Cache:
        """Open the cache at *root*, creating the directory if needed.

        When *transport* is omitted an :class:`HttpxTransport` is built from
        *fetcher_settings* and closed again by :meth:`close`.
        """
        root = Path(root)
        root.mkdir(parents=True, exist_ok=True)
        root = root.resolve()
        store = await MetadataStore.open(root / DB_FILENAME)

        owned: HttpxTransport | None = None
        if transport is None:
            owned = HttpxTransport(build_http_client(fetcher_settings))
            transport = owned

        log.debug("cache_open", root=str(root))
        return cls(root, store, transport, owned_transport=owned)

    @classmethod
    async def from_settings(
        cls, settings: Settings, transport: Transport | None = None
    ) -> Cache:
        return await cls.open(
            Path(settings.cache.root).expanduser(),
            transport,
            fetcher_settings=settings.fetcher,
        )

    @property
    def root(self) -> Path:
        return self._root

    @property
    def store(self) -> MetadataStore:
        return self._store

    async def fetch(self, url: str) -> BinaryIO:
        """Return a readable binary file holding the body of *url*.

        The fragment, if any, is ignored. Network problems are invisible to
        the caller whenever a cached copy exists; without one they are
        raised (:class:`~httpstash.errors.TransportError`,
        :class:`~httpstash.errors.HttpStatusError`).
        """
        return await resolve(
            normalize_url(url),
            root=self._root,
            store=self._store,
            transport=self._transport,
        )

    async def close(self) -> None:
        try:
            await self._store.close()
        finally:
            if self._owned_transport is not None:
                await self._owned_transport.aclose()

    async def __aenter__(self) -> Cache:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cache):
            return NotImplemented
        return self._root == other._root and self._store == other._store

    def __hash__(self) -> int:
        return hash((self._root, self._store))

    def __repr__(self) -> str:
        return f"Cache(root={str(self._root)!r})"
