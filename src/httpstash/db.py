"""SQLite metadata store mapping normalized URLs to cache records.

Unlike a best-effort cache, the metadata store is the source of truth for
what lives in the content directory, so failures are raised rather than
swallowed: a record the engine cannot trust must never be used to serve
data.

The connection runs in autocommit mode and transactions are opened
explicitly with ``BEGIN``. A write is only visible once
:meth:`PendingWrite.commit` succeeds; leaving the ``async with`` block any
other way rolls it back.
"""

from __future__ import annotations

import asyncio
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiosqlite
import structlog

from httpstash.errors import CorruptRecordError, NotFoundError, StoreError, StoreInitError
from httpstash.models.cache import CacheRecord
from httpstash.urls import normalize_url

if TYPE_CHECKING:
    from types import TracebackType

log = structlog.get_logger()

MEMORY_LOCATION = ":memory:"

_SCHEMA = """
CREATE TABLE urls (
    url           TEXT NOT NULL UNIQUE,
    path          TEXT NOT NULL,
    last_modified TEXT,
    etag          TEXT,
    expires       TEXT
);
"""

_SELECT_RECORD = "SELECT path, last_modified, etag, expires FROM urls WHERE url = ?"

_UPSERT_RECORD = (
    "INSERT OR REPLACE INTO urls "
    "(url, path, last_modified, etag, expires) "
    "VALUES (?, ?, ?, ?, ?)"
)


def canonicalize_db_path(location: str | os.PathLike[str]) -> str:
    """Return an absolute, symlink-free form of *location*.

    The parent directory must exist; the file itself need not. The
    ``":memory:"`` location has no parent on disk and is returned unchanged.
    """
    if os.fspath(location) == MEMORY_LOCATION:
        return MEMORY_LOCATION

    path = Path(location)
    try:
        parent = path.parent.resolve(strict=True)
    except OSError as exc:
        raise StoreInitError(f"Cannot open metadata store at {str(path)!r}: {exc}") from exc
    return str(parent / path.name)


def _optional_text(value: Any, column: str, url: str) -> str | None:
    if value is None or isinstance(value, str):
        return value
    log.warning("cache_record_bad_column", url=url, column=column, value=repr(value))
    return None


class MetadataStore:
    """Durable mapping from normalized URL to :class:`CacheRecord`."""

    def __init__(self, db: aiosqlite.Connection, path: str) -> None:
        self._db = db
        self._path = path
        # Held for the whole lifetime of a PendingWrite so other coroutines
        # sharing this connection never observe uncommitted rows.
        self._lock = asyncio.Lock()

    @classmethod
    async def open(cls, location: str | os.PathLike[str]) -> MetadataStore:
        """Open the store at *location*, creating it and its schema if needed."""
        path = canonicalize_db_path(location)
        log.debug("store_open", path=path)

        try:
            db = await aiosqlite.connect(path, isolation_level=None)
        except (aiosqlite.Error, OSError) as exc:
            raise StoreInitError(f"Cannot open metadata store at {path!r}: {exc}") from exc

        try:
            cursor = await db.execute("SELECT COUNT(*) FROM sqlite_master")
            row = await cursor.fetchone()
            await cursor.close()
            if row is not None and row[0] == 0:
                log.debug("store_schema_create", path=path)
                await db.executescript(_SCHEMA)
        except (aiosqlite.Error, OSError) as exc:
            await db.close()
            raise StoreInitError(f"Cannot initialise metadata store at {path!r}: {exc}") from exc

        return cls(db, path)

    @property
    def path(self) -> str:
        return self._path

    async def close(self) -> None:
        await self._db.close()

    async def __aenter__(self) -> MetadataStore:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MetadataStore):
            return NotImplemented
        return self._path == other._path

    def __hash__(self) -> int:
        return hash(self._path)

    def __repr__(self) -> str:
        return f"MetadataStore(path={self._path!r})"

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def lookup(self, url: str) -> CacheRecord:
        """Return the record for *url*, ignoring any fragment.

        Raises:
            NotFoundError: No record exists for the URL.
            CorruptRecordError: The stored ``path`` is not text.
            StoreError: The query itself failed.
        """
        key = normalize_url(url)
        async with self._lock:
            try:
                cursor = await self._db.execute(_SELECT_RECORD, (key,))
                row = await cursor.fetchone()
                await cursor.close()
            except aiosqlite.Error as exc:
                raise StoreError(f"Cannot read cache record for {key!r}: {exc}") from exc

        if row is None:
            raise NotFoundError(key)

        path = row[0]
        if not isinstance(path, str):
            raise CorruptRecordError(f"path had wrong type: {path!r}")

        record = CacheRecord(
            path=path,
            last_modified=_optional_text(row[1], "last_modified", key),
            etag=_optional_text(row[2], "etag", key),
            expires=_optional_text(row[3], "expires", key),
        )
        log.debug(
            "cache_record_found",
            url=key,
            path=record.path,
            etag=record.etag,
            last_modified=record.last_modified,
        )
        return record

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def begin_write(self, url: str, record: CacheRecord) -> PendingWrite:
        """Prepare an upsert of *record* for *url*, ignoring any fragment.

        The transaction starts when the returned object is entered::

            async with store.begin_write(url, record) as pending:
                await pending.commit()
        """
        return PendingWrite(self, normalize_url(url), record)


class PendingWrite:
    """An open write transaction; rolled back on exit unless committed."""

    def __init__(self, store: MetadataStore, url: str, record: CacheRecord) -> None:
        self._store = store
        self._url = url
        self._record = record
        self._active = False
        self._committed = False

    @property
    def committed(self) -> bool:
        return self._committed

    async def __aenter__(self) -> PendingWrite:
        db = self._store._db
        await self._store._lock.acquire()
        # Stays True unless BEGIN itself fails. A cancelled await does not stop
        # the statement from running, and a later ROLLBACK is queued behind it.
        begun = True
        try:
            try:
                await db.execute("BEGIN")
            except aiosqlite.Error as exc:
                begun = False
                raise StoreError(
                    f"Cannot begin transaction for {self._url!r}: {exc}"
                ) from exc

            try:
                await db.execute(
                    _UPSERT_RECORD,
                    (
                        self._url,
                        self._record.path,
                        self._record.last_modified,
                        self._record.etag,
                        self._record.expires,
                    ),
                )
            except aiosqlite.Error as exc:
                raise StoreError(
                    f"Cannot write cache record for {self._url!r}: {exc}"
                ) from exc
        except BaseException:
            try:
                if begun:
                    log.debug("transaction_rollback", url=self._url)
                    await self._rollback()
            finally:
                self._store._lock.release()
            raise

        self._active = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if self._active:
                self._active = False
                log.debug("transaction_rollback", url=self._url)
                await self._rollback()
        finally:
            self._store._lock.release()

    async def commit(self) -> None:
        """Make the write visible.

        If ``COMMIT`` fails, a rollback is attempted and the commit failure
        is raised whether or not the rollback succeeded.
        """
        if not self._active:
            raise RuntimeError("commit() called without an open transaction")

        # Whatever happens below, __aexit__ has nothing left to roll back.
        self._active = False
        log.debug("transaction_commit", url=self._url)
        try:
            await self._store._db.execute("COMMIT")
        except aiosqlite.Error as exc:
            log.debug("transaction_commit_failed", url=self._url, error=str(exc))
            await self._rollback()
            raise StoreError(f"Cannot commit cache record for {self._url!r}: {exc}") from exc
        self._committed = True

    async def _rollback(self) -> None:
        try:
            await self._store._db.execute("ROLLBACK")
        except aiosqlite.Error:
            log.warning("transaction_rollback_failed", url=self._url, exc_info=True)
