"""Revalidation engine: decide whether cached content can be served.

For each request the engine walks a small state machine:

- **Lookup** the URL in the metadata store. A miss (or a record whose
  ``path`` is unreadable) goes straight to *fetch fresh*.
- **Revalidate** a hit with a conditional GET carrying the stored
  ``If-Modified-Since`` / ``If-None-Match`` values. A 304 means the cached
  bytes are current. Any other successful response replaces them. An HTTP
  error status or a transport failure is logged and the cached copy is
  served anyway.
- **Serve existing** opens the stored file. A record pointing at a missing
  file is an error, not something to repair silently.
- **Fetch fresh** streams the body into a new content file and only then
  commits the metadata, so a record never points at a partial file.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, BinaryIO

import httpx
import structlog

from httpstash.content import create_new_file, relative_to_root
from httpstash.errors import CorruptRecordError, HttpStatusError, NotFoundError, TransportError
from httpstash.models.cache import CacheRecord
from httpstash.urls import normalize_url

if TYPE_CHECKING:
    from pathlib import Path

    from httpstash.db import MetadataStore
    from httpstash.transport import Transport, TransportResponse

log = structlog.get_logger()

CONTENT_DIR = "content"

_NOT_MODIFIED = 304


def conditional_headers(record: CacheRecord) -> dict[str, str]:
    """Precondition headers for revalidating *record*.

    Both are sent when both are known; the origin decides which wins.
    """
    headers: dict[str, str] = {}
    if record.last_modified is not None:
        headers["If-Modified-Since"] = record.last_modified
    if record.etag is not None:
        headers["If-None-Match"] = record.etag
    return headers


def record_from_response(path: str, response: TransportResponse) -> CacheRecord:
    return CacheRecord(
        path=path,
        last_modified=response.headers.get("last-modified"),
        etag=response.headers.get("etag"),
        expires=response.headers.get("expires"),
    )


async def resolve(
    url: str,
    *,
    root: Path,
    store: MetadataStore,
    transport: Transport,
) -> BinaryIO:
    """Return an open, fully written file holding the body for *url*."""
    key = normalize_url(url)

    try:
        record = await store.lookup(key)
    except (NotFoundError, CorruptRecordError) as exc:
        log.debug("cache_miss", url=key, reason=str(exc))
        response = await _fetch_unconditional(key, transport)
        return await _store_response(key, response, root=root, store=store)

    response = await _revalidate(key, record, transport)
    if response is None:
        return _open_existing(root, record)

    try:
        return await _store_response(key, response, root=root, store=store)
    except TransportError as exc:
        log.warning("revalidation_body_failed", url=key, error=str(exc))
        return _open_existing(root, record)


async def _fetch_unconditional(url: str, transport: Transport) -> TransportResponse:
    response = await transport.execute(httpx.Request("GET", url))
    try:
        return response.error_for_status()
    except HttpStatusError:
        await response.aclose()
        raise


async def _revalidate(
    url: str, record: CacheRecord, transport: Transport
) -> TransportResponse | None:
    """Send the conditional request; ``None`` means serve the cached copy."""
    request = httpx.Request("GET", url, headers=conditional_headers(record))
    try:
        response = await transport.execute(request)
    except TransportError as exc:
        log.warning("revalidation_failed", url=url, error=str(exc))
        return None

    try:
        response.error_for_status()
    except HttpStatusError as exc:
        await response.aclose()
        log.warning("revalidation_failed", url=url, error=str(exc), status=exc.status_code)
        return None

    if response.status_code == _NOT_MODIFIED:
        await response.aclose()
        log.debug("cache_hit_not_modified", url=url, path=record.path)
        return None

    log.debug("cache_stale", url=url, status=response.status_code)
    return response


def _open_existing(root: Path, record: CacheRecord) -> BinaryIO:
    return open(root / record.path, "rb")  # noqa: SIM115 - returned to the caller


async def _store_response(
    url: str,
    response: TransportResponse,
    *,
    root: Path,
    store: MetadataStore,
) -> BinaryIO:
    try:
        handle, path = create_new_file(root / CONTENT_DIR)
        size = 0
        try:
            with handle:
                async for chunk in response.aiter_bytes():
                    handle.write(chunk)
                    size += len(chunk)
        except BaseException:
            # No record will point at a partial body.
            path.unlink(missing_ok=True)
            raise
    finally:
        await response.aclose()
    log.debug("content_downloaded", url=url, path=str(path), bytes=size)

    record = record_from_response(relative_to_root(path, root), response)
    async with store.begin_write(url, record) as pending:
        await pending.commit()
    log.info("cache_updated", url=url, path=record.path, etag=record.etag)

    return open(path, "rb")  # noqa: SIM115 - returned to the caller
