"""Error taxonomy for httpstash.

Every error raised by the library derives from :class:`HttpStashError`,
which carries a machine-readable :class:`ErrorCode`, a human-readable
message, and a ``recoverable`` flag telling callers whether retrying the
same operation later might succeed.

Filesystem failures are not wrapped: they surface as the builtin
``OSError`` family.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    STORE_INIT_FAILED = "STORE_INIT_FAILED"
    STORE_FAILED = "STORE_FAILED"
    CORRUPT_RECORD = "CORRUPT_RECORD"
    URL_NOT_CACHED = "URL_NOT_CACHED"
    PATH_OUTSIDE_ROOT = "PATH_OUTSIDE_ROOT"
    TRANSPORT_FAILED = "TRANSPORT_FAILED"
    HTTP_STATUS_ERROR = "HTTP_STATUS_ERROR"
    INVALID_URL = "INVALID_URL"


class HttpStashError(Exception):
    """Base class for all httpstash errors."""

    code: ErrorCode
    recoverable: bool = False

    def __init__(self, message: str, *, recoverable: bool | None = None) -> None:
        super().__init__(message)
        self.message = message
        if recoverable is not None:
            self.recoverable = recoverable

    def to_dict(self) -> dict[str, object]:
        return {
            "code": str(self.code),
            "message": self.message,
            "recoverable": self.recoverable,
        }


class StoreInitError(HttpStashError):
    """The metadata store could not be opened or its schema created."""

    code = ErrorCode.STORE_INIT_FAILED


class StoreError(HttpStashError):
    """A query or transaction against the metadata store failed."""

    code = ErrorCode.STORE_FAILED
    recoverable = True


class CorruptRecordError(HttpStashError):
    """A stored record has a value of the wrong type in a required column."""

    code = ErrorCode.CORRUPT_RECORD


class NotFoundError(HttpStashError):
    """No record exists for the requested URL."""

    code = ErrorCode.URL_NOT_CACHED

    def __init__(self, url: str) -> None:
        super().__init__(f"URL not found in cache: {url!r}")
        self.url = url


class PathError(HttpStashError):
    """A content path does not lie under the cache root."""

    code = ErrorCode.PATH_OUTSIDE_ROOT


class TransportError(HttpStashError):
    """The request could not be sent or the response body could not be read."""

    code = ErrorCode.TRANSPORT_FAILED
    recoverable = True


class HttpStatusError(HttpStashError):
    """The origin answered with a 4xx or 5xx status."""

    code = ErrorCode.HTTP_STATUS_ERROR

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(
            f"HTTP {status_code} for {url}",
            recoverable=status_code >= 500,
        )
        self.url = url
        self.status_code = status_code


class InvalidURLError(HttpStashError):
    """The URL cannot be parsed or does not use http/https."""

    code = ErrorCode.INVALID_URL
