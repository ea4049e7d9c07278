"""Content directory: randomly named, write-once response bodies."""

from __future__ import annotations

import secrets
from pathlib import Path
from typing import BinaryIO

import structlog

from httpstash.errors import PathError

log = structlog.get_logger()

# Lowercase letters and digits, minus the easily confused 0/o and 1/l/i.
NAME_ALPHABET = "23456789abcdefghjkmnpqrstuvwxyz"
NAME_LENGTH = 20


def random_name() -> str:
    return "".join(secrets.choice(NAME_ALPHABET) for _ in range(NAME_LENGTH))


def create_new_file(directory: Path) -> tuple[BinaryIO, Path]:
    """Create a new, empty file with a random name inside *directory*.

    The directory is created first if needed. Name collisions are retried
    with a fresh name; any other ``OSError`` propagates.
    """
    directory.mkdir(parents=True, exist_ok=True)
    while True:
        path = directory / random_name()
        try:
            handle = open(path, "xb")  # noqa: SIM115 - caller owns the handle
        except FileExistsError:
            log.debug("content_name_collision", path=str(path))
            continue
        return handle, path


def relative_to_root(path: Path, root: Path) -> str:
    """Return *path* relative to *root* with forward slashes."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError as exc:
        raise PathError(f"{str(path)!r} is not inside cache root {str(root)!r}") from exc
