"""
Filesystem helpers for colwire.io (file protocol baseline).

Responsibilities
- Provide a minimal stdlib-only abstraction for the filesystem operations used by
  colwire.io: directory creation, safe write handles, fsync, atomic renames, and
  positioned read handles for file segments.
- Establish clear semantics for the atomic write path: tmp write → fsync → atomic rename.

Notes
- Atomicity via os.replace is guaranteed only when src and dst reside on the same filesystem.
- All helpers are synchronous; callers decide on concurrency/locking if/when needed.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO

__all__ = [
    "makedirs",
    "open_write",
    "open_read_at",
    "fsync_file",
    "rename_atomic",
    "tmp_path_for",
]


def makedirs(path: str, exist_ok: bool = True) -> None:
    """
    Create directories recursively.

    Args:
        path (str): Directory path to create.
        exist_ok (bool): Do not error if the directory already exists.
    """
    if path:
        os.makedirs(path, exist_ok=exist_ok)


@contextmanager
def open_write(path: str) -> Iterator[BinaryIO]:
    """
    Open a file for binary write as a context manager.

    Args:
        path (str): Destination path to open in write-binary mode.

    Yields:
        BinaryIO: A writable handle supporting .flush() and .fileno().

    Notes:
        Caller is responsible for the atomic os.replace of a temporary file to its final path.
    """
    fh = open(path, "wb")
    try:
        yield fh
    finally:
        fh.close()


def open_read_at(path: str, offset: int) -> BinaryIO:
    """
    Open a file for binary read positioned at `offset`.

    Args:
        path (str): File to open.
        offset (int): Absolute byte position to seek to (>= 0).

    Returns:
        BinaryIO: Open handle; the caller owns it and must close it.

    Raises:
        OSError: If the file cannot be opened or the seek fails.
    """
    fh = open(path, "rb")
    try:
        fh.seek(offset)
    except BaseException:
        fh.close()
        raise
    return fh


def fsync_file(fh: BinaryIO) -> None:
    """
    Flush and fsync an open file handle.

    Args:
        fh (BinaryIO): A file-like object with .fileno() and .flush().
    """
    fh.flush()
    os.fsync(fh.fileno())


def rename_atomic(src: str, dst: str) -> None:
    """
    Atomically rename src -> dst on the same filesystem.

    Args:
        src (str): Existing source path (typically a temporary file).
        dst (str): Final destination path.

    Notes:
        Uses os.replace, which is atomic only if src and dst reside on the same filesystem.
    """
    os.replace(src, dst)


def tmp_path_for(path: str) -> str:
    """Temporary sibling path used while `path` is being written."""
    head, tail = os.path.split(path)
    return os.path.join(head, f".{tail}.{os.getpid()}.tmp")
