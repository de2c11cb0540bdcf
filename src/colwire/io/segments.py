"""
Segment handles, segment sources and read modes.

A segment is one opaque unit of encoded data handed to the reader by an external
producer. It is either:
- a channel segment: any object exposing `read(buffer) -> int` and `close()`
  (see colwire.io.channels.ReadableChannel), or
- a FileSegment: a byte range (path, offset, length) inside a local file.

Segment sources deliver segments in order through `has_next()` / `next()`; plain Python
iterables are adapted with IteratorSegmentSource.

Notes
- The reader never inspects a segment beyond the kind checks in this module.
- IpcReadMode decides which decoder a segment gets (see colwire.io.reader).
"""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from enum import Enum
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "IpcReadMode",
    "FileSegment",
    "SegmentSource",
    "IteratorSegmentSource",
    "is_channel",
    "as_segment_source",
]


class IpcReadMode(Enum):
    """
    How segments are interpreted by SegmentSequenceReader.

    Members:
        UNCOMPRESSED_CHANNEL: every segment is a channel carrying a plain IPC stream.
        COMPRESSED_CHANNEL: every segment is a channel carrying a codec-wrapped IPC stream.
        ADAPTIVE_FILE_OR_CHANNEL: file segments are read from disk, anything else as a
            channel; both carry codec-wrapped IPC streams.
    """

    UNCOMPRESSED_CHANNEL = "uncompressed_channel"
    COMPRESSED_CHANNEL = "compressed_channel"
    ADAPTIVE_FILE_OR_CHANNEL = "adaptive_file_or_channel"

    @property
    def compressed(self) -> bool:
        return self is not IpcReadMode.UNCOMPRESSED_CHANNEL

    @property
    def accepts_files(self) -> bool:
        return self is IpcReadMode.ADAPTIVE_FILE_OR_CHANNEL


class FileSegment(BaseModel):
    """
    Byte range of a local file holding one encoded segment.

    Attributes:
        path (str): Local file path.
        offset (int): First byte of the segment (>= 0).
        length (int): Number of bytes in the segment (>= 0).

    Examples:
        >>> FileSegment(path="data/part-0.seg", offset=0, length=128).end
        128
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str
    offset: int = Field(ge=0)
    length: int = Field(ge=0)

    @field_validator("path", mode="before")
    @classmethod
    def _fspath(cls, v: Any) -> Any:
        if isinstance(v, os.PathLike):
            return os.fspath(v)
        return v

    @property
    def end(self) -> int:
        return self.offset + self.length


@runtime_checkable
class SegmentSource(Protocol):
    """Ordered producer of segments owned by the caller."""

    def has_next(self) -> bool: ...

    def next(self) -> Any: ...


class IteratorSegmentSource:
    """
    SegmentSource over any Python iterable of segments.

    has_next() pulls one item ahead, so the underlying iterator is advanced at most one
    segment beyond what next() has returned.
    """

    _EMPTY = object()

    def __init__(self, segments: Iterable[Any]) -> None:
        self._it: Iterator[Any] = iter(segments)
        self._peeked: Any = self._EMPTY
        self._done = False

    def has_next(self) -> bool:
        if self._peeked is not self._EMPTY:
            return True
        if self._done:
            return False
        try:
            self._peeked = next(self._it)
        except StopIteration:
            self._done = True
            return False
        return True

    def next(self) -> Any:
        if not self.has_next():
            raise StopIteration("segment source is exhausted")
        item, self._peeked = self._peeked, self._EMPTY
        return item


def is_channel(segment: Any) -> bool:
    """True when `segment` exposes callable read() and close() (a channel segment)."""
    if isinstance(segment, FileSegment):
        return False
    return callable(getattr(segment, "read", None)) and callable(getattr(segment, "close", None))


def as_segment_source(segments: SegmentSource | Iterable[Any]) -> SegmentSource:
    """Return `segments` when it already is a SegmentSource, else wrap the iterable."""
    if isinstance(segments, SegmentSource):
        return segments
    return IteratorSegmentSource(segments)
