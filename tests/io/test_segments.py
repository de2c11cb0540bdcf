"""Tests for `colwire.io.segments` handles, sources and read modes."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from colwire.io.channels import BytesChannel
from colwire.io.segments import (
    FileSegment,
    IpcReadMode,
    IteratorSegmentSource,
    SegmentSource,
    as_segment_source,
    is_channel,
)


def test_file_segment_validates_bounds() -> None:
    seg = FileSegment(path=Path("a/b.seg"), offset=3, length=4)
    assert seg.path == str(Path("a/b.seg"))
    assert seg.end == 7

    with pytest.raises(ValidationError):
        FileSegment(path="x", offset=-1, length=0)
    with pytest.raises(ValidationError):
        FileSegment(path="x", offset=0, length=-5)
    with pytest.raises(ValidationError):
        FileSegment(path="x", offset=0, length=1, compressed=True)


def test_file_segment_is_frozen() -> None:
    seg = FileSegment(path="x", offset=0, length=1)
    with pytest.raises(ValidationError):
        seg.offset = 5  # type: ignore[misc]


def test_is_channel_distinguishes_segment_kinds() -> None:
    assert is_channel(BytesChannel(b"")) is True
    assert is_channel(FileSegment(path="x", offset=0, length=0)) is False
    assert is_channel(b"raw bytes") is False
    assert is_channel(42) is False


def test_iterator_source_peeks_one_ahead() -> None:
    pulled: list[int] = []

    def gen():
        for i in range(2):
            pulled.append(i)
            yield i

    src = IteratorSegmentSource(gen())
    assert pulled == []
    assert src.has_next() is True
    assert src.has_next() is True
    assert pulled == [0]
    assert src.next() == 0
    assert src.next() == 1
    assert src.has_next() is False
    with pytest.raises(StopIteration):
        src.next()


def test_as_segment_source_keeps_protocol_objects() -> None:
    src = IteratorSegmentSource([])
    assert as_segment_source(src) is src
    wrapped = as_segment_source([1, 2])
    assert isinstance(wrapped, SegmentSource)
    assert wrapped.next() == 1


@pytest.mark.parametrize(
    "mode,compressed,files",
    [
        (IpcReadMode.UNCOMPRESSED_CHANNEL, False, False),
        (IpcReadMode.COMPRESSED_CHANNEL, True, False),
        (IpcReadMode.ADAPTIVE_FILE_OR_CHANNEL, True, True),
    ],
)
def test_read_mode_flags(mode: IpcReadMode, compressed: bool, files: bool) -> None:
    assert mode.compressed is compressed
    assert mode.accepts_files is files
    assert IpcReadMode(mode.value) is mode
