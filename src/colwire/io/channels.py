"""
Byte sources for segments: channel adapters and bounded file regions.

Responsibilities
- Define the ReadableChannel protocol expected from foreign producers.
- Adapt a channel into a pull-based binary stream (ChannelByteSource) that pyarrow can
  read through its Python file bridge.
- Expose a bounded byte range of a local file as a stream (FileRegionByteSource).
- Provide an in-memory channel (BytesChannel) for same-process producers.

Notes
- Both byte sources subclass io.RawIOBase, so they get buffering (io.BufferedReader),
  context-manager support and close-on-garbage-collection from the standard io stack.
- A channel reports end-of-data with a negative count. The adapter then closes the
  channel immediately; later reads return zero bytes. Closing the adapter afterwards does
  not close the channel a second time.
- Exceptions raised by a foreign channel propagate unchanged. The last one is kept on
  `last_error` so a consumer reading through pyarrow can tell it apart from a decode
  fault.
"""

from __future__ import annotations

import io
import logging
from typing import BinaryIO, Protocol, runtime_checkable

from . import fs
from .errors import ExternalCollaboratorError

__all__ = [
    "ReadableChannel",
    "ChannelByteSource",
    "FileRegionByteSource",
    "BytesChannel",
]

logger = logging.getLogger(__name__)


@runtime_checkable
class ReadableChannel(Protocol):
    """
    Foreign byte channel.

    read(buffer) fills a prefix of `buffer` and returns the number of bytes placed, or a
    negative number at end of data. close() releases the channel.
    """

    def read(self, buffer: memoryview) -> int: ...

    def close(self) -> None: ...


class ChannelByteSource(io.RawIOBase):
    """
    Binary stream over a ReadableChannel.

    Args:
        channel (ReadableChannel): Borrowed channel; closed exactly once, either at end of
            data or by close().

    Attributes:
        last_error (BaseException | None): Last exception raised while reading the
            channel, if any.

    Examples:
        >>> src = ChannelByteSource(BytesChannel(b"abc"))
        >>> src.read(8)
        b'abc'
        >>> src.read(8)
        b''
    """

    def __init__(self, channel: ReadableChannel) -> None:
        super().__init__()
        self._channel = channel
        self._released = False
        self.last_error: BaseException | None = None

    @property
    def channel(self) -> ReadableChannel:
        return self._channel

    @property
    def released(self) -> bool:
        """True once the channel has been closed (end of data or close())."""
        return self._released

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:  # type: ignore[no-untyped-def]
        try:
            return self._fill(b)
        except Exception as exc:
            self.last_error = exc
            raise

    def _fill(self, b) -> int:  # type: ignore[no-untyped-def]
        """
        Fill `b` by calling channel.read on the unfilled tail until it is full or the
        channel signals end of data.

        Returns:
            int: Bytes placed; 0 at end of data or after close.

        Raises:
            ExternalCollaboratorError: If the channel reports more bytes than requested.
        """
        if self._released:
            return 0
        view = memoryview(b).cast("B")
        total = 0
        while total < len(view):
            n = self._channel.read(view[total:])
            if n < 0:
                logger.debug("channel %r reached end of data after %d bytes", self._channel, total)
                self._release()
                break
            if n > len(view) - total:
                raise ExternalCollaboratorError(
                    f"channel reported {n} bytes for a {len(view) - total}-byte buffer"
                )
            total += n
        return total

    def _release(self) -> None:
        if not self._released:
            self._released = True
            self._channel.close()

    def close(self) -> None:
        """Close the channel if still open; idempotent."""
        if self.closed:
            return
        try:
            self._release()
        finally:
            super().close()


class FileRegionByteSource(io.RawIOBase):
    """
    Binary stream over bytes [offset, offset + length) of a local file.

    The file is opened and positioned at construction; reads stop after `length` bytes
    even if the file continues.

    Args:
        path (str): Local file path.
        offset (int): Absolute start position (>= 0).
        length (int): Number of bytes exposed (>= 0).

    Raises:
        ValueError: On a negative offset or length.
        OSError: If the file cannot be opened or positioned, and on read faults.
    """

    def __init__(self, path: str, offset: int, length: int) -> None:
        super().__init__()
        self._fh: BinaryIO | None = None
        self.last_error: BaseException | None = None
        if offset < 0 or length < 0:
            raise ValueError("offset and length must be >= 0")
        self.path = path
        self.offset = offset
        self.length = length
        self._remaining = length
        self._fh = fs.open_read_at(path, offset)

    @property
    def remaining(self) -> int:
        return self._remaining

    def readable(self) -> bool:
        return True

    def readinto(self, b) -> int:  # type: ignore[no-untyped-def]
        try:
            return self._fill(b)
        except Exception as exc:
            self.last_error = exc
            raise

    def _fill(self, b) -> int:  # type: ignore[no-untyped-def]
        if self._fh is None or self._remaining <= 0:
            return 0
        view = memoryview(b).cast("B")
        want = min(len(view), self._remaining)
        total = 0
        while total < want:
            n = self._fh.readinto(view[total:want])  # type: ignore[attr-defined]
            if not n:
                break
            total += n
        self._remaining -= total
        return total

    def close(self) -> None:
        if self.closed:
            return
        try:
            if self._fh is not None:
                self._fh.close()
                self._fh = None
        finally:
            super().close()


class BytesChannel:
    """
    In-memory ReadableChannel over a bytes object.

    Args:
        data (bytes): Payload served by read().
        chunk_size (int | None): Maximum bytes placed per read() call; None = unbounded.

    Attributes:
        close_count (int): Number of close() calls received.
    """

    def __init__(self, data: bytes, chunk_size: int | None = None) -> None:
        if chunk_size is not None and chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        self._data = memoryview(bytes(data))
        self._pos = 0
        self.chunk_size = chunk_size
        self.close_count = 0

    @property
    def closed(self) -> bool:
        return self.close_count > 0

    def read(self, buffer: memoryview) -> int:
        if self.closed:
            raise ValueError("read from closed channel")
        remaining = len(self._data) - self._pos
        if remaining <= 0:
            return -1
        n = min(len(buffer), remaining)
        if self.chunk_size is not None:
            n = min(n, self.chunk_size)
        buffer[:n] = self._data[self._pos : self._pos + n]
        self._pos += n
        return n

    def close(self) -> None:
        self.close_count += 1
