"""
Decode one segment's byte source into record batches.

Wire format
- Uncompressed: the segment is a plain Arrow IPC stream (schema message, record batch
  messages, optional end-of-stream marker).
- Compressed: the whole segment is one codec stream (zstd by default) whose decompressed
  content is such an IPC stream.

Behavior
- The stream is opened lazily on the first next_batch(); a segment with zero bytes decodes
  to no batches.
- With an expected schema, the stream's field types must agree positionally, and batches
  are relabelled with the expected field names. Without one, the stream's own schema is
  used.
- Malformed or truncated bytes raise DecodeError; a partial batch is never returned. The
  failure is sticky: later calls raise DecodeError again instead of reading on.
- Exceptions raised by the byte source itself (a foreign channel, a file read) propagate
  unchanged and are never reported as DecodeError.
- At end of data the byte source is closed. close() is idempotent.
"""

from __future__ import annotations

import io
import logging
from typing import BinaryIO, NoReturn

import pyarrow as pa
import pyarrow.ipc as pa_ipc

from colwire.core.batches import rename_columns
from colwire.core.constants import DEFAULT_COMPRESSION, READ_BUFFER_SIZE, SUPPORTED_COMPRESSION
from colwire.core.types import Schema, as_schema

from .errors import DecodeError, IoConfigError

__all__ = ["RecordBatchDecoder"]

logger = logging.getLogger(__name__)


def _arrow_schema(schema: Schema | pa.Schema | None) -> pa.Schema | None:
    if schema is None or isinstance(schema, pa.Schema):
        return schema
    return as_schema(schema).to_arrow()


class RecordBatchDecoder:
    """
    Pull-based decoder over one segment.

    Args:
        source (io.RawIOBase | BinaryIO): Byte source of the segment; owned by the decoder
            from now on and closed at end of data or by close().
        schema (Schema | pa.Schema | None): Expected schema; None recovers it from the stream.
        compressed (bool): True when the segment is a codec stream around the IPC stream.
        codec (str): Codec name for compressed segments ("zstd", "lz4" or "gzip").
        buffer_size (int): Read buffer placed in front of raw byte sources.
        strict_schema (bool): Check stream field types against `schema`. When False the
            decoded batches are passed through with the stream's own schema.

    Raises:
        IoConfigError: For an unsupported codec or a non-positive buffer size.

    Examples:
        >>> import pyarrow as pa
        >>> from colwire.io.channels import BytesChannel, ChannelByteSource
        >>> from colwire.io.encoder import encode_segment
        >>> batch = pa.record_batch({"x": [1, 2]})
        >>> data = encode_segment([batch], batch.schema, compressed=False)
        >>> with RecordBatchDecoder(ChannelByteSource(BytesChannel(data))) as dec:
        ...     dec.next_batch().num_rows
        2
    """

    def __init__(
        self,
        source: io.RawIOBase | BinaryIO,
        schema: Schema | pa.Schema | None = None,
        compressed: bool = False,
        *,
        codec: str = DEFAULT_COMPRESSION,
        buffer_size: int = READ_BUFFER_SIZE,
        strict_schema: bool = True,
    ) -> None:
        if compressed and codec not in SUPPORTED_COMPRESSION:
            raise IoConfigError(f"unsupported compression: {codec!r}")
        if buffer_size < 1:
            raise IoConfigError("buffer_size must be >= 1")
        self._source = source
        self._expected = _arrow_schema(schema)
        self.compressed = compressed
        self.codec = codec
        self._buffer_size = buffer_size
        self._strict = strict_schema

        self._input: BinaryIO | io.RawIOBase | None = None
        self._stream: pa.NativeFile | None = None
        self._reader: pa_ipc.RecordBatchStreamReader | None = None
        self._stream_schema: pa.Schema | None = None
        self._relabel = False
        self._opened = False
        self._done = False
        self._closed = False
        self._failure: DecodeError | None = None

    # ------------------------------------------------------------------ properties

    @property
    def schema(self) -> pa.Schema | None:
        """
        Schema of the emitted batches.

        The expected schema when one was given and strict checking is on; otherwise the
        stream's schema, which opens the stream if needed. None for an empty segment
        decoded without an expected schema.
        """
        if self._expected is not None and self._strict:
            return self._expected
        if not self._opened and not self._closed:
            self._open()
        return self._stream_schema if self._stream_schema is not None else self._expected

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def exhausted(self) -> bool:
        return self._done

    # ------------------------------------------------------------------ decoding

    def _open(self) -> None:
        self._opened = True
        src = self._source
        stream_in = io.BufferedReader(src, self._buffer_size) if isinstance(src, io.RawIOBase) else src
        self._input = stream_in

        peek = getattr(stream_in, "peek", None)
        if peek is not None and not peek(1):
            logger.debug("empty segment; no batches")
            self._finish()
            return

        try:
            native: pa.NativeFile = pa.PythonFile(stream_in, mode="r")
            if self.compressed:
                native = pa.CompressedInputStream(native, self.codec)
            self._stream = native
            self._reader = pa_ipc.open_stream(native)
        except (pa.ArrowException, OSError) as exc:
            self._decode_fault("cannot read IPC stream header", exc)

        actual = self._reader.schema
        self._stream_schema = actual
        logger.debug(
            "decoder opened: %d fields, compressed=%s, codec=%s",
            len(actual),
            self.compressed,
            self.codec if self.compressed else None,
        )
        if self._expected is not None and self._strict:
            self._check_schema(actual, self._expected)
            self._relabel = actual.names != self._expected.names

    def _check_schema(self, actual: pa.Schema, expected: pa.Schema) -> None:
        if len(actual) != len(expected):
            self._fail(
                DecodeError(
                    f"stream has {len(actual)} fields, expected schema has {len(expected)}"
                )
            )
        for i, (a, e) in enumerate(zip(actual, expected)):
            if a.type != e.type:
                self._fail(
                    DecodeError(
                        f"field {i} ({e.name!r}) has type {a.type} in the stream, "
                        f"expected {e.type}"
                    )
                )

    def _decode_fault(self, context: str, exc: BaseException) -> NoReturn:
        # pyarrow reports corrupt or truncated input as ArrowInvalid or ArrowIOError (an
        # OSError). Faults raised by the byte source itself are re-raised unchanged.
        source_error = getattr(self._source, "last_error", None)
        if source_error is not None:
            raise source_error
        self._fail(DecodeError(f"{context}: {exc}"), exc)

    def _fail(self, error: DecodeError, cause: BaseException | None = None) -> NoReturn:
        self._failure = error
        if cause is not None:
            raise error from cause
        raise error

    def _finish(self) -> None:
        self._done = True
        self._release()

    def next_batch(self) -> pa.RecordBatch | None:
        """
        Decode the next record batch.

        Returns:
            pa.RecordBatch | None: The next batch, or None at end of data (and on every
            call after that, or after close()).

        Raises:
            DecodeError: Malformed or truncated bytes, or a schema disagreement.
        """
        if self._failure is not None:
            raise DecodeError(f"segment decoding already failed: {self._failure}") from self._failure
        if self._done or self._closed:
            return None
        if not self._opened:
            self._open()
            if self._done:
                return None

        if self._reader is None:
            raise DecodeError("segment stream could not be opened")
        try:
            batch = self._reader.read_next_batch()
        except StopIteration:
            logger.debug("end of segment stream")
            self._finish()
            return None
        except (pa.ArrowException, OSError) as exc:
            self._decode_fault("malformed record batch", exc)

        if self._relabel:
            assert self._expected is not None
            batch = rename_columns(batch, self._expected.names)
        return batch

    def __iter__(self):
        while True:
            batch = self.next_batch()
            if batch is None:
                return
            yield batch

    # ------------------------------------------------------------------ teardown

    def _release(self) -> None:
        stream, self._stream = self._stream, None
        stream_in, self._input = self._input, None
        self._reader = None
        try:
            if stream is not None:
                stream.close()
        finally:
            if stream_in is not None:
                stream_in.close()
            self._source.close()

    def close(self) -> None:
        """Release the byte source; idempotent."""
        if self._closed:
            return
        self._closed = True
        self._release()

    def __enter__(self) -> RecordBatchDecoder:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        self.close()
