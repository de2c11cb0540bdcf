"""
Continuous record batch stream over an ordered sequence of segments.

SegmentSequenceReader pulls segments from a caller-owned segment source, opens one
decoder per segment, and emits the decoded batches of all segments in order as a single
stream.

State machine
- IDLE: no active decoder (initial state).
- DECODING: a decoder for the current segment is active.
- EXHAUSTED: the segment source reported no further segments, or the reader was closed.
  Terminal; every later step returns None.

One step (next_batch)
1) With an active decoder, decode its next batch; a batch is emitted and the reader stays
   in DECODING.
2) When the decoder reaches end of data it is closed. If the source has another segment,
   a decoder is opened for it (chosen by IpcReadMode and the segment kind) and step 1 is
   retried. Otherwise the reader becomes EXHAUSTED.
The loop consumes one segment per iteration, so a step is bounded by the number of
remaining segments (empty segments are skipped).

Failure
- Decode faults propagate and the reader stays on the failing segment; it never skips a
  corrupt segment on its own.
- A segment that cannot be opened (missing file, wrong segment kind) is kept and retried
  by the next step; the source is not advanced past it.
- Exceptions raised by the segment source or a channel propagate unchanged.

Metrics
- Each emitted batch updates rows, batches and bytes (see colwire.core.batches.batch_byte_size).
- Every step, including failed ones, adds its elapsed time once.

Examples
>>> import pyarrow as pa
>>> from colwire.io import BytesChannel, SegmentSequenceReader, encode_segment
>>> batch = pa.record_batch({"x": [1, 2]})
>>> segs = [BytesChannel(encode_segment([batch], batch.schema)) for _ in range(2)]
>>> with SegmentSequenceReader(batch.schema, segs) as reader:
...     reader.read_all().num_rows
4
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

import polars as pl
import pyarrow as pa

from colwire.core.batches import batch_byte_size
from colwire.core.types import Schema, as_schema

from .channels import ChannelByteSource, FileRegionByteSource
from .config import IoSettings
from .decoder import RecordBatchDecoder
from .errors import ExternalCollaboratorError
from .segments import FileSegment, IpcReadMode, SegmentSource, as_segment_source, is_channel

__all__ = [
    "ReaderState",
    "MetricsSink",
    "ReaderMetrics",
    "SegmentSequenceReader",
]

logger = logging.getLogger(__name__)


class ReaderState(Enum):
    IDLE = "idle"
    DECODING = "decoding"
    EXHAUSTED = "exhausted"


class MetricsSink(Protocol):
    """Receiver of reader metrics (e.g. a host engine's metric set)."""

    def record_batch(self, batch: pa.RecordBatch) -> None: ...

    def record_elapsed(self, ns: int) -> None: ...

    def record_segment(self) -> None: ...


@dataclass(slots=True)
class ReaderMetrics:
    """
    Counters kept by SegmentSequenceReader.

    Attributes:
        output_rows (int): Rows emitted.
        output_batches (int): Batches emitted.
        bytes_read (int): Total buffer size of the emitted batches.
        elapsed_compute_ns (int): Time spent inside next_batch(), including failed steps.
        segments_opened (int): Decoders opened (one per segment pulled from the source).
    """

    output_rows: int = 0
    output_batches: int = 0
    bytes_read: int = 0
    elapsed_compute_ns: int = 0
    segments_opened: int = 0

    def record_batch(self, batch: pa.RecordBatch) -> None:
        self.output_rows += batch.num_rows
        self.output_batches += 1
        self.bytes_read += batch_byte_size(batch)

    def record_elapsed(self, ns: int) -> None:
        self.elapsed_compute_ns += ns

    def record_segment(self) -> None:
        self.segments_opened += 1


class SegmentSequenceReader:
    """
    Reader emitting the batches of every segment as one stream.

    Args:
        schema (Schema | pa.Schema): Expected schema of every segment.
        segments (SegmentSource | Iterable[Any]): Caller-owned ordered segment source, or
            any iterable of segments (channels and/or FileSegment values).
        mode (IpcReadMode | str | None): How segments are decoded; defaults to
            settings.read_mode.
        settings (IoSettings | None): Codec, buffer size, schema strictness and default mode.
        metrics (MetricsSink | None): Metrics receiver; a fresh ReaderMetrics by default.

    Notes:
        - UNCOMPRESSED_CHANNEL / COMPRESSED_CHANNEL require channel segments; a FileSegment
          (or any other object) raises ExternalCollaboratorError.
        - ADAPTIVE_FILE_OR_CHANNEL reads FileSegment values from disk and everything else as
          a channel, both compressed.
        - close() releases the active decoder exactly once; it also runs on context exit
          and garbage collection.
    """

    def __init__(
        self,
        schema: Schema | pa.Schema,
        segments: SegmentSource | Iterable[Any],
        mode: IpcReadMode | str | None = None,
        *,
        settings: IoSettings | None = None,
        metrics: MetricsSink | None = None,
    ) -> None:
        self._decoder: RecordBatchDecoder | None = None
        self._pending: Any = None
        self._has_pending = False
        self._state = ReaderState.IDLE
        self._settings = settings or IoSettings()
        self._mode = IpcReadMode(mode) if mode is not None else self._settings.ipc_read_mode
        self._schema = schema if isinstance(schema, pa.Schema) else as_schema(schema).to_arrow()
        self._source = as_segment_source(segments)
        self.metrics: MetricsSink = metrics if metrics is not None else ReaderMetrics()

    @property
    def schema(self) -> pa.Schema:
        return self._schema

    @property
    def mode(self) -> IpcReadMode:
        return self._mode

    @property
    def state(self) -> ReaderState:
        return self._state

    # ------------------------------------------------------------------ segments

    def _open_decoder(self, segment: Any) -> RecordBatchDecoder:
        if isinstance(segment, FileSegment):
            if not self._mode.accepts_files:
                raise ExternalCollaboratorError(
                    f"read mode {self._mode.value!r} requires channel segments, got {segment!r}"
                )
            logger.debug(
                "opening file segment %s [%d, +%d)", segment.path, segment.offset, segment.length
            )
            source = FileRegionByteSource(segment.path, segment.offset, segment.length)
        elif is_channel(segment):
            logger.debug("opening channel segment %r", segment)
            source = ChannelByteSource(segment)
        else:
            raise ExternalCollaboratorError(
                f"segment is neither a channel nor a FileSegment: {type(segment).__name__}"
            )
        s = self._settings
        return RecordBatchDecoder(
            source,
            self._schema,
            self._mode.compressed,
            codec=s.compression,
            buffer_size=s.read_buffer_size,
            strict_schema=s.strict_schema,
        )

    def _step(self) -> pa.RecordBatch | None:
        while True:
            if self._decoder is not None:
                batch = self._decoder.next_batch()
                if batch is not None:
                    self.metrics.record_batch(batch)
                    return batch
                self._decoder.close()
                self._decoder = None
                self._state = ReaderState.IDLE

            if not self._has_pending:
                if not self._source.has_next():
                    logger.debug("segment source exhausted")
                    self._state = ReaderState.EXHAUSTED
                    return None
                self._pending = self._source.next()
                self._has_pending = True
            # A segment that fails to open stays pending and is retried on the next step.
            self._decoder = self._open_decoder(self._pending)
            self._pending, self._has_pending = None, False
            self._state = ReaderState.DECODING
            self.metrics.record_segment()

    def next_batch(self) -> pa.RecordBatch | None:
        """
        Advance the stream by one step.

        Returns:
            pa.RecordBatch | None: The next batch, or None once the stream is exhausted.

        Raises:
            DecodeError: The active segment is malformed.
            ExternalCollaboratorError: A segment does not fit the read mode.
            OSError: A file segment cannot be opened or read.
        """
        if self._state is ReaderState.EXHAUSTED:
            return None
        start = time.perf_counter_ns()
        try:
            return self._step()
        finally:
            self.metrics.record_elapsed(time.perf_counter_ns() - start)

    # ------------------------------------------------------------------ iteration

    def __iter__(self) -> Iterator[pa.RecordBatch]:
        return self

    def __next__(self) -> pa.RecordBatch:
        batch = self.next_batch()
        if batch is None:
            raise StopIteration
        return batch

    def __aiter__(self) -> SegmentSequenceReader:
        return self

    async def __anext__(self) -> pa.RecordBatch:
        batch = self.next_batch()
        if batch is None:
            raise StopAsyncIteration
        return batch

    def read_all(self) -> pa.Table:
        """Drain the remaining batches into a Table."""
        batches = list(self)
        if batches:
            return pa.Table.from_batches(batches)
        return self._schema.empty_table()

    def read_frame(self) -> pl.DataFrame:
        """Drain the remaining batches into a polars DataFrame."""
        frame = pl.from_arrow(self.read_all())
        assert isinstance(frame, pl.DataFrame)
        return frame

    # ------------------------------------------------------------------ teardown

    def close(self) -> None:
        """Release the active decoder and stop the stream; idempotent."""
        decoder, self._decoder = self._decoder, None
        self._pending, self._has_pending = None, False
        self._state = ReaderState.EXHAUSTED
        if decoder is not None:
            logger.debug("closing reader with an active segment")
            decoder.close()

    def __enter__(self) -> SegmentSequenceReader:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # type: ignore[no-untyped-def]
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_decoder", None) is not None:
            self.close()
