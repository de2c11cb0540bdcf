"""
colwire.io — Segment decoding and encoding over Arrow IPC streams.

## Responsibilities
- Turn an externally supplied, ordered sequence of segments (byte channels or file byte
  ranges) into one continuous stream of record batches.
- Encode batches into the same wire format (plain or codec-wrapped IPC streams), including
  several segments packed into one data file.
- Keep colwire.core as the single source of truth for logical types, schemas and builders.

## Public API
- IoSettings — Configuration for IO behavior (defaults sourced from colwire.core.constants).
- SegmentSequenceReader — Stream of batches across segments; ReaderMetrics counters.
- RecordBatchDecoder — Batches of one segment.
- ChannelByteSource / FileRegionByteSource / BytesChannel — Byte sources for segments.
- FileSegment / IpcReadMode — Segment handles and read modes.
- encode_segment / write_segment / write_file_segments — Producing side.

## Import DAG discipline
- Depends only on stdlib, pyarrow/polars/pydantic, and colwire.core.*.

## Examples
```python
import pyarrow as pa
from colwire.io import FileSegment, SegmentSequenceReader, write_file_segments

batch = pa.record_batch({"x": [1, 2, 3]})
segments = write_file_segments("out/part-0.seg", [[batch], [batch]], batch.schema)
reader = SegmentSequenceReader(batch.schema, segments, "adaptive_file_or_channel")
reader.read_frame()  # polars DataFrame with 6 rows
```

## Notes
- Compressed segments are one codec stream (zstd by default) around an IPC stream.
- Segment file write path: tmp file → fsync → os.replace(tmp, final) on the same filesystem.
"""

from __future__ import annotations

from .channels import BytesChannel, ChannelByteSource, FileRegionByteSource, ReadableChannel
from .config import IoSettings
from .decoder import RecordBatchDecoder
from .encoder import encode_segment, write_file_segments, write_segment
from .errors import (
    DecodeError,
    ExternalCollaboratorError,
    IoConfigError,
    IoError,
    IoWriteError,
)
from .reader import MetricsSink, ReaderMetrics, ReaderState, SegmentSequenceReader
from .segments import FileSegment, IpcReadMode, IteratorSegmentSource, SegmentSource

__all__ = [
    "IoSettings",
    "SegmentSequenceReader",
    "ReaderState",
    "ReaderMetrics",
    "MetricsSink",
    "RecordBatchDecoder",
    "ReadableChannel",
    "ChannelByteSource",
    "FileRegionByteSource",
    "BytesChannel",
    "FileSegment",
    "IpcReadMode",
    "SegmentSource",
    "IteratorSegmentSource",
    "encode_segment",
    "write_segment",
    "write_file_segments",
    "IoError",
    "IoConfigError",
    "DecodeError",
    "ExternalCollaboratorError",
    "IoWriteError",
]
