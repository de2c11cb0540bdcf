"""
Encode record batches into segments (the producing side of the decoder's wire format).

Responsibilities
- Serialize batches as one Arrow IPC stream, optionally wrapped in a codec stream.
- Write such segments to a binary sink, or pack several of them back-to-back into one
  data file and describe each one as a FileSegment.

Notes
- The data file path is tmp write → fsync → os.replace(tmp, final); failures surface as
  IoWriteError after best-effort cleanup of the tmp file.
- Batches are conformed to the target schema by position: names are relabelled, field
  types must already agree.
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from typing import BinaryIO

import pyarrow as pa
import pyarrow.ipc as pa_ipc

from colwire.core.batches import rename_columns
from colwire.core.constants import DEFAULT_COMPRESSION, SUPPORTED_COMPRESSION
from colwire.core.errors import TypeMismatch
from colwire.core.types import Schema, as_schema

from .errors import IoConfigError, IoWriteError
from .fs import fsync_file, makedirs, open_write, rename_atomic, tmp_path_for
from .segments import FileSegment

__all__ = [
    "encode_segment",
    "write_segment",
    "write_file_segments",
]


def _arrow_schema(schema: Schema | pa.Schema) -> pa.Schema:
    return schema if isinstance(schema, pa.Schema) else as_schema(schema).to_arrow()


def _conform(batch: pa.RecordBatch, schema: pa.Schema) -> pa.RecordBatch:
    if batch.schema.types != schema.types:
        raise TypeMismatch(f"batch types {batch.schema.types} do not match schema {schema.types}")
    if batch.schema.names != schema.names:
        batch = rename_columns(batch, schema.names)
    return batch


def encode_segment(
    batches: Iterable[pa.RecordBatch],
    schema: Schema | pa.Schema,
    *,
    compressed: bool = True,
    codec: str = DEFAULT_COMPRESSION,
) -> bytes:
    """
    Serialize batches into one segment.

    Args:
        batches (Iterable[pa.RecordBatch]): Batches, in order; may be empty.
        schema (Schema | pa.Schema): Stream schema.
        compressed (bool): Wrap the IPC stream in a `codec` stream.
        codec (str): "zstd", "lz4" or "gzip".

    Returns:
        bytes: The encoded segment.

    Raises:
        IoConfigError: For an unsupported codec.
        TypeMismatch: If a batch's field types differ from the schema.
    """
    if compressed and codec not in SUPPORTED_COMPRESSION:
        raise IoConfigError(f"unsupported compression: {codec!r}")
    arrow_schema = _arrow_schema(schema)

    sink = pa.BufferOutputStream()
    # Closing a CompressedOutputStream also closes `sink`; getvalue() still works.
    target: pa.NativeFile = pa.CompressedOutputStream(sink, codec) if compressed else sink
    with pa_ipc.new_stream(target, arrow_schema) as writer:
        for batch in batches:
            writer.write_batch(_conform(batch, arrow_schema))
    if compressed:
        target.close()
    return sink.getvalue().to_pybytes()


def write_segment(
    sink: BinaryIO,
    batches: Iterable[pa.RecordBatch],
    schema: Schema | pa.Schema,
    *,
    compressed: bool = True,
    codec: str = DEFAULT_COMPRESSION,
) -> int:
    """
    Encode one segment and write it to a binary sink.

    The sink is left open.

    Returns:
        int: Number of bytes written.
    """
    data = encode_segment(batches, schema, compressed=compressed, codec=codec)
    sink.write(data)
    return len(data)


def write_file_segments(
    path: str | os.PathLike[str],
    groups: Iterable[Iterable[pa.RecordBatch]],
    schema: Schema | pa.Schema,
    *,
    compressed: bool = True,
    codec: str = DEFAULT_COMPRESSION,
) -> list[FileSegment]:
    """
    Write one segment per batch group back-to-back into a single data file.

    Args:
        path (str | os.PathLike[str]): Final data file path (replaced atomically).
        groups (Iterable[Iterable[pa.RecordBatch]]): One batch group per segment.
        schema (Schema | pa.Schema): Stream schema shared by every segment.
        compressed (bool): Wrap each IPC stream in a `codec` stream.
        codec (str): "zstd", "lz4" or "gzip".

    Returns:
        list[FileSegment]: (path, offset, length) of each segment, in group order.

    Raises:
        IoWriteError: Segment encode/write/fsync/atomic-rename failed.
    """
    final = os.fspath(path)
    makedirs(os.path.dirname(final), exist_ok=True)
    tmp = tmp_path_for(final)

    offsets: list[tuple[int, int]] = []
    try:
        with open_write(tmp) as fh:
            pos = 0
            for group in groups:
                n = write_segment(fh, group, schema, compressed=compressed, codec=codec)
                offsets.append((pos, n))
                pos += n
            fsync_file(fh)
        rename_atomic(tmp, final)
    except Exception as exc:
        # Best effort cleanup of tmp file
        try:
            if os.path.exists(tmp):
                os.remove(tmp)
        except OSError:
            pass
        raise IoWriteError(f"failed to write segment file {final!r}: {exc}") from exc

    return [FileSegment(path=final, offset=off, length=n) for off, n in offsets]
