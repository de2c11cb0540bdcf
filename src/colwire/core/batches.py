"""
Record batch helpers: assemble builders into batches, relabel columns, size batches.

Notes:
    - make_batch finishes builders in field order; the builders are reset once the batch
      is assembled and can be reused for the next batch. On failure they keep their rows.
    - rename_columns relabels positionally and leaves the column data untouched.
    - batch_byte_size is the size reported to reader metrics per emitted batch.
"""

from __future__ import annotations

from collections.abc import Sequence

import pyarrow as pa

from .builders import ArrayBuilder
from .types import Schema, as_schema

__all__ = [
    "make_batch",
    "rename_columns",
    "batch_byte_size",
]


def make_batch(schema: Schema | pa.Schema, builders: Sequence[ArrayBuilder]) -> pa.RecordBatch:
    """
    Finish every builder and assemble a RecordBatch.

    Args:
        schema (Schema | pa.Schema): Output schema; field i is built by builders[i].
        builders (Sequence[ArrayBuilder]): Builders from new_array_builders(schema, ...).

    Returns:
        pa.RecordBatch: Batch whose columns are the finished builders.

    Raises:
        ValueError: If the builder count or lengths disagree with the schema.
    """
    arrow_schema = schema if isinstance(schema, pa.Schema) else as_schema(schema).to_arrow()
    if len(builders) != len(arrow_schema):
        raise ValueError(
            f"schema has {len(arrow_schema)} fields but {len(builders)} builders were given"
        )
    lengths = {len(b) for b in builders}
    if len(lengths) > 1:
        raise ValueError(f"builders have different lengths: {sorted(lengths)}")
    columns = [b.finish_cloned() for b in builders]
    batch = pa.RecordBatch.from_arrays(columns, schema=arrow_schema)
    for b in builders:
        b.reset()
    return batch


def rename_columns(batch: pa.RecordBatch, names: Sequence[str]) -> pa.RecordBatch:
    """
    Relabel the columns of a batch positionally.

    Args:
        batch (pa.RecordBatch): Input batch.
        names (Sequence[str]): New names, one per column.

    Returns:
        pa.RecordBatch: Same columns (zero-copy) under the new names; field types,
        nullability and schema metadata are kept.

    Raises:
        ValueError: If the name count differs from the column count.
    """
    if len(names) != batch.num_columns:
        raise ValueError(f"expected {batch.num_columns} column names, got {len(names)}")
    fields = [f.with_name(n) for f, n in zip(batch.schema, names)]
    schema = pa.schema(fields, metadata=batch.schema.metadata)
    return pa.RecordBatch.from_arrays(batch.columns, schema=schema)


def batch_byte_size(batch: pa.RecordBatch) -> int:
    """Total size in bytes of the buffers referenced by the batch."""
    return int(batch.get_total_buffer_size())
