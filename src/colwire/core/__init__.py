"""
Core package aggregator for colwire contracts (type catalog, builders, append engine).

## Contracts (single source of truth)
- Types — the closed LogicalType catalog, Field/Schema, pyarrow conversions.
- Builders — Null, Primitive, ConfiguredDecimal and Dictionary builders.
- Factory — one builder per logical type; exhaustive dispatch.
- Append — extend builders from typed source arrays, pad with nulls.
- Batches — assemble builders into record batches, relabel columns.
- Errors/Constants — UnsupportedType, TypeMismatch, defaults.

## Notes
- Zero-IO policy: stdlib + pyarrow only; no file/network IO.
- Closed-world typing: unsupported types raise UnsupportedType, never a default branch.

## Downstream usage
- colwire.io — decodes segments into record batches whose schemas are described by
  `types.Schema`; encoders write batches assembled with `batches.make_batch`.

## Examples
```python
import pyarrow as pa
from colwire.core import INT32, UTF8, Field, Schema, extend, make_batch, new_array_builders

schema = Schema([Field("a", INT32), Field("b", UTF8)])
builders = new_array_builders(schema, 16)
src = pa.record_batch({"a": pa.array([None, 5], pa.int32()), "b": ["x", None]})
for builder, field, column in zip(builders, schema, src.columns):
    extend(builder, column, [0], field.type)
make_batch(schema, builders).to_pylist()  # [{'a': None, 'b': 'x'}]
```
"""

from __future__ import annotations

from .append import append_null, extend
from .batches import batch_byte_size, make_batch, rename_columns
from .builders import (
    ArrayBuilder,
    ConfiguredDecimalBuilder,
    DictionaryBuilder,
    NullBuilder,
    PrimitiveBuilder,
)
from .errors import ColumnTypeError, TypeMismatch, UnsupportedType
from .factory import is_supported, new_array_builder, new_array_builders
from .types import (
    BINARY,
    BOOLEAN,
    DATE32,
    DATE64,
    FLOAT32,
    FLOAT64,
    INT8,
    INT16,
    INT32,
    INT64,
    LARGE_BINARY,
    LARGE_UTF8,
    NULL,
    UINT8,
    UINT16,
    UINT32,
    UINT64,
    UTF8,
    Field,
    LogicalType,
    Schema,
    TimeUnit,
    decimal128,
    decimal256,
    dictionary,
    from_arrow,
    time32,
    time64,
    timestamp,
    to_arrow,
)

__all__ = [
    "ArrayBuilder",
    "NullBuilder",
    "PrimitiveBuilder",
    "ConfiguredDecimalBuilder",
    "DictionaryBuilder",
    "new_array_builder",
    "new_array_builders",
    "is_supported",
    "extend",
    "append_null",
    "make_batch",
    "rename_columns",
    "batch_byte_size",
    "ColumnTypeError",
    "UnsupportedType",
    "TypeMismatch",
    "LogicalType",
    "Field",
    "Schema",
    "TimeUnit",
    "NULL",
    "BOOLEAN",
    "INT8",
    "INT16",
    "INT32",
    "INT64",
    "UINT8",
    "UINT16",
    "UINT32",
    "UINT64",
    "FLOAT32",
    "FLOAT64",
    "DATE32",
    "DATE64",
    "BINARY",
    "LARGE_BINARY",
    "UTF8",
    "LARGE_UTF8",
    "time32",
    "time64",
    "timestamp",
    "decimal128",
    "decimal256",
    "dictionary",
    "to_arrow",
    "from_arrow",
]
