"""
Append engine: extend builders with selected source rows, or pad them with nulls.

extend() realizes row selection, gather/permutation and join-probe replication: for each
index (any order, duplicates allowed) the source slot is appended, or a null when the
source is invalid there. Exactly len(indices) slots are appended, in the given order.

Dictionary columns append the *value* each source key resolves to, not the key itself;
the destination builder interns independently, so key codes are not preserved.

Contract
- The builder must be the kind the factory creates for `logical_type`, bound to that same
  type, and the source array's type must be exactly `to_arrow(logical_type)`. Violations
  raise TypeMismatch (checked on every call).
- Types outside the catalog raise UnsupportedType.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import pyarrow as pa

from .builders import (
    ArrayBuilder,
    ConfiguredDecimalBuilder,
    DictionaryBuilder,
    NullBuilder,
    PrimitiveBuilder,
)
from .errors import TypeMismatch, UnsupportedType
from .types import (
    BinaryType,
    BooleanType,
    DateType,
    DecimalType,
    DictionaryType,
    FloatType,
    IntegerType,
    LogicalType,
    NullType,
    TimestampType,
    TimeType,
    Utf8Type,
    as_logical_type,
    to_arrow,
)

__all__ = [
    "extend",
    "append_null",
]

# Builder class the factory produces for each logical type variant.
_BUILDER_KINDS: dict[type, type[ArrayBuilder]] = {
    NullType: NullBuilder,
    BooleanType: PrimitiveBuilder,
    IntegerType: PrimitiveBuilder,
    FloatType: PrimitiveBuilder,
    DateType: PrimitiveBuilder,
    TimeType: PrimitiveBuilder,
    TimestampType: PrimitiveBuilder,
    BinaryType: PrimitiveBuilder,
    Utf8Type: PrimitiveBuilder,
    DecimalType: ConfiguredDecimalBuilder,
    DictionaryType: DictionaryBuilder,
}


def _check_builder(builder: ArrayBuilder, t: LogicalType, op: str) -> None:
    kind = _BUILDER_KINDS.get(type(t))
    if kind is None:
        raise UnsupportedType(f"data type not supported in {op}: {t!r}")
    if not isinstance(builder, kind):
        raise TypeMismatch(f"{op}: expected {kind.__name__} for {t!r}, got {type(builder).__name__}")
    if builder.logical_type != t:
        raise TypeMismatch(f"{op}: builder is bound to {builder.logical_type!r}, not {t!r}")


def _as_indices(indices: Sequence[int] | Iterable[int] | pa.Array) -> pa.Array:
    if isinstance(indices, pa.ChunkedArray):
        indices = indices.combine_chunks()
    if not isinstance(indices, pa.Array):
        indices = pa.array(list(indices), type=pa.int64())
    if not pa.types.is_integer(indices.type):
        raise TypeError(f"indices must be integers, got {indices.type}")
    if indices.null_count:
        raise ValueError("indices must not contain nulls")
    return indices


def extend(
    builder: ArrayBuilder,
    source: pa.Array | pa.ChunkedArray,
    indices: Sequence[int] | Iterable[int] | pa.Array,
    logical_type: LogicalType | pa.DataType,
) -> None:
    """
    Append the source slots selected by `indices` to `builder`, in order.

    Args:
        builder (ArrayBuilder): Destination builder created for `logical_type`.
        source (pa.Array | pa.ChunkedArray): Source column of exactly that type.
        indices (Sequence[int] | pa.Array): Row positions into `source`; any order,
            duplicates allowed.
        logical_type (LogicalType | pa.DataType): Declared column type.

    Raises:
        TypeMismatch: Builder kind/type or source type disagrees with `logical_type`.
        UnsupportedType: `logical_type` is outside the catalog.
        IndexError: An index is out of range for `source`.

    Examples:
        >>> import pyarrow as pa
        >>> from colwire.core.factory import new_array_builder
        >>> from colwire.core.types import INT32
        >>> b = new_array_builder(INT32, 4)
        >>> extend(b, pa.array([1, None, 3], pa.int32()), [2, 1, 2], INT32)
        >>> b.finish().to_pylist()
        [3, None, 3]
    """
    t = as_logical_type(logical_type)
    _check_builder(builder, t, "extend")
    if source.type != to_arrow(t):
        raise TypeMismatch(f"extend: source array is {source.type}, expected {to_arrow(t)}")

    taken = source.take(_as_indices(indices))
    chunks = taken.chunks if isinstance(taken, pa.ChunkedArray) else [taken]
    for chunk in chunks:
        builder.append_array(chunk)


def append_null(builder: ArrayBuilder, logical_type: LogicalType | pa.DataType) -> None:
    """
    Append exactly one null to `builder` without consuming any source value.

    Raises:
        TypeMismatch: Builder kind/type disagrees with `logical_type`.
        UnsupportedType: `logical_type` is outside the catalog.
    """
    t = as_logical_type(logical_type)
    _check_builder(builder, t, "append_null")
    builder.append_null()
