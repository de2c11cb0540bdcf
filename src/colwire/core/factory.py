"""
Builder factory: one empty typed builder per logical column type.

Dispatch is exhaustive over the closed LogicalType catalog. Every supported combination
routes to exactly one branch; anything else raises UnsupportedType immediately and is
never defaulted.

Routing
- Null → NullBuilder (counting only).
- Decimal(precision, scale, width) → ConfiguredDecimalBuilder.
- Dictionary(key, value) → nested dispatch on the key (8 integer types) then the value
  (integers, Float32/64, Date32/64, Utf8, LargeUtf8) → DictionaryBuilder.
- Boolean, integers, floats, dates, Time32(s|ms), Time64(us|ns), Timestamp(any unit,
  optional timezone), Binary/LargeBinary, Utf8/LargeUtf8 → PrimitiveBuilder sized by the
  capacity hint.
"""

from __future__ import annotations

from collections.abc import Callable

import pyarrow as pa

from .builders import (
    ArrayBuilder,
    ConfiguredDecimalBuilder,
    DictionaryBuilder,
    NullBuilder,
    PrimitiveBuilder,
)
from .constants import DEFAULT_BATCH_SIZE
from .errors import UnsupportedType
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
    Schema,
    TimestampType,
    TimeType,
    TimeUnit,
    Utf8Type,
    as_logical_type,
    as_schema,
)

__all__ = [
    "new_array_builders",
    "new_array_builder",
    "is_supported",
]

_TIME_UNITS = {
    32: (TimeUnit.SECOND, TimeUnit.MILLISECOND),
    64: (TimeUnit.MICROSECOND, TimeUnit.NANOSECOND),
}

# Value types a dictionary builder can intern.
_DICTIONARY_VALUE_CLASSES: tuple[type, ...] = (IntegerType, FloatType, DateType, Utf8Type)


def _make_null(t: LogicalType, capacity: int) -> ArrayBuilder:
    return NullBuilder()


def _make_primitive(t: LogicalType, capacity: int) -> ArrayBuilder:
    return PrimitiveBuilder(t, capacity)


def _make_time(t: LogicalType, capacity: int) -> ArrayBuilder:
    assert isinstance(t, TimeType)
    if t.unit not in _TIME_UNITS[t.bit_width]:
        raise UnsupportedType(f"time{t.bit_width} with unit {t.unit.value!r} is not supported")
    return PrimitiveBuilder(t, capacity)


def _make_decimal(t: LogicalType, capacity: int) -> ArrayBuilder:
    assert isinstance(t, DecimalType)
    return ConfiguredDecimalBuilder(t.precision, t.scale, t.bit_width, capacity)


def _make_dictionary(t: LogicalType, capacity: int) -> ArrayBuilder:
    assert isinstance(t, DictionaryType)
    if not isinstance(t.key, IntegerType):
        raise UnsupportedType(f"dictionary key type not supported: {t.key!r}")
    if not isinstance(t.value, _DICTIONARY_VALUE_CLASSES):
        raise UnsupportedType(f"dictionary value type not supported: {t.value!r}")
    return DictionaryBuilder(t, capacity)


_FACTORIES: dict[type, Callable[[LogicalType, int], ArrayBuilder]] = {
    NullType: _make_null,
    BooleanType: _make_primitive,
    IntegerType: _make_primitive,
    FloatType: _make_primitive,
    DateType: _make_primitive,
    TimeType: _make_time,
    TimestampType: _make_primitive,
    BinaryType: _make_primitive,
    Utf8Type: _make_primitive,
    DecimalType: _make_decimal,
    DictionaryType: _make_dictionary,
}


def new_array_builder(
    logical_type: LogicalType | pa.DataType,
    capacity_hint: int = DEFAULT_BATCH_SIZE,
) -> ArrayBuilder:
    """
    Construct one empty builder for a column type.

    Args:
        logical_type (LogicalType | pa.DataType): Column type (pyarrow types are converted
            through colwire.core.types.from_arrow).
        capacity_hint (int): Expected number of rows (>= 0).

    Returns:
        ArrayBuilder: An empty builder bound to the type.

    Raises:
        UnsupportedType: If the type or combination is outside the supported matrix.
        ValueError: If capacity_hint is negative.
    """
    if capacity_hint < 0:
        raise ValueError("capacity_hint must be >= 0")
    t = as_logical_type(logical_type)
    factory = _FACTORIES.get(type(t))
    if factory is None:
        raise UnsupportedType(f"data type not supported in new_array_builder: {t!r}")
    return factory(t, capacity_hint)


def new_array_builders(
    schema: Schema | pa.Schema,
    capacity_hint: int = DEFAULT_BATCH_SIZE,
) -> list[ArrayBuilder]:
    """
    Construct one builder per schema field, preserving field order.

    Args:
        schema (Schema | pa.Schema): Output schema.
        capacity_hint (int): Expected number of rows per builder.

    Returns:
        list[ArrayBuilder]: Builders aligned with schema fields.
    """
    return [new_array_builder(f.type, capacity_hint) for f in as_schema(schema)]


def is_supported(logical_type: LogicalType | pa.DataType) -> bool:
    """Return True when new_array_builder accepts the type."""
    try:
        new_array_builder(logical_type, 0)
    except UnsupportedType:
        return False
    return True
