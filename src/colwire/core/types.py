"""
Closed catalog of logical column types and their structural parameters.

Defines the LogicalType union (one frozen dataclass per variant), TimeUnit, Field and
Schema, plus lossless conversions to and from pyarrow data types. Every other colwire
module dispatches over this catalog.

Responsibilities
- Enumerate the supported logical types: Null, Boolean, signed/unsigned integers of width
  8/16/32/64, Float32/64, Date32/64, Time32/64(unit), Timestamp(unit, timezone),
  Binary/LargeBinary, Utf8/LargeUtf8, Decimal(precision, scale, 128|256) and
  Dictionary(integer key, value).
- Convert between LogicalType and pyarrow.DataType (to_arrow / from_arrow).
- Describe ordered schemas of (name, LogicalType, nullable) fields.

Design principles
-----------------
1) Closed world:
   - Anything outside the catalog raises UnsupportedType at conversion/dispatch time;
     nothing is coerced into a "closest" type.
   - Adding a variant means extending every dispatch site (factory, append, here).

2) Structure vs. support:
   - Variant constructors reject malformed structure (e.g. a 12-bit integer, a
     non-integer dictionary key, nested dictionaries).
   - Combinations that are well-formed but unsupported by the builders
     (e.g. Time32 in microseconds) are rejected at dispatch.

Examples
--------
>>> import pyarrow as pa
>>> from colwire.core.types import INT32, UTF8, Field, Schema, dictionary, from_arrow, to_arrow
>>> to_arrow(dictionary(INT32, UTF8))
DictionaryType(dictionary<values=string, indices=int32, ordered=0>)
>>> from_arrow(pa.decimal128(10, 2))
DecimalType(precision=10, scale=2, bit_width=128)
>>> Schema((Field("a", INT32), Field("b", UTF8))).names
['a', 'b']
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Union

import pyarrow as pa
import pyarrow.types as patypes

from .errors import UnsupportedType

__all__ = [
    "TimeUnit",
    "NullType",
    "BooleanType",
    "IntegerType",
    "FloatType",
    "DateType",
    "TimeType",
    "TimestampType",
    "BinaryType",
    "Utf8Type",
    "DecimalType",
    "DictionaryType",
    "LogicalType",
    "LOGICAL_TYPE_CLASSES",
    "Field",
    "Schema",
    # constants / constructors
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
    # conversions
    "to_arrow",
    "from_arrow",
    "as_logical_type",
    "as_schema",
]


class TimeUnit(Enum):
    """
    Resolution of temporal values. Serialized values match pyarrow unit strings.
    """

    SECOND = "s"
    MILLISECOND = "ms"
    MICROSECOND = "us"
    NANOSECOND = "ns"


def _unit(value: TimeUnit | str) -> TimeUnit:
    if isinstance(value, TimeUnit):
        return value
    try:
        return TimeUnit(value)
    except ValueError as exc:
        raise UnsupportedType(f"unknown time unit {value!r}") from exc


@dataclass(frozen=True, slots=True)
class NullType:
    """Column with no storage; every slot is null."""


@dataclass(frozen=True, slots=True)
class BooleanType:
    """Bit-packed true/false values."""


@dataclass(frozen=True, slots=True)
class IntegerType:
    """
    Fixed-width integer.

    Attributes:
        bit_width (int): One of 8, 16, 32, 64.
        signed (bool): Two's complement when True, unsigned otherwise.
    """

    bit_width: int
    signed: bool = True

    def __post_init__(self) -> None:
        if self.bit_width not in (8, 16, 32, 64):
            raise UnsupportedType(f"integer bit width must be 8/16/32/64, got {self.bit_width}")


@dataclass(frozen=True, slots=True)
class FloatType:
    """IEEE-754 float of width 32 or 64."""

    bit_width: int

    def __post_init__(self) -> None:
        if self.bit_width not in (32, 64):
            raise UnsupportedType(f"float bit width must be 32/64, got {self.bit_width}")


@dataclass(frozen=True, slots=True)
class DateType:
    """Calendar date: days since epoch (32) or milliseconds since epoch (64)."""

    bit_width: int

    def __post_init__(self) -> None:
        if self.bit_width not in (32, 64):
            raise UnsupportedType(f"date bit width must be 32/64, got {self.bit_width}")


@dataclass(frozen=True, slots=True)
class TimeType:
    """
    Time of day.

    Attributes:
        bit_width (int): 32 or 64.
        unit (TimeUnit): Resolution. Only s/ms pair with 32 and us/ns with 64; other
            pairings are rejected at dispatch.
    """

    bit_width: int
    unit: TimeUnit

    def __post_init__(self) -> None:
        if self.bit_width not in (32, 64):
            raise UnsupportedType(f"time bit width must be 32/64, got {self.bit_width}")
        object.__setattr__(self, "unit", _unit(self.unit))


@dataclass(frozen=True, slots=True)
class TimestampType:
    """Instant since epoch at `unit` resolution, optionally bound to a timezone."""

    unit: TimeUnit
    timezone: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "unit", _unit(self.unit))


@dataclass(frozen=True, slots=True)
class BinaryType:
    """Variable-length bytes with 32-bit (large=False) or 64-bit offsets."""

    large: bool = False


@dataclass(frozen=True, slots=True)
class Utf8Type:
    """Variable-length UTF-8 text with 32-bit (large=False) or 64-bit offsets."""

    large: bool = False


@dataclass(frozen=True, slots=True)
class DecimalType:
    """
    Fixed-point decimal stored as a 128- or 256-bit unscaled integer.

    Attributes:
        precision (int): Total significant digits (1..38 for 128, 1..76 for 256).
        scale (int): Digits right of the decimal point.
        bit_width (int): 128 or 256.
    """

    precision: int
    scale: int
    bit_width: int = 128

    def __post_init__(self) -> None:
        if self.bit_width not in (128, 256):
            raise UnsupportedType(f"decimal bit width must be 128/256, got {self.bit_width}")
        max_precision = 38 if self.bit_width == 128 else 76
        if not 1 <= self.precision <= max_precision:
            raise UnsupportedType(
                f"decimal{self.bit_width} precision must be in [1, {max_precision}], "
                f"got {self.precision}"
            )


@dataclass(frozen=True, slots=True)
class DictionaryType:
    """
    Categorical column: integer keys indexing a shared values array.

    Attributes:
        key (IntegerType): Key (index) type.
        value (LogicalType): Value type; never itself a dictionary.
    """

    key: IntegerType
    value: LogicalType

    def __post_init__(self) -> None:
        if not isinstance(self.key, IntegerType):
            raise UnsupportedType(f"dictionary key type must be an integer, got {self.key!r}")
        if isinstance(self.value, DictionaryType):
            raise UnsupportedType("dictionary value type must not be a dictionary")
        if not isinstance(self.value, LOGICAL_TYPE_CLASSES):
            raise UnsupportedType(f"unknown dictionary value type {self.value!r}")


LogicalType = Union[
    NullType,
    BooleanType,
    IntegerType,
    FloatType,
    DateType,
    TimeType,
    TimestampType,
    BinaryType,
    Utf8Type,
    DecimalType,
    DictionaryType,
]

LOGICAL_TYPE_CLASSES: tuple[type, ...] = (
    NullType,
    BooleanType,
    IntegerType,
    FloatType,
    DateType,
    TimeType,
    TimestampType,
    BinaryType,
    Utf8Type,
    DecimalType,
    DictionaryType,
)

NULL = NullType()
BOOLEAN = BooleanType()
INT8 = IntegerType(8)
INT16 = IntegerType(16)
INT32 = IntegerType(32)
INT64 = IntegerType(64)
UINT8 = IntegerType(8, signed=False)
UINT16 = IntegerType(16, signed=False)
UINT32 = IntegerType(32, signed=False)
UINT64 = IntegerType(64, signed=False)
FLOAT32 = FloatType(32)
FLOAT64 = FloatType(64)
DATE32 = DateType(32)
DATE64 = DateType(64)
BINARY = BinaryType()
LARGE_BINARY = BinaryType(large=True)
UTF8 = Utf8Type()
LARGE_UTF8 = Utf8Type(large=True)


def time32(unit: TimeUnit | str) -> TimeType:
    return TimeType(32, _unit(unit))


def time64(unit: TimeUnit | str) -> TimeType:
    return TimeType(64, _unit(unit))


def timestamp(unit: TimeUnit | str, timezone: str | None = None) -> TimestampType:
    return TimestampType(_unit(unit), timezone)


def decimal128(precision: int, scale: int) -> DecimalType:
    return DecimalType(precision, scale, 128)


def decimal256(precision: int, scale: int) -> DecimalType:
    return DecimalType(precision, scale, 256)


def dictionary(key: IntegerType, value: LogicalType) -> DictionaryType:
    return DictionaryType(key, value)


# ---------------------------------------------------------------------------
# pyarrow conversions
# ---------------------------------------------------------------------------

_INTEGER_TO_ARROW = {
    (8, True): pa.int8,
    (16, True): pa.int16,
    (32, True): pa.int32,
    (64, True): pa.int64,
    (8, False): pa.uint8,
    (16, False): pa.uint16,
    (32, False): pa.uint32,
    (64, False): pa.uint64,
}

_TIME_UNITS_BY_WIDTH = {
    32: (TimeUnit.SECOND, TimeUnit.MILLISECOND),
    64: (TimeUnit.MICROSECOND, TimeUnit.NANOSECOND),
}


def to_arrow(t: LogicalType) -> pa.DataType:
    """
    Convert a LogicalType to the equivalent pyarrow data type.

    Args:
        t (LogicalType): Catalog type.

    Returns:
        pa.DataType: Equivalent Arrow type (decimal precision/scale and timestamp
        timezone carried over exactly).

    Raises:
        UnsupportedType: If the value is not a catalog type or is an unsupported
            combination (e.g. Time32 in microseconds).
    """
    if isinstance(t, NullType):
        return pa.null()
    if isinstance(t, BooleanType):
        return pa.bool_()
    if isinstance(t, IntegerType):
        return _INTEGER_TO_ARROW[(t.bit_width, t.signed)]()
    if isinstance(t, FloatType):
        return pa.float32() if t.bit_width == 32 else pa.float64()
    if isinstance(t, DateType):
        return pa.date32() if t.bit_width == 32 else pa.date64()
    if isinstance(t, TimeType):
        if t.unit not in _TIME_UNITS_BY_WIDTH[t.bit_width]:
            raise UnsupportedType(f"time{t.bit_width} does not support unit {t.unit.value!r}")
        factory = pa.time32 if t.bit_width == 32 else pa.time64
        return factory(t.unit.value)
    if isinstance(t, TimestampType):
        return pa.timestamp(t.unit.value, tz=t.timezone)
    if isinstance(t, BinaryType):
        return pa.large_binary() if t.large else pa.binary()
    if isinstance(t, Utf8Type):
        return pa.large_string() if t.large else pa.string()
    if isinstance(t, DecimalType):
        factory = pa.decimal128 if t.bit_width == 128 else pa.decimal256
        try:
            return factory(t.precision, t.scale)
        except (ValueError, pa.ArrowException) as exc:
            raise UnsupportedType(f"invalid decimal parameters {t!r}: {exc}") from exc
    if isinstance(t, DictionaryType):
        return pa.dictionary(to_arrow(t.key), to_arrow(t.value))
    raise UnsupportedType(f"not a logical type: {t!r}")


def from_arrow(dt: pa.DataType) -> LogicalType:
    """
    Convert a pyarrow data type into the catalog.

    Args:
        dt (pa.DataType): Arrow type.

    Returns:
        LogicalType: Catalog equivalent.

    Raises:
        UnsupportedType: For Arrow types outside the catalog (lists, structs, float16,
            views, durations, intervals, ...).
    """
    if patypes.is_null(dt):
        return NULL
    if patypes.is_boolean(dt):
        return BOOLEAN
    if patypes.is_integer(dt):
        return IntegerType(dt.bit_width, patypes.is_signed_integer(dt))
    if patypes.is_float32(dt):
        return FLOAT32
    if patypes.is_float64(dt):
        return FLOAT64
    if patypes.is_date32(dt):
        return DATE32
    if patypes.is_date64(dt):
        return DATE64
    if patypes.is_time32(dt):
        return TimeType(32, _unit(dt.unit))
    if patypes.is_time64(dt):
        return TimeType(64, _unit(dt.unit))
    if patypes.is_timestamp(dt):
        return TimestampType(_unit(dt.unit), dt.tz)
    if patypes.is_large_binary(dt):
        return LARGE_BINARY
    if patypes.is_binary(dt):
        return BINARY
    if patypes.is_large_string(dt):
        return LARGE_UTF8
    if patypes.is_string(dt):
        return UTF8
    if patypes.is_decimal128(dt):
        return DecimalType(dt.precision, dt.scale, 128)
    if patypes.is_decimal256(dt):
        return DecimalType(dt.precision, dt.scale, 256)
    if patypes.is_dictionary(dt):
        key = from_arrow(dt.index_type)
        if not isinstance(key, IntegerType):
            raise UnsupportedType(f"dictionary key type not supported: {dt.index_type}")
        return DictionaryType(key, from_arrow(dt.value_type))
    raise UnsupportedType(f"arrow type not supported: {dt}")


def as_logical_type(t: LogicalType | pa.DataType) -> LogicalType:
    """Accept either a catalog type or a pyarrow type and return the catalog type."""
    if isinstance(t, pa.DataType):
        return from_arrow(t)
    if isinstance(t, LOGICAL_TYPE_CLASSES):
        return t
    raise UnsupportedType(f"not a logical type: {t!r}")


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Field:
    """
    One named column.

    Attributes:
        name (str): Column name.
        type (LogicalType): Column type.
        nullable (bool): Whether nulls are allowed.
    """

    name: str
    type: LogicalType
    nullable: bool = True

    def to_arrow(self) -> pa.Field:
        return pa.field(self.name, to_arrow(self.type), nullable=self.nullable)

    @classmethod
    def from_arrow(cls, f: pa.Field) -> Field:
        return cls(f.name, from_arrow(f.type), f.nullable)


@dataclass(frozen=True, slots=True)
class Schema:
    """
    Ordered sequence of fields; field order defines column position in every batch.

    Examples:
        >>> from colwire.core.types import INT32, UTF8, Field, Schema
        >>> s = Schema((Field("a", INT32), Field("b", UTF8, nullable=False)))
        >>> len(s), s.types[1]
        (2, Utf8Type(large=False))
    """

    fields: tuple[Field, ...]

    def __init__(self, fields: Iterable[Field]) -> None:
        object.__setattr__(self, "fields", tuple(fields))

    def __iter__(self) -> Iterator[Field]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __getitem__(self, i: int) -> Field:
        return self.fields[i]

    @property
    def names(self) -> list[str]:
        return [f.name for f in self.fields]

    @property
    def types(self) -> list[LogicalType]:
        return [f.type for f in self.fields]

    def to_arrow(self) -> pa.Schema:
        return pa.schema([f.to_arrow() for f in self.fields])

    @classmethod
    def from_arrow(cls, schema: pa.Schema) -> Schema:
        return cls(Field.from_arrow(f) for f in schema)


def as_schema(schema: Schema | pa.Schema) -> Schema:
    """Accept either a colwire Schema or a pyarrow Schema and return a colwire Schema."""
    if isinstance(schema, Schema):
        return schema
    if isinstance(schema, pa.Schema):
        return Schema.from_arrow(schema)
    raise TypeError(f"expected Schema or pyarrow.Schema, got {type(schema).__name__}")
