"""Tests for `colwire.core.types` catalog and pyarrow conversions."""

from __future__ import annotations

import pyarrow as pa
import pytest

from colwire.core.errors import ColumnTypeError, UnsupportedType
from colwire.core.types import (
    BINARY,
    BOOLEAN,
    DATE32,
    DATE64,
    FLOAT32,
    FLOAT64,
    INT8,
    INT32,
    INT64,
    LARGE_BINARY,
    LARGE_UTF8,
    NULL,
    UINT16,
    UINT64,
    UTF8,
    DecimalType,
    DictionaryType,
    Field,
    IntegerType,
    Schema,
    TimeType,
    TimeUnit,
    as_logical_type,
    as_schema,
    decimal128,
    decimal256,
    dictionary,
    from_arrow,
    time32,
    time64,
    timestamp,
    to_arrow,
)


@pytest.mark.parametrize(
    "logical,arrow",
    [
        (NULL, pa.null()),
        (BOOLEAN, pa.bool_()),
        (INT8, pa.int8()),
        (UINT16, pa.uint16()),
        (UINT64, pa.uint64()),
        (FLOAT32, pa.float32()),
        (DATE64, pa.date64()),
        (time32("ms"), pa.time32("ms")),
        (time64(TimeUnit.NANOSECOND), pa.time64("ns")),
        (timestamp("us", "UTC"), pa.timestamp("us", tz="UTC")),
        (LARGE_BINARY, pa.large_binary()),
        (LARGE_UTF8, pa.large_string()),
        (decimal128(10, 2), pa.decimal128(10, 2)),
        (decimal256(50, 10), pa.decimal256(50, 10)),
        (dictionary(INT32, UTF8), pa.dictionary(pa.int32(), pa.string())),
    ],
)
def test_to_arrow_and_back_are_exact(logical, arrow) -> None:
    assert to_arrow(logical) == arrow
    assert from_arrow(arrow) == logical


@pytest.mark.parametrize(
    "arrow",
    [
        pa.float16(),
        pa.list_(pa.int32()),
        pa.struct([("a", pa.int32())]),
        pa.duration("s"),
    ],
)
def test_from_arrow_rejects_types_outside_catalog(arrow: pa.DataType) -> None:
    with pytest.raises(UnsupportedType):
        from_arrow(arrow)


def test_time32_with_microseconds_is_unsupported() -> None:
    t = TimeType(32, TimeUnit.MICROSECOND)
    with pytest.raises(UnsupportedType, match="time32"):
        to_arrow(t)


@pytest.mark.parametrize("width", [4, 12, 128])
def test_integer_width_is_validated(width: int) -> None:
    with pytest.raises(UnsupportedType):
        IntegerType(width)


def test_decimal_precision_range_depends_on_width() -> None:
    assert DecimalType(38, 0).bit_width == 128
    assert DecimalType(76, 0, 256).precision == 76
    with pytest.raises(UnsupportedType):
        DecimalType(39, 0)
    with pytest.raises(UnsupportedType):
        DecimalType(0, 0, 256)


def test_dictionary_structure_rules() -> None:
    with pytest.raises(UnsupportedType, match="key"):
        DictionaryType(FLOAT64, UTF8)  # type: ignore[arg-type]
    with pytest.raises(UnsupportedType, match="must not be a dictionary"):
        dictionary(INT8, dictionary(INT8, UTF8))
    with pytest.raises(UnsupportedType):
        dictionary(INT8, "utf8")  # type: ignore[arg-type]


def test_unknown_time_unit_string() -> None:
    with pytest.raises(UnsupportedType, match="unknown time unit"):
        timestamp("minutes")


def test_unsupported_type_is_a_type_error() -> None:
    assert issubclass(UnsupportedType, ColumnTypeError)
    assert issubclass(UnsupportedType, TypeError)


def test_as_logical_type_accepts_both_forms() -> None:
    assert as_logical_type(pa.int64()) == INT64
    assert as_logical_type(DATE32) is DATE32
    with pytest.raises(UnsupportedType):
        as_logical_type("int64")  # type: ignore[arg-type]


def test_schema_round_trip_preserves_order_and_nullability() -> None:
    schema = Schema(
        [
            Field("id", INT64, nullable=False),
            Field("payload", BINARY),
            Field("amount", decimal128(12, 4)),
        ]
    )
    arrow = schema.to_arrow()

    assert arrow.names == ["id", "payload", "amount"]
    assert arrow.field("id").nullable is False
    assert Schema.from_arrow(arrow) == schema
    assert as_schema(arrow) == schema
    assert schema.types[2] == decimal128(12, 4)
    assert len(schema) == 3
    assert schema[0].name == "id"


def test_as_schema_rejects_other_values() -> None:
    with pytest.raises(TypeError):
        as_schema(["a", "b"])  # type: ignore[arg-type]
