"""Tests for `colwire.core.factory` dispatch over the type catalog."""

from __future__ import annotations

import pyarrow as pa
import pytest

from colwire.core.builders import (
    ConfiguredDecimalBuilder,
    DictionaryBuilder,
    NullBuilder,
    PrimitiveBuilder,
)
from colwire.core.errors import UnsupportedType
from colwire.core.factory import is_supported, new_array_builder, new_array_builders
from colwire.core.types import (
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
    Schema,
    TimeType,
    TimeUnit,
    decimal128,
    decimal256,
    dictionary,
    time32,
    time64,
    timestamp,
    to_arrow,
)

INTEGERS = [INT8, INT16, INT32, INT64, UINT8, UINT16, UINT32, UINT64]

SUPPORTED = [
    NULL,
    BOOLEAN,
    *INTEGERS,
    FLOAT32,
    FLOAT64,
    DATE32,
    DATE64,
    time32("s"),
    time32("ms"),
    time64("us"),
    time64("ns"),
    timestamp("s"),
    timestamp("ns", "Europe/Paris"),
    BINARY,
    LARGE_BINARY,
    UTF8,
    LARGE_UTF8,
    decimal128(10, 2),
    decimal256(60, 10),
    dictionary(INT8, UTF8),
    dictionary(UINT64, LARGE_UTF8),
    dictionary(INT16, FLOAT32),
    dictionary(UINT8, DATE64),
    dictionary(INT32, UINT16),
]


@pytest.mark.parametrize("logical", SUPPORTED, ids=repr)
def test_new_builder_finishes_to_empty_array_of_exact_type(logical) -> None:
    builder = new_array_builder(logical, 16)

    out = builder.finish()

    assert len(out) == 0
    assert out.type == to_arrow(logical)


def test_decimal_metadata_survives_empty_finish() -> None:
    out = new_array_builder(decimal128(7, 3)).finish()
    assert out.type.precision == 7
    assert out.type.scale == 3


@pytest.mark.parametrize(
    "logical,kind",
    [
        (NULL, NullBuilder),
        (UTF8, PrimitiveBuilder),
        (timestamp("ms"), PrimitiveBuilder),
        (decimal128(5, 1), ConfiguredDecimalBuilder),
        (dictionary(INT32, UTF8), DictionaryBuilder),
    ],
)
def test_routes_to_one_builder_kind(logical, kind) -> None:
    assert isinstance(new_array_builder(logical), kind)


@pytest.mark.parametrize(
    "logical",
    [
        TimeType(32, TimeUnit.MICROSECOND),
        TimeType(64, TimeUnit.SECOND),
        dictionary(INT32, BINARY),
        dictionary(INT32, BOOLEAN),
        dictionary(INT32, decimal128(5, 2)),
        dictionary(INT32, timestamp("s")),
    ],
    ids=repr,
)
def test_unsupported_combinations_raise(logical) -> None:
    with pytest.raises(UnsupportedType):
        new_array_builder(logical)
    assert is_supported(logical) is False


def test_accepts_pyarrow_types() -> None:
    builder = new_array_builder(pa.dictionary(pa.int16(), pa.string()))
    assert isinstance(builder, DictionaryBuilder)
    with pytest.raises(UnsupportedType):
        new_array_builder(pa.list_(pa.int8()))


def test_negative_capacity_hint() -> None:
    with pytest.raises(ValueError, match="capacity_hint"):
        new_array_builder(INT32, -1)


def test_builders_follow_schema_field_order() -> None:
    schema = Schema([Field("a", INT32), Field("b", UTF8), Field("c", NULL)])

    builders = new_array_builders(schema, 8)

    assert [type(b) for b in builders] == [PrimitiveBuilder, PrimitiveBuilder, NullBuilder]
    assert [b.logical_type for b in builders] == schema.types


def test_builders_from_pyarrow_schema() -> None:
    schema = pa.schema([("x", pa.decimal256(40, 5)), ("y", pa.bool_())])

    builders = new_array_builders(schema)

    assert isinstance(builders[0], ConfiguredDecimalBuilder)
    assert builders[1].arrow_type == pa.bool_()
