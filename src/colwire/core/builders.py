"""
Append-only column builders producing immutable pyarrow arrays.

Each builder is bound to exactly one LogicalType at construction, owns its in-progress
values, and is converted into a pyarrow.Array by finish(). finish() returns the column and
resets the builder to empty; finish_cloned() returns the column and keeps the state.

Builders
- NullBuilder: counts slots; no storage.
- PrimitiveBuilder: one generic builder for every fixed/variable-width primitive
  (booleans, integers, floats, dates, times, timestamps, binary, text). Parameterized by
  the Arrow type instead of one class per scalar kind.
- ConfiguredDecimalBuilder: a fixed-width value buffer holding unscaled integers, with
  precision/scale kept alongside and stamped on at finish time.
- DictionaryBuilder: interns values and records integer keys.

Notes
- Values appended one at a time are buffered as Python objects and flushed into Arrow
  chunks every `capacity` values; bulk appends (append_array) are kept as Arrow chunks.
  Ordering across both paths is preserved. Single values are checked against the
  builder type on append, so a rejected value never reaches the buffer.
- Builders do not validate nullability; RecordBatch assembly happens in
  colwire.core.batches.
"""

from __future__ import annotations

import struct
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any

import pyarrow as pa

from .constants import DEFAULT_BATCH_SIZE
from .errors import TypeMismatch, UnsupportedType
from .types import (
    DecimalType,
    DictionaryType,
    FloatType,
    IntegerType,
    LogicalType,
    NullType,
    to_arrow,
)

__all__ = [
    "ArrayBuilder",
    "NullBuilder",
    "PrimitiveBuilder",
    "ConfiguredDecimalBuilder",
    "DictionaryBuilder",
]


class _ValueBuffer:
    """Ordered storage of Arrow chunks plus not-yet-converted Python scalars."""

    __slots__ = ("type", "capacity", "_chunks", "_pending", "_len")

    def __init__(self, arrow_type: pa.DataType, capacity: int) -> None:
        self.type = arrow_type
        self.capacity = max(int(capacity), 1)
        self._chunks: list[pa.Array] = []
        self._pending: list[Any] = []
        self._len = 0

    def __len__(self) -> int:
        return self._len

    def _flush(self) -> None:
        if self._pending:
            self._chunks.append(pa.array(self._pending, type=self.type))
            self._pending = []

    def append(self, value: Any) -> None:
        self._pending.append(value)
        self._len += 1
        if len(self._pending) >= self.capacity:
            self._flush()

    def append_array(self, values: pa.Array) -> None:
        self._flush()
        if len(values):
            self._chunks.append(values)
            self._len += len(values)

    def build(self) -> pa.Array:
        chunks = list(self._chunks)
        if self._pending:
            chunks.append(pa.array(self._pending, type=self.type))
        if not chunks:
            return pa.array([], type=self.type)
        if len(chunks) == 1:
            return chunks[0]
        return pa.concat_arrays(chunks)

    def clear(self) -> None:
        self._chunks = []
        self._pending = []
        self._len = 0


class ArrayBuilder(ABC):
    """
    Common interface of all column builders.

    Attributes:
        logical_type (LogicalType): The type every appended value must conform to.
    """

    logical_type: LogicalType

    @property
    def arrow_type(self) -> pa.DataType:
        return to_arrow(self.logical_type)

    @abstractmethod
    def __len__(self) -> int: ...

    def is_empty(self) -> bool:
        return len(self) == 0

    @abstractmethod
    def append_null(self) -> None: ...

    @abstractmethod
    def append_value(self, value: Any) -> None: ...

    def append_option(self, value: Any | None) -> None:
        """Append `value`, or a null when it is None."""
        if value is None:
            self.append_null()
        else:
            self.append_value(value)

    @abstractmethod
    def append_array(self, values: pa.Array) -> None:
        """Append every slot of `values`, nulls included; `values.type` must match."""

    @abstractmethod
    def finish_cloned(self) -> pa.Array: ...

    @abstractmethod
    def reset(self) -> None: ...

    def finish(self) -> pa.Array:
        """Return the accumulated column and reset the builder to empty."""
        out = self.finish_cloned()
        self.reset()
        return out

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.logical_type!r}, len={len(self)})"


class NullBuilder(ArrayBuilder):
    """Counting-only builder for NullType columns."""

    def __init__(self) -> None:
        self.logical_type = NullType()
        self._len = 0

    def __len__(self) -> int:
        return self._len

    def append(self) -> None:
        self._len += 1

    def extend(self, n: int) -> None:
        if n < 0:
            raise ValueError("n must be >= 0")
        self._len += n

    def append_null(self) -> None:
        self._len += 1

    def append_value(self, value: Any) -> None:
        if value is not None:
            raise TypeMismatch(f"null column cannot hold value {value!r}")
        self._len += 1

    def append_array(self, values: pa.Array) -> None:
        if values.type != pa.null():
            raise TypeMismatch(f"cannot append {values.type} values to a null builder")
        self._len += len(values)

    def finish_cloned(self) -> pa.Array:
        return pa.nulls(self._len)

    def reset(self) -> None:
        self._len = 0


class PrimitiveBuilder(ArrayBuilder):
    """
    Generic builder for every non-null, non-decimal, non-dictionary catalog type.

    Args:
        logical_type (LogicalType): Target column type.
        capacity (int): Capacity hint; also the flush threshold for buffered scalars.

    Raises:
        UnsupportedType: For Null, Decimal or Dictionary types (use their dedicated
            builders) or types outside the catalog.
    """

    def __init__(self, logical_type: LogicalType, capacity: int = DEFAULT_BATCH_SIZE) -> None:
        if isinstance(logical_type, (NullType, DecimalType, DictionaryType)):
            raise UnsupportedType(
                f"{type(logical_type).__name__} requires a dedicated builder, not PrimitiveBuilder"
            )
        self.logical_type = logical_type
        self._values = _ValueBuffer(to_arrow(logical_type), capacity)

    @property
    def arrow_type(self) -> pa.DataType:
        return self._values.type

    @property
    def capacity(self) -> int:
        return self._values.capacity

    def __len__(self) -> int:
        return len(self._values)

    def append_null(self) -> None:
        self._values.append(None)

    def append_value(self, value: Any) -> None:
        """
        Append one Python value.

        Raises:
            TypeMismatch: If the value cannot be represented as the builder's Arrow type
                (wrong kind, or out of range for the width). The builder is unchanged.
        """
        try:
            pa.scalar(value, type=self._values.type)
        except (pa.ArrowException, TypeError, ValueError, OverflowError) as exc:
            raise TypeMismatch(
                f"cannot append {value!r} to a {self._values.type} builder: {exc}"
            ) from exc
        self._values.append(value)

    def append_array(self, values: pa.Array) -> None:
        """
        Append every slot of an array of exactly this builder's type.

        Raises:
            TypeMismatch: If `values.type` differs from the builder's Arrow type.
        """
        if values.type != self._values.type:
            raise TypeMismatch(
                f"cannot append {values.type} values to a {self._values.type} builder"
            )
        self._values.append_array(values)

    def finish_cloned(self) -> pa.Array:
        return self._values.build()

    def reset(self) -> None:
        self._values.clear()


def _unscaled(value: Decimal | int, scale: int) -> int:
    """
    Convert a Decimal to its unscaled integer at `scale`; ints pass through unchanged.

    Raises:
        TypeMismatch: For values that are neither Decimal nor int.
        ValueError: For NaN/Infinity or values with more fractional digits than `scale`.
    """
    if isinstance(value, bool):
        raise TypeMismatch("bool is not a decimal value")
    if isinstance(value, int):
        return value
    if not isinstance(value, Decimal):
        raise TypeMismatch(f"expected Decimal or unscaled int, got {type(value).__name__}")
    sign, digits, exponent = value.as_tuple()
    if not isinstance(exponent, int):
        raise ValueError(f"decimal value {value} is not finite")
    n = int("".join(map(str, digits)) or "0")
    shift = exponent + scale
    if shift >= 0:
        n *= 10**shift
    else:
        n, rem = divmod(n, 10**-shift)
        if rem:
            raise ValueError(f"decimal value {value} has more than {scale} fractional digits")
    return -n if sign else n


class ConfiguredDecimalBuilder(ArrayBuilder):
    """
    Decimal builder that keeps precision/scale outside its generic value storage.

    The wrapped buffer accumulates unscaled two's complement integers in fixed-width
    slots (16 or 32 bytes) and knows nothing about precision or scale. finish() and
    finish_cloned() reinterpret that output as decimal128/256(precision, scale), so the
    metadata always matches what was supplied at construction.

    Args:
        precision (int): Decimal precision.
        scale (int): Decimal scale.
        bit_width (int): 128 or 256.
        capacity (int): Capacity hint for the wrapped buffer.

    Examples:
        >>> from decimal import Decimal
        >>> b = ConfiguredDecimalBuilder(10, 2)
        >>> b.append_value(Decimal("1.25"))
        >>> b.append_value(-5)  # unscaled: -0.05
        >>> b.finish().to_pylist()
        [Decimal('1.25'), Decimal('-0.05')]
    """

    logical_type: DecimalType

    def __init__(
        self,
        precision: int,
        scale: int,
        bit_width: int = 128,
        capacity: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        self.logical_type = DecimalType(precision, scale, bit_width)
        self._type = to_arrow(self.logical_type)
        self._width = bit_width // 8
        self._inner = _ValueBuffer(pa.binary(self._width), capacity)

    @property
    def precision(self) -> int:
        return self.logical_type.precision

    @property
    def scale(self) -> int:
        return self.logical_type.scale

    @property
    def arrow_type(self) -> pa.DataType:
        return self._type

    def __len__(self) -> int:
        return len(self._inner)

    def append_value(self, value: Decimal | int) -> None:
        raw = _unscaled(value, self.scale)
        if abs(raw) >= 10**self.precision:
            raise OverflowError(
                f"value {value} does not fit in decimal({self.precision}, {self.scale})"
            )
        try:
            encoded = raw.to_bytes(self._width, "little", signed=True)
        except OverflowError as exc:
            raise OverflowError(f"value {value} does not fit in decimal{self._width * 8}") from exc
        self._inner.append(encoded)

    def append_null(self) -> None:
        self._inner.append(None)

    def append_array(self, values: pa.Array) -> None:
        if values.type != self._type:
            raise TypeMismatch(f"cannot append {values.type} values to a {self._type} builder")
        for v in values.to_pylist():
            self.append_option(v)

    def finish_cloned(self) -> pa.Array:
        raw = self._inner.build()
        return pa.Array.from_buffers(
            self._type,
            len(raw),
            raw.buffers(),
            null_count=raw.null_count,
            offset=raw.offset,
        )

    def reset(self) -> None:
        self._inner.clear()


def _max_key(key: IntegerType) -> int:
    return (1 << (key.bit_width - 1)) - 1 if key.signed else (1 << key.bit_width) - 1


class DictionaryBuilder(ArrayBuilder):
    """
    Key→value interning builder for DictionaryType columns.

    Each distinct value receives the next key code on first append; repeated values reuse
    it. Key codes are private to this builder.

    Raises:
        OverflowError: When the number of distinct values exceeds the key type range.
    """

    logical_type: DictionaryType

    def __init__(self, logical_type: DictionaryType, capacity: int = DEFAULT_BATCH_SIZE) -> None:
        if not isinstance(logical_type, DictionaryType):
            raise UnsupportedType(
                f"DictionaryBuilder requires a DictionaryType, got {logical_type!r}"
            )
        self.logical_type = logical_type
        self._type = to_arrow(logical_type)
        self.capacity = max(int(capacity), 1)
        self._max_key = _max_key(logical_type.key)
        self._float_values = isinstance(logical_type.value, FloatType)
        self._keys: list[int | None] = []
        self._values: list[Any] = []
        self._codes: dict[Any, int] = {}

    @property
    def arrow_type(self) -> pa.DataType:
        return self._type

    def __len__(self) -> int:
        return len(self._keys)

    @property
    def distinct_count(self) -> int:
        return len(self._values)

    def append_null(self) -> None:
        self._keys.append(None)

    def _intern_key(self, value: Any) -> Any:
        # Floats intern by bit pattern so -0.0/0.0 stay distinct and NaN is one entry.
        if self._float_values and isinstance(value, (int, float)) and not isinstance(value, bool):
            return struct.pack("<d", float(value))
        return value

    def append_value(self, value: Any) -> None:
        """
        Append one value, interning it on first sight.

        Raises:
            TypeMismatch: If a new value cannot be represented as the dictionary value type.
            OverflowError: If a new value would need a key beyond the key type range.
        """
        key = self._intern_key(value)
        code = self._codes.get(key)
        if code is None:
            try:
                pa.scalar(value, type=self._type.value_type)
            except (pa.ArrowException, TypeError, ValueError, OverflowError) as exc:
                raise TypeMismatch(
                    f"cannot intern {value!r} as {self._type.value_type}: {exc}"
                ) from exc
            code = len(self._values)
            if code > self._max_key:
                raise OverflowError(
                    f"dictionary key overflow: {code + 1} distinct values exceed "
                    f"{self._type.index_type}"
                )
            self._codes[key] = code
            self._values.append(value)
        self._keys.append(code)

    def append_array(self, values: pa.Array) -> None:
        """Append the logical values of a dictionary array (keys are re-interned)."""
        if values.type != self._type:
            raise TypeMismatch(f"cannot append {values.type} values to a {self._type} builder")
        for v in values.dictionary_decode().to_pylist():
            self.append_option(v)

    def finish_cloned(self) -> pa.Array:
        indices = pa.array(self._keys, type=self._type.index_type)
        dictionary = pa.array(self._values, type=self._type.value_type)
        return pa.DictionaryArray.from_arrays(indices, dictionary)

    def reset(self) -> None:
        self._keys = []
        self._values = []
        self._codes = {}
