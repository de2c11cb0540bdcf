"""
Core exception types raised by type dispatch and builder/array agreement checks.

Provides typed exceptions for core-domain failures:
- UnsupportedType for logical types (or combinations) outside the supported matrix.
- TypeMismatch for builders or arrays whose concrete representation disagrees with the
  declared logical type.

Notes:
    - This module uses only the Python standard library and has no side effects.
    - Both errors are caller-contract violations: they are raised immediately and never
      coerced into a default branch.
    - IO-layer failures (decode, collaborator, file) live in colwire.io.errors.

Examples:
    Catch an unsupported dictionary key.

    >>> from colwire.core.errors import UnsupportedType
    >>> from colwire.core.types import FLOAT64, UTF8, DictionaryType
    >>> try:
    ...     DictionaryType(FLOAT64, UTF8)  # type: ignore[arg-type]
    ... except UnsupportedType as e:
    ...     msg = str(e)
    >>> "dictionary key" in msg
    True
"""

from __future__ import annotations

__all__ = [
    "ColumnTypeError",
    "UnsupportedType",
    "TypeMismatch",
]


class ColumnTypeError(TypeError):
    """Base class for logical-type dispatch failures."""


class UnsupportedType(ColumnTypeError):
    """Logical type or type combination outside the supported builder matrix."""


class TypeMismatch(ColumnTypeError):
    """Builder or source array does not match the declared logical type."""
