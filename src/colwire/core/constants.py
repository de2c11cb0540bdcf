"""
colwire core defaults.

Defines builder sizing, wire compression, and read buffering defaults consumed by
downstream IO layers. This module is zero-IO and uses only the Python standard library.

Notes:
    - Factories size builders from ``DEFAULT_BATCH_SIZE`` when no capacity hint is given.
    - Segment encoders/decoders wrap IPC streams in ``DEFAULT_COMPRESSION`` when the
      compressed wire variant is selected.
    - colwire.io.config.IoSettings consumes these values; change defaults here.
"""

from __future__ import annotations

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_COMPRESSION",
    "SUPPORTED_COMPRESSION",
    "READ_BUFFER_SIZE",
]

# Rows per output batch; also the capacity hint handed to new builders.
DEFAULT_BATCH_SIZE: int = 8192

# Codec wrapped around an IPC stream for the compressed wire variant.
DEFAULT_COMPRESSION: str = "zstd"

# Codecs accepted for segment streams (pyarrow CompressedInputStream names).
SUPPORTED_COMPRESSION: tuple[str, ...] = ("zstd", "lz4", "gzip")

# Bytes pulled from a segment per refill of the decoder's read buffer.
READ_BUFFER_SIZE: int = 64 * 1024
