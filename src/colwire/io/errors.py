"""
Custom exceptions for the colwire.io module.

Purpose
- Provide IO-layer specific error types that map cleanly to responsibilities in colwire.io.
- Keep colwire.core as the source of truth for type errors (see colwire.core.errors).

Source of truth and boundaries
- colwire.core.errors.UnsupportedType and TypeMismatch are raised by the type catalog,
  the builder factory and the append engine.
- colwire.io raises Io* errors for configuration, decoding and segment handling:
  - IoConfigError: invalid or unsupported configuration.
  - DecodeError: malformed or truncated segment bytes, or a schema disagreement.
  - ExternalCollaboratorError: a segment or channel does not satisfy its contract.
  - IoWriteError: atomic segment-file write failed (tmp write/fsync/rename).

Notes
- Local file faults (missing file, permission, short device) surface as plain OSError.
- Exceptions raised by foreign collaborators themselves (a channel's read, a segment
  source's next) are propagated unchanged, never wrapped.
- These exceptions do not perform any IO and are stdlib-only.
"""

from __future__ import annotations


class IoError(Exception):
    """
    Base class for IO-related errors in colwire.io.

    Notes:
        Use this as a catch-all for IO-layer failures, distinct from colwire.core errors.
    """


class IoConfigError(IoError):
    """
    Raised when IO configuration is invalid or unsupported.

    Examples:
        - Unknown read mode or compression codec
        - Non-positive batch size or read buffer size
    """


class DecodeError(IoError):
    """
    Raised when a segment cannot be decoded into record batches.

    Notes:
        Covers malformed or truncated IPC bytes, a corrupt codec stream, and a stream
        schema whose field types disagree with the expected schema. A decode fault never
        yields a partial batch.
    """


class ExternalCollaboratorError(IoError):
    """
    Raised when a segment handed over by the segment source violates its contract.

    Examples:
        - A file segment delivered while the read mode requires channels
        - An object that is neither a channel nor a file segment
    """


class IoWriteError(IoError):
    """
    Raised when a segment file write fails to complete atomically.

    Notes:
        The write path is tmp file → fsync → os.replace(tmp, final). Failures at any step
        surface as IoWriteError (with best-effort cleanup of tmp files).
    """
