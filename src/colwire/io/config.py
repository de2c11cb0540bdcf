"""
Configuration for the colwire.io module.

Defines IoSettings, a frozen dataclass carrying runtime configuration for segment decoding
and encoding. Defaults are sourced from colwire.core.constants (the single source of
truth).

Source of truth
- colwire.core.constants.DEFAULT_BATCH_SIZE, DEFAULT_COMPRESSION, READ_BUFFER_SIZE
- Read modes come from colwire.io.segments.IpcReadMode

Import DAG discipline
- Depends only on stdlib, colwire.core.constants and colwire.io.{errors,segments}.

Notes
- read_mode selects how segments are turned into decoders (see IpcReadMode).
- compression names the codec wrapping each IPC stream when the compressed variant is used.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Literal

from colwire.core.constants import DEFAULT_BATCH_SIZE as CORE_BATCH_SIZE
from colwire.core.constants import DEFAULT_COMPRESSION as CORE_COMPRESSION
from colwire.core.constants import READ_BUFFER_SIZE as CORE_READ_BUFFER_SIZE
from colwire.core.constants import SUPPORTED_COMPRESSION

from .errors import IoConfigError
from .segments import IpcReadMode

__all__ = ["IoSettings", "ReadMode", "Compression"]

ReadMode = Literal["uncompressed_channel", "compressed_channel", "adaptive_file_or_channel"]
Compression = Literal["zstd", "lz4", "gzip"]

_READ_MODES = frozenset(m.value for m in IpcReadMode)


def _bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        return v.strip().lower() in {"1", "true", "t", "yes", "y", "on"}
    return False


@dataclass(frozen=True)
class IoSettings:
    """
    Runtime settings for the colwire.io layer.

    Attributes:
        batch_size (int): Capacity hint handed to builders and encoders (>= 1).
        read_mode (Literal["uncompressed_channel","compressed_channel","adaptive_file_or_channel"]):
            Default IpcReadMode for SegmentSequenceReader.
        compression (Literal["zstd","lz4","gzip"]): Codec wrapping compressed segments.
        read_buffer_size (int): Bytes buffered in front of each segment's byte source (>= 1).
        strict_schema (bool): If True, decoders reject streams whose field types disagree
            with the expected schema.

    Raises:
        IoConfigError: On construction with an unknown mode/codec or a non-positive size.

    Examples:
        >>> from colwire.io import IoSettings
        >>> IoSettings(read_mode="adaptive_file_or_channel").ipc_read_mode
        <IpcReadMode.ADAPTIVE_FILE_OR_CHANNEL: 'adaptive_file_or_channel'>
    """

    batch_size: int = CORE_BATCH_SIZE
    read_mode: ReadMode = "compressed_channel"
    compression: Compression = CORE_COMPRESSION  # type: ignore[assignment]
    read_buffer_size: int = CORE_READ_BUFFER_SIZE
    strict_schema: bool = True

    def __post_init__(self) -> None:
        if self.read_mode not in _READ_MODES:
            raise IoConfigError(f"unknown read_mode: {self.read_mode!r}")
        if self.compression not in SUPPORTED_COMPRESSION:
            raise IoConfigError(
                f"unsupported compression: {self.compression!r} "
                f"(expected one of {', '.join(SUPPORTED_COMPRESSION)})"
            )
        if self.batch_size < 1:
            raise IoConfigError("batch_size must be >= 1")
        if self.read_buffer_size < 1:
            raise IoConfigError("read_buffer_size must be >= 1")

    @property
    def ipc_read_mode(self) -> IpcReadMode:
        return IpcReadMode(self.read_mode)

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(cls, base: IoSettings, cfg: dict[str, Any] | None) -> IoSettings:
        """Apply a loose config mapping onto IoSettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base

        # batch_size / read_buffer_size
        for key in ("batch_size", "read_buffer_size"):
            if key in cfg:
                try:
                    value = int(cfg[key])
                except (TypeError, ValueError):
                    continue
                if value >= 1:
                    s = replace(s, **{key: value})

        # read_mode
        if "read_mode" in cfg and isinstance(cfg["read_mode"], str):
            mode = cfg["read_mode"].strip().lower()
            if mode in _READ_MODES:
                s = replace(s, read_mode=mode)  # type: ignore[arg-type]

        # compression
        if "compression" in cfg and isinstance(cfg["compression"], str):
            comp = cfg["compression"].strip().lower()
            if comp in SUPPORTED_COMPRESSION:
                s = replace(s, compression=comp)  # type: ignore[arg-type]

        # strict_schema
        if "strict_schema" in cfg:
            s = replace(s, strict_schema=_bool(cfg["strict_schema"]))

        return s

    @classmethod
    def from_env(cls, base: IoSettings | None = None, prefix: str = "COLWIRE_IO_") -> IoSettings:
        """
        Build IoSettings from environment variables. Precedence is env > base (if provided) > defaults.

        Recognized variables:
            - COLWIRE_IO_BATCH_SIZE
            - COLWIRE_IO_READ_MODE ("uncompressed_channel" | "compressed_channel" |
              "adaptive_file_or_channel")
            - COLWIRE_IO_COMPRESSION ("zstd" | "lz4" | "gzip")
            - COLWIRE_IO_READ_BUFFER_SIZE
            - COLWIRE_IO_STRICT_SCHEMA (1/0/true/false/yes/no/on/off)
        """
        s = base or cls()

        mapping: dict[str, Any] = {}
        for key in ("batch_size", "read_mode", "compression", "read_buffer_size", "strict_schema"):
            v = os.getenv(prefix + key.upper())
            if v:
                mapping[key] = v

        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> IoSettings:
        """
        Build IoSettings from a TOML file.

        Search order when `path` is None:
            1) ./colwire.toml (with either top-level [io] or direct keys)
            2) ./pyproject.toml under [tool.colwire.io]

        Returns defaults if no file is present or none carries settings.
        """
        s = cls()

        def _load_toml(p: Path) -> dict[str, Any] | None:
            try:
                with p.open("rb") as fh:
                    return tomllib.load(fh)
            except (OSError, tomllib.TOMLDecodeError):
                return None

        cfg: dict[str, Any] | None = None

        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "colwire.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        for p in cand:
            if not p.exists():
                continue
            data = _load_toml(p)
            if not isinstance(data, dict):
                continue
            if p.name == "pyproject.toml":
                # Expect [tool.colwire.io]
                tool = data.get("tool", {})
                section = tool.get("colwire", {}) if isinstance(tool, dict) else None
                cfg = section.get("io", {}) if isinstance(section, dict) else None
            else:
                # colwire.toml - accept either [io] table or top-level keys
                if "io" in data and isinstance(data["io"], dict):
                    cfg = data["io"]
                else:
                    cfg = data
            if cfg:
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> IoSettings:
        """
        Load IoSettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search defaults (colwire.toml, pyproject.toml).

        Returns:
            IoSettings
        """
        s = cls.from_toml(path)
        s = cls.from_env(base=s)
        return s
