from __future__ import annotations

from pathlib import Path

import pytest

from colwire.io.config import IoSettings
from colwire.io.errors import IoConfigError
from colwire.io.segments import IpcReadMode

ENV_KEYS = [
    "COLWIRE_IO_BATCH_SIZE",
    "COLWIRE_IO_READ_MODE",
    "COLWIRE_IO_COMPRESSION",
    "COLWIRE_IO_READ_BUFFER_SIZE",
    "COLWIRE_IO_STRICT_SCHEMA",
]


def _clear_env(monkeypatch) -> None:
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def _write_colwire_toml(tmp: Path, content: str) -> Path:
    p = tmp / "colwire.toml"
    p.write_text(content)
    return p


def test_io_settings_precedence_env_over_toml(tmp_path: Path, monkeypatch) -> None:
    # Arrange TOML
    _write_colwire_toml(
        tmp_path,
        """
        [io]
        batch_size = 256
        compression = "lz4"
        read_mode = "uncompressed_channel"
        """.strip(),
    )
    # Ensure cwd for IoSettings.from_toml() search
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)
    # Arrange ENV that should override TOML
    monkeypatch.setenv("COLWIRE_IO_BATCH_SIZE", "512")
    monkeypatch.setenv("COLWIRE_IO_COMPRESSION", "gzip")

    # Act
    s = IoSettings.load()

    # Assert precedence: env > TOML
    assert s.batch_size == 512  # env override
    assert s.compression == "gzip"  # env override
    assert s.read_mode == "uncompressed_channel"  # TOML only
    assert s.ipc_read_mode is IpcReadMode.UNCOMPRESSED_CHANNEL


def test_io_settings_from_toml_top_level_keys(tmp_path: Path, monkeypatch) -> None:
    _write_colwire_toml(
        tmp_path,
        """
        read_buffer_size = 1024
        strict_schema = false
        """.strip(),
    )
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    s = IoSettings.load()

    assert s.read_buffer_size == 1024
    assert s.strict_schema is False


def test_io_settings_from_pyproject(tmp_path: Path, monkeypatch) -> None:
    (tmp_path / "pyproject.toml").write_text(
        """
        [tool.colwire.io]
        read_mode = "adaptive_file_or_channel"
        """.strip()
    )
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    s = IoSettings.load()

    assert s.ipc_read_mode is IpcReadMode.ADAPTIVE_FILE_OR_CHANNEL


def test_io_settings_explicit_path(tmp_path: Path) -> None:
    p = _write_colwire_toml(tmp_path, '[io]\ncompression = "gzip"\n')
    assert IoSettings.from_toml(p).compression == "gzip"


def test_io_settings_defaults_when_no_config(tmp_path: Path, monkeypatch) -> None:
    # No TOML, no env
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    s = IoSettings.load()

    # Defaults from IoSettings / colwire.core.constants
    assert s == IoSettings()
    assert s.batch_size == 8192
    assert s.read_mode == "compressed_channel"
    assert s.compression == "zstd"
    assert s.read_buffer_size == 64 * 1024
    assert s.strict_schema is True


def test_loaders_ignore_invalid_values(tmp_path: Path, monkeypatch) -> None:
    _write_colwire_toml(
        tmp_path,
        """
        [io]
        batch_size = "many"
        read_mode = "carrier_pigeon"
        compression = "snappy"
        read_buffer_size = 0
        """.strip(),
    )
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)
    monkeypatch.setenv("COLWIRE_IO_STRICT_SCHEMA", "off")

    s = IoSettings.load()

    assert s.batch_size == 8192
    assert s.read_mode == "compressed_channel"
    assert s.compression == "zstd"
    assert s.read_buffer_size == 64 * 1024
    assert s.strict_schema is False


@pytest.mark.parametrize(
    "kwargs",
    [
        {"read_mode": "carrier_pigeon"},
        {"compression": "snappy"},
        {"batch_size": 0},
        {"read_buffer_size": -1},
    ],
)
def test_direct_construction_validates(kwargs) -> None:
    with pytest.raises(IoConfigError):
        IoSettings(**kwargs)


@pytest.mark.parametrize(
    "content",
    [
        '[tool]\ncolwire = "not a table"\n',
        "[tool.colwire]\nio = 3\n",
        'tool = "flat"\n',
    ],
)
def test_pyproject_with_malformed_colwire_section_is_ignored(
    tmp_path: Path, monkeypatch, content: str
) -> None:
    (tmp_path / "pyproject.toml").write_text(content)
    monkeypatch.chdir(tmp_path)
    _clear_env(monkeypatch)

    assert IoSettings.from_toml() == IoSettings()
    assert IoSettings.load() == IoSettings()
