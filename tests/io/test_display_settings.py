from __future__ import annotations

from pathlib import Path

import pytest

from trelliskit.io.config import DisplaySettings
from trelliskit.io.errors import IoConfigError

_ENV_KEYS = [
    "TRELLISKIT_IO_ROOT_DIR",
    "TRELLISKIT_IO_COPY_SAMPLE_SIZE",
    "TRELLISKIT_IO_COPY_WARN_MB",
    "TRELLISKIT_IO_JSON_INDENT",
    "TRELLISKIT_IO_FORCE",
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def _write_toml(tmp: Path, name: str, content: str) -> Path:
    p = tmp / name
    p.write_text(content)
    return p


def test_settings_precedence_env_over_toml(tmp_path: Path, monkeypatch) -> None:
    # Arrange TOML
    _write_toml(
        tmp_path,
        "trelliskit.toml",
        """
        [io]
        root_dir = "out_toml"
        copy_sample_size = 3
        copy_warn_mb = 50
        """.strip(),
    )
    monkeypatch.chdir(tmp_path)
    # Arrange ENV that should override TOML
    monkeypatch.setenv("TRELLISKIT_IO_ROOT_DIR", "out_env")
    monkeypatch.setenv("TRELLISKIT_IO_COPY_WARN_MB", "5.5")

    s = DisplaySettings.load()

    assert s.root_dir == "out_env"
    assert s.copy_sample_size == 3  # from TOML
    assert s.copy_warn_mb == 5.5  # env override


def test_settings_from_pyproject_tool_table(tmp_path: Path, monkeypatch) -> None:
    _write_toml(
        tmp_path,
        "pyproject.toml",
        """
        [tool.trelliskit.io]
        root_dir = "from_pyproject"
        json_indent = "none"
        force = true
        """.strip(),
    )
    monkeypatch.chdir(tmp_path)

    s = DisplaySettings.load()

    assert s.root_dir == "from_pyproject"
    assert s.json_indent is None
    assert s.force is True


def test_settings_defaults_when_no_config(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    assert DisplaySettings.load() == DisplaySettings()


def test_env_flags_and_invalid_values(monkeypatch, caplog) -> None:
    monkeypatch.setenv("TRELLISKIT_IO_FORCE", "yes")
    monkeypatch.setenv("TRELLISKIT_IO_COPY_SAMPLE_SIZE", "many")

    with caplog.at_level("WARNING", logger="trelliskit.io.config"):
        s = DisplaySettings.from_env()

    assert s.force is True
    assert s.copy_sample_size == DisplaySettings().copy_sample_size
    assert "copy_sample_size" in caplog.text


def test_invalid_settings_raise() -> None:
    with pytest.raises(IoConfigError):
        DisplaySettings(copy_sample_size=0)
    with pytest.raises(IoConfigError):
        DisplaySettings(copy_warn_mb=-1)


def test_malformed_toml_raises(tmp_path: Path) -> None:
    bad = _write_toml(tmp_path, "trelliskit.toml", "[io\nroot_dir=")
    with pytest.raises(IoConfigError, match="invalid TOML"):
        DisplaySettings.from_toml(bad)
