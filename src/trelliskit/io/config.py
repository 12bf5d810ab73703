"""
Configuration for the trelliskit.io module.

Defines DisplaySettings, a frozen dataclass carrying runtime configuration for writing
displays. Defaults are sourced from trelliskit.core.constants (the single source of truth).

Source of truth
- trelliskit.core.constants.DEFAULT_ROOT_DIR, COPY_SAMPLE_SIZE, COPY_WARN_MB

Import DAG discipline
- Depends only on stdlib and trelliskit.core.constants.

Notes
- Precedence is environment (TRELLISKIT_IO_*) > TOML > defaults.
- TOML search: ./trelliskit.toml ([io] table or top-level keys), then
  ./pyproject.toml under [tool.trelliskit.io].
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

from trelliskit.core.constants import COPY_SAMPLE_SIZE, COPY_WARN_MB, DEFAULT_ROOT_DIR

from .errors import IoConfigError

__all__ = ["DisplaySettings"]

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "t", "yes", "y", "on"}


def _bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return bool(v)
    if isinstance(v, str):
        return v.strip().lower() in _TRUE
    return False


@dataclass(frozen=True)
class DisplaySettings:
    """
    Runtime settings for the trelliskit.io layer.

    Attributes:
        root_dir (str): Output root used when a frame does not carry its own path.
        copy_sample_size (int): Number of local files sampled to estimate copy size (>= 1).
        copy_warn_mb (float): Estimated copy size (MB) above which a warning is logged;
            0 disables the warning.
        json_indent (int | None): Indentation of written JSON documents (None: compact).
        force (bool): Rewrite every panel regardless of cached outputs.

    Examples:
        >>> from trelliskit.io import DisplaySettings
        >>> DisplaySettings(copy_warn_mb=10).copy_warn_mb
        10
    """

    root_dir: str = DEFAULT_ROOT_DIR
    copy_sample_size: int = COPY_SAMPLE_SIZE
    copy_warn_mb: float = COPY_WARN_MB
    json_indent: int | None = 2
    force: bool = False

    def __post_init__(self) -> None:
        if self.copy_sample_size < 1:
            raise IoConfigError("copy_sample_size must be >= 1")
        if self.copy_warn_mb < 0:
            raise IoConfigError("copy_warn_mb must be >= 0")
        if self.json_indent is not None and self.json_indent < 0:
            raise IoConfigError("json_indent must be >= 0 or None")

    # Configuration loaders (env/TOML) with precedence: env > TOML > defaults.

    @classmethod
    def _apply_mapping(cls, base: DisplaySettings, cfg: dict[str, Any] | None) -> DisplaySettings:
        """Apply a loose config mapping onto DisplaySettings, returning a new instance."""
        if not isinstance(cfg, dict):
            return base

        s = base
        if "root_dir" in cfg and isinstance(cfg["root_dir"], str):
            s = replace(s, root_dir=cfg["root_dir"])

        if "copy_sample_size" in cfg:
            try:
                s = replace(s, copy_sample_size=int(cfg["copy_sample_size"]))
            except (TypeError, ValueError):
                logger.warning("ignoring invalid copy_sample_size %r", cfg["copy_sample_size"])

        if "copy_warn_mb" in cfg:
            try:
                s = replace(s, copy_warn_mb=float(cfg["copy_warn_mb"]))
            except (TypeError, ValueError):
                logger.warning("ignoring invalid copy_warn_mb %r", cfg["copy_warn_mb"])

        if "json_indent" in cfg:
            raw = cfg["json_indent"]
            if raw is None or (isinstance(raw, str) and raw.strip().lower() in {"", "none"}):
                s = replace(s, json_indent=None)
            else:
                try:
                    s = replace(s, json_indent=int(raw))
                except (TypeError, ValueError):
                    logger.warning("ignoring invalid json_indent %r", raw)

        if "force" in cfg:
            s = replace(s, force=_bool(cfg["force"]))

        return s

    @classmethod
    def from_env(
        cls, base: DisplaySettings | None = None, prefix: str = "TRELLISKIT_IO_"
    ) -> DisplaySettings:
        """
        Build DisplaySettings from environment variables. Precedence is env > base > defaults.

        Recognized variables:
            - TRELLISKIT_IO_ROOT_DIR
            - TRELLISKIT_IO_COPY_SAMPLE_SIZE
            - TRELLISKIT_IO_COPY_WARN_MB
            - TRELLISKIT_IO_JSON_INDENT ("none" for compact output)
            - TRELLISKIT_IO_FORCE (1/0/true/false/yes/no/on/off)
        """
        s = base or cls()
        mapping: dict[str, Any] = {}
        for key in ("root_dir", "copy_sample_size", "copy_warn_mb", "json_indent", "force"):
            v = os.getenv(prefix + key.upper())
            if v:
                mapping[key] = v
        return cls._apply_mapping(s, mapping)

    @classmethod
    def from_toml(cls, path: str | os.PathLike[str] | None = None) -> DisplaySettings:
        """
        Build DisplaySettings from a TOML file.

        Search order when `path` is None:
            1) ./trelliskit.toml (with either an [io] table or top-level keys)
            2) ./pyproject.toml under [tool.trelliskit.io]

        Returns defaults if no file is present.

        Raises:
            IoConfigError: If a candidate file exists but is not valid TOML.
        """
        s = cls()
        cand: list[Path] = []
        if path is not None:
            cand.append(Path(path))
        else:
            cand.append(Path.cwd() / "trelliskit.toml")
            cand.append(Path.cwd() / "pyproject.toml")

        cfg: dict[str, Any] | None = None
        for p in cand:
            if not p.exists():
                continue
            try:
                with p.open("rb") as fh:
                    data = tomllib.load(fh)
            except tomllib.TOMLDecodeError as exc:
                raise IoConfigError(f"invalid TOML in {p}: {exc}") from exc
            if p.name == "pyproject.toml":
                tool = data.get("tool", {})
                cfg = tool.get("trelliskit", {}).get("io", {}) if isinstance(tool, dict) else None
            elif isinstance(data.get("io"), dict):
                cfg = data["io"]
            else:
                cfg = data
            if cfg:
                logger.debug("loaded display settings from %s", p)
                break

        return cls._apply_mapping(s, cfg)

    @classmethod
    def load(cls, path: str | os.PathLike[str] | None = None) -> DisplaySettings:
        """
        Load DisplaySettings applying precedence: environment > TOML > defaults.

        Args:
            path: Optional explicit TOML path. If None, search the defaults.
        """
        s = cls.from_toml(path)
        return cls.from_env(base=s)
