"""
Path and layout helpers for trelliskit.io.

Overview (local file protocol)
- <root>/config.json
- <root>/displays/displayList.json
- <root>/displays/libs/                              shared widget assets
- <root>/displays/<display>/displayInfo.json
- <root>/displays/<display>/metaData.json
- <root>/displays/<display>/panels/<column>/<key>.<ext>

Source of truth
- Panel-relative paths come from trelliskit.core.panels.relative_path; this module only
  anchors them under a display directory.
- Display directory names are sanitized with trelliskit.core.grammar.sanitize.

Import DAG discipline
- stdlib, trelliskit.core, and trelliskit.io.config only.
"""

from __future__ import annotations

import os
from typing import Final

from trelliskit.core.frame import DisplayContext

from .config import DisplaySettings

__all__ = [
    "display_root",
    "display_dir",
    "libs_dir",
    "display_info_path",
    "metadata_path",
    "display_list_path",
    "config_path",
]

_DISPLAYS: Final[str] = "displays"
_LIBS: Final[str] = "libs"
_DISPLAY_INFO: Final[str] = "displayInfo.json"
_METADATA: Final[str] = "metaData.json"
_DISPLAY_LIST: Final[str] = "displayList.json"
_CONFIG: Final[str] = "config.json"


def _displays_root(root: str) -> str:
    """Path "<root>/displays"."""
    return os.path.join(root, _DISPLAYS)


def display_root(ctx: DisplayContext, settings: DisplaySettings) -> str:
    """Output root of a display: the frame's own path, else settings.root_dir."""
    return ctx.path or settings.root_dir


def display_dir(ctx: DisplayContext, root: str) -> str:
    """Path "<root>/displays/<sanitized name>" for a bound context."""
    return ctx.display_path_under(root)


def libs_dir(root: str) -> str:
    """Shared widget dependency directory "<root>/displays/libs"."""
    return os.path.join(_displays_root(root), _LIBS)


def display_info_path(ctx: DisplayContext, root: str) -> str:
    return os.path.join(display_dir(ctx, root), _DISPLAY_INFO)


def metadata_path(ctx: DisplayContext, root: str) -> str:
    return os.path.join(display_dir(ctx, root), _METADATA)


def display_list_path(root: str) -> str:
    return os.path.join(_displays_root(root), _DISPLAY_LIST)


def config_path(root: str) -> str:
    return os.path.join(root, _CONFIG)
