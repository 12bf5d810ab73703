"""
trelliskit core defaults.

Defines panel dimension/format defaults, reserved column names, and the tolerances used by
scale inference. This module is zero-IO and uses only the Python standard library.

Notes:
    - Panel options fall back to DEFAULT_PANEL_WIDTH x DEFAULT_PANEL_HEIGHT wherever a width
      or height was not supplied; no other module should hard-code these numbers.
    - Reserved column names are written by the display writer and must not be shadowed by
      user data without a warning.
"""

from __future__ import annotations

from typing import Final

__all__ = [
    "DEFAULT_PANEL_WIDTH",
    "DEFAULT_PANEL_HEIGHT",
    "DEFAULT_PANEL_FORMAT",
    "PANEL_FORMATS",
    "RESERVED_COLUMNS",
    "SCALE_EPSILON",
    "COPY_SAMPLE_SIZE",
    "COPY_WARN_MB",
    "DEFAULT_NCOL",
    "DEFAULT_ROOT_DIR",
]

# Pixel dimensions for lazily rendered panels.
DEFAULT_PANEL_WIDTH: Final[int] = 600
DEFAULT_PANEL_HEIGHT: Final[int] = 400

DEFAULT_PANEL_FORMAT: Final[str] = "png"
PANEL_FORMATS: Final[tuple[str, ...]] = ("png", "svg", "html")

RESERVED_COLUMNS: Final[tuple[str, ...]] = ("__PANEL_KEY__", "__KEY__")

# Relative tolerance for comparing floating point axis widths.
SCALE_EPSILON: Final[float] = 1e-9

# Number of local files sampled when estimating the size of a bulk copy.
COPY_SAMPLE_SIZE: Final[int] = 5
COPY_WARN_MB: Final[float] = 100.0

DEFAULT_NCOL: Final[int] = 3
DEFAULT_ROOT_DIR: Final[str] = "trelliscope_out"
