"""
Custom exceptions for the trelliskit.io module.

Purpose
- Provide IO-layer error types for filesystem concerns, distinct from the zero-IO errors in
  trelliskit.core.errors (configuration, key integrity, panel resolution).

Boundaries
- IoConfigError: invalid settings (e.g. a negative copy threshold).
- PanelWriteError: an artifact could not be written atomically; carries the row index and
  the target path. Earlier panels of the batch stay intact.
- SpecWriteError: a display document (displayInfo/metaData/displayList/config) could not
  be written.

Notes
- These exceptions do not perform any IO and are stdlib-only.
"""

from __future__ import annotations

__all__ = [
    "IoError",
    "IoConfigError",
    "PanelWriteError",
    "SpecWriteError",
]


class IoError(Exception):
    """
    Base class for IO-related errors in trelliskit.io.

    Notes:
        Use this as a catch-all for IO-layer failures, distinct from trelliskit.core errors.
    """


class IoConfigError(IoError):
    """Raised when IO configuration is invalid or unsupported."""


class PanelWriteError(IoError):
    """
    Raised when a panel artifact fails to write (tmp write, fsync, rename, or copy).

    Attributes:
        index (int): Row index of the panel.
        path (str): Final target path.
    """

    def __init__(self, message: str, *, index: int, path: str) -> None:
        super().__init__(message)
        self.index = index
        self.path = path


class SpecWriteError(IoError):
    """Raised when a display document cannot be written atomically."""
