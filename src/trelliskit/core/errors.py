"""
Core exception types raised by panel resolution, configuration checks, and versioning.

Provides typed exceptions for core-domain failures:
- ConfigurationError for invalid options, missing columns, or invalid facet specifications.
  Always raised before any panel is rendered.
- KeyIntegrityError for invariant violations such as duplicate display keys.
- PanelResolutionError when a single panel's builder fails. Callers isolate it per panel.
- VersionMismatch for display specification versions that do not match SPEC_V.

Notes:
    - Panel option validation surfaces as pydantic.ValidationError (see core.options).
    - IO-layer failures live in trelliskit.io.errors.

Examples:
    >>> from trelliskit.core.errors import ConfigurationError
    >>> try:
    ...     raise ConfigurationError("scales must be 'same', 'free' or 'sliced'")
    ... except ValueError as e:
    ...     msg = str(e)
    >>> "sliced" in msg
    True
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "TrelliskitError",
    "ConfigurationError",
    "KeyIntegrityError",
    "PanelResolutionError",
    "VersionMismatch",
]


class TrelliskitError(Exception):
    """Base class for trelliskit failures."""


class ConfigurationError(TrelliskitError, ValueError):
    """Invalid option values, missing required columns, or an invalid facet specification."""


class KeyIntegrityError(TrelliskitError, AssertionError):
    """
    Values required to be distinct are not.

    Attributes:
        offending (list[Any]): The duplicated values, reported verbatim.
    """

    def __init__(self, message: str, offending: list[Any] | None = None) -> None:
        self.offending = list(offending or [])
        if self.offending:
            message = f"{message}: {self.offending!r}"
        super().__init__(message)


class PanelResolutionError(TrelliskitError):
    """
    A panel builder raised while producing its renderable object.

    Attributes:
        index (int): Row index of the panel within its column.
        column (str | None): Panel column name when known.
    """

    def __init__(self, message: str, *, index: int, column: str | None = None) -> None:
        super().__init__(message)
        self.index = index
        self.column = column


class VersionMismatch(TrelliskitError, RuntimeError):
    """Incompatible or unexpected display specification version encountered."""
