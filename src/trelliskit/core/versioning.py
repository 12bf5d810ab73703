"""
Specification version metadata and helpers for display documents.

Exposes the canonical display specification version (SPEC_V) embedded in every
displayInfo.json and provides compatibility and successor checks. This module is zero-IO.

Notes:
    - The static viewer reads the top-level "version" field to reject documents it cannot
      interpret; is_compatible implements the same rule on the Python side.
    - Tests assert the version string format and bump sequences.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from .errors import VersionMismatch

SPEC_MAJOR_VERSION = 1
SPEC_MINOR_VERSION = 0


@dataclass(frozen=True)
class SpecVersion:
    """
    Immutable semantic version with ISO release date for display specifications.

    Attributes:
        major (int): Non-negative major component signalling breaking changes.
        minor (int): Non-negative minor component for additive, non-breaking changes.
        date (str): ISO YYYY-MM-DD release date.

    Raises:
        ValueError: If any component is negative or the date is not ISO compliant.
    """

    major: int
    minor: int
    date: str  # ISO YYYY-MM-DD

    def __post_init__(self) -> None:
        if self.major < 0:
            raise ValueError(f"SpecVersion major must be non-negative, got {self.major}")
        if self.minor < 0:
            raise ValueError(f"SpecVersion minor must be non-negative, got {self.minor}")
        try:
            date.fromisoformat(self.date)
        except ValueError as exc:
            raise ValueError(f"SpecVersion date must be ISO YYYY-MM-DD, got {self.date!r}") from exc

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}"

    @classmethod
    def parse(cls, text: str, release_date: str | None = None) -> SpecVersion:
        """
        Parse a "<major>.<minor>" string as written in the "version" field.

        Raises:
            VersionMismatch: If the string is not of the form "<int>.<int>".
        """
        parts = str(text).split(".")
        if len(parts) != 2 or not all(p.isdigit() for p in parts):
            raise VersionMismatch(f"unrecognized specification version {text!r}")
        return cls(int(parts[0]), int(parts[1]), release_date or SPEC_V.date)


SPEC_V = SpecVersion(SPEC_MAJOR_VERSION, SPEC_MINOR_VERSION, "2026-10-01")


def is_compatible(ver: SpecVersion | str) -> bool:
    """
    Check whether a version can be read by this release.

    A document is compatible when it shares the major number with SPEC_V and its minor
    number is not newer than SPEC_V.minor.

    Examples:
        >>> from trelliskit.core.versioning import SPEC_V, is_compatible
        >>> is_compatible(SPEC_V)
        True
        >>> is_compatible("1.0")
        True
    """
    if isinstance(ver, str):
        try:
            ver = SpecVersion.parse(ver)
        except VersionMismatch:
            return False
    return ver.major == SPEC_V.major and ver.minor <= SPEC_V.minor


def require_compatible(ver: SpecVersion | str) -> None:
    """Raise VersionMismatch unless `ver` is compatible with SPEC_V."""
    if not is_compatible(ver):
        raise VersionMismatch(f"display specification version {ver} is not compatible with {SPEC_V}")


def is_successor_of(candidate: SpecVersion, current: SpecVersion) -> bool:
    """
    Determine whether a version is the immediate successor of another.

    Minor bumps increase the minor component while keeping the major fixed; major bumps
    increase the major component by exactly one and reset minor to zero.

    Examples:
        >>> from trelliskit.core.versioning import SpecVersion, SPEC_V, is_successor_of
        >>> is_successor_of(SpecVersion(SPEC_V.major, SPEC_V.minor + 1, SPEC_V.date), SPEC_V)
        True
        >>> is_successor_of(SpecVersion(SPEC_V.major, SPEC_V.minor + 2, SPEC_V.date), SPEC_V)
        False
    """
    if candidate.major == current.major:
        return candidate.minor == current.minor + 1
    if candidate.major == current.major + 1 and candidate.minor == 0:
        return True
    return False
