"""
Naming grammar for on-disk names: sanitization of display, column, and key values.

Responsibilities
- Map arbitrary display names, column names, and facet key values to strings that are
  safe as both filesystem path segments and URL path segments.
- Provide the panel key string used for file names and the key signature.

Notes
- sanitize() is deterministic but not injective: distinct inputs may map to the same
  output ("a b" and "a/b" both become "a_b"). Callers that write files must detect such
  collisions; see trelliskit.io.write.find_path_collisions.
- Zero-IO, stdlib only.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import date, datetime
from typing import Any, Final

__all__ = [
    "sanitize",
    "key_string",
    "format_key_value",
]

_UNSAFE_RE: Final[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9_.\-]")
_DOTS_RE: Final[re.Pattern[str]] = re.compile(r"^\.+")


def format_key_value(value: Any) -> str:
    """
    Render a single key value as text.

    Dates and datetimes use ISO format, floats that are whole numbers drop the ".0" suffix,
    booleans and None use lowercase JSON spelling.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def sanitize(value: Any, sub: str = "_") -> str:
    """
    Replace characters unsafe for filesystem/URL paths.

    Args:
        value (Any): Value to sanitize (formatted with format_key_value first).
        sub (str): Replacement for each unsafe character.

    Returns:
        str: A non-empty path segment containing only [A-Za-z0-9_.-].

    Examples:
        >>> from trelliskit.core.grammar import sanitize
        >>> sanitize("life expectancy")
        'life_expectancy'
        >>> sanitize("../etc")
        '___etc'
    """
    s = _UNSAFE_RE.sub(sub, format_key_value(value))
    # Leading dots would produce hidden files or parent references.
    s = _DOTS_RE.sub(lambda m: sub * len(m.group(0)), s)
    return s or sub


def key_string(values: Iterable[Any]) -> str:
    """Join sanitized key values with underscores (the panel file stem)."""
    return "_".join(sanitize(v) for v in values)
