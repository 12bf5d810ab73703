"""
Canonical JSON serialization and hashing helpers.

Provides a single canonical JSON policy and SHA-256 helpers so that key signatures and
cached identifiers are stable across runs. This module is zero-IO and uses only the
Python standard library.

Notes:
    - Canonical JSON:
        - sort_keys=True
        - separators=(",", ":")
        - ensure_ascii=False
        - non-JSON scalars (dates, decimals) are rendered with str()
    - Hashing is performed over the UTF-8 encoded canonical JSON string.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from typing import Any

__all__ = [
    "json_dumps_canonical",
    "hash_keys",
]


def json_dumps_canonical(obj: Any) -> str:
    """
    Serialize an object to a canonical JSON string.

    Args:
        obj (Any): JSON-serializable object. Dates and other scalars without a JSON
            representation are serialized with str().

    Returns:
        str: Canonical JSON string with sort_keys=True, compact separators, and
        ensure_ascii=False.
    """
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def _sha256_hexdigest(s: str) -> str:
    h = hashlib.sha256()
    h.update(s.encode("utf-8"))
    return h.hexdigest()


def hash_keys(keys: Iterable[str]) -> str:
    """
    Compute the key signature of a display.

    Args:
        keys (Iterable[str]): Panel key strings (one per row).

    Returns:
        str: SHA-256 hex digest of the sorted key list.

    Notes:
        Row order does not change the signature; the viewer uses it to detect that two
        displays share the same set of panels.

    Examples:
        >>> from trelliskit.core.hashing import hash_keys
        >>> hash_keys(["b", "a"]) == hash_keys(["a", "b"])
        True
    """
    return _sha256_hexdigest(json_dumps_canonical(sorted(str(k) for k in keys)))
