"""
Filesystem helpers for trelliskit.io (local file protocol).

Responsibilities
- Provide a minimal stdlib-only abstraction for the filesystem operations used by the
  writers: existence checks, directory creation, write handles, fsync, atomic renames,
  and file copies.
- Establish the atomic write path: tmp write -> fsync -> os.replace(tmp, final).

Notes
- Atomicity via os.replace is guaranteed only when src and dst reside on the same
  filesystem; temporary files are always placed next to their target.
- A reader never sees a partially written artifact: either the previous file or the new
  one exists under the final name.
"""

from __future__ import annotations

import os
import shutil
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO

__all__ = [
    "exists",
    "makedirs",
    "open_write",
    "fsync_file",
    "fsync_path",
    "rename_atomic",
    "tmp_path_for",
    "write_bytes_atomic",
    "copy_file_atomic",
    "file_size",
]


def exists(path: str) -> bool:
    return os.path.exists(path)


def makedirs(path: str, exist_ok: bool = True) -> None:
    """
    Create directories recursively.

    Notes:
        Thin wrapper around os.makedirs to centralize IO-layer usage.
    """
    os.makedirs(path, exist_ok=exist_ok)


@contextmanager
def open_write(path: str) -> Iterator[BinaryIO]:
    """
    Open a file for binary write as a context manager.

    Yields:
        BinaryIO: A writable handle; it is flushed and fsynced before closing.

    Notes:
        Caller is responsible for the atomic os.replace of the temporary file.
    """
    fh = open(path, "wb")
    try:
        yield fh
        fsync_file(fh)
    finally:
        fh.close()


def fsync_file(fh: BinaryIO) -> None:
    """Flush and fsync an open file handle."""
    fh.flush()
    os.fsync(fh.fileno())


def fsync_path(path: str) -> None:
    """
    Open a path read-only and fsync its file descriptor.

    Notes:
        Used after shutil copies, which write through their own handles.
    """
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def rename_atomic(src: str, dst: str) -> None:
    """Atomically rename src -> dst on the same filesystem (os.replace)."""
    os.replace(src, dst)


def tmp_path_for(final_path: str) -> str:
    """Unique temporary sibling of `final_path` ("<final>.<hex>.tmp")."""
    return f"{final_path}.{uuid.uuid4().hex[:8]}.tmp"


def _discard(tmp: str) -> None:
    if os.path.exists(tmp):
        os.remove(tmp)


def write_bytes_atomic(path: str, payload: bytes) -> int:
    """
    Write bytes to `path` via tmp -> fsync -> rename.

    Returns:
        int: Number of bytes written.

    Raises:
        OSError: If any step fails; the temporary file is removed and any previous file
            at `path` is left untouched.
    """
    makedirs(os.path.dirname(path) or ".", exist_ok=True)
    tmp = tmp_path_for(path)
    try:
        with open_write(tmp) as fh:
            fh.write(payload)
        rename_atomic(tmp, path)
    except BaseException:
        _discard(tmp)
        raise
    return len(payload)


def copy_file_atomic(src: str, dst: str) -> int:
    """
    Copy `src` to `dst` via a temporary sibling and an atomic rename.

    Returns:
        int: Size of the copied file in bytes.
    """
    makedirs(os.path.dirname(dst) or ".", exist_ok=True)
    tmp = tmp_path_for(dst)
    try:
        shutil.copyfile(src, tmp)
        fsync_path(tmp)
        rename_atomic(tmp, dst)
    except BaseException:
        _discard(tmp)
        raise
    return os.path.getsize(dst)


def file_size(path: str) -> int | None:
    """Size of a file in bytes, or None if it does not exist."""
    try:
        return os.path.getsize(path)
    except FileNotFoundError:
        return None
