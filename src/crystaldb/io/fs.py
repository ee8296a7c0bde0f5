"""
Filesystem helpers for crystaldb.io (local file protocol).

Responsibilities
- Provide a minimal stdlib-only layer for the filesystem operations used by the
  parquet adapter: directory creation, fsync, atomic renames, and an atomic
  replace-file helper.
- Establish the atomic write path: tmp write → fsync → atomic rename.

Notes
- Atomicity via os.replace is guaranteed only when src and dst reside on the same
  filesystem; temporary files are created next to their destination.
- All helpers are synchronous; callers decide on concurrency/locking.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Callable

from .errors import StoreWriteError


def exists(path: str) -> bool:
    """Check whether a path exists."""
    return os.path.exists(path)


def makedirs(path: str, exist_ok: bool = True) -> None:
    """
    Create directories recursively.

    Args:
        path (str): Directory path to create.
        exist_ok (bool): Do not error if the directory already exists.
    """
    os.makedirs(path, exist_ok=exist_ok)


def fsync_path(path: str) -> None:
    """
    Open a path read-only and fsync its file descriptor.

    Args:
        path (str): Path to an already-written file.

    Notes:
        Used after a library wrote to a path directly (pyarrow.parquet.write_table),
        before the atomic rename.
    """
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def rename_atomic(src: str, dst: str) -> None:
    """
    Atomically rename src -> dst on the same filesystem.

    Args:
        src (str): Existing source path (typically a temporary file).
        dst (str): Final destination path.
    """
    os.replace(src, dst)


def tmp_path_for(final_path: str) -> str:
    """Return a unique temporary path in the same directory as ``final_path``."""
    directory, name = os.path.split(final_path)
    return os.path.join(directory, f".{name}.{uuid.uuid4().hex}.tmp")


def write_atomic(final_path: str, write: Callable[[str], None]) -> None:
    """
    Write a file through ``write(tmp_path)`` and atomically move it into place.

    Args:
        final_path (str): Destination path.
        write (Callable[[str], None]): Writes the full file contents to the path it receives.

    Raises:
        StoreWriteError: If writing, fsync or rename fails. The temporary file is
            removed on a best-effort basis.
    """
    makedirs(os.path.dirname(final_path) or ".")
    tmp = tmp_path_for(final_path)
    try:
        write(tmp)
        fsync_path(tmp)
        rename_atomic(tmp, final_path)
    except OSError as exc:
        _remove_quietly(tmp)
        raise StoreWriteError(f"atomic write to {final_path} failed: {exc}") from exc
    except Exception:
        _remove_quietly(tmp)
        raise


def _remove_quietly(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
