"""Atomic rewrites and an advisory lock for the session collection file."""

from __future__ import annotations

import os
import sys
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

if sys.platform == "win32":
    import msvcrt

    def _acquire(f) -> None:
        msvcrt.locking(f.fileno(), msvcrt.LK_LOCK, 1)

    def _release(f) -> None:
        msvcrt.locking(f.fileno(), msvcrt.LK_UNLCK, 1)

else:
    import fcntl

    def _acquire(f) -> None:
        fcntl.flock(f, fcntl.LOCK_EX)

    def _release(f) -> None:
        fcntl.flock(f, fcntl.LOCK_UN)


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def atomic_write(path: Path, content: str) -> None:
    """Write ``content`` to a temp file beside ``path``, then rename it over ``path``.

    mkstemp creates the file owner-only (0600), and the rename keeps that mode.
    """
    fd, tmp = tempfile.mkstemp(dir=ensure_dir(path.parent), prefix=".tmp_")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


@contextmanager
def file_lock(path: Path) -> Iterator[None]:
    """Hold an exclusive lock on ``.<name>.lock`` beside ``path``. Not reentrant."""
    lock_path = ensure_dir(path.parent) / f".{path.name}.lock"
    with open(lock_path, "w") as f:
        _acquire(f)
        try:
            yield
        finally:
            _release(f)
