"""File helpers shared by the config writer and the vhost patcher."""

import os
import tempfile
import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .logging import get_logger

logger = get_logger(__name__)

_locks_guard = threading.Lock()
# Entries vanish once no caller holds the lock
_path_locks: "weakref.WeakValueDictionary[str, threading.Lock]" = (
    weakref.WeakValueDictionary()
)


def _lock_for(path: Path) -> threading.Lock:
    key = os.path.realpath(path)
    with _locks_guard:
        lock = _path_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _path_locks[key] = lock
        return lock


@contextmanager
def path_lock(path: str | Path) -> Iterator[None]:
    """Serialize writers of a single file within this process.

    Args:
        path: File being mutated; symlinks resolve to the same lock
    """
    lock = _lock_for(Path(path))
    with lock:
        yield


def atomic_write_text(
    path: str | Path, content: str, mode: int | None = None
) -> Path:
    """Write ``content`` to ``path`` without ever exposing a partial file.

    The data goes to a temporary file in the target directory, is flushed to
    disk, then renamed over the target.

    Args:
        path: Final file path
        content: Text to write
        mode: Permission bits for the final file (default: keep the existing
            file's mode, or 0o644 for a new file)

    Returns:
        Absolute path of the written file

    Raises:
        OSError: If the temp file cannot be created, written or renamed
    """
    target = Path(path).resolve()
    if mode is None:
        mode = target.stat().st_mode & 0o777 if target.exists() else 0o644

    fd, temp_path = tempfile.mkstemp(
        dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(temp_path, mode)
        os.replace(temp_path, target)
    except Exception:
        try:
            os.unlink(temp_path)
        except OSError:
            pass
        raise

    logger.debug("File written atomically", path=str(target))
    return target
