# pylitedoc/storage.py
"""File persistence for collections.

Every collection file is guarded by a re-entrant lock keyed on its absolute
path, held across the whole load/compute/persist cycle. Writes go to a
temporary file in the target directory which is fsynced and renamed over the
target, so readers and crashes only ever see a complete previous or next
version of the file.
"""
import json
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Union

from .errors import LockTimeoutError, StorageError
from .logging import get_logger

logger = get_logger(__name__)

PathLike = Union[str, Path]


# =========================
# Locks
# =========================
class LockTable:
    """Hands out one ``threading.RLock`` per absolute file path.

    Entries are never pruned, not even when a file is dropped: a thread may
    still be waiting on the old lock, and a recreated file must share it.
    """

    def __init__(self):
        self._locks: Dict[str, threading.RLock] = {}
        self._guard = threading.Lock()

    def get(self, path: PathLike) -> threading.RLock:
        key = os.path.abspath(os.fspath(path))
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, path: PathLike, timeout: Optional[float] = None) -> Iterator[None]:
        """Hold the lock for ``path``; ``timeout`` of None waits forever."""
        lock = self.get(path)
        acquired = lock.acquire(timeout=-1 if timeout is None else timeout)
        if not acquired:
            logger.warning("lock_timeout", path=str(path), timeout=timeout)
            raise LockTimeoutError(str(path), timeout)
        try:
            yield
        finally:
            lock.release()

    def __len__(self):
        return len(self._locks)


# process-wide so every Database on the same root shares one lock per file
DEFAULT_LOCKS = LockTable()


# =========================
# Directories
# =========================
def ensure_directory(path: PathLike) -> Path:
    """Create ``path`` and its parents; a failed attempt is retried once."""
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as first:
        logger.warning("directory_create_retry", path=str(path), error=str(first))
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Error creating directory {path}: {e}", str(path)) from e
    return path


# =========================
# Read / write
# =========================
def read_json(path: PathLike, empty: Callable[[], Any], expected: type) -> Any:
    """Load a collection file, or ``empty()`` when it does not exist yet."""
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return empty()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StorageError(f"Corrupt collection file {path}: {e}", str(path)) from e
    except OSError as e:
        raise StorageError(f"Error reading {path}: {e}", str(path)) from e
    if not isinstance(data, expected):
        raise StorageError(
            f"Collection file {path} holds {type(data).__name__}, expected {expected.__name__}",
            str(path),
        )
    return data


def atomic_write_json(path: PathLike, data: Any, indent: Optional[int] = 2, fsync: bool = True) -> None:
    """Atomically replace ``path`` with ``data`` serialized as JSON."""
    path = Path(path)
    ensure_directory(path.parent)
    try:
        payload = json.dumps(data, indent=indent, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise StorageError(f"Data for {path} is not JSON serializable: {e}", str(path)) from e

    tmp_path = None
    try:
        fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
            f.flush()
            if fsync:
                os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        logger.error("persist_failed", path=str(path), error=str(e))
        raise StorageError(f"Failed to persist {path}: {e}", str(path)) from e


def remove_file(path: PathLike) -> bool:
    try:
        os.unlink(path)
    except FileNotFoundError:
        return False
    except OSError as e:
        raise StorageError(f"Error removing {path}: {e}", str(path)) from e
    return True


def file_size(path: PathLike) -> int:
    try:
        return os.path.getsize(path)
    except FileNotFoundError:
        return 0
