"""
Local key-value storage.

Plays the role of the browser's localStorage: a handful of named entries,
each holding a text value, with a size quota and the possibility of being
disabled. Values are replaced whole; there are no partial writes.
"""
import logging
import os
import tempfile
from typing import Dict, Optional

from .config import settings

logger = logging.getLogger(__name__)


class StorageFailure(Exception):
    """Base class for problems with the storage medium."""


class StorageReadError(StorageFailure):
    """The stored value could not be read."""


class StorageWriteError(StorageFailure):
    """The medium rejected a write (quota exceeded, disabled, I/O error)."""


def _size(value: str) -> int:
    return len(value.encode("utf-8"))


class MemoryStorage:
    """Dict-backed storage, used in tests and for throwaway sessions."""

    def __init__(self, quota_bytes: int = 0, read_only: bool = False):
        self.data: Dict[str, str] = {}
        self.quota_bytes = quota_bytes
        self.read_only = read_only

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        if self.read_only:
            raise StorageWriteError("Storage is disabled")
        if self.quota_bytes:
            used = sum(_size(v) for k, v in self.data.items() if k != key)
            if used + _size(value) > self.quota_bytes:
                raise StorageWriteError(
                    f"Quota of {self.quota_bytes} bytes exceeded writing '{key}'"
                )
        self.data[key] = value

    def delete(self, key: str) -> None:
        if self.read_only:
            raise StorageWriteError("Storage is disabled")
        self.data.pop(key, None)


class FileStorage:
    """Storage backed by one JSON file per key inside a directory."""

    def __init__(self, directory: str, quota_bytes: int = 0, read_only: bool = False):
        self.directory = directory
        self.quota_bytes = quota_bytes
        self.read_only = read_only

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def _used_bytes(self, exclude: str) -> int:
        if not os.path.isdir(self.directory):
            return 0
        total = 0
        for name in os.listdir(self.directory):
            if name.endswith(".json") and name != os.path.basename(exclude):
                total += os.path.getsize(os.path.join(self.directory, name))
        return total

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise StorageReadError(f"Could not read '{key}': {e}") from e

    def set(self, key: str, value: str) -> None:
        if self.read_only:
            raise StorageWriteError("Storage is disabled")

        path = self._path(key)
        if self.quota_bytes and self._used_bytes(path) + _size(value) > self.quota_bytes:
            raise StorageWriteError(
                f"Quota of {self.quota_bytes} bytes exceeded writing '{key}'"
            )

        # Write next to the target and swap it in, so a failure never leaves half a file
        tmp_path = None
        try:
            os.makedirs(self.directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except OSError as e:
            if tmp_path and os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise StorageWriteError(f"Could not write '{key}': {e}") from e

    def delete(self, key: str) -> None:
        if self.read_only:
            raise StorageWriteError("Storage is disabled")
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageWriteError(f"Could not delete '{key}': {e}") from e


# Storage setup - in-memory for testing
if settings.TESTING:
    storage = MemoryStorage(
        quota_bytes=settings.STORAGE_QUOTA_BYTES,
        read_only=settings.STORAGE_READ_ONLY,
    )
else:
    storage = FileStorage(
        settings.STORAGE_DIR,
        quota_bytes=settings.STORAGE_QUOTA_BYTES,
        read_only=settings.STORAGE_READ_ONLY,
    )


# Storage dependency
def get_storage():
    """Get the storage medium."""
    return storage


def init_storage():
    """Make sure the storage directory exists."""
    if isinstance(storage, FileStorage) and not storage.read_only:
        os.makedirs(storage.directory, exist_ok=True)
        logger.info(f"Appointments stored in {settings.storage_path}")
