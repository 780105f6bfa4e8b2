"""Key-value blob storage for the offline queue.

The queue only ever needs get/set/delete on a single string key.
"""

import os
import re
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path


def sanitize_key(key: str) -> str:
    """Map an arbitrary key to a safe filename stem.

    "quickjot:pending-saves" -> "quickjot_pending-saves"
    """
    safe = re.sub(r"[^A-Za-z0-9_-]", "_", key)
    if not safe.strip("_"):
        raise ValueError(f"Invalid store key: {key!r}")
    return safe[:128]


class BlobStore(ABC):
    """Abstract string blob store."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored blob, or None if the key is absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Durably replace the blob under key."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove the key if present."""
        ...


class MemoryBlobStore(BlobStore):
    """In-process store, for tests and ephemeral sessions."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)


class FileBlobStore(BlobStore):
    """One file per key under a root directory, written atomically."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        return self.root / f"{sanitize_key(key)}.json"

    def get(self, key: str) -> str | None:
        path = self.path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)

        # Write to temporary file first (atomic operation)
        temp_fd, temp_path = tempfile.mkstemp(dir=self.root, prefix=f".{path.stem}_", suffix=".tmp")
        try:
            with os.fdopen(temp_fd, 'w', encoding='utf-8') as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())

            os.chmod(temp_path, 0o600)
            os.replace(temp_path, path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def delete(self, key: str) -> None:
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            pass
