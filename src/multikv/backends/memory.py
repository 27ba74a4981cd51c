"""In-memory storage backend with object-storage semantics."""

import threading
from typing import Any

from multikv.exceptions import InvalidKeyError, NotFoundError


def _clean(path: str) -> str:
    return path.strip("/")


class MemoryBackend:
    """In-memory storage backend.

    Files are stored as flat object keys; directories only exist as shared
    key prefixes, as on S3-compatible object storage. Suitable for
    development and testing. Data is lost on restart.
    """

    def __init__(self, **kwargs: Any) -> None:
        """Initialize memory backend.

        Args:
            **kwargs: Ignored (for compatibility with other backends)
        """
        self._objects: dict[str, bytes] = {}
        self._lock = threading.RLock()

    def _prefix(self, path: str) -> str:
        path = _clean(path)
        return f"{path}/" if path else ""

    def exists(self, path: str) -> bool:
        return self.is_file(path) or self.is_dir(path)

    def is_file(self, path: str) -> bool:
        with self._lock:
            return _clean(path) in self._objects

    def is_dir(self, path: str) -> bool:
        prefix = self._prefix(path)
        with self._lock:
            return any(key.startswith(prefix) for key in self._objects)

    def list_dir(self, path: str) -> list[str]:
        prefix = self._prefix(path)
        with self._lock:
            names = {
                key[len(prefix):].split("/", 1)[0]
                for key in self._objects
                if key.startswith(prefix)
            }
        return sorted(names)

    def delete_dir(self, path: str) -> None:
        """Delete every object under the path prefix. No-op if none exist."""
        if not _clean(path):
            raise InvalidKeyError("Refusing to delete the backend root")
        prefix = self._prefix(path)
        with self._lock:
            for key in [k for k in self._objects if k.startswith(prefix)]:
                del self._objects[key]

    def delete_file(self, path: str) -> None:
        with self._lock:
            try:
                del self._objects[_clean(path)]
            except KeyError:
                raise NotFoundError(f"File not found: {path}")

    def read_file(self, path: str) -> bytes:
        with self._lock:
            try:
                return self._objects[_clean(path)]
            except KeyError:
                raise NotFoundError(f"File not found: {path}")

    def write_file(self, path: str, data: bytes) -> None:
        with self._lock:
            self._objects[_clean(path)] = bytes(data)

    def clear(self) -> None:
        """Clear all data. Useful for testing."""
        with self._lock:
            self._objects.clear()
