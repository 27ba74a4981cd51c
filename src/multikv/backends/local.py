"""Local filesystem storage backend."""

import os
import shutil
from pathlib import Path
from typing import Any
from urllib.parse import unquote

from multikv.exceptions import BackendError, ConfigError, InvalidKeyError, NotFoundError
from multikv.observability import get_logger

logger = get_logger(__name__)

DIR_MODE = 0o750
FILE_MODE = 0o640


class LocalBackend:
    """Storage backend using the local filesystem.

    Keys map to real directories under the base path, so containers are
    directories and leaf files are regular files.
    """

    def __init__(self, path: str | None = None, **kwargs: Any) -> None:
        """Initialize local backend.

        Args:
            path: Base directory for storage. Defaults to ./data/kv
            **kwargs: Ignored (for compatibility with other backends)

        Raises:
            ConfigError: If the base directory cannot be created or written
        """
        self.base_path = Path(path) if path else Path("./data/kv")
        try:
            self.base_path.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(f"Cannot create base path {self.base_path}: {e}") from e

        if not self.base_path.is_dir():
            raise ConfigError(f"Base path {self.base_path} is not a directory")
        if not os.access(self.base_path, os.W_OK):
            raise ConfigError(f"Base path {self.base_path} is not writable")

        self._root = self.base_path.resolve()

    def _get_path(self, path: str) -> Path:
        """Get the filesystem path for a backend path.

        Validates the path to prevent traversal outside the base directory,
        including URL-encoded sequences.
        """
        decoded = unquote(path)

        if ".." in decoded.split("/") or decoded.startswith("/"):
            raise InvalidKeyError(f"Invalid path: {path}")

        if "\x00" in decoded or "\\" in decoded:
            raise InvalidKeyError(f"Invalid path: {path}")

        target = (self._root / path).resolve() if path else self._root

        # Verify the resolved path is within the base directory
        try:
            target.relative_to(self._root)
        except ValueError:
            raise InvalidKeyError(f"Invalid path: {path} escapes the base directory")

        return target

    def exists(self, path: str) -> bool:
        target = self._get_path(path)
        try:
            return target.exists()
        except OSError as e:
            raise BackendError("exists", path, str(e)) from e

    def is_file(self, path: str) -> bool:
        target = self._get_path(path)
        try:
            return target.is_file()
        except OSError as e:
            raise BackendError("is_file", path, str(e)) from e

    def is_dir(self, path: str) -> bool:
        target = self._get_path(path)
        try:
            return target.is_dir()
        except OSError as e:
            raise BackendError("is_dir", path, str(e)) from e

    def list_dir(self, path: str) -> list[str]:
        """List entry names under path, sorted by name.

        A missing directory lists as empty, matching object storage where
        a prefix with no objects simply has no entries.
        """
        target = self._get_path(path)
        try:
            with os.scandir(target) as entries:
                return sorted(entry.name for entry in entries)
        except (FileNotFoundError, NotADirectoryError):
            return []
        except OSError as e:
            raise BackendError("list_dir", path, str(e)) from e

    def delete_dir(self, path: str) -> None:
        target = self._get_path(path)
        if target == self._root:
            raise InvalidKeyError("Refusing to delete the backend root")

        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            else:
                target.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise BackendError("delete_dir", path, str(e)) from e

        logger.debug("Deleted directory", context={"target": path})

    def delete_file(self, path: str) -> None:
        target = self._get_path(path)
        try:
            target.unlink()
        except FileNotFoundError:
            raise NotFoundError(f"File not found: {path}")
        except OSError as e:
            raise BackendError("delete_file", path, str(e)) from e

    def read_file(self, path: str) -> bytes:
        target = self._get_path(path)
        try:
            return target.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError):
            raise NotFoundError(f"File not found: {path}")
        except OSError as e:
            raise BackendError("read_file", path, str(e)) from e

    def write_file(self, path: str, data: bytes) -> None:
        target = self._get_path(path)
        if target == self._root:
            raise InvalidKeyError("Cannot write a file at the backend root")

        try:
            target.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
            fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, FILE_MODE)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except OSError as e:
            raise BackendError("write_file", path, str(e)) from e

        logger.debug("Wrote file", context={"target": path, "size": len(data)})
