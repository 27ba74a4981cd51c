"""StorageBackend protocol for path-addressed storage media."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol for storage backends (filesystem, S3, R2, memory).

    Paths are slash-delimited and relative to the backend root. Directories
    may be real (filesystem) or implied by shared key prefixes (object
    storage); callers must not depend on the difference.
    """

    def exists(self, path: str) -> bool:
        """Return True if a file or directory exists at path."""
        ...

    def is_file(self, path: str) -> bool:
        """Return True if a file exists exactly at path."""
        ...

    def is_dir(self, path: str) -> bool:
        """Return True if a directory or key prefix exists at path."""
        ...

    def list_dir(self, path: str) -> list[str]:
        """List immediate entry names under path. Returns [] if missing."""
        ...

    def delete_dir(self, path: str) -> None:
        """Recursively delete everything under path. No-op if missing."""
        ...

    def delete_file(self, path: str) -> None:
        """Delete a single file. Raises NotFoundError if missing."""
        ...

    def read_file(self, path: str) -> bytes:
        """Read a file. Raises NotFoundError if missing."""
        ...

    def write_file(self, path: str, data: bytes) -> None:
        """Write a file, creating parent directories and replacing content."""
        ...
