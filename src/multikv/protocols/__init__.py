"""Protocol interfaces for pluggable backends."""

from multikv.protocols.storage_backend import StorageBackend

__all__ = [
    "StorageBackend",
]
