"""Backend discovery via Python entry points."""

from importlib import import_module
from importlib.metadata import entry_points
from typing import Any

from multikv.config import BackendConfig
from multikv.protocols import StorageBackend

BACKEND_GROUP = "multikv.backends"

# Shipped backends, available even when package metadata is not installed
BUILTIN_BACKENDS = {
    "local": "multikv.backends.local:LocalBackend",
    "memory": "multikv.backends.memory:MemoryBackend",
    "s3": "multikv.backends.s3:S3Backend",
}


def _load(target: str) -> Any:
    module_name, _, attr = target.partition(":")
    return getattr(import_module(module_name), attr)


def available_backends() -> list[str]:
    """Names of all built-in and registered backends."""
    names = set(BUILTIN_BACKENDS)
    names.update(ep.name for ep in entry_points(group=BACKEND_GROUP))
    return sorted(names)


def get_backend(name: str) -> Any:
    """Get a backend class by name.

    Entry points registered under the ``multikv.backends`` group take
    precedence over the built-in backends of the same name.

    Args:
        name: The backend name (e.g., "local", "s3")

    Returns:
        The backend class

    Raises:
        ValueError: If the backend is not found
    """
    for ep in entry_points(group=BACKEND_GROUP):
        if ep.name == name:
            return ep.load()
    if name in BUILTIN_BACKENDS:
        return _load(BUILTIN_BACKENDS[name])

    available = ", ".join(available_backends()) or "(none)"
    raise ValueError(f"Backend '{name}' not found. Available: {available}")


def create_backend(name: str, **kwargs: Any) -> StorageBackend:
    """Create a StorageBackend instance.

    Args:
        name: The backend name (e.g., "local", "s3", "memory")
        **kwargs: Backend-specific configuration

    Returns:
        A StorageBackend implementation
    """
    cls = get_backend(name)
    return cls(**kwargs)


def create_backend_from_config(config: BackendConfig) -> StorageBackend:
    """Create the StorageBackend described by a BackendConfig."""
    return create_backend(config.backend, **config.backend_options())
