"""multikv - A hierarchical key-value store over pluggable storage backends."""

from multikv.config import BackendConfig, Config, LoggingConfig
from multikv.exceptions import (
    BackendError,
    ConfigError,
    DecodeError,
    InvalidKeyError,
    InvalidOperationError,
    MultiKVError,
    NotFoundError,
    ParseError,
    WriteError,
)
from multikv.kv import KV, Info
from multikv.observability import (
    LogLevel,
    OperationContext,
    StructuredLogger,
    configure_logging,
    emit_counter,
    emit_metric,
    emit_timer,
    get_logger,
    register_metric_callback,
    unregister_metric_callback,
)
from multikv.plugins import available_backends, create_backend, get_backend
from multikv.protocols import StorageBackend

__version__ = "0.1.0"
__all__ = [
    # Core
    "KV",
    "Info",
    "StorageBackend",
    # Config
    "BackendConfig",
    "Config",
    "LoggingConfig",
    # Backends
    "available_backends",
    "create_backend",
    "get_backend",
    # Errors
    "BackendError",
    "ConfigError",
    "DecodeError",
    "InvalidKeyError",
    "InvalidOperationError",
    "MultiKVError",
    "NotFoundError",
    "ParseError",
    "WriteError",
    # Observability
    "LogLevel",
    "OperationContext",
    "StructuredLogger",
    "configure_logging",
    "emit_counter",
    "emit_metric",
    "emit_timer",
    "get_logger",
    "register_metric_callback",
    "unregister_metric_callback",
]
