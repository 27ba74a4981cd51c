"""Structured logging and metrics for KV operations.

Every engine call runs inside an ``OperationContext``. Log lines written
while it is active (by the engine or by a backend) carry the operation
name and key path, and the context reports the call's duration as a
``multikv.kv.<operation>`` timer, or a ``multikv.kv.<operation>.errors``
counter when the call raises.
"""

import json
import logging
import sys
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

operation_var: ContextVar[str | None] = ContextVar("operation", default=None)
key_path_var: ContextVar[str | None] = ContextVar("key_path", default=None)


class LogLevel(str, Enum):
    """Log levels matching Python's logging module."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


def current_context() -> dict[str, Any]:
    """Operation and key path of the KV call in progress, if any.

    The root key is the empty string and is kept; unset values are dropped.
    """
    context: dict[str, Any] = {}
    operation = operation_var.get()
    if operation:
        context["operation"] = operation
    path = key_path_var.get()
    if path is not None:
        context["path"] = path
    return context


class StructuredFormatter(logging.Formatter):
    """Renders a log record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "level": record.levelname,
            "message": record.getMessage(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "logger": record.name,
        }

        context = current_context()
        extra_context = getattr(record, "context", None)
        if isinstance(extra_context, dict):
            context.update(extra_context)
        if context:
            data["context"] = context

        if record.exc_info and record.exc_info[1] is not None:
            exc_type, exc, _ = record.exc_info
            data["error"] = {"type": exc_type.__name__, "message": str(exc)}

        duration_ms = getattr(record, "duration_ms", None)
        if duration_ms is not None:
            data["duration_ms"] = round(duration_ms, 3)

        return json.dumps(data, default=str)


class StructuredLogger:
    """Logger taking a context dict, an exception and a duration as keywords.

    Example:
        logger = get_logger(__name__)
        logger.debug("Wrote object", context={"target": "a/b/data", "size": 12})
        logger.error("Failed to write info file", error=exc)
    """

    def __init__(self, name: str, level: LogLevel | None = None) -> None:
        self.logger = logging.getLogger(name)
        if level is not None:
            self.logger.setLevel(level.value)

        # Only attach a handler when nothing up the hierarchy will emit
        if not self.logger.hasHandlers():
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)

    def log(
        self,
        level: LogLevel,
        message: str,
        context: dict[str, Any] | None = None,
        error: BaseException | None = None,
        duration_ms: float | None = None,
    ) -> None:
        extra: dict[str, Any] = {}
        if context:
            extra["context"] = context
        if duration_ms is not None:
            extra["duration_ms"] = duration_ms
        exc_info = (type(error), error, error.__traceback__) if error is not None else None
        self.logger.log(logging.getLevelName(level.value), message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log(LogLevel.ERROR, message, **kwargs)


class OperationContext:
    """Scope of one KV call: log context, timing and metrics.

    Example:
        with OperationContext("put", "users/alice", logger) as op:
            backend.write_file("users/alice/info", payload)
        op.duration_ms

    Nested contexts restore the outer operation on exit.
    """

    def __init__(
        self,
        operation: str,
        path: str | None = None,
        logger: StructuredLogger | None = None,
    ) -> None:
        """Initialize operation context.

        Args:
            operation: KV operation name, used in metric names
            path: Key path the operation addresses
            logger: Where the completion line is logged. Nothing is logged if None
        """
        self.operation = operation
        self.path = path
        self.logger = logger
        self.start_time = 0.0
        self.end_time = 0.0
        self._tokens: list[tuple[ContextVar, Any]] = []

    @property
    def duration_ms(self) -> float:
        return (self.end_time - self.start_time) * 1000

    def __enter__(self) -> "OperationContext":
        self._tokens.append((operation_var, operation_var.set(self.operation)))
        if self.path is not None:
            self._tokens.append((key_path_var, key_path_var.set(self.path)))
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: type[BaseException] | None, *args: Any) -> None:
        self.end_time = time.perf_counter()
        try:
            if exc_type is not None:
                emit_counter(f"multikv.kv.{self.operation}.errors")
            else:
                if self.logger is not None:
                    self.logger.debug(f"{self.operation} complete", duration_ms=self.duration_ms)
                emit_timer(f"multikv.kv.{self.operation}", self.duration_ms)
        finally:
            for var, token in reversed(self._tokens):
                var.reset(token)
            self._tokens.clear()


# Metric collection hook type
MetricCallback = Callable[[str, float, dict[str, Any]], None]

_metric_callbacks: list[MetricCallback] = []


def register_metric_callback(callback: MetricCallback) -> None:
    """Register a callback to receive metric events.

    Args:
        callback: Function(name, value, labels) to call on metrics
    """
    _metric_callbacks.append(callback)


def unregister_metric_callback(callback: MetricCallback) -> None:
    """Remove a previously registered metric callback. No-op if absent."""
    if callback in _metric_callbacks:
        _metric_callbacks.remove(callback)


def emit_metric(name: str, value: float, labels: dict[str, Any] | None = None) -> None:
    """Send a metric to every registered callback.

    The current operation is added as an ``operation`` label. A failing
    callback is logged and does not stop the others.
    """
    labels = dict(labels or {})
    operation = operation_var.get()
    if operation:
        labels.setdefault("operation", operation)

    for callback in list(_metric_callbacks):
        try:
            callback(name, value, labels)
        except Exception:
            logging.getLogger(__name__).debug("Metric callback failed for %s", name, exc_info=True)


def emit_counter(name: str, labels: dict[str, Any] | None = None) -> None:
    """Emit a counter metric (increment by 1)."""
    emit_metric(name, 1.0, labels)


def emit_timer(name: str, duration_ms: float, labels: dict[str, Any] | None = None) -> None:
    emit_metric(name, duration_ms, labels)


def configure_logging(level: LogLevel = LogLevel.INFO, format: str = "json") -> None:
    """Send all multikv logs through a single stdout handler.

    Args:
        level: Minimum log level
        format: Output format ("json" or "text")
    """
    root_logger = logging.getLogger("multikv")
    root_logger.setLevel(level.value)

    # Handlers attached by StructuredLogger before configuration would duplicate lines
    root_logger.handlers.clear()
    for name, child in logging.Logger.manager.loggerDict.items():
        if name.startswith("multikv.") and isinstance(child, logging.Logger):
            child.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    if format == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root_logger.addHandler(handler)


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger for a module (typically ``__name__``)."""
    return StructuredLogger(name)
