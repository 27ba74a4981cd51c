"""multikv exceptions."""


class MultiKVError(Exception):
    """Base exception for multikv."""

    pass


class ConfigError(MultiKVError):
    """Configuration error."""

    pass


class InvalidKeyError(MultiKVError, ValueError):
    """Key path is malformed."""

    pass


class NotFoundError(MultiKVError):
    """Requested file or key not found."""

    pass


class InvalidOperationError(MultiKVError):
    """Operation does not apply to the node at the given path."""

    pass


class ParseError(MultiKVError):
    """Stored info document is not a valid metadata document."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"failed to parse info file at {path!r} ({reason})")


class DecodeError(MultiKVError):
    """Stored data file is not validly encoded."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"failed to decode data file at {path!r} ({reason})")


class BackendError(MultiKVError):
    """Storage backend failure.

    Carries the backend operation and path so failures can be diagnosed
    without inspecting the chained cause.
    """

    def __init__(self, operation: str, path: str, message: str) -> None:
        self.operation = operation
        self.path = path
        super().__init__(f"{operation} {path!r} failed: {message}")


class WriteError(BackendError):
    """A put stage failed to write its file."""

    def __init__(self, stage: str, path: str, message: str) -> None:
        self.stage = stage
        super().__init__(f"write {stage}", path, message)
