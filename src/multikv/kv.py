"""Hierarchical key-value engine over a path-addressed storage backend.

Every key is a directory-like path. A leaf key holds two files:

- ``info``: a JSON metadata document (format version, kind, path, created
  and updated timestamps)
- ``data``: the value, base64 encoded

A container key holds only child keys. Put writes ``info`` before ``data``
and the two writes are not atomic together: a failure in between leaves
``info`` updated while ``data`` is stale or missing.
"""

import base64
import binascii
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from multikv.exceptions import (
    DecodeError,
    InvalidOperationError,
    NotFoundError,
    ParseError,
    WriteError,
)
from multikv.observability import OperationContext, configure_logging, get_logger
from multikv.protocols import StorageBackend
from multikv.utils.validation import join_key, normalize_key

if TYPE_CHECKING:
    from multikv.config import Config

logger = get_logger(__name__)

INFO_FILE = "info"
DATA_FILE = "data"

FORMAT_VERSION = "1"
INFO_KIND = "info"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Info(BaseModel):
    """Metadata document stored alongside every value."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    format_version: str
    kind: str
    path: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps from hand-written documents are read as UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    def to_json(self) -> bytes:
        """Serialize to the on-disk JSON form."""
        return self.model_dump_json(by_alias=True).encode("utf-8")


class KV:
    """Key-value store over a StorageBackend.

    The engine keeps no state besides the backend handle. It does not
    serialize concurrent writers: two puts to the same key may interleave
    their info and data writes.
    """

    def __init__(self, backend: StorageBackend) -> None:
        """Initialize the engine.

        Args:
            backend: Storage backend holding the key tree
        """
        self.backend = backend

    @classmethod
    def from_config(cls, config: "Config") -> "KV":
        """Create an engine with the backend and logging described by a Config."""
        from multikv.plugins import create_backend_from_config

        configure_logging(config.logging.level, config.logging.format)
        return cls(create_backend_from_config(config.backend))

    def _operation(self, name: str, path: str) -> OperationContext:
        """Scope one engine operation for logging context and metrics."""
        return OperationContext(name, path, logger)

    def new_info(self, path: str) -> Info:
        """Build the metadata record for a key's first write."""
        now = _now()
        return Info(
            format_version=FORMAT_VERSION,
            kind=INFO_KIND,
            path=path,
            created_at=now,
            updated_at=now,
        )

    def _parse_info(self, path: str, raw: bytes) -> Info:
        try:
            return Info.model_validate_json(raw)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"]) or "document"
            raise ParseError(path, f"{location}: {first['msg']}") from e

    def _info_for_put(self, path: str) -> Info:
        info_path = join_key(path, INFO_FILE)
        try:
            raw = self.backend.read_file(info_path)
        except NotFoundError:
            return self.new_info(path)
        except Exception as e:
            logger.warning(
                "Info file unreadable, treating put as first write",
                context={"file": info_path},
                error=e,
            )
            return self.new_info(path)

        info = self._parse_info(path, raw)
        # updatedAt never moves backwards, even if the clock does
        return info.model_copy(update={"updated_at": max(_now(), info.updated_at)})

    def put(self, path: str, value: bytes | None) -> None:
        """Write or update the value stored at a key.

        Args:
            path: Key path
            value: Value bytes. None is stored as an empty value

        Raises:
            InvalidKeyError: If the path is malformed
            ParseError: If an existing info document is corrupt. Nothing is written
            WriteError: If writing info or data fails; ``stage`` names which
        """
        key = normalize_key(path)
        with self._operation("put", key):
            info = self._info_for_put(key)

            try:
                self.backend.write_file(join_key(key, INFO_FILE), info.to_json())
            except Exception as e:
                logger.error("Failed to write info file", error=e)
                raise WriteError(INFO_FILE, key, str(e)) from e

            encoded = base64.b64encode(value or b"")
            try:
                self.backend.write_file(join_key(key, DATA_FILE), encoded)
            except Exception as e:
                logger.error("Failed to write data file after info was updated", error=e)
                raise WriteError(DATA_FILE, key, str(e)) from e

    def get(self, path: str) -> bytes:
        """Read the value stored at a key.

        Raises:
            NotFoundError: If the key holds no value
            DecodeError: If the stored data is not valid base64
        """
        key = normalize_key(path)
        with self._operation("get", key):
            raw = self.backend.read_file(join_key(key, DATA_FILE))
            try:
                return base64.b64decode(raw.strip(), validate=True)
            except (binascii.Error, ValueError) as e:
                raise DecodeError(key, str(e)) from e

    def get_info(self, path: str) -> Info:
        """Read the metadata stored at a key.

        Raises:
            NotFoundError: If the key has no info document
            ParseError: If the info document is corrupt
        """
        key = normalize_key(path)
        with self._operation("get_info", key):
            raw = self.backend.read_file(join_key(key, INFO_FILE))
            return self._parse_info(key, raw)

    def delete(self, path: str) -> None:
        """Recursively delete a key and everything below it.

        Deleting a key that does not exist is a no-op.
        """
        key = normalize_key(path)
        with self._operation("delete", key):
            self.backend.delete_dir(key)

    def _is_leaf(self, path: str) -> bool:
        return self.backend.is_file(join_key(path, DATA_FILE)) or self.backend.is_file(
            join_key(path, INFO_FILE)
        )

    def list(self, path: str = "") -> list[str]:
        """List the immediate child names of a container key.

        Names come back in backend listing order. A container that was
        never written lists as empty on every backend.

        Args:
            path: Container key path. The empty path lists the root

        Raises:
            InvalidOperationError: If the path is a leaf holding a value
        """
        key = normalize_key(path, allow_root=True)
        with self._operation("list", key):
            entries = list(self.backend.list_dir(key))
            if entries and self._is_leaf(key):
                raise InvalidOperationError(
                    f"Cannot list the contents of key {key!r}, use get or get_info instead"
                )
            return entries
