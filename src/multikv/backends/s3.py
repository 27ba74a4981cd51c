"""S3-compatible object storage backend (AWS S3, Cloudflare R2, MinIO)."""

from collections.abc import Iterator
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from multikv.exceptions import BackendError, ConfigError, InvalidKeyError, NotFoundError
from multikv.observability import get_logger
from multikv.utils.validation import join_key

logger = get_logger(__name__)

# S3 DeleteObjects accepts at most 1000 keys per request
DELETE_BATCH_SIZE = 1000

NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


def _is_not_found(error: ClientError) -> bool:
    code = error.response.get("Error", {}).get("Code", "")
    return str(code) in NOT_FOUND_CODES


class S3Backend:
    """Object storage backend using the S3 API.

    Object storage has no directories: a "directory" is the set of objects
    sharing a key prefix, so it exists only while it holds at least one
    object and disappears with its last one.
    """

    def __init__(
        self,
        bucket: str | None = None,
        endpoint: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str | None = None,
        prefix: str | None = None,
        client: Any = None,
        **kwargs: Any,
    ) -> None:
        """Initialize S3 backend.

        Args:
            bucket: Bucket name
            endpoint: Endpoint URL for S3-compatible services (R2, MinIO)
            access_key: Access key ID. Falls back to the boto3 credential chain
            secret_key: Secret access key
            region: Region name
            prefix: Optional key prefix all paths are stored under
            client: Preconfigured boto3 S3 client (overrides the settings above)
            **kwargs: Ignored

        Raises:
            ConfigError: If no bucket is given
        """
        if not bucket:
            raise ConfigError(
                "S3Backend requires a bucket. Use 'local' or 'memory' backend for development."
            )

        self.bucket = bucket
        self.prefix = (prefix or "").strip("/")

        if client is None:
            session = boto3.session.Session(
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
            )
            client = session.client("s3", endpoint_url=endpoint)
        self.client = client

    def _key(self, path: str) -> str:
        """Get the object key for a backend path."""
        return join_key(self.prefix, path)

    def _dir_prefix(self, path: str) -> str:
        key = self._key(path)
        return f"{key}/" if key else ""

    def _iter_pages(self, prefix: str, delimiter: str | None = None) -> Iterator[dict[str, Any]]:
        params: dict[str, Any] = {"Bucket": self.bucket, "Prefix": prefix}
        if delimiter:
            params["Delimiter"] = delimiter
        paginator = self.client.get_paginator("list_objects_v2")
        yield from paginator.paginate(**params)

    def exists(self, path: str) -> bool:
        return self.is_file(path) or self.is_dir(path)

    def is_file(self, path: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=self._key(path))
        except ClientError as e:
            if _is_not_found(e):
                return False
            raise BackendError("is_file", path, str(e)) from e
        except BotoCoreError as e:
            raise BackendError("is_file", path, str(e)) from e
        return True

    def is_dir(self, path: str) -> bool:
        try:
            response = self.client.list_objects_v2(
                Bucket=self.bucket,
                Prefix=self._dir_prefix(path),
                MaxKeys=1,
            )
        except (ClientError, BotoCoreError) as e:
            raise BackendError("is_dir", path, str(e)) from e
        return bool(response.get("Contents"))

    def list_dir(self, path: str) -> list[str]:
        """List immediate child names using delimiter-based listing.

        Child "directories" come back as common prefixes and child files as
        objects; both are reduced to their final path segment.
        """
        prefix = self._dir_prefix(path)
        names: set[str] = set()
        try:
            for page in self._iter_pages(prefix, delimiter="/"):
                for common in page.get("CommonPrefixes", []):
                    names.add(common["Prefix"][len(prefix):].rstrip("/"))
                for obj in page.get("Contents", []):
                    names.add(obj["Key"][len(prefix):])
        except (ClientError, BotoCoreError) as e:
            raise BackendError("list_dir", path, str(e)) from e

        # Zero-byte "folder" placeholder objects list as the prefix itself
        names.discard("")
        return sorted(names)

    def delete_dir(self, path: str) -> None:
        if not path.strip("/"):
            raise InvalidKeyError("Refusing to delete the backend root")
        prefix = self._dir_prefix(path)

        try:
            keys = [
                obj["Key"]
                for page in self._iter_pages(prefix)
                for obj in page.get("Contents", [])
            ]
            for start in range(0, len(keys), DELETE_BATCH_SIZE):
                batch = keys[start:start + DELETE_BATCH_SIZE]
                response = self.client.delete_objects(
                    Bucket=self.bucket,
                    Delete={"Objects": [{"Key": key} for key in batch], "Quiet": True},
                )
                errors = response.get("Errors", [])
                if errors:
                    failed = ", ".join(err.get("Key", "?") for err in errors)
                    raise BackendError("delete_dir", path, f"could not delete {failed}")
        except (ClientError, BotoCoreError) as e:
            raise BackendError("delete_dir", path, str(e)) from e

        logger.debug("Deleted prefix", context={"target": path, "objects": len(keys)})

    def delete_file(self, path: str) -> None:
        # DeleteObject succeeds for missing keys, so check first
        if not self.is_file(path):
            raise NotFoundError(f"File not found: {path}")
        try:
            self.client.delete_object(Bucket=self.bucket, Key=self._key(path))
        except (ClientError, BotoCoreError) as e:
            raise BackendError("delete_file", path, str(e)) from e

    def read_file(self, path: str) -> bytes:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self._key(path))
            return response["Body"].read()
        except ClientError as e:
            if _is_not_found(e):
                raise NotFoundError(f"File not found: {path}")
            raise BackendError("read_file", path, str(e)) from e
        except BotoCoreError as e:
            raise BackendError("read_file", path, str(e)) from e

    def write_file(self, path: str, data: bytes) -> None:
        key = self._key(path)
        if not key:
            raise InvalidKeyError("Cannot write a file at the backend root")
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data)
        except (ClientError, BotoCoreError) as e:
            raise BackendError("write_file", path, str(e)) from e

        logger.debug("Wrote object", context={"target": path, "size": len(data)})
