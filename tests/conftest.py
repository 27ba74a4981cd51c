"""Pytest configuration and fixtures."""

import io
import tempfile
from typing import Any

import pytest
from botocore.exceptions import ClientError

from multikv.backends.local import LocalBackend
from multikv.backends.memory import MemoryBackend
from multikv.backends.s3 import S3Backend
from multikv.kv import KV


def _client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakePaginator:
    """Paginator over FakeS3Client.list_objects_v2 with a small page size."""

    def __init__(self, client: "FakeS3Client") -> None:
        self.client = client

    def paginate(self, **params: Any):
        token = None
        while True:
            page = self.client.list_objects_v2(
                MaxKeys=self.client.page_size, ContinuationToken=token, **params
            )
            yield page
            token = page.get("NextContinuationToken")
            if not token:
                return


class FakeS3Client:
    """In-process stand-in for the boto3 S3 client calls S3Backend makes.

    Errors are real botocore ClientErrors so the backend's error mapping is
    exercised as it would be against S3.
    """

    def __init__(self, page_size: int = 2) -> None:
        self.objects: dict[str, dict[str, bytes]] = {}
        self.page_size = page_size
        self.calls: list[str] = []
        self.fail_on: dict[str, str] = {}

    def _bucket(self, name: str) -> dict[str, bytes]:
        return self.objects.setdefault(name, {})

    def _maybe_fail(self, operation: str) -> None:
        self.calls.append(operation)
        if operation in self.fail_on:
            raise _client_error(self.fail_on[operation], operation)

    def head_object(self, Bucket: str, Key: str) -> dict[str, Any]:
        self._maybe_fail("HeadObject")
        if Key not in self._bucket(Bucket):
            raise _client_error("404", "HeadObject")
        return {"ContentLength": len(self._bucket(Bucket)[Key])}

    def get_object(self, Bucket: str, Key: str) -> dict[str, Any]:
        self._maybe_fail("GetObject")
        if Key not in self._bucket(Bucket):
            raise _client_error("NoSuchKey", "GetObject")
        return {"Body": io.BytesIO(self._bucket(Bucket)[Key])}

    def put_object(self, Bucket: str, Key: str, Body: bytes) -> dict[str, Any]:
        self._maybe_fail("PutObject")
        self._bucket(Bucket)[Key] = bytes(Body)
        return {}

    def delete_object(self, Bucket: str, Key: str) -> dict[str, Any]:
        self._maybe_fail("DeleteObject")
        self._bucket(Bucket).pop(Key, None)
        return {}

    def delete_objects(self, Bucket: str, Delete: dict[str, Any]) -> dict[str, Any]:
        self._maybe_fail("DeleteObjects")
        for obj in Delete["Objects"]:
            self._bucket(Bucket).pop(obj["Key"], None)
        return {}

    def list_objects_v2(
        self,
        Bucket: str,
        Prefix: str = "",
        Delimiter: str | None = None,
        MaxKeys: int = 1000,
        ContinuationToken: str | None = None,
    ) -> dict[str, Any]:
        self._maybe_fail("ListObjectsV2")
        entries: list[tuple[str, bool]] = []
        seen_prefixes: set[str] = set()
        for key in sorted(self._bucket(Bucket)):
            if not key.startswith(Prefix):
                continue
            rest = key[len(Prefix):]
            if Delimiter and Delimiter in rest:
                common = Prefix + rest.split(Delimiter, 1)[0] + Delimiter
                if common not in seen_prefixes:
                    seen_prefixes.add(common)
                    entries.append((common, True))
            else:
                entries.append((key, False))

        start = int(ContinuationToken) if ContinuationToken else 0
        page = entries[start:start + MaxKeys]
        response: dict[str, Any] = {
            "Contents": [{"Key": name} for name, is_prefix in page if not is_prefix],
            "CommonPrefixes": [{"Prefix": name} for name, is_prefix in page if is_prefix],
        }
        if start + MaxKeys < len(entries):
            response["NextContinuationToken"] = str(start + MaxKeys)
        return response

    def get_paginator(self, operation: str) -> FakePaginator:
        assert operation == "list_objects_v2"
        return FakePaginator(self)


@pytest.fixture
def sample_config_dict():
    """Sample configuration dictionary for testing."""
    return {
        "backend": {"backend": "local", "path": "/tmp/multikv-test/kv"},
        "logging": {"level": "DEBUG", "format": "text"},
    }


@pytest.fixture
def tmp_base_dir():
    """Temporary base directory, removed after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def s3_client():
    """Fake S3 client."""
    return FakeS3Client()


@pytest.fixture(params=["local", "memory", "s3"])
def backend(request, tmp_base_dir):
    """Every shipped backend, so engine behavior is checked on each."""
    if request.param == "local":
        return LocalBackend(path=tmp_base_dir)
    if request.param == "memory":
        return MemoryBackend()
    return S3Backend(bucket="test-bucket", prefix="kv", client=FakeS3Client())


@pytest.fixture
def kv(backend):
    """KV engine over each backend."""
    return KV(backend)
