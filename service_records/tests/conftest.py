"""
Shared fixtures for Records Service tests.

The real S3DocumentStore and RedisCache are used throughout; only the
underlying boto3 and redis clients are replaced by in-memory fakes that
count their calls and can be told to fail.
"""

import io
import json
import re
from collections import Counter
from typing import Any, Dict, List, Optional

import pytest
from botocore.exceptions import ClientError
from redis.exceptions import ConnectionError as RedisConnectionError

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_records.app.cache.redis_cache import RedisCache
from service_records.app.records.service import RecordService
from service_records.app.storage.s3_store import S3DocumentStore


BUCKET = "my-local-bucket"
OBJECT_KEY = "service_data.json"


def client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class FakeS3Client:
    """In-memory stand-in for a boto3 S3 client holding one bucket."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.calls: Counter = Counter()
        self.failures: Dict[str, ClientError] = {}

    def _check(self, operation: str):
        self.calls[operation] += 1
        if operation in self.failures:
            raise self.failures[operation]

    def head_object(self, Bucket: str, Key: str):
        self._check("head_object")
        if Key not in self.objects:
            raise client_error("404", "HeadObject")
        return {"ContentLength": len(self.objects[Key])}

    def get_object(self, Bucket: str, Key: str):
        self._check("get_object")
        if Key not in self.objects:
            raise client_error("NoSuchKey", "GetObject")
        return {"Body": io.BytesIO(self.objects[Key])}

    def put_object(self, Bucket: str, Key: str, Body: bytes, ContentType: str):
        self._check("put_object")
        self.objects[Key] = Body
        return {}

    def head_bucket(self, Bucket: str):
        self._check("head_bucket")
        return {}

    def close(self):
        pass

    def document(self, key: str = OBJECT_KEY) -> Optional[Dict[str, Any]]:
        raw = self.objects.get(key)
        return json.loads(raw) if raw is not None else None


def _glob_to_regex(pattern: str) -> "re.Pattern":
    out = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            out.append(re.escape(pattern[i + 1]))
            i += 2
            continue
        if ch == "*":
            out.append(".*")
        elif ch == "?":
            out.append(".")
        else:
            out.append(re.escape(ch))
        i += 1
    return re.compile("^" + "".join(out) + "$", re.DOTALL)


class _FakePipeline:
    def __init__(self, redis: "FakeRedis"):
        self.redis = redis
        self.commands: List[tuple] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def set(self, key: str, value: str):
        self.commands.append((key, value))
        return self

    async def execute(self):
        self.redis._check("pipeline")
        for key, value in self.commands:
            self.redis.data[key] = value
        return [True] * len(self.commands)


class FakeRedis:
    """In-memory stand-in for a ``redis.asyncio.Redis`` client (decoded responses)."""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.calls: Counter = Counter()
        self.fail = False
        self._scan_snapshot: List[str] = []

    def _check(self, operation: str):
        self.calls[operation] += 1
        if self.fail:
            raise RedisConnectionError("Connection refused")

    async def ping(self):
        self._check("ping")
        return True

    async def get(self, key: str):
        self._check("get")
        return self.data.get(key)

    async def set(self, key: str, value: str):
        self._check("set")
        self.data[key] = value
        return True

    async def delete(self, *keys: str) -> int:
        self._check("delete")
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    async def scan(self, cursor: int = 0, match: str = "*", count: int = 10):
        self._check("scan")
        # Iterate over a snapshot taken when the scan starts, so keys deleted
        # between pages do not shift the cursor.
        if cursor == 0:
            self._scan_snapshot = sorted(self.data)
        regex = _glob_to_regex(match)
        keys = self._scan_snapshot
        page = keys[cursor:cursor + count]
        next_cursor = cursor + count if cursor + count < len(keys) else 0
        return next_cursor, [key for key in page if key in self.data and regex.match(key)]

    def pipeline(self, transaction: bool = True):
        return _FakePipeline(self)

    async def aclose(self):
        pass

    def value(self, key: str) -> Any:
        return json.loads(self.data[key])


@pytest.fixture
def s3_client():
    """Fake boto3 S3 client."""
    return FakeS3Client()


@pytest.fixture
def redis_client():
    """Fake redis client."""
    return FakeRedis()


@pytest.fixture
def store(s3_client):
    """S3DocumentStore over the fake client."""
    return S3DocumentStore(BUCKET, OBJECT_KEY, client=s3_client)


@pytest.fixture
def cache(redis_client):
    """RedisCache over the fake client, with a small scan page."""
    return RedisCache("redis://localhost:6379/0", client=redis_client, scan_count=2)


@pytest.fixture
def record_service(store, cache):
    """RecordService wired to the fakes."""
    return RecordService(store, cache)
