"""
S3 persistence layer for the Records Service.

The whole dataset lives in one JSON object at a fixed bucket/key pair.
boto3 is synchronous, so every call is pushed to a worker thread.
"""

import asyncio
import json
from typing import Any, Dict, Optional, TYPE_CHECKING

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from shared.logging import get_logger
from shared.errors import NotFound, StoreUnavailable
from ..records.models import Document, ExistenceCheck, loads_strict

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


NOT_FOUND_CODES = frozenset({"404", "NotFound", "NoSuchKey"})


def is_not_found(error: ClientError) -> bool:
    """True when an S3 client error means the object is missing."""
    code = str(error.response.get("Error", {}).get("Code", ""))
    return code in NOT_FOUND_CODES


class S3DocumentStore:
    """Durable storage of the service data document in S3."""

    def __init__(
        self,
        bucket: str,
        object_key: str,
        *,
        endpoint_url: Optional[str] = None,
        region_name: str = "us-east-1",
        force_path_style: bool = True,
        client: Any = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.bucket = bucket
        self.object_key = object_key
        self.endpoint_url = endpoint_url
        self.region_name = region_name
        self.force_path_style = force_path_style
        self.client = client
        self.metrics = metrics
        self.logger = get_logger("records.storage.s3")

    async def start(self):
        """Create the S3 client."""
        if self.client is not None:
            return

        self.client = boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            region_name=self.region_name,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": "path" if self.force_path_style else "auto"},
            ),
        )
        self.logger.info(
            "S3 document store started",
            bucket=self.bucket,
            key=self.object_key,
            endpoint_url=self.endpoint_url
        )

    async def stop(self):
        """Release the S3 client."""
        if self.client is not None:
            self.client.close()
            self.client = None
            self.logger.info("S3 document store stopped")

    async def exists(self) -> ExistenceCheck:
        """Probe for the document without fetching it.

        Never raises: a missing object is ``ABSENT``, any other failure is
        ``UNKNOWN`` and carries the error message.
        """
        try:
            await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=self.object_key)
        except ClientError as e:
            if is_not_found(e):
                self._count("head", "absent")
                return ExistenceCheck.missing()
            self._count("head", "error")
            self.logger.warning("S3 head_object failed", bucket=self.bucket, key=self.object_key, error=str(e))
            return ExistenceCheck.unknown(str(e))
        except BotoCoreError as e:
            self._count("head", "error")
            self.logger.warning("S3 head_object failed", bucket=self.bucket, key=self.object_key, error=str(e))
            return ExistenceCheck.unknown(str(e))

        self._count("head", "ok")
        return ExistenceCheck.exists()

    async def fetch(self) -> Document:
        """Load the whole document.

        Raises:
            NotFound: the object does not exist.
            StoreUnavailable: any other failure, including a body that is
                not a JSON object.
        """
        try:
            raw = await asyncio.to_thread(self._read_object)
        except ClientError as e:
            if is_not_found(e):
                self._count("get", "absent")
                raise NotFound("Service data not found", details=str(e)) from e
            self._count("get", "error")
            self.logger.error("S3 get_object failed", bucket=self.bucket, key=self.object_key, error=str(e))
            raise StoreUnavailable(str(e)) from e
        except BotoCoreError as e:
            self._count("get", "error")
            self.logger.error("S3 get_object failed", bucket=self.bucket, key=self.object_key, error=str(e))
            raise StoreUnavailable(str(e)) from e

        try:
            document = loads_strict(raw)
        except ValueError as e:
            self._count("get", "error")
            raise StoreUnavailable("Stored service data is not valid JSON", details=str(e)) from e

        if not isinstance(document, dict):
            self._count("get", "error")
            raise StoreUnavailable("Stored service data is not a JSON object")

        self._count("get", "ok")
        return document

    async def save(self, document: Document):
        """Overwrite the whole document."""
        try:
            body = json.dumps(document, indent=2, allow_nan=False).encode("utf-8")
        except ValueError as e:
            self._count("put", "error")
            raise StoreUnavailable("Service data is not valid JSON", details=str(e)) from e

        try:
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.bucket,
                Key=self.object_key,
                Body=body,
                ContentType="application/json",
            )
        except (ClientError, BotoCoreError) as e:
            self._count("put", "error")
            self.logger.error("S3 put_object failed", bucket=self.bucket, key=self.object_key, error=str(e))
            raise StoreUnavailable(str(e)) from e

        self._count("put", "ok")
        self.logger.debug("Service data saved", bucket=self.bucket, key=self.object_key, fields=len(document))

    async def health_check(self) -> bool:
        """Check that the bucket is reachable."""
        if self.client is None:
            return False
        try:
            await asyncio.to_thread(self.client.head_bucket, Bucket=self.bucket)
            return True
        except (ClientError, BotoCoreError):
            return False

    def _read_object(self) -> bytes:
        response = self.client.get_object(Bucket=self.bucket, Key=self.object_key)
        return response["Body"].read()

    def _count(self, operation: str, status: str):
        if self.metrics:
            self.metrics.increment_counter("store_operations_total", operation=operation, status=status)
