"""
AWS Lambda entry points for the Records Service.

Designed for API Gateway (REST or HTTP API) proxy events:

- add:         POST body is a JSON object merged into the service data.
- read:        ``queryStringParameters.key`` is a dotted key path.
- delete:      ``queryStringParameters.key`` is a top-level field.
- clear_cache: no input.

Adapters are created on the first invocation and reused by warm containers.
The Redis connection pool is bound to an event loop, so all invocations run
on one module-level loop instead of a fresh ``asyncio.run`` each time.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
from typing import Any, Optional

from shared.config import get_config
from shared.logging import configure_logging, get_logger, set_request_id

from .cache.redis_cache import RedisCache
from .handlers import Envelope, RecordHandlers
from .records.service import RecordService
from .storage.s3_store import S3DocumentStore

logger = get_logger("records.lambda")

_loop: Optional[asyncio.AbstractEventLoop] = None
_handlers: Optional[RecordHandlers] = None


def _event_loop() -> asyncio.AbstractEventLoop:
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop


def _get_handlers() -> RecordHandlers:
    global _handlers
    if _handlers is None:
        config = get_config()
        configure_logging(config.service_name, config.log_level)

        store = S3DocumentStore(
            config.s3_bucket,
            config.s3_object_key,
            endpoint_url=config.s3_endpoint_url,
            region_name=config.s3_region,
            force_path_style=config.s3_force_path_style,
        )
        cache = RedisCache(
            config.redis_url,
            scan_count=config.cache_scan_count,
            socket_timeout=config.redis_socket_timeout,
        )
        loop = _event_loop()
        loop.run_until_complete(store.start())
        loop.run_until_complete(cache.start())

        _handlers = RecordHandlers(RecordService(store, cache, namespace=config.cache_namespace))
    return _handlers


def _json_response(envelope: Envelope) -> dict[str, Any]:
    return {
        "statusCode": envelope.status_code,
        "headers": {"content-type": "application/json; charset=utf-8"},
        "body": json.dumps(envelope.body),
    }


def _get_body(event: dict[str, Any]) -> Optional[str]:
    body = event.get("body")
    if not isinstance(body, str):
        return None
    if event.get("isBase64Encoded"):
        try:
            return base64.b64decode(body).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            # Leave it to the JSON decoder to reject.
            return body
    return body


def _get_key(event: dict[str, Any]) -> Optional[str]:
    params = event.get("queryStringParameters") or {}
    key = params.get("key") if isinstance(params, dict) else None
    return key if isinstance(key, str) else None


def _invoke(event: dict[str, Any], context: Any, operation) -> dict[str, Any]:
    request_id = getattr(context, "aws_request_id", None)
    set_request_id(request_id)
    handlers = _get_handlers()
    envelope = _event_loop().run_until_complete(operation(handlers, event or {}))
    logger.info("Lambda invocation", status_code=envelope.status_code)
    return _json_response(envelope)


def hello(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    return _json_response(Envelope(200, {"message": "Records service is up"}))


def add(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    return _invoke(event, context, lambda h, e: h.add(_get_body(e)))


def read(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    return _invoke(event, context, lambda h, e: h.read(_get_key(e)))


def delete(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    return _invoke(event, context, lambda h, e: h.delete(_get_key(e)))


def clear_cache(event: dict[str, Any] = None, context: Any = None) -> dict[str, Any]:
    return _invoke(event, context, lambda h, e: h.clear_cache())
