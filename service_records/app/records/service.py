"""
Record service: read-through / write-through access to the service data document.

The durable store owns the truth. The cache holds one entry per field and,
recursively, per nested field of every object value, so a point read of a
deep path can be answered by a single cache lookup. A present cache entry
must always hold the last value written for its key, which is why every
write repopulates (and, for replaced fields, purges) the cache right after
the durable save.

There is no locking: two overlapping writes both merge against the document
they fetched and the later save wins.
"""

from typing import Any, Iterable, List, Union

from shared.logging import get_logger
from shared.errors import (
    CacheFlushFailed,
    CacheUnavailable,
    InvalidInput,
    NotFound,
    StoreUnavailable,
    WriteAborted,
)
from ..cache.redis_cache import RedisCache
from ..storage.s3_store import S3DocumentStore
from .keys import (
    DEFAULT_NAMESPACE,
    cache_entries,
    cache_key,
    descendant_pattern,
    namespace_pattern,
    split_key_path,
)
from .models import Document, Existence, loads_strict
from .paths import ABSENT, resolve


def _describe(error: StoreUnavailable) -> str:
    if error.details:
        return f"{error.message}: {error.details}"
    return error.message


def _not_found(key: str) -> NotFound:
    return NotFound(f'Key "{key}" not found in data')


class RecordService:
    """Orchestrates the durable store and the cache for record operations."""

    def __init__(
        self,
        store: S3DocumentStore,
        cache: RedisCache,
        namespace: str = DEFAULT_NAMESPACE,
    ):
        self.store = store
        self.cache = cache
        self.namespace = namespace
        self.logger = get_logger("records.service")

    async def add(self, body: Union[str, bytes, None]) -> str:
        """Merge a JSON object into the document and persist it.

        Top-level fields of the payload replace existing ones wholesale;
        nested objects are not deep-merged.

        Raises:
            InvalidInput: body is not a JSON object.
            WriteAborted: the existing document could not be read.
            StoreUnavailable: the merged document could not be saved.
        """
        incoming = self._parse_body(body)
        existing = await self._load_for_write()

        merged = {**existing, **incoming}

        try:
            await self.store.save(merged)
        except StoreUnavailable as e:
            raise StoreUnavailable("Failed to save data", details=_describe(e)) from e

        self.logger.info("Service data saved", fields=sorted(incoming), total_fields=len(merged))

        await self._populate(merged, replaced=incoming)
        return "Data saved successfully"

    async def read(self, key: str) -> Any:
        """Return the value at a dotted key path.

        Served from the cache when the full-path entry is present, otherwise
        resolved from the durable document, whose top-level field is then
        cached.

        Raises:
            InvalidInput: missing or malformed key.
            NotFound: the document or the path does not exist.
            StoreUnavailable: the document could not be read.
        """
        path = split_key_path(key)

        cached = await self.cache.get(cache_key(path, self.namespace))
        if cached is not ABSENT:
            return cached

        self.logger.debug("Cache miss, reading through", key=key)

        if (await self.store.exists()).absent:
            raise _not_found(key)

        try:
            document = await self.store.fetch()
        except NotFound as e:
            raise _not_found(key) from e
        except StoreUnavailable as e:
            raise StoreUnavailable("Failed to retrieve data", details=_describe(e)) from e

        value = resolve(document, path)
        if value is ABSENT:
            raise _not_found(key)

        field = path[0]
        await self._populate({field: document[field]})
        return value

    async def delete(self, key: str) -> str:
        """Remove a top-level field from the document.

        The field's cache entries are dropped first and unconditionally.

        Raises:
            InvalidInput: missing key.
            NotFound: the document or the field does not exist.
            StoreUnavailable: the document could not be read or saved.
        """
        if key is None or not key.strip():
            raise InvalidInput("Missing 'key' parameter")

        await self._evict([key])

        if (await self.store.exists()).absent:
            raise _not_found(key)

        try:
            document = await self.store.fetch()
        except NotFound as e:
            raise _not_found(key) from e
        except StoreUnavailable as e:
            raise StoreUnavailable("Failed to delete key", details=_describe(e)) from e

        if key not in document:
            raise _not_found(key)

        del document[key]

        try:
            await self.store.save(document)
        except StoreUnavailable as e:
            raise StoreUnavailable("Failed to delete key", details=_describe(e)) from e

        self.logger.info("Service data field deleted", key=key, remaining_fields=len(document))
        return f'Key "{key}" deleted successfully'

    async def flush(self) -> int:
        """Delete every cache entry in the namespace. Returns the count removed."""
        try:
            deleted = await self.cache.delete_matching(namespace_pattern(self.namespace), strict=True)
        except CacheUnavailable as e:
            raise CacheFlushFailed(details=e.details or e.message) from e

        self.logger.info("Service data cache cleared", deleted=deleted)
        return deleted

    async def fetch_all(self) -> Document:
        """Return the whole document (empty when none is stored) and warm the cache."""
        if (await self.store.exists()).absent:
            return {}

        try:
            document = await self.store.fetch()
        except NotFound:
            return {}
        except StoreUnavailable as e:
            raise StoreUnavailable("Failed to retrieve data", details=_describe(e)) from e

        await self._populate(document)
        return document

    async def cache_keys(self) -> List[str]:
        """List the cache keys currently held in the namespace."""
        return sorted(await self.cache.scan_keys(namespace_pattern(self.namespace)))

    def _parse_body(self, body: Union[str, bytes, None]) -> Document:
        if isinstance(body, bytes):
            try:
                body = body.decode("utf-8")
            except UnicodeDecodeError as e:
                raise InvalidInput("Invalid JSON format", details=str(e)) from e

        if not body:
            raise InvalidInput("Invalid JSON format", details="Request body is empty")

        try:
            payload = loads_strict(body)
        except ValueError as e:
            raise InvalidInput("Invalid JSON format", details=str(e)) from e

        if not isinstance(payload, dict):
            raise InvalidInput("Invalid JSON format", details="Request body must be a JSON object")
        return payload

    async def _load_for_write(self) -> Document:
        """Existing document to merge into, ``{}`` when none is stored.

        An existence probe that fails is not taken as absence: the fetch is
        attempted and any failure there aborts the write.
        """
        check = await self.store.exists()
        if check.absent:
            return {}
        if check.state is Existence.UNKNOWN:
            self.logger.warning("Existence check failed, fetching anyway", cause=check.cause)

        try:
            return await self.store.fetch()
        except NotFound:
            return {}
        except StoreUnavailable as e:
            self.logger.error("Could not read existing service data", error=_describe(e))
            raise WriteAborted(details=_describe(e)) from e

    async def _populate(self, document: Document, replaced: Iterable[str] = ()):
        """Cache every field of ``document`` and its nested fields.

        Nested entries left over from the previous value of each ``replaced``
        field are purged first. If the entries cannot be written, the
        ``replaced`` fields are evicted instead so reads fall through to the
        store; when the cache is down for that too, entries stay stale until
        the next successful write of the field or a flush.
        """
        replaced = list(replaced)
        for field in replaced:
            await self.cache.delete_matching(descendant_pattern([field], self.namespace))

        if not await self.cache.set_many(cache_entries(document, self.namespace)) and replaced:
            self.logger.warning("Cache population failed, evicting replaced fields", fields=sorted(replaced))
            await self.cache.delete(*(cache_key([field], self.namespace) for field in replaced))

    async def _evict(self, path: List[str]):
        await self.cache.delete(cache_key(path, self.namespace))
        await self.cache.delete_matching(descendant_pattern(path, self.namespace))
