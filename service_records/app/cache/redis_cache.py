"""
Redis caching layer for the Records Service.

Cache trouble never fails a record operation: reads degrade to a miss and
writes are logged and dropped. Only ``delete_matching(strict=True)`` lets a
failure through, for callers whose whole job is the cache operation.
"""

import json
from typing import Any, Iterable, List, Optional, Tuple, TYPE_CHECKING

import redis.asyncio as redis

from shared.logging import get_logger
from shared.errors import CacheUnavailable
from ..records.paths import ABSENT

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class RedisCache:
    """Redis caching layer for service data entries."""

    def __init__(
        self,
        redis_url: str,
        *,
        scan_count: int = 100,
        socket_timeout: int = 5,
        client: Optional[redis.Redis] = None,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.redis_url = redis_url
        self.scan_count = scan_count
        self.socket_timeout = socket_timeout
        self.redis: Optional[redis.Redis] = client
        self.metrics = metrics
        self.logger = get_logger("records.cache.redis")

    async def start(self):
        """Start the Redis cache.

        An unreachable Redis is logged rather than raised; the service keeps
        serving from the durable store.
        """
        if self.redis is None:
            self.redis = redis.from_url(
                self.redis_url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=self.socket_timeout,
                socket_timeout=self.socket_timeout,
                health_check_interval=30
            )

        try:
            await self.redis.ping()
            self.logger.info("Redis cache started")
        except Exception as e:
            self.logger.warning("Redis cache unreachable at startup", error=str(e))

    async def stop(self):
        """Stop the Redis cache."""
        if self.redis:
            await self.redis.aclose()
            self.redis = None
            self.logger.info("Redis cache stopped")

    async def get(self, key: str) -> Any:
        """Get a cached value, or ``ABSENT`` on a miss or any failure."""
        try:
            cached = await self.redis.get(key)
        except Exception as e:
            self._error("get")
            self.logger.error("Error reading cache entry", key=key, error=str(e))
            return ABSENT

        if cached is None:
            self._count("cache_misses_total")
            return ABSENT

        try:
            value = json.loads(cached)
        except ValueError as e:
            self._error("decode")
            self.logger.error("Undecodable cache entry", key=key, error=str(e))
            return ABSENT

        self._count("cache_hits_total")
        self.logger.debug("Cache hit", key=key)
        return value

    async def set(self, key: str, value: Any) -> bool:
        """Cache one value. Returns False if the write was dropped."""
        try:
            await self.redis.set(key, json.dumps(value, allow_nan=False))
            return True
        except Exception as e:
            self._error("set")
            self.logger.error("Error writing cache entry", key=key, error=str(e))
            return False

    async def set_many(self, entries: Iterable[Tuple[str, Any]]) -> bool:
        """Cache several values in one pipelined round trip."""
        entries = list(entries)
        if not entries:
            return True

        try:
            async with self.redis.pipeline(transaction=False) as pipe:
                for key, value in entries:
                    pipe.set(key, json.dumps(value, allow_nan=False))
                await pipe.execute()
        except Exception as e:
            self._error("set_many")
            self.logger.error("Error writing cache entries", count=len(entries), error=str(e))
            return False

        self.logger.debug("Cached entries", count=len(entries))
        return True

    async def delete(self, *keys: str) -> int:
        """Delete keys. Missing keys are not an error."""
        if not keys:
            return 0
        try:
            return await self.redis.delete(*keys)
        except Exception as e:
            self._error("delete")
            self.logger.error("Error deleting cache entries", keys=list(keys), error=str(e))
            return 0

    async def scan_keys(self, pattern: str) -> List[str]:
        """Enumerate every key matching ``pattern``.

        Pages of at most ``scan_count`` keys are fetched until the cursor
        comes back to zero.

        Raises:
            CacheUnavailable: Redis failed mid-scan.
        """
        keys: List[str] = []
        cursor = 0
        try:
            while True:
                cursor, page = await self.redis.scan(cursor=cursor, match=pattern, count=self.scan_count)
                keys.extend(page)
                if int(cursor) == 0:
                    return keys
        except Exception as e:
            self._error("scan")
            self.logger.error("Error scanning cache keys", pattern=pattern, error=str(e))
            raise CacheUnavailable("Failed to scan cache keys", details=str(e)) from e

    async def delete_matching(self, pattern: str, strict: bool = False) -> int:
        """Delete every key matching ``pattern``, one scanned page at a time.

        Returns the number of keys removed. With ``strict`` a Redis failure
        raises ``CacheUnavailable``; otherwise it is logged and the count so
        far is returned.
        """
        deleted = 0
        cursor = 0
        try:
            while True:
                cursor, page = await self.redis.scan(cursor=cursor, match=pattern, count=self.scan_count)
                if page:
                    deleted += await self.redis.delete(*page)
                if int(cursor) == 0:
                    break
        except Exception as e:
            self._error("delete_matching")
            self.logger.error("Error deleting cache entries by pattern", pattern=pattern, error=str(e))
            if strict:
                raise CacheUnavailable("Failed to delete cache entries", details=str(e)) from e
            return deleted

        if deleted:
            self.logger.info("Deleted cache entries", pattern=pattern, count=deleted)
        return deleted

    async def health_check(self) -> bool:
        """Check Redis health."""
        try:
            await self.redis.ping()
            return True
        except Exception:
            return False

    def _count(self, metric_name: str):
        if self.metrics:
            self.metrics.increment_counter(metric_name, cache_type="service_data")

    def _error(self, operation: str):
        if self.metrics:
            self.metrics.increment_counter("cache_errors_total", operation=operation)
