"""
Request/response envelopes for record operations.

Turns RecordService results and errors into ``Envelope(status_code, body)``
values, shared by the HTTP API and the Lambda entry points.
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Union, TYPE_CHECKING

from shared.logging import get_logger, set_operation
from shared.errors import RecordServiceError
from .records.service import RecordService

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


@dataclass(frozen=True)
class Envelope:
    """Status code plus JSON body."""
    status_code: int
    body: Dict[str, Any]


class RecordHandlers:
    """Envelope adapter around RecordService."""

    def __init__(self, service: RecordService, metrics: Optional["MetricsCollector"] = None):
        self.service = service
        self.metrics = metrics
        self.logger = get_logger("records.handlers")

    async def add(self, body: Union[str, bytes, None]) -> Envelope:
        async def call():
            return Envelope(201, {"message": await self.service.add(body)})

        return await self._run("add", call)

    async def read(self, key: Optional[str]) -> Envelope:
        async def call():
            value = await self.service.read(key)
            return Envelope(200, {key: value})

        return await self._run("read", call)

    async def delete(self, key: Optional[str]) -> Envelope:
        async def call():
            return Envelope(200, {"message": await self.service.delete(key)})

        return await self._run("delete", call)

    async def clear_cache(self) -> Envelope:
        async def call():
            deleted = await self.service.flush()
            return Envelope(200, {
                "message": "All service_data cache cleared successfully",
                "deleted": deleted
            })

        return await self._run("clear_cache", call)

    async def read_all(self) -> Envelope:
        async def call():
            return Envelope(200, await self.service.fetch_all())

        return await self._run("read_all", call)

    async def cache_keys(self) -> Envelope:
        async def call():
            keys = await self.service.cache_keys()
            return Envelope(200, {"count": len(keys), "keys": keys})

        return await self._run("cache_keys", call)

    async def _run(self, operation: str, call: Callable[[], Awaitable[Envelope]]) -> Envelope:
        set_operation(operation)
        try:
            if self.metrics:
                with self.metrics.time_operation("records_operation_duration_seconds", operation=operation):
                    envelope = await self._dispatch(operation, call)
            else:
                envelope = await self._dispatch(operation, call)
        finally:
            set_operation(None)

        if self.metrics:
            self.metrics.increment_counter(
                "records_operations_total",
                operation=operation,
                status=str(envelope.status_code)
            )
        return envelope

    async def _dispatch(self, operation: str, call: Callable[[], Awaitable[Envelope]]) -> Envelope:
        try:
            return await call()
        except RecordServiceError as e:
            if e.status_code >= 500:
                self.logger.error("Record operation failed", code=e.code, error=e.message, details=e.details)
            else:
                self.logger.info("Record operation rejected", code=e.code, error=e.message)
            return Envelope(e.status_code, e.to_body())
        except Exception as e:
            self.logger.error("Unhandled error in record operation", operation=operation, error=str(e), exc_info=True)
            return Envelope(500, {
                "code": "INTERNAL_ERROR",
                "error": "Internal server error",
                "details": str(e)
            })
