"""
Records service: a cached JSON record store over S3 and Redis.
"""

from typing import Optional

from fastapi import Query, Request
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import RecordsConfig, get_config

from .cache.redis_cache import RedisCache
from .handlers import Envelope, RecordHandlers
from .records.models import ServiceInfoResponse
from .records.service import RecordService
from .storage.s3_store import S3DocumentStore


def _respond(envelope: Envelope) -> JSONResponse:
    return JSONResponse(status_code=envelope.status_code, content=envelope.body)


class RecordsService(BaseService):
    """Records service implementation."""

    def __init__(
        self,
        config: Optional[RecordsConfig] = None,
        store: Optional[S3DocumentStore] = None,
        cache: Optional[RedisCache] = None,
    ):
        config = config or get_config()
        super().__init__(config.service_name, config.port, config=config)

        # Initialize components
        self.store = store or S3DocumentStore(
            self.config.s3_bucket,
            self.config.s3_object_key,
            endpoint_url=self.config.s3_endpoint_url,
            region_name=self.config.s3_region,
            force_path_style=self.config.s3_force_path_style,
            metrics=self.metrics,
        )
        self.cache = cache or RedisCache(
            self.config.redis_url,
            scan_count=self.config.cache_scan_count,
            socket_timeout=self.config.redis_socket_timeout,
            metrics=self.metrics,
        )
        self.records = RecordService(self.store, self.cache, namespace=self.config.cache_namespace)
        self.handlers = RecordHandlers(self.records, metrics=self.metrics)

        self._setup_records_routes()

    def _setup_records_routes(self):
        """Set up records-specific routes."""

        @self.app.get("/", response_model=ServiceInfoResponse)
        async def root():
            """Root endpoint."""
            return ServiceInfoResponse(
                service=self.service_name,
                message="Records Service - cached JSON record store",
                version="1.0.0",
                capabilities=["read_through_cache", "write_through_cache", "s3_persistence"]
            )

        @self.app.post("/data")
        async def add_data(request: Request):
            """Merge a JSON object into the service data."""
            return _respond(await self.handlers.add(await request.body()))

        @self.app.get("/data")
        async def read_data(key: Optional[str] = Query(None, description="Dotted key path, e.g. svc.port")):
            """Read the value at a dotted key path."""
            return _respond(await self.handlers.read(key))

        @self.app.get("/data/all")
        async def read_all_data():
            """Read the whole service data document."""
            return _respond(await self.handlers.read_all())

        @self.app.delete("/data")
        async def delete_data(key: Optional[str] = Query(None, description="Top-level field name")):
            """Delete a top-level field."""
            return _respond(await self.handlers.delete(key))

        @self.app.post("/cache/clear")
        @self.app.delete("/cache")
        async def clear_cache():
            """Clear every cached service data entry."""
            return _respond(await self.handlers.clear_cache())

        @self.app.get("/cache/keys")
        async def list_cache_keys():
            """List cached service data keys."""
            return _respond(await self.handlers.cache_keys())

    async def _check_dependencies(self):
        """Check records service dependencies."""
        return {
            "redis": "ok" if await self.cache.health_check() else "error",
            "s3": "ok" if await self.store.health_check() else "error",
        }

    async def start(self):
        """Start records service components."""
        await self.store.start()
        await self.cache.start()
        self.logger.info(
            "Records service started",
            bucket=self.config.s3_bucket,
            key=self.config.s3_object_key,
            namespace=self.config.cache_namespace
        )

    async def stop(self):
        """Stop records service components."""
        await self.cache.stop()
        await self.store.stop()
        self.logger.info("Records service stopped")


def create_app():
    """Create records service application."""
    service = RecordsService()
    return service.app


if __name__ == "__main__":
    service = RecordsService()
    service.run()
