"""
Shared configuration management for the Records Service.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="RECORDS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = Field(default="local", description="Deployment environment")
    log_level: str = Field(default="info", description="Log level")

    # Cache tier
    redis_url: str = Field(default="redis://localhost:6379/0")
    redis_socket_timeout: int = Field(default=5)
    cache_namespace: str = Field(default="service_data::")
    cache_scan_count: int = Field(default=100, ge=1, description="SCAN page size")

    # Durable store
    s3_endpoint_url: Optional[str] = Field(default=None, description="e.g. http://localhost:4566 for LocalStack")
    s3_region: str = Field(default="us-east-1")
    s3_force_path_style: bool = Field(default=True)
    s3_bucket: str = Field(default="my-local-bucket")
    s3_object_key: str = Field(default="service_data.json")


class RecordsConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str = "records"
    port: int = 8020
    host: str = "0.0.0.0"


def get_config(**overrides) -> RecordsConfig:
    """Get configuration for the records service."""
    return RecordsConfig(**overrides)
