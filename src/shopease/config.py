from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="SHOPEASE_", env_file=".env", extra="ignore", populate_by_name=True
    )

    app_name: str = "shopease-cache"
    env: str = "dev"
    host: str = "0.0.0.0"  # nosec B104 - intentional for container deployments
    port: int = 4000

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")

    # Cache
    cache_enabled: bool = Field(default=True, validation_alias="CACHE_ENABLED")
    cache_backend: str = Field(default="redis", validation_alias="CACHE_BACKEND")  # redis or memory
    cache_namespace: str = Field(default="shopease", validation_alias="CACHE_NAMESPACE")
    cache_read_timeout: float = Field(default=0.1, validation_alias="CACHE_READ_TIMEOUT")
    cache_write_timeout: float = Field(default=0.1, validation_alias="CACHE_WRITE_TIMEOUT")
    cache_invalidation_timeout: float = Field(
        default=1.0, validation_alias="CACHE_INVALIDATION_TIMEOUT"
    )
    cache_scan_count: int = Field(default=500, validation_alias="CACHE_SCAN_COUNT")
    # Share one loader call between concurrent misses for the same key
    cache_single_flight: bool = Field(default=False, validation_alias="CACHE_SINGLE_FLIGHT")
    # JSON object, e.g. {"cart": 30, "categories": 7200}
    cache_ttl_overrides: dict[str, int] = Field(
        default_factory=dict, validation_alias="CACHE_TTL_OVERRIDES"
    )

    # Observability
    enable_metrics: bool = Field(default=True, validation_alias="ENABLE_METRICS")
    log_level: str = "INFO"
    log_json: bool = Field(default=False, validation_alias="LOG_JSON")


settings = Settings()
