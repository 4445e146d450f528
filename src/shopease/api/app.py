"""FastAPI application factory for the ShopEase cache service.

Creates the application with:
- Health and readiness probes
- Cache statistics, key preview and invalidation endpoints
- Prometheus metrics
- Lifecycle management for the cache store connection
- ORJSON for fast JSON serialization
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

from fastapi import FastAPI
from fastapi.responses import ORJSONResponse
from starlette.types import ExceptionHandler

from shopease.api.errors import configuration_error_handler, generic_exception_handler
from shopease.api.middleware import RequestIdMiddleware
from shopease.api.routers import cache as cache_router
from shopease.api.routers import health
from shopease.api.routers import metrics as metrics_router
from shopease.cache.errors import ConfigurationError
from shopease.cache.service import CacheService
from shopease.config import Settings, settings
from shopease.observability import configure_logging
from shopease.observability.metrics import get_metrics

logger = logging.getLogger(__name__)


def create_app(
    cache_service: CacheService | None = None,
    config: Settings = settings,
) -> FastAPI:
    """Create and configure the FastAPI application.

    When cache_service is given it is used as-is and left open on shutdown;
    otherwise one is built from configuration at startup and closed on
    shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(json_format=config.log_json, level=config.log_level)
        get_metrics().initialize(enabled=config.enable_metrics)

        logger.info(f"Starting {config.app_name} ({config.env})")
        owned = cache_service is None
        app.state.cache = cache_service or CacheService.from_settings(config)

        yield

        logger.info(f"Shutting down {config.app_name}")
        if owned:
            await app.state.cache.close()

    app = FastAPI(
        title="ShopEase Cache",
        description="Read-through cache layer for the ShopEase storefront",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(
        ConfigurationError, cast(ExceptionHandler, configuration_error_handler)
    )
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))

    app.include_router(health.router)
    app.include_router(cache_router.router)
    if config.enable_metrics:
        app.include_router(metrics_router.router)

    return app
