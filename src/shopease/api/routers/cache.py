"""Cache administration endpoints.

Provides:
- Store statistics and the active TTL table
- Key preview for a category and its parameters
- Explicit invalidation by event kind (operational recovery)
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel

from shopease.api.deps import CacheServiceDep
from shopease.cache.invalidation import InvalidationEvent, resolve_kind

router = APIRouter(prefix="/cache", tags=["cache"])


class CacheStats(BaseModel):
    """Cache statistics."""

    timestamp: datetime
    namespace: str
    single_flight: bool
    store: dict[str, Any]
    ttl: dict[str, int]


class CacheKeyPreview(BaseModel):
    """Key and TTL a read with these parameters would use."""

    category: str
    key: str
    ttl: int


class InvalidateRequest(BaseModel):
    """Invalidation request body."""

    event: str
    resource_id: int | str | None = None
    user_id: int | str | None = None


class InvalidationResponse(BaseModel):
    """Result of an invalidation. failed_patterns were not deleted."""

    event: str
    patterns: list[str]
    deleted_count: int
    failed_patterns: list[str]
    timestamp: datetime


@router.get("/stats", response_model=CacheStats)
async def get_cache_stats(cache: CacheServiceDep) -> CacheStats:
    """Store statistics (keys, hit ratio) and TTL per category."""
    stats = await cache.stats()
    return CacheStats(timestamp=datetime.now(UTC), **stats)


@router.get("/keys/{category}", response_model=CacheKeyPreview)
async def preview_key(category: str, request: Request, cache: CacheServiceDep) -> CacheKeyPreview:
    """Build the key for a category from query parameters."""
    cache_key = cache.build_key(category, dict(request.query_params))
    return CacheKeyPreview(category=cache_key.category.value, key=cache_key.key, ttl=cache_key.ttl)


@router.post("/invalidate", response_model=InvalidationResponse)
async def invalidate(body: InvalidateRequest, cache: CacheServiceDep) -> InvalidationResponse:
    """Invalidate every entry affected by a resource change.

    Use event "invalidateAll" after bulk data corrections.
    """
    event = InvalidationEvent(resolve_kind(body.event), body.resource_id, body.user_id)
    result = await cache.invalidate_with_result(event)
    return InvalidationResponse(
        event=event.kind.value,
        patterns=list(result.patterns),
        deleted_count=result.deleted,
        failed_patterns=list(result.failed),
        timestamp=datetime.now(UTC),
    )
