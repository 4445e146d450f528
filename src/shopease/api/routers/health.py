"""Health check endpoints.

- /health - Liveness (always OK if the process is running)
- /ready  - Readiness, including cache store connectivity

A down cache store degrades the service rather than breaking it, so the
readiness probe reports "degraded" with 200.
"""

from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter

from shopease.api.deps import CacheServiceDep

router = APIRouter(tags=["health"])


@router.get("/health")
async def live() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@router.get("/ready")
async def ready(cache: CacheServiceDep) -> dict[str, Any]:
    """Readiness probe with cache store status."""
    start = time.monotonic()
    healthy = await cache.health_check()
    latency_ms = (time.monotonic() - start) * 1000

    return {
        "status": "healthy" if healthy else "degraded",
        "checks": {
            "cache": {
                "backend": cache.store.backend,
                "status": "up" if healthy else "down",
                "latency_ms": round(latency_ms, 2),
            }
        },
    }
