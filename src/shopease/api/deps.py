"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from shopease.cache.service import CacheService


def get_cache_service(request: Request) -> CacheService:
    """The CacheService created at startup."""
    return request.app.state.cache


CacheServiceDep = Annotated[CacheService, Depends(get_cache_service)]
