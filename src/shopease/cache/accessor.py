"""Cache-aside accessor.

Read path:
1. Build the key for (category, params)
2. Try the store; a hit returns without touching the data source
3. On a miss call the loader, store its result with the category TTL

The store is strictly an optimization: read failures count as misses and
write failures are logged and dropped. Loader failures propagate unchanged
and are never cached. A value is only stored when decoding it yields the
same types the loader returned, so a hit never differs from a miss.

Concurrent misses for the same key each call the loader ("stampede") unless
single_flight is enabled, in which case they share one in-flight load.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from functools import partial
from typing import Any

import orjson

from shopease.cache.errors import StoreUnavailable
from shopease.cache.keys import CacheKey, CacheParams, KeyBuilder
from shopease.cache.policy import ResourceCategory
from shopease.cache.store import CacheStore
from shopease.observability.metrics import (
    record_cache_hit,
    record_cache_miss,
    record_cache_operation,
    record_store_error,
)

logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[Any]]
Params = CacheParams | Mapping[str, Any] | None

_MISS = object()


class CacheStatus(str, Enum):
    """How a read was served. Values match the X-Cache header."""

    HIT = "HIT"
    MISS = "MISS"
    REFRESH = "REFRESH"


def round_trips(value: Any, decoded: Any) -> bool:
    """True when decoded has the same structure and types as value."""
    if type(value) is not type(decoded):
        return False
    if isinstance(value, dict):
        return value.keys() == decoded.keys() and all(
            round_trips(value[name], decoded[name]) for name in value
        )
    if isinstance(value, list):
        return len(value) == len(decoded) and all(
            round_trips(item, other) for item, other in zip(value, decoded, strict=True)
        )
    return bool(value == decoded)


class CacheAside:
    """get-or-load over a CacheStore."""

    def __init__(
        self,
        keys: KeyBuilder,
        store: CacheStore,
        *,
        single_flight: bool = False,
        cache_none: bool = False,
    ):
        self.keys = keys
        self.store = store
        self.single_flight = single_flight
        self.cache_none = cache_none
        self._inflight: dict[str, asyncio.Future[Any]] = {}

    async def get_or_load(
        self,
        category: ResourceCategory | str,
        params: Params,
        loader: Loader,
        *,
        refresh: bool = False,
    ) -> Any:
        """Return the cached value for (category, params), loading it on a miss.

        With refresh=True the store is not read; the loader runs and its
        result replaces the entry (the "Cache-Control: no-cache" path).

        Raises:
            ConfigurationError: Unknown category or malformed params.
            Exception: Whatever the loader raises, unchanged.
        """
        value, _ = await self.get_or_load_with_status(category, params, loader, refresh=refresh)
        return value

    async def get_or_load_with_status(
        self,
        category: ResourceCategory | str,
        params: Params,
        loader: Loader,
        *,
        refresh: bool = False,
    ) -> tuple[Any, CacheStatus]:
        """Same as get_or_load, also reporting whether the store served it."""
        return await self._serve(self.keys.build(category, params), loader, refresh)

    async def get_or_load_key(
        self, cache_key: CacheKey, loader: Loader, *, refresh: bool = False
    ) -> Any:
        """Same as get_or_load for a pre-built key."""
        value, _ = await self._serve(cache_key, loader, refresh)
        return value

    async def _serve(
        self, cache_key: CacheKey, loader: Loader, refresh: bool
    ) -> tuple[Any, CacheStatus]:
        category = cache_key.category.value

        if refresh:
            logger.debug(f"Cache REFRESH: {cache_key.key}")
            return await self._load_and_store(cache_key, loader), CacheStatus.REFRESH

        cached = await self._read(cache_key.key)
        if cached is not _MISS:
            record_cache_hit(category)
            logger.debug(f"Cache HIT: {cache_key.key}")
            return cached, CacheStatus.HIT

        record_cache_miss(category)
        logger.debug(f"Cache MISS: {cache_key.key}")

        if self.single_flight:
            return await self._load_shared(cache_key, loader), CacheStatus.MISS
        return await self._load_and_store(cache_key, loader), CacheStatus.MISS

    async def evict(self, category: ResourceCategory | str, params: Params) -> bool:
        """Delete one concrete entry. Best effort."""
        cache_key = self.keys.build(category, params)
        try:
            return await self.store.delete(cache_key.key) > 0
        except StoreUnavailable as e:
            record_store_error("delete")
            logger.warning(f"Cache delete failed for {cache_key.key}: {e}")
            return False

    @property
    def inflight_count(self) -> int:
        """Number of loads currently shared between callers."""
        return len(self._inflight)

    async def _read(self, key: str) -> Any:
        start = time.perf_counter()
        try:
            raw = await self.store.get(key)
        except StoreUnavailable as e:
            record_store_error("get")
            logger.warning(f"Cache read failed for {key}, loading from source: {e}")
            return _MISS
        finally:
            record_cache_operation("get", time.perf_counter() - start)

        if raw is None:
            return _MISS

        try:
            return orjson.loads(raw)
        except orjson.JSONDecodeError:
            logger.warning(f"Discarding undecodable cache entry {key}")
            return _MISS

    async def _write(self, cache_key: CacheKey, value: Any) -> None:
        if value is None and not self.cache_none:
            return

        try:
            payload = orjson.dumps(value)
        except TypeError as e:
            logger.warning(f"Result for {cache_key.key} is not serializable, not caching: {e}")
            return

        if not round_trips(value, orjson.loads(payload)):
            logger.warning(
                f"Result for {cache_key.key} does not survive JSON decoding "
                f"({type(value).__name__}), not caching"
            )
            return

        start = time.perf_counter()
        try:
            await self.store.set(cache_key.key, payload, cache_key.ttl)
            logger.debug(f"Cache SET: {cache_key.key} (TTL: {cache_key.ttl}s)")
        except StoreUnavailable as e:
            record_store_error("set")
            logger.warning(f"Cache write failed for {cache_key.key}: {e}")
        finally:
            record_cache_operation("set", time.perf_counter() - start)

    async def _load_and_store(self, cache_key: CacheKey, loader: Loader) -> Any:
        value = await loader()
        await self._write(cache_key, value)
        return value

    async def _load_shared(self, cache_key: CacheKey, loader: Loader) -> Any:
        # The load runs in its own task; cancelling one waiter never cancels it
        task = self._inflight.get(cache_key.key)
        if task is None:
            task = asyncio.ensure_future(self._load_and_store(cache_key, loader))
            self._inflight[cache_key.key] = task
            task.add_done_callback(partial(self._forget, cache_key.key))
        return await asyncio.shield(task)

    def _forget(self, key: str, task: asyncio.Future[Any]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark retrieved so a load whose waiters all left doesn't log a warning
        if not task.cancelled():
            task.exception()
