"""Cache service bundle.

One explicitly constructed value holding the key builder, TTL policy,
store, accessor and invalidation engine. Created once at startup and passed
to request handlers; tests build their own around an InMemoryStore or a
failing double.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from shopease.cache.accessor import CacheAside, CacheStatus, Loader, Params
from shopease.cache.errors import ConfigurationError
from shopease.cache.invalidation import (
    InvalidationEngine,
    InvalidationEvent,
    InvalidationKind,
    InvalidationResult,
)
from shopease.cache.keys import DEFAULT_NAMESPACE, CacheKey, KeyBuilder, ResourceId
from shopease.cache.policy import ResourceCategory, TtlPolicy
from shopease.cache.store import (
    CacheStore,
    InMemoryStore,
    NullStore,
    RedisStore,
    create_redis_client,
)
from shopease.config import Settings

logger = logging.getLogger(__name__)


def build_store(config: Settings) -> CacheStore:
    """Create the store selected by configuration."""
    if not config.cache_enabled:
        logger.info("Cache disabled, every read goes to the data source")
        return NullStore()

    if config.cache_backend == "memory":
        return InMemoryStore()

    if config.cache_backend == "redis":
        client = create_redis_client(
            config.redis_url,
            socket_timeout=max(config.cache_read_timeout, config.cache_write_timeout),
        )
        return RedisStore(
            client,
            read_timeout=config.cache_read_timeout,
            write_timeout=config.cache_write_timeout,
            delete_timeout=config.cache_invalidation_timeout,
            scan_count=config.cache_scan_count,
            namespace=config.cache_namespace,
        )

    raise ConfigurationError(f"Unknown cache backend: {config.cache_backend!r}")


@dataclass
class CacheService:
    """Read-through cache facade used by request handlers."""

    keys: KeyBuilder
    store: CacheStore
    accessor: CacheAside
    invalidator: InvalidationEngine

    @classmethod
    def create(
        cls,
        store: CacheStore,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        ttl_overrides: Mapping[ResourceCategory | str, int] | None = None,
        single_flight: bool = False,
    ) -> CacheService:
        keys = KeyBuilder(TtlPolicy(ttl_overrides), namespace=namespace)
        return cls(
            keys=keys,
            store=store,
            accessor=CacheAside(keys, store, single_flight=single_flight),
            invalidator=InvalidationEngine(keys, store),
        )

    @classmethod
    def from_settings(cls, config: Settings, store: CacheStore | None = None) -> CacheService:
        service = cls.create(
            store if store is not None else build_store(config),
            namespace=config.cache_namespace,
            ttl_overrides=config.cache_ttl_overrides,
            single_flight=config.cache_single_flight,
        )
        logger.info(
            f"Cache service ready (backend={service.store.backend}, "
            f"namespace={config.cache_namespace}, single_flight={config.cache_single_flight})"
        )
        return service

    @property
    def policy(self) -> TtlPolicy:
        return self.keys.policy

    def build_key(self, category: ResourceCategory | str, params: Params = None) -> CacheKey:
        return self.keys.build(category, params)

    def ttl_for(self, category: ResourceCategory | str) -> int:
        return self.keys.policy.ttl_for(category)

    async def get_or_load(
        self,
        category: ResourceCategory | str,
        params: Params,
        loader: Loader,
        *,
        refresh: bool = False,
    ) -> Any:
        return await self.accessor.get_or_load(category, params, loader, refresh=refresh)

    async def get_or_load_with_status(
        self,
        category: ResourceCategory | str,
        params: Params,
        loader: Loader,
        *,
        refresh: bool = False,
    ) -> tuple[Any, CacheStatus]:
        return await self.accessor.get_or_load_with_status(
            category, params, loader, refresh=refresh
        )

    async def invalidate(
        self,
        event: InvalidationEvent | InvalidationKind | str,
        resource_id: ResourceId | None = None,
        *,
        user_id: ResourceId | None = None,
    ) -> int:
        return await self.invalidator.invalidate(event, resource_id, user_id=user_id)

    async def invalidate_with_result(
        self,
        event: InvalidationEvent | InvalidationKind | str,
        resource_id: ResourceId | None = None,
        *,
        user_id: ResourceId | None = None,
    ) -> InvalidationResult:
        return await self.invalidator.invalidate_with_result(event, resource_id, user_id=user_id)

    async def invalidate_all(self) -> int:
        return await self.invalidator.invalidate_all()

    async def health_check(self) -> bool:
        """Check store connectivity."""
        return await self.store.ping()

    async def stats(self) -> dict[str, Any]:
        """Store statistics plus the active TTL table."""
        return {
            "namespace": self.keys.namespace,
            "single_flight": self.accessor.single_flight,
            "store": await self.store.info(),
            "ttl": self.policy.as_dict(),
        }

    async def close(self) -> None:
        await self.store.close()
