"""Cache layer for ShopEase.

Provides read-through caching with the cache-aside pattern:
- Deterministic keys per resource category (KeyBuilder)
- TTLs chosen by data volatility (TtlPolicy)
- get-or-load over Redis with graceful degradation (CacheAside)
- Pattern-based cascading invalidation after writes (InvalidationEngine)
"""

from shopease.cache.accessor import CacheAside, CacheStatus
from shopease.cache.errors import (
    CacheError,
    ConfigurationError,
    InvalidParameterError,
    LoaderError,
    StoreUnavailable,
)
from shopease.cache.invalidation import (
    InvalidationEngine,
    InvalidationEvent,
    InvalidationKind,
    InvalidationResult,
    InvalidationRule,
)
from shopease.cache.keys import CacheKey, KeyBuilder
from shopease.cache.policy import ResourceCategory, TtlPolicy
from shopease.cache.service import CacheService, build_store
from shopease.cache.store import (
    CacheStore,
    InMemoryStore,
    NullStore,
    RedisStore,
    create_redis_client,
)

__all__ = [
    # Core
    "CacheAside",
    "CacheKey",
    "CacheService",
    "CacheStatus",
    "KeyBuilder",
    "ResourceCategory",
    "TtlPolicy",
    "build_store",
    # Invalidation
    "InvalidationEngine",
    "InvalidationEvent",
    "InvalidationKind",
    "InvalidationResult",
    "InvalidationRule",
    # Stores
    "CacheStore",
    "InMemoryStore",
    "NullStore",
    "RedisStore",
    "create_redis_client",
    # Errors
    "CacheError",
    "ConfigurationError",
    "InvalidParameterError",
    "LoaderError",
    "StoreUnavailable",
]
