"""Cache store adapters for ShopEase.

The cache core only needs get / set-with-TTL / delete-by-pattern:
- RedisStore: redis-py asyncio client, SCAN MATCH for pattern deletes
- InMemoryStore: single-process dict with monotonic expiry (dev, tests)
- NullStore: always misses (cache disabled)

Implementations raise StoreUnavailable on transport failures and timeouts.
Callers decide how to degrade.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from fnmatch import fnmatchcase
from typing import TYPE_CHECKING, Any, TypeVar, cast

import redis.asyncio as redis
from redis.exceptions import RedisError

from shopease.cache.errors import StoreUnavailable
from shopease.cache.keys import DEFAULT_NAMESPACE

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Keys deleted per DEL round trip during pattern deletes
DELETE_BATCH_SIZE = 500


class CacheStore(ABC):
    """Abstract key-value store used by the cache layer."""

    backend: str = "abstract"

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the stored bytes or None on a miss."""

    @abstractmethod
    async def set(self, key: str, value: bytes, ttl: int) -> bool:
        """Store bytes under key for ttl seconds."""

    @abstractmethod
    async def delete(self, key: str) -> int:
        """Delete a single key. Returns the number of keys removed."""

    @abstractmethod
    async def delete_pattern(self, pattern: str) -> int:
        """Delete every key matching a glob pattern. Returns the number removed."""

    @abstractmethod
    async def ping(self) -> bool:
        """Check connectivity. Never raises."""

    async def info(self) -> dict[str, Any]:
        """Diagnostic information about the store."""
        return {"backend": self.backend}

    async def close(self) -> None:
        """Release resources held by the store."""


# -----------------------------------------------------------------------------
# Redis
# -----------------------------------------------------------------------------


def create_redis_client(url: str, socket_timeout: float | None = None) -> Redis:
    """Create a pooled async Redis client storing raw bytes."""
    return redis.from_url(  # type: ignore[no-untyped-call]
        url,
        decode_responses=False,
        socket_timeout=socket_timeout,
        socket_connect_timeout=socket_timeout,
    )


class RedisStore(CacheStore):
    """Cache store backed by Redis.

    Every operation is bounded by a timeout. Pattern deletes use SCAN so a
    large keyspace never blocks the server the way KEYS would.
    """

    backend = "redis"

    def __init__(
        self,
        client: Redis,
        *,
        read_timeout: float = 0.1,
        write_timeout: float = 0.1,
        delete_timeout: float = 1.0,
        scan_count: int = 500,
        namespace: str = DEFAULT_NAMESPACE,
    ):
        self.client = client
        self.namespace = namespace
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self.delete_timeout = delete_timeout
        self.scan_count = scan_count

    async def _run(self, operation: str, awaitable: Awaitable[T], timeout: float) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except TimeoutError:
            raise StoreUnavailable(operation, f"timed out after {timeout}s") from None
        except RedisError as e:
            raise StoreUnavailable(operation, str(e)) from e

    async def get(self, key: str) -> bytes | None:
        value = await self._run("get", self.client.get(key), self.read_timeout)
        return cast(bytes | None, value)

    async def set(self, key: str, value: bytes, ttl: int) -> bool:
        result = await self._run("set", self.client.set(key, value, ex=ttl), self.write_timeout)
        return bool(result)

    async def delete(self, key: str) -> int:
        return cast(int, await self._run("delete", self.client.delete(key), self.write_timeout))

    async def _scan_and_delete(self, pattern: str) -> int:
        deleted = 0
        batch: list[bytes] = []
        async for key in self.client.scan_iter(match=pattern, count=self.scan_count):
            batch.append(key)
            if len(batch) >= DELETE_BATCH_SIZE:
                deleted += await self.client.delete(*batch)
                batch = []
        if batch:
            deleted += await self.client.delete(*batch)
        return deleted

    async def _count(self, pattern: str) -> int:
        count = 0
        async for _ in self.client.scan_iter(match=pattern, count=self.scan_count):
            count += 1
        return count

    async def delete_pattern(self, pattern: str) -> int:
        return await self._run(
            "delete_pattern", self._scan_and_delete(pattern), self.delete_timeout
        )

    async def ping(self) -> bool:
        try:
            return bool(
                await asyncio.wait_for(
                    cast(Awaitable[bool], self.client.ping()), timeout=self.read_timeout
                )
            )
        except Exception:
            return False

    async def info(self) -> dict[str, Any]:
        """Namespace key count plus hit ratio and memory from INFO.

        Hits and misses are server-wide; keys counts only this namespace.
        """
        try:
            stats = await self._run("info", self.client.info("stats"), self.read_timeout)
            memory = await self._run("info", self.client.info("memory"), self.read_timeout)
            keys = await self._run(
                "info", self._count(f"{self.namespace}:*"), self.delete_timeout
            )
        except StoreUnavailable as e:
            return {"backend": self.backend, "status": "disconnected", "error": str(e)}

        hits = int(stats.get("keyspace_hits", 0))
        misses = int(stats.get("keyspace_misses", 0))
        total = hits + misses
        return {
            "backend": self.backend,
            "status": "connected",
            "namespace": self.namespace,
            "keys": keys,
            "memory": memory.get("used_memory_human"),
            "hits": hits,
            "misses": misses,
            "hit_ratio": hits / total if total else 0.0,
        }

    async def close(self) -> None:
        await self.client.aclose()


# -----------------------------------------------------------------------------
# In-memory
# -----------------------------------------------------------------------------


class InMemoryStore(CacheStore):
    """Process-local store with TTL expiry.

    Suitable for single-instance development and tests. Pattern deletes
    scan the whole dict, so no reverse index is kept.
    """

    backend = "memory"

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[bytes, float]] = {}
        self.hits = 0
        self.misses = 0

    def _live(self, key: str) -> bytes | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    async def get(self, key: str) -> bytes | None:
        value = self._live(key)
        if value is None:
            self.misses += 1
        else:
            self.hits += 1
        return value

    async def set(self, key: str, value: bytes, ttl: int) -> bool:
        self._entries[key] = (value, self._clock() + ttl)
        return True

    async def delete(self, key: str) -> int:
        return 1 if self._entries.pop(key, None) is not None else 0

    async def delete_pattern(self, pattern: str) -> int:
        matched = [
            key
            for key in list(self._entries)
            if fnmatchcase(key, pattern) and self._live(key) is not None
        ]
        for key in matched:
            del self._entries[key]
        return len(matched)

    async def ping(self) -> bool:
        return True

    def keys(self) -> list[str]:
        """Live keys, sorted."""
        return sorted(key for key in list(self._entries) if self._live(key) is not None)

    def ttl(self, key: str) -> float | None:
        """Remaining lifetime of a key in seconds, None if absent."""
        entry = self._entries.get(key)
        if entry is None or self._live(key) is None:
            return None
        return entry[1] - self._clock()

    async def info(self) -> dict[str, Any]:
        total = self.hits + self.misses
        return {
            "backend": self.backend,
            "status": "connected",
            "keys": len(self.keys()),
            "hits": self.hits,
            "misses": self.misses,
            "hit_ratio": self.hits / total if total else 0.0,
        }

    async def close(self) -> None:
        self._entries.clear()


class NullStore(CacheStore):
    """Store that never holds anything. Every read is a miss."""

    backend = "null"

    async def get(self, key: str) -> bytes | None:
        return None

    async def set(self, key: str, value: bytes, ttl: int) -> bool:
        return False

    async def delete(self, key: str) -> int:
        return 0

    async def delete_pattern(self, pattern: str) -> int:
        return 0

    async def ping(self) -> bool:
        return True

    async def info(self) -> dict[str, Any]:
        return {"backend": self.backend, "status": "disabled"}
