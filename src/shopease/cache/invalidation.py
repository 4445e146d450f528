"""Pattern-based cache invalidation.

Each mutation path calls the engine once, after its commit, with the event
describing what changed. The engine expands the event into glob patterns
and deletes every matching key in declared order.

Deletes are not transactional. If the store fails partway through, the
remaining patterns are still attempted and whatever survives expires with
its TTL, so staleness is bounded by one TTL window.

Example:
    engine = InvalidationEngine(keys, store)

    await repository.update_product(42, {"price": 12})
    await engine.invalidate("productChanged", 42)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from shopease.cache.errors import ConfigurationError, InvalidParameterError, StoreUnavailable
from shopease.cache.keys import TOP_LEVEL_PREFIXES, KeyBuilder, ResourceId, normalize_identifier
from shopease.cache.store import CacheStore
from shopease.events.schemas import ResourceChanged, ResourceType
from shopease.observability.metrics import (
    record_cache_operation,
    record_invalidation,
    record_store_error,
)

logger = logging.getLogger(__name__)

# Placeholder used when an event omits an identifier its rule can widen
WILDCARD = "*"


class InvalidationKind(str, Enum):
    """Type of resource change that invalidates cached data."""

    PRODUCT_CHANGED = "productChanged"
    CATEGORY_CHANGED = "categoryChanged"
    USER_CHANGED = "userChanged"
    ORDER_CHANGED = "orderChanged"
    CART_CHANGED = "cartChanged"
    REVIEW_CHANGED = "reviewChanged"
    PAYMENT_CHANGED = "paymentChanged"
    INVALIDATE_ALL = "invalidateAll"


@dataclass(frozen=True, slots=True)
class InvalidationRule:
    """Patterns (relative to the namespace) deleted for one event kind.

    Templates may reference {id} and {user_id}.
    """

    kind: InvalidationKind
    templates: tuple[str, ...]
    id_required: bool = True


RULES: Mapping[InvalidationKind, InvalidationRule] = MappingProxyType(
    {
        rule.kind: rule
        for rule in (
            InvalidationRule(
                InvalidationKind.PRODUCT_CHANGED,
                (
                    "product:{id}",
                    "product:{id}:*",
                    "products:*",
                    "search:*",
                    "products:suggestions:*",
                    "products:categories*",
                    "category:*",
                ),
            ),
            InvalidationRule(
                InvalidationKind.CATEGORY_CHANGED,
                (
                    "category:{id}:*",
                    "products:categories*",
                    "products:list:*",
                    "products:search:*",
                ),
                id_required=False,
            ),
            InvalidationRule(
                InvalidationKind.USER_CHANGED,
                ("user:{id}:*",),
            ),
            InvalidationRule(
                InvalidationKind.ORDER_CHANGED,
                (
                    "order:{id}",
                    "order:{id}:*",
                    "user:{user_id}:order:*",
                    "orders:*",
                    "payment:{id}:*",
                ),
            ),
            InvalidationRule(
                InvalidationKind.CART_CHANGED,
                ("cart:{id}:*",),
            ),
            InvalidationRule(
                InvalidationKind.REVIEW_CHANGED,
                (
                    "reviews:product:{id}:*",
                    "product:{id}",
                    "product:{id}:*",
                ),
            ),
            InvalidationRule(
                InvalidationKind.PAYMENT_CHANGED,
                (
                    "payment:{id}:*",
                    "order:{id}",
                    "order:{id}:*",
                ),
            ),
            InvalidationRule(
                InvalidationKind.INVALIDATE_ALL,
                tuple(f"{prefix}:*" for prefix in TOP_LEVEL_PREFIXES),
                id_required=False,
            ),
        )
    }
)

_missing = set(InvalidationKind) - set(RULES)
if _missing:
    raise ConfigurationError(f"No invalidation rule for: {sorted(k.value for k in _missing)}")

_KIND_BY_RESOURCE: Mapping[ResourceType, InvalidationKind] = MappingProxyType(
    {
        ResourceType.PRODUCT: InvalidationKind.PRODUCT_CHANGED,
        ResourceType.CATEGORY: InvalidationKind.CATEGORY_CHANGED,
        ResourceType.USER: InvalidationKind.USER_CHANGED,
        ResourceType.ORDER: InvalidationKind.ORDER_CHANGED,
        ResourceType.CART: InvalidationKind.CART_CHANGED,
        ResourceType.REVIEW: InvalidationKind.REVIEW_CHANGED,
        ResourceType.PAYMENT: InvalidationKind.PAYMENT_CHANGED,
    }
)


def resolve_kind(kind: InvalidationKind | str) -> InvalidationKind:
    """Resolve an event kind from its enum member or wire name.

    Raises:
        ConfigurationError: If the name is not a known event kind.
    """
    if isinstance(kind, InvalidationKind):
        return kind
    try:
        return InvalidationKind(kind)
    except ValueError:
        raise ConfigurationError(f"Unknown invalidation event: {kind!r}") from None


@dataclass(frozen=True, slots=True)
class InvalidationEvent:
    """A resource change to invalidate.

    resource_id identifies the changed resource (the user for cart changes,
    the product for review changes, the order for payment changes).
    user_id is the owning customer of an order.
    """

    kind: InvalidationKind
    resource_id: ResourceId | None = None
    user_id: ResourceId | None = None

    @classmethod
    def product_changed(cls, product_id: ResourceId) -> InvalidationEvent:
        return cls(InvalidationKind.PRODUCT_CHANGED, product_id)

    @classmethod
    def category_changed(cls, category_id: ResourceId | None = None) -> InvalidationEvent:
        return cls(InvalidationKind.CATEGORY_CHANGED, category_id)

    @classmethod
    def user_changed(cls, user_id: ResourceId) -> InvalidationEvent:
        return cls(InvalidationKind.USER_CHANGED, user_id)

    @classmethod
    def order_changed(
        cls, order_id: ResourceId, user_id: ResourceId | None = None
    ) -> InvalidationEvent:
        return cls(InvalidationKind.ORDER_CHANGED, order_id, user_id)

    @classmethod
    def cart_changed(cls, user_id: ResourceId) -> InvalidationEvent:
        return cls(InvalidationKind.CART_CHANGED, user_id)

    @classmethod
    def review_changed(cls, product_id: ResourceId) -> InvalidationEvent:
        return cls(InvalidationKind.REVIEW_CHANGED, product_id)

    @classmethod
    def payment_changed(cls, order_id: ResourceId) -> InvalidationEvent:
        return cls(InvalidationKind.PAYMENT_CHANGED, order_id)

    @classmethod
    def invalidate_all(cls) -> InvalidationEvent:
        return cls(InvalidationKind.INVALIDATE_ALL)


@dataclass(frozen=True, slots=True)
class InvalidationResult:
    """Outcome of one invalidation. failed lists patterns the store rejected."""

    event: InvalidationEvent
    patterns: tuple[str, ...]
    deleted: int
    failed: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.failed


class InvalidationEngine:
    """Expands invalidation events into patterns and deletes matching keys."""

    def __init__(self, keys: KeyBuilder, store: CacheStore):
        self.keys = keys
        self.store = store

    def patterns_for(self, event: InvalidationEvent) -> list[str]:
        """Namespace-qualified patterns for an event, in declared order.

        Raises:
            InvalidParameterError: The rule needs an id the event lacks, or an
                identifier is malformed.
        """
        rule = RULES[event.kind]
        if rule.id_required and event.resource_id is None:
            raise InvalidParameterError(f"{event.kind.value} requires a resource id")

        substitutions = {
            "id": self._identifier("resource_id", event.resource_id),
            "user_id": self._identifier("user_id", event.user_id),
        }

        patterns: list[str] = []
        for template in rule.templates:
            pattern = self.keys.pattern(template.format(**substitutions))
            if pattern not in patterns:
                patterns.append(pattern)
        return patterns

    async def invalidate(
        self,
        event: InvalidationEvent | InvalidationKind | str,
        resource_id: ResourceId | None = None,
        *,
        user_id: ResourceId | None = None,
    ) -> int:
        """Delete every cache entry affected by a change.

        Accepts an InvalidationEvent, or an event kind plus identifiers.
        Store failures are logged per pattern and never raised.

        Returns:
            Number of keys deleted.

        Raises:
            ConfigurationError: Unknown event kind or missing/malformed ids.
        """
        result = await self.invalidate_with_result(event, resource_id, user_id=user_id)
        return result.deleted

    async def invalidate_with_result(
        self,
        event: InvalidationEvent | InvalidationKind | str,
        resource_id: ResourceId | None = None,
        *,
        user_id: ResourceId | None = None,
    ) -> InvalidationResult:
        """Same as invalidate, also reporting the patterns that failed."""
        if not isinstance(event, InvalidationEvent):
            event = InvalidationEvent(resolve_kind(event), resource_id, user_id)

        patterns = self.patterns_for(event)
        if event.kind == InvalidationKind.INVALIDATE_ALL:
            logger.warning(f"Invalidating ALL cache entries ({len(patterns)} patterns)")
        else:
            logger.info(
                f"Invalidating {event.kind.value} {event.resource_id}: {', '.join(patterns)}"
            )

        deleted = 0
        failed: list[str] = []
        for pattern in patterns:
            start = time.perf_counter()
            try:
                deleted += await self.store.delete_pattern(pattern)
            except StoreUnavailable as e:
                failed.append(pattern)
                record_store_error("delete_pattern")
                logger.warning(f"Cache invalidation failed for pattern {pattern}: {e}")
            finally:
                record_cache_operation("delete_pattern", time.perf_counter() - start)

        record_invalidation(event.kind.value, deleted)
        if failed:
            logger.warning(
                f"{event.kind.value}: {len(failed)}/{len(patterns)} patterns not invalidated, "
                "stale entries expire with their TTL"
            )
        logger.debug(f"{event.kind.value}: deleted {deleted} keys")
        return InvalidationResult(event, tuple(patterns), deleted, tuple(failed))

    async def invalidate_all(self) -> int:
        """Delete every key under the known top-level prefixes."""
        return await self.invalidate(InvalidationEvent.invalidate_all())

    async def handle_event(self, event: ResourceChanged) -> None:
        """Event bus handler invalidating caches for a domain change."""
        kind = _KIND_BY_RESOURCE[event.resource]
        await self.invalidate(InvalidationEvent(kind, event.resource_id, event.user_id))

    @staticmethod
    def _identifier(name: str, value: ResourceId | None) -> str:
        if value is None:
            return WILDCARD
        return normalize_identifier(name, value)
