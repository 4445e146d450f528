"""Tests for pattern-based cache invalidation."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from shopease.cache.accessor import CacheAside
from shopease.cache.errors import ConfigurationError, InvalidParameterError, StoreUnavailable
from shopease.cache.invalidation import (
    RULES,
    InvalidationEngine,
    InvalidationEvent,
    InvalidationKind,
    resolve_kind,
)
from shopease.cache.keys import KeyBuilder
from shopease.cache.policy import ResourceCategory
from shopease.cache.store import InMemoryStore
from shopease.events.schemas import EventType, ResourceChanged, ResourceType


class PartiallyFailingStore(InMemoryStore):
    """In-memory store that cannot delete patterns containing a marker."""

    def __init__(self, failing: str) -> None:
        super().__init__()
        self.failing = failing
        self.attempted: list[str] = []

    async def delete_pattern(self, pattern: str) -> int:
        self.attempted.append(pattern)
        if self.failing in pattern:
            raise StoreUnavailable("delete_pattern", "timed out")
        return await super().delete_pattern(pattern)


@pytest.fixture
def keys() -> KeyBuilder:
    return KeyBuilder()


@pytest.fixture
def engine(keys: KeyBuilder, store: InMemoryStore) -> InvalidationEngine:
    return InvalidationEngine(keys, store)


async def fill(keys: KeyBuilder, store: InMemoryStore, entries: list[tuple[str, dict]]) -> None:
    for category, params in entries:
        cache_key = keys.build(category, params)
        await store.set(cache_key.key, b"{}", cache_key.ttl)


class TestPatterns:
    """Test event to pattern expansion."""

    def test_product_changed(self, engine: InvalidationEngine) -> None:
        assert engine.patterns_for(InvalidationEvent.product_changed(42)) == [
            "shopease:product:42",
            "shopease:product:42:*",
            "shopease:products:*",
            "shopease:search:*",
            "shopease:products:suggestions:*",
            "shopease:products:categories*",
            "shopease:category:*",
        ]

    def test_order_changed_with_user(self, engine: InvalidationEngine) -> None:
        assert engine.patterns_for(InvalidationEvent.order_changed(1001, user_id=7)) == [
            "shopease:order:1001",
            "shopease:order:1001:*",
            "shopease:user:7:order:*",
            "shopease:orders:*",
            "shopease:payment:1001:*",
        ]

    def test_order_changed_without_user_widens(self, engine: InvalidationEngine) -> None:
        patterns = engine.patterns_for(InvalidationEvent.order_changed(1001))
        assert "shopease:user:*:order:*" in patterns

    def test_category_changed_without_id(self, engine: InvalidationEngine) -> None:
        assert engine.patterns_for(InvalidationEvent.category_changed()) == [
            "shopease:category:*:*",
            "shopease:products:categories*",
            "shopease:products:list:*",
            "shopease:products:search:*",
        ]

    def test_invalidate_all_covers_every_prefix(
        self, engine: InvalidationEngine, keys: KeyBuilder
    ) -> None:
        patterns = engine.patterns_for(InvalidationEvent.invalidate_all())
        assert patterns == [f"shopease:{prefix}:*" for prefix in keys.top_level_prefixes()]

    def test_namespace_applied(self, store: InMemoryStore) -> None:
        engine = InvalidationEngine(KeyBuilder(namespace="staging"), store)
        assert engine.patterns_for(InvalidationEvent.cart_changed(7)) == ["staging:cart:7:*"]

    def test_missing_required_id(self, engine: InvalidationEngine) -> None:
        with pytest.raises(InvalidParameterError):
            engine.patterns_for(InvalidationEvent(InvalidationKind.PRODUCT_CHANGED))

    def test_glob_characters_in_id_rejected(self, engine: InvalidationEngine) -> None:
        with pytest.raises(InvalidParameterError):
            engine.patterns_for(InvalidationEvent.user_changed("7*"))

    def test_every_kind_has_rule(self) -> None:
        assert set(RULES) == set(InvalidationKind)

    def test_resolve_unknown_kind(self) -> None:
        with pytest.raises(ConfigurationError):
            resolve_kind("productExploded")


class TestInvalidate:
    """Test deletion of affected entries."""

    async def test_price_change_refreshes_every_product_view(
        self, keys: KeyBuilder, store: InMemoryStore, engine: InvalidationEngine
    ) -> None:
        """After an update no cached read still shows the old price."""
        accessor = CacheAside(keys, store)
        product = {"id": 42, "price": 10}

        async def load_product() -> dict[str, Any]:
            return dict(product)

        async def load_list() -> dict[str, Any]:
            return {"products": [dict(product)], "page": 1}

        async def load_search() -> dict[str, Any]:
            return {"products": [dict(product)], "total": 1}

        reads = [
            ("product-detail", {"id": 42}, load_product),
            ("product-list", {"page": 1}, load_list),
            ("product-search", {"query": "laptop", "min_price": 5}, load_search),
        ]
        for category, params, loader in reads:
            await accessor.get_or_load(category, params, loader)

        product["price"] = 12
        await engine.invalidate("productChanged", 42)

        assert (await accessor.get_or_load(*reads[0]))["price"] == 12
        assert (await accessor.get_or_load(*reads[1]))["products"][0]["price"] == 12
        assert (await accessor.get_or_load(*reads[2]))["products"][0]["price"] == 12

    async def test_product_change_clears_every_product_view(
        self, keys: KeyBuilder, store: InMemoryStore, engine: InvalidationEngine
    ) -> None:
        await fill(
            keys,
            store,
            [
                ("product-detail", {"id": 42}),
                ("product-list", {"page": 1}),
                ("product-list", {"page": 2, "category": "Electronics"}),
                ("product-search", {"query": "laptop"}),
                ("product-search", {"query": "laptop", "page": 3}),
                ("search-results", {"query": "laptop"}),
                ("suggestions", {"query": "lap"}),
                ("categories", {}),
                ("category-products", {"category_id": 3}),
                ("cart", {"user_id": 7}),
            ],
        )

        assert await engine.invalidate("productChanged", 42) == 9
        assert store.keys() == ["shopease:cart:7:items"]

    async def test_product_id_prefix_not_overmatched(
        self, keys: KeyBuilder, store: InMemoryStore, engine: InvalidationEngine
    ) -> None:
        await fill(keys, store, [("product-detail", {"id": 4}), ("product-detail", {"id": 42})])

        await engine.invalidate(InvalidationEvent.product_changed(4))

        assert store.keys() == ["shopease:product:42"]

    async def test_returns_deleted_count(
        self, keys: KeyBuilder, store: InMemoryStore, engine: InvalidationEngine
    ) -> None:
        await fill(
            keys,
            store,
            [
                ("cart", {"user_id": 7}),
                ("cart-total", {"user_id": 7}),
                ("cart", {"user_id": 8}),
            ],
        )

        assert await engine.invalidate("cartChanged", 7) == 2
        assert store.keys() == ["shopease:cart:8:items"]

    async def test_order_change_without_user_clears_all_order_stats(
        self, keys: KeyBuilder, store: InMemoryStore, engine: InvalidationEngine
    ) -> None:
        await fill(
            keys,
            store,
            [
                ("order-stats", {"user_id": 7}),
                ("order-stats", {"user_id": 8}),
                ("user-profile", {"user_id": 7}),
                ("order-detail", {"id": 1001}),
                ("order-list", {"user_id": 7}),
                ("payment-status", {"order_id": 1001}),
            ],
        )

        await engine.invalidate(InvalidationKind.ORDER_CHANGED, 1001)

        assert store.keys() == ["shopease:user:7:profile"]

    async def test_review_change_refreshes_product(
        self, keys: KeyBuilder, store: InMemoryStore, engine: InvalidationEngine
    ) -> None:
        await fill(
            keys,
            store,
            [
                ("reviews", {"product_id": 42}),
                ("review-stats", {"product_id": 42}),
                ("product-detail", {"id": 42}),
                ("reviews", {"product_id": 43}),
            ],
        )

        await engine.invalidate(InvalidationEvent.review_changed(42))

        assert store.keys() == ["shopease:reviews:product:43:p1:l20"]

    async def test_invalidate_all_clears_every_category(
        self,
        keys: KeyBuilder,
        store: InMemoryStore,
        engine: InvalidationEngine,
        sample_params: dict[ResourceCategory, dict[str, Any]],
    ) -> None:
        await fill(keys, store, list(sample_params.items()))
        await store.set("unrelated:key", b"1", 60)

        deleted = await engine.invalidate_all()

        assert deleted == len(sample_params)
        assert store.keys() == ["unrelated:key"]

    async def test_unknown_event_raises(self, engine: InvalidationEngine) -> None:
        with pytest.raises(ConfigurationError):
            await engine.invalidate("productExploded", 1)


class TestPartialFailure:
    """Store failures never abort the remaining patterns."""

    async def test_remaining_patterns_still_attempted(self, keys: KeyBuilder) -> None:
        store = PartiallyFailingStore(failing=":search:")
        engine = InvalidationEngine(keys, store)
        await fill(
            keys,
            store,
            [("product-detail", {"id": 42}), ("category-products", {"category_id": 3})],
        )
        await store.set("shopease:search:all:x:p1:l20", b"{}", 60)

        deleted = await engine.invalidate("productChanged", 42)

        assert deleted == 2
        assert store.attempted == engine.patterns_for(InvalidationEvent.product_changed(42))
        assert store.keys() == ["shopease:search:all:x:p1:l20"]

    async def test_unavailable_store_returns_zero(self, keys: KeyBuilder) -> None:
        store = PartiallyFailingStore(failing="shopease")
        engine = InvalidationEngine(keys, store)

        assert await engine.invalidate("userChanged", 7) == 0

    async def test_result_lists_failed_patterns(self, keys: KeyBuilder) -> None:
        store = PartiallyFailingStore(failing=":search:")
        engine = InvalidationEngine(keys, store)
        await fill(keys, store, [("product-detail", {"id": 42})])

        result = await engine.invalidate_with_result("productChanged", 42)

        assert result.deleted == 1
        assert result.failed == ("shopease:search:*",)
        assert not result.ok
        assert list(result.patterns) == store.attempted

    async def test_result_ok_when_every_pattern_succeeds(
        self, keys: KeyBuilder, store: InMemoryStore, engine: InvalidationEngine
    ) -> None:
        await fill(keys, store, [("cart", {"user_id": 7})])

        result = await engine.invalidate_with_result(InvalidationEvent.cart_changed(7))

        assert result.ok
        assert result.deleted == 1
        assert result.event == InvalidationEvent(InvalidationKind.CART_CHANGED, 7)


class TestHandleEvent:
    """Test event bus integration."""

    async def test_cart_event(
        self, keys: KeyBuilder, store: InMemoryStore, engine: InvalidationEngine
    ) -> None:
        await fill(keys, store, [("cart", {"user_id": 7}), ("cart-total", {"user_id": 7})])

        await engine.handle_event(ResourceChanged(ResourceType.CART, EventType.UPDATED, 7))

        assert store.keys() == []

    async def test_order_event_passes_user(self, engine: InvalidationEngine) -> None:
        engine.invalidate = AsyncMock(return_value=0)  # type: ignore[method-assign]

        await engine.handle_event(
            ResourceChanged(ResourceType.ORDER, EventType.CREATED, 1001, user_id=7)
        )

        engine.invalidate.assert_awaited_once_with(
            InvalidationEvent(InvalidationKind.ORDER_CHANGED, 1001, 7)
        )

    def test_every_resource_type_maps_to_kind(self) -> None:
        for resource in ResourceType:
            assert resolve_kind(f"{resource.value}Changed") in InvalidationKind
