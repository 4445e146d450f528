"""Global pytest configuration and fixtures."""

from __future__ import annotations

from typing import Any

import pytest

from shopease.cache.policy import ResourceCategory
from shopease.cache.service import CacheService
from shopease.cache.store import InMemoryStore


class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryStore:
    """In-memory store driven by the fake clock."""
    return InMemoryStore(clock=clock)


@pytest.fixture
def cache(store: InMemoryStore) -> CacheService:
    """Cache service over the in-memory store."""
    return CacheService.create(store)


@pytest.fixture
def sample_params() -> dict[ResourceCategory, dict[str, Any]]:
    """One valid params mapping per category."""
    return {
        ResourceCategory.PRODUCT_LIST: {"page": 2, "category": "Electronics"},
        ResourceCategory.PRODUCT_DETAIL: {"id": 42},
        ResourceCategory.PRODUCT_SEARCH: {"query": "laptop", "min_price": 10},
        ResourceCategory.SUGGESTIONS: {"query": "lap"},
        ResourceCategory.CATEGORIES: {},
        ResourceCategory.CATEGORY_PRODUCTS: {"category_id": 3},
        ResourceCategory.USER_PROFILE: {"user_id": 7},
        ResourceCategory.USER_STATS: {"user_id": 7},
        ResourceCategory.USER_WISHLIST: {"user_id": 7},
        ResourceCategory.ORDER_LIST: {"user_id": 7, "status": "pending"},
        ResourceCategory.ALL_ORDERS: {"status": "shipped"},
        ResourceCategory.ORDER_DETAIL: {"id": 1001},
        ResourceCategory.ORDER_STATS: {"user_id": 7},
        ResourceCategory.CART: {"user_id": 7},
        ResourceCategory.CART_TOTAL: {"user_id": 7},
        ResourceCategory.SEARCH_RESULTS: {"query": "laptop", "type": "products"},
        ResourceCategory.REVIEWS: {"product_id": 42},
        ResourceCategory.REVIEW_STATS: {"product_id": 42},
        ResourceCategory.PAYMENT_STATUS: {"order_id": 1001},
    }
