"""Resource categories and their TTL policy.

TTLs follow data volatility:
- volatile (cart, payment status): <= 2 minutes
- moderate (orders, user data): 5-15 minutes
- stable (product listings, search, reviews): 30 minutes
- near-static (categories, suggestions): 1 hour
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from types import MappingProxyType

from shopease.cache.errors import ConfigurationError


class ResourceCategory(str, Enum):
    """Closed set of cacheable data categories."""

    PRODUCT_LIST = "product-list"
    PRODUCT_DETAIL = "product-detail"
    PRODUCT_SEARCH = "product-search"
    SUGGESTIONS = "suggestions"
    CATEGORIES = "categories"
    CATEGORY_PRODUCTS = "category-products"
    USER_PROFILE = "user-profile"
    USER_STATS = "user-stats"
    USER_WISHLIST = "user-wishlist"
    ORDER_LIST = "order-list"
    ALL_ORDERS = "all-orders"
    ORDER_DETAIL = "order-detail"
    ORDER_STATS = "order-stats"
    CART = "cart"
    CART_TOTAL = "cart-total"
    SEARCH_RESULTS = "search-results"
    REVIEWS = "reviews"
    REVIEW_STATS = "review-stats"
    PAYMENT_STATUS = "payment-status"


MINUTE = 60
HOUR = 60 * MINUTE

DEFAULT_TTLS: Mapping[ResourceCategory, int] = MappingProxyType(
    {
        # Products
        ResourceCategory.PRODUCT_LIST: 30 * MINUTE,
        ResourceCategory.PRODUCT_DETAIL: 30 * MINUTE,
        ResourceCategory.PRODUCT_SEARCH: 30 * MINUTE,
        ResourceCategory.SUGGESTIONS: HOUR,
        ResourceCategory.CATEGORIES: HOUR,
        ResourceCategory.CATEGORY_PRODUCTS: 30 * MINUTE,
        # Users
        ResourceCategory.USER_PROFILE: 15 * MINUTE,
        ResourceCategory.USER_STATS: 15 * MINUTE,
        ResourceCategory.USER_WISHLIST: 15 * MINUTE,
        # Orders
        ResourceCategory.ORDER_LIST: 5 * MINUTE,
        ResourceCategory.ALL_ORDERS: 5 * MINUTE,
        ResourceCategory.ORDER_DETAIL: 5 * MINUTE,
        ResourceCategory.ORDER_STATS: 5 * MINUTE,
        # Cart
        ResourceCategory.CART: MINUTE,
        ResourceCategory.CART_TOTAL: MINUTE,
        # Search and reviews
        ResourceCategory.SEARCH_RESULTS: 30 * MINUTE,
        ResourceCategory.REVIEWS: 30 * MINUTE,
        ResourceCategory.REVIEW_STATS: 30 * MINUTE,
        # Payment
        ResourceCategory.PAYMENT_STATUS: 2 * MINUTE,
    }
)

_missing = set(ResourceCategory) - set(DEFAULT_TTLS)
if _missing:
    raise ConfigurationError(f"No TTL defined for categories: {sorted(c.value for c in _missing)}")


def resolve_category(category: ResourceCategory | str) -> ResourceCategory:
    """Resolve a category from its enum member or wire name.

    Raises:
        ConfigurationError: If the name is not a known category.
    """
    if isinstance(category, ResourceCategory):
        return category
    try:
        return ResourceCategory(category)
    except ValueError:
        raise ConfigurationError(f"Unknown cache category: {category!r}") from None


class TtlPolicy:
    """Immutable category -> TTL (seconds) table.

    Overrides are validated once at construction; the resulting table
    cannot be modified afterwards.
    """

    def __init__(self, overrides: Mapping[ResourceCategory | str, int] | None = None):
        table = dict(DEFAULT_TTLS)
        for name, ttl in (overrides or {}).items():
            category = resolve_category(name)
            if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0:
                raise ConfigurationError(
                    f"TTL override for {category.value} must be a positive integer, got {ttl!r}"
                )
            table[category] = ttl
        self._table: Mapping[ResourceCategory, int] = MappingProxyType(table)

    def ttl_for(self, category: ResourceCategory | str) -> int:
        """TTL in seconds for a category."""
        return self._table[resolve_category(category)]

    def as_dict(self) -> dict[str, int]:
        """Table keyed by category wire name."""
        return {category.value: ttl for category, ttl in self._table.items()}
