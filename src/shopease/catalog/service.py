"""Product catalog with read-through caching.

Reads go through the cache-aside accessor with the TTL of their category:
- list pages, search and detail: 30 min
- suggestions and categories: 1 hour

Every mutation invalidates after the repository call returns (the commit),
either directly through the cache service or, when an event bus is given,
by publishing a ResourceChanged event the invalidation engine subscribes to.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Any

from shopease.cache.invalidation import InvalidationEvent
from shopease.cache.keys import (
    CategoriesParams,
    ProductDetailParams,
    ProductListParams,
    ProductSearchParams,
    SuggestionsParams,
)
from shopease.cache.policy import ResourceCategory
from shopease.cache.service import CacheService
from shopease.catalog.repository import ProductId, ProductRepository
from shopease.events.bus import EventBus
from shopease.events.schemas import EventType, ResourceChanged, ResourceType

logger = logging.getLogger(__name__)


class CachedCatalog:
    """Product and category queries backed by a cache."""

    def __init__(
        self,
        repository: ProductRepository,
        cache: CacheService,
        event_bus: EventBus | None = None,
    ):
        self.repository = repository
        self.cache = cache
        self.event_bus = event_bus

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def list_products(
        self,
        page: int = 1,
        limit: int = 20,
        category: str | None = None,
    ) -> dict[str, Any]:
        """Active products, one page at a time."""
        return await self.cache.get_or_load(
            ResourceCategory.PRODUCT_LIST,
            ProductListParams(page=page, limit=limit, category=category, status="active"),
            partial(
                self.repository.list_products,
                page=page,
                limit=limit,
                category=category,
                status="active",
            ),
        )

    async def search_products(
        self,
        query: str | None = None,
        category: str | None = None,
        min_price: Any = None,
        max_price: Any = None,
        sort: str = "name",
        page: int = 1,
        limit: int = 20,
    ) -> dict[str, Any]:
        """Search is user-independent, so results are cached globally."""
        return await self.cache.get_or_load(
            ResourceCategory.PRODUCT_SEARCH,
            ProductSearchParams(
                query=query,
                category=category,
                min_price=min_price,
                max_price=max_price,
                sort=sort,
                page=page,
                limit=limit,
            ),
            partial(
                self.repository.search_products,
                query=query,
                category=category,
                min_price=min_price,
                max_price=max_price,
                sort=sort,
                page=page,
                limit=limit,
            ),
        )

    async def get_product(self, product_id: ProductId) -> dict[str, Any] | None:
        """Single product. Missing products are not cached."""
        return await self.cache.get_or_load(
            ResourceCategory.PRODUCT_DETAIL,
            ProductDetailParams(id=product_id),
            partial(self.repository.get_product, product_id),
        )

    async def product_suggestions(self, query: str = "", limit: int = 10) -> list[dict[str, Any]]:
        return await self.cache.get_or_load(
            ResourceCategory.SUGGESTIONS,
            SuggestionsParams(query=query, limit=limit),
            partial(self.repository.product_suggestions, query, limit),
        )

    async def list_categories(self) -> list[dict[str, Any]]:
        return await self.cache.get_or_load(
            ResourceCategory.CATEGORIES,
            CategoriesParams(),
            self.repository.list_categories,
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def create_product(self, data: dict[str, Any]) -> dict[str, Any]:
        product = await self.repository.create_product(data)
        await self._product_changed(product["id"], EventType.CREATED)
        return product

    async def update_product(self, product_id: ProductId, data: dict[str, Any]) -> dict[str, Any]:
        product = await self.repository.update_product(product_id, data)
        await self._product_changed(product_id, EventType.UPDATED)
        return product

    async def set_product_status(self, product_id: ProductId, status: str) -> dict[str, Any]:
        product = await self.repository.set_product_status(product_id, status)
        await self._product_changed(product_id, EventType.UPDATED)
        return product

    async def delete_product(self, product_id: ProductId) -> None:
        await self.repository.delete_product(product_id)
        await self._product_changed(product_id, EventType.DELETED)

    async def update_category(self, category_id: int | str, data: dict[str, Any]) -> dict[str, Any]:
        category = await self.repository.update_category(category_id, data)
        if self.event_bus is not None:
            await self.event_bus.publish(
                ResourceChanged(ResourceType.CATEGORY, EventType.UPDATED, category_id)
            )
        else:
            await self.cache.invalidate(InvalidationEvent.category_changed(category_id))
        return category

    async def _product_changed(self, product_id: ProductId, event_type: EventType) -> None:
        if self.event_bus is not None:
            await self.event_bus.publish(
                ResourceChanged(ResourceType.PRODUCT, event_type, product_id)
            )
            logger.debug(f"Published product {event_type.value} event for {product_id}")
            return
        await self.cache.invalidate(InvalidationEvent.product_changed(product_id))
