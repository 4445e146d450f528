"""Contract of the product catalog system of record.

The relational store behind products and categories lives outside this
package. The cached catalog only needs these coroutines; each returns
JSON-serializable data that is cached as-is.
"""

from __future__ import annotations

from typing import Any, Protocol

ProductId = int | str


class ProductRepository(Protocol):
    """Authoritative product/category queries and mutations."""

    async def list_products(
        self,
        *,
        page: int,
        limit: int,
        category: str | None,
        status: str,
    ) -> dict[str, Any]: ...

    async def search_products(
        self,
        *,
        query: str | None,
        category: str | None,
        min_price: Any,
        max_price: Any,
        sort: str,
        page: int,
        limit: int,
    ) -> dict[str, Any]: ...

    async def get_product(self, product_id: ProductId) -> dict[str, Any] | None: ...

    async def product_suggestions(self, query: str, limit: int) -> list[dict[str, Any]]: ...

    async def list_categories(self) -> list[dict[str, Any]]: ...

    async def create_product(self, data: dict[str, Any]) -> dict[str, Any]: ...

    async def update_product(
        self, product_id: ProductId, data: dict[str, Any]
    ) -> dict[str, Any]: ...

    async def delete_product(self, product_id: ProductId) -> None: ...

    async def set_product_status(self, product_id: ProductId, status: str) -> dict[str, Any]: ...

    async def update_category(
        self, category_id: int | str, data: dict[str, Any]
    ) -> dict[str, Any]: ...
