"""Cached product catalog for ShopEase."""

from shopease.catalog.repository import ProductId, ProductRepository
from shopease.catalog.service import CachedCatalog

__all__ = ["CachedCatalog", "ProductId", "ProductRepository"]
