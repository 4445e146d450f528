"""HTTP API for the ShopEase cache service."""

from shopease.api.app import create_app

__all__ = ["create_app"]
