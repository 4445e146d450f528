"""Prometheus metrics for the ShopEase cache layer.

Provides:
- Hit/miss counters per resource category
- Store error counters per operation (get, set, delete_pattern)
- Invalidation counters per event kind
- Cache operation latency histogram

Usage:
    from shopease.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.cache_hits_total.labels(category="product-detail").inc()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest

from shopease.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    cache_hits_total: Any = None
    cache_misses_total: Any = None
    cache_store_errors_total: Any = None
    cache_invalidations_total: Any = None
    cache_keys_deleted_total: Any = None
    cache_operation_duration_seconds: Any = None

    enabled: bool = True

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self, enabled: bool | None = None) -> None:
        """Initialize Prometheus metrics.

        Args:
            enabled: Turn recording on or off. Defaults to the global
                settings on first call and to the current state afterwards.
        """
        if enabled is not None:
            self.enabled = enabled
        elif not self._initialized:
            self.enabled = settings.enable_metrics
        self._initialized = True

        if not self.enabled:
            logger.info("Metrics are disabled")
            return
        if self._registry is not None:
            return

        self._registry = REGISTRY

        self.cache_hits_total = Counter(
            "shopease_cache_hits_total",
            "Cache hits",
            ["category"],
        )

        self.cache_misses_total = Counter(
            "shopease_cache_misses_total",
            "Cache misses",
            ["category"],
        )

        self.cache_store_errors_total = Counter(
            "shopease_cache_store_errors_total",
            "Cache store failures degraded to misses or skipped writes",
            ["operation"],
        )

        self.cache_invalidations_total = Counter(
            "shopease_cache_invalidations_total",
            "Invalidation events processed",
            ["event"],
        )

        self.cache_keys_deleted_total = Counter(
            "shopease_cache_keys_deleted_total",
            "Cache keys removed by invalidation",
            ["event"],
        )

        self.cache_operation_duration_seconds = Histogram(
            "shopease_cache_operation_duration_seconds",
            "Cache operation latency in seconds",
            ["operation"],
            buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25),
        )

        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if not self.enabled or self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


def record_cache_hit(category: str) -> None:
    """Record cache hit."""
    metrics = get_metrics()
    if metrics.enabled and metrics.cache_hits_total:
        metrics.cache_hits_total.labels(category=category).inc()


def record_cache_miss(category: str) -> None:
    """Record cache miss."""
    metrics = get_metrics()
    if metrics.enabled and metrics.cache_misses_total:
        metrics.cache_misses_total.labels(category=category).inc()


def record_store_error(operation: str) -> None:
    """Record a store failure that was degraded instead of raised."""
    metrics = get_metrics()
    if metrics.enabled and metrics.cache_store_errors_total:
        metrics.cache_store_errors_total.labels(operation=operation).inc()


def record_invalidation(event: str, deleted: int) -> None:
    """Record an invalidation and the number of keys it removed."""
    metrics = get_metrics()
    if not metrics.enabled:
        return
    if metrics.cache_invalidations_total:
        metrics.cache_invalidations_total.labels(event=event).inc()
    if metrics.cache_keys_deleted_total and deleted:
        metrics.cache_keys_deleted_total.labels(event=event).inc(deleted)


def record_cache_operation(operation: str, duration: float) -> None:
    """Record cache operation duration.

    Args:
        operation: Cache operation (get, set, delete_pattern)
        duration: Operation duration in seconds
    """
    metrics = get_metrics()
    if metrics.enabled and metrics.cache_operation_duration_seconds:
        metrics.cache_operation_duration_seconds.labels(operation=operation).observe(duration)
