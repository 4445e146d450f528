"""Observability for ShopEase: Prometheus cache metrics and request-aware logging."""

from shopease.observability.logging import (
    bind_request_id,
    configure_logging,
    request_id_var,
)
from shopease.observability.metrics import (
    get_metrics,
    metrics_registry,
)

__all__ = [
    # Logging
    "bind_request_id",
    "configure_logging",
    "request_id_var",
    # Metrics
    "get_metrics",
    "metrics_registry",
]
