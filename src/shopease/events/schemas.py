"""Event schemas for ShopEase domain changes.

Write paths may publish a ResourceChanged event after their commit instead
of calling the cache invalidation engine directly. Subscribers (such as the
engine's handle_event) react to the change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4


class EventType(str, Enum):
    """Type of entity change event."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class ResourceType(str, Enum):
    """Kind of entity that changed."""

    PRODUCT = "product"
    CATEGORY = "category"
    USER = "user"
    ORDER = "order"
    CART = "cart"
    REVIEW = "review"
    PAYMENT = "payment"


@dataclass(frozen=True, slots=True)
class ResourceChanged:
    """A committed change to a ShopEase entity.

    For orders, user_id identifies the owning customer. For carts,
    resource_id is the user id. For reviews, resource_id is the product id.
    """

    resource: ResourceType
    event_type: EventType
    resource_id: int | str | None = None
    user_id: int | str | None = None
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
