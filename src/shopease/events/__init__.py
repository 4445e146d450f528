"""Domain change events for ShopEase.

Write paths can publish ResourceChanged events after commit; the cache
invalidation engine subscribes to them. This is an opt-in alternative to
calling InvalidationEngine.invalidate at every mutation site.
"""

from shopease.events.bus import EventBus, EventHandler, InMemoryEventBus
from shopease.events.schemas import EventType, ResourceChanged, ResourceType

__all__ = [
    "EventBus",
    "EventHandler",
    "EventType",
    "InMemoryEventBus",
    "ResourceChanged",
    "ResourceType",
]
