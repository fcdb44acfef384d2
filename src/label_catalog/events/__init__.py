"""
Event system for the label catalog.

Provides an in-process event bus and the domain events published by local
catalog writes and by artist reconciliation.
"""

from .event_bus import DomainEvent, EventBus, EventPriority
from .domain_events import ArtistReconciled, LocalCatalogChanged

__all__ = [
    "DomainEvent",
    "EventBus",
    "EventPriority",
    "ArtistReconciled",
    "LocalCatalogChanged",
]
