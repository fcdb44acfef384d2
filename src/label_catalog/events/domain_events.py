"""
Domain Events - events exchanged between the local catalog and the enrichment core.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from .event_bus import DomainEvent


@dataclass(kw_only=True)
class LocalCatalogChanged(DomainEvent):
    """Fired after a local catalog write (artist, release or track row)."""
    entity_type: str
    entity_id: str
    action: str = "updated"  # created, updated, deleted

    def __post_init__(self):
        if not self.aggregate_id:
            self.aggregate_id = self.entity_id
        if not self.aggregate_type:
            self.aggregate_type = self.entity_type

    def _get_event_data(self) -> Dict[str, Any]:
        return {
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "action": self.action,
        }


@dataclass(kw_only=True)
class ArtistReconciled(DomainEvent):
    """Fired when a local credit has been resolved against the catalog."""
    credit: str
    primary_name: str
    status: str
    artist_id: Optional[str] = None
    image_url: Optional[str] = None

    def __post_init__(self):
        if not self.aggregate_type:
            self.aggregate_type = "artist"
        if not self.aggregate_id:
            self.aggregate_id = self.artist_id

    def _get_event_data(self) -> Dict[str, Any]:
        return {
            "credit": self.credit,
            "primary_name": self.primary_name,
            "status": self.status,
            "artist_id": self.artist_id,
            "image_url": self.image_url,
        }
