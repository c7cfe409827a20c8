"""Pydantic models shared by the API service and the client."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_serializer


class HealthStatus(str, Enum):
    """Health status enum."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"
    UNKNOWN = "unknown"


class Place(BaseModel):
    """A place record from the places provider.

    Only ``place_id`` carries meaning for favorites; every other attribute the
    provider returned (``vicinity``, ``geometry``, ``photos``...) is kept as-is
    so a favorite round-trips through storage unchanged.
    """

    model_config = ConfigDict(extra="allow")

    place_id: str = Field(..., min_length=1, description="Provider place identifier")
    name: Optional[str] = Field(default=None, description="Display name")

    @model_serializer(mode="wrap")
    def _as_sent(self, handler):
        # A record that arrived without a name is written back without one.
        data = handler(self)
        if "name" not in self.model_fields_set:
            data.pop("name", None)
        return data

    def to_document(self) -> Dict[str, Any]:
        """Plain dict with exactly the keys the record arrived with."""
        return self.model_dump()


def dedupe_places(places: List[Place]) -> List[Place]:
    """Drop later duplicates by ``place_id``, keeping first-seen order."""
    seen = set()
    unique: List[Place] = []
    for place in places:
        if place.place_id in seen:
            continue
        seen.add(place.place_id)
        unique.append(place)
    return unique
