"""Shared Pydantic models for the TravelBud service and client."""

from .place import (
    HealthStatus,
    Place,
    dedupe_places,
)

__all__ = [
    "HealthStatus",
    "Place",
    "dedupe_places",
]
