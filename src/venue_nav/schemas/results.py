"""Query outcome data contracts.

Every public engine operation returns one of these instead of raising.
A failed outcome carries an ErrorKind; the caller degrades its display
(destination pin without a drawn path, re-scan prompt, no zone).
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from venue_nav.schemas.floorplan import Point
from venue_nav.schemas.zones import Zone


class ErrorKind(str, Enum):
    """Recoverable, user-facing failure conditions."""

    EMPTY_GRAPH = "EmptyGraph"
    NO_NODES_AVAILABLE = "NoNodesAvailable"
    NO_PATH_FOUND = "NoPathFound"
    UNKNOWN_ANCHOR = "UnknownAnchor"
    ZONE_CATALOG_UNAVAILABLE = "ZoneCatalogUnavailable"


class RouteResult(BaseModel):
    """Outcome of a routing query.

    On success ``points`` is the drawable polyline: node coordinates in
    path order followed by the raw destination coordinate. On failure
    only ``destination`` is meaningful (pin-only display).
    """

    node_path: list[str] = Field(default_factory=list)
    points: list[Point] = Field(default_factory=list)
    destination: Point | None = None
    start_node_id: str | None = None
    end_node_id: str | None = None
    distance: float = Field(default=0.0, ge=0.0, description="Euclidean length of the node path")
    directions: list[str] = Field(default_factory=list)
    error: ErrorKind | None = None
    version: int = Field(default=0, description="Routing request stamp")

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def arrived(self) -> bool:
        return (
            self.success
            and self.start_node_id is not None
            and self.start_node_id == self.end_node_id
        )

    @classmethod
    def failed(cls, error: ErrorKind, destination: Point | None = None, version: int = 0) -> RouteResult:
        return cls(error=error, destination=destination, version=version)

    def to_response(self) -> dict[str, Any]:
        """JSON body for the routing query surface."""
        return {
            "success": self.success,
            "route": [p.model_dump() for p in self.points] if self.success else None,
            "node_path": self.node_path,
            "destination": self.destination.model_dump() if self.destination else None,
            "distance": self.distance,
            "directions": self.directions,
            "error": self.error.value if self.error else None,
        }


class ZoneDetection(BaseModel):
    """Outcome of a zone detection query, annotated with the queried point."""

    zone: Zone | None = None
    coordinates: Point
    event_id: str | None = None
    error: ErrorKind | None = None

    @property
    def detected(self) -> bool:
        return self.zone is not None

    @property
    def message(self) -> str:
        if self.error is not None:
            return "Zone detection unavailable"
        if self.zone is None:
            return "No zone detected"
        return f"User is in {self.zone.name}"

    def to_response(self) -> dict[str, Any]:
        """JSON body for the zone detection query surface."""
        return {
            "success": self.error is None,
            "detected_zone": self.zone.model_dump(mode="json") if self.zone else None,
            "coordinates": self.coordinates.model_dump(),
            "event_id": self.event_id,
            "message": self.message,
            "error": self.error.value if self.error else None,
        }

