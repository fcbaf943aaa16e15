"""Floorplan graph data contracts.

A floorplan is authored as a JSON document of nodes, segments and
points of interest sharing one 2D coordinate space (pixels or
percentages, depending on the floorplan). Nodes and POIs are
immutable for the lifetime of a loaded graph version.
"""

from __future__ import annotations

import math
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, Field, field_validator


def _coerce_id(value: Any) -> Any:
    """Stored floorplans use both numeric and string ids."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    return value


# Identifier that also accepts the numeric ids of older documents
ElementId = Annotated[str, BeforeValidator(_coerce_id)]


class Point(BaseModel):
    """A coordinate in the floorplan coordinate space."""

    x: float
    y: float

    model_config = {"frozen": True}

    def squared_distance(self, other: Point) -> float:
        return (self.x - other.x) ** 2 + (self.y - other.y) ** 2

    def distance(self, other: Point) -> float:
        return math.sqrt(self.squared_distance(other))


class Node(BaseModel):
    """A walkable graph vertex."""

    id: ElementId = Field(..., description="Identifier, unique within one graph")
    x: float = Field(..., description="Floorplan-relative x coordinate")
    y: float = Field(..., description="Floorplan-relative y coordinate")
    name: str | None = Field(
        default=None,
        description="Optional landmark name used in directions",
    )

    model_config = {"frozen": True}

    @property
    def point(self) -> Point:
        return Point(x=self.x, y=self.y)


class Segment(BaseModel):
    """An undirected walkable connection between two nodes.

    Endpoints are accepted under any of the key pairs found in stored
    floorplans: ``start``/``end``, ``from``/``to`` and
    ``start_node_id``/``end_node_id``. The cost may be stored as
    ``weight`` or ``distance``.
    """

    start: ElementId = Field(
        ...,
        validation_alias=AliasChoices("start", "from", "start_node_id"),
    )
    end: ElementId = Field(
        ...,
        validation_alias=AliasChoices("end", "to", "end_node_id"),
    )
    weight: float | None = Field(
        default=None,
        validation_alias=AliasChoices("weight", "distance"),
        gt=0.0,
        description="Traversal cost; None means one hop",
    )

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("weight", mode="before")
    @classmethod
    def _zero_weight_is_default(cls, value: Any) -> Any:
        # Authoring tools write 0 or null for "no explicit weight"
        if value is None or value == 0:
            return None
        return value


class POI(BaseModel):
    """A named destination. Need not coincide with a graph node."""

    id: ElementId
    name: str = "unknown"
    x: float
    y: float
    type: str | None = Field(default=None, description="Authoring category (booth, localization, ...)")

    model_config = {"frozen": True}

    @property
    def point(self) -> Point:
        return Point(x=self.x, y=self.y)


class FloorplanDocument(BaseModel):
    """The stored floorplan graph document (one per floorplan)."""

    nodes: list[Node] = Field(default_factory=list)
    segments: list[Segment] = Field(default_factory=list)
    pois: list[POI] = Field(default_factory=list)
