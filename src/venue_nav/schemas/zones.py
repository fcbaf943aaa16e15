"""Zone and visit data contracts.

Zones are organizer-authored axis-aligned rectangles on the floorplan.
Sponsor zones carry an hourly rate; dwell time inside them is the
engagement measure sponsors are billed on.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, Field, model_validator

from venue_nav.schemas.floorplan import ElementId
from venue_nav.utils.config import LOG_VERSION

# Priority given to zones authored without one
DEFAULT_ZONE_PRIORITY: int = 3


class Zone(BaseModel):
    """A rectangular geofence.

    Accepts both the camelCase organizer format and the snake_case
    storage columns (``zone_name``, ``x_coordinate``, ``priority_level``,
    ``is_active``...).
    """

    id: ElementId
    name: str = Field(
        default="unnamed",
        validation_alias=AliasChoices("name", "zone_name"),
    )
    type: str = Field(
        default="general",
        validation_alias=AliasChoices("type", "zone_type"),
    )
    x: float = Field(..., validation_alias=AliasChoices("x", "x_coordinate"))
    y: float = Field(..., validation_alias=AliasChoices("y", "y_coordinate"))
    width: float = Field(..., ge=0.0)
    height: float = Field(..., ge=0.0)
    priority: int = Field(
        default=DEFAULT_ZONE_PRIORITY,
        validation_alias=AliasChoices("priority", "priority_level"),
        description="Lower value is evaluated first and wins overlaps",
    )
    sponsor_name: str | None = Field(
        default=None,
        validation_alias=AliasChoices("sponsor_name", "sponsorName"),
    )
    hourly_rate: float | None = Field(
        default=None,
        ge=0.0,
        validation_alias=AliasChoices("hourly_rate", "hourlyRate"),
    )
    active: bool = Field(
        default=True,
        validation_alias=AliasChoices("active", "is_active", "isActive"),
    )
    event_id: ElementId | None = Field(
        default=None,
        validation_alias=AliasChoices("event_id", "eventId"),
    )

    model_config = {"frozen": True, "populate_by_name": True}

    def contains(self, x: float, y: float) -> bool:
        """Inclusive point-in-rectangle test on both axes."""
        return (
            self.x <= x <= self.x + self.width
            and self.y <= y <= self.y + self.height
        )

    def matches_event(self, event_id: str | None) -> bool:
        """Zones without an event id apply to every event."""
        return event_id is None or self.event_id is None or self.event_id == event_id


class VisitRecord(BaseModel):
    """A device's continuous stay inside one zone.

    Derived by the dwell aggregator; ``exited_at`` and ``dwell_seconds``
    are set when the visit closes. Timestamps are seconds on the clock
    the observations were stamped with.
    """

    device_id: str
    zone_id: str | None = None
    zone_name: str | None = None
    sponsor_name: str | None = None
    hourly_rate: float | None = None
    entered_at: float
    exited_at: float | None = None
    dwell_seconds: float | None = Field(default=None, ge=0.0)

    @model_validator(mode="after")
    def _exit_not_before_entry(self) -> VisitRecord:
        if self.exited_at is not None and self.exited_at < self.entered_at:
            raise ValueError("exited_at precedes entered_at")
        return self

    @property
    def is_open(self) -> bool:
        return self.exited_at is None

    @classmethod
    def open_for(cls, device_id: str, zone: Zone, timestamp: float) -> VisitRecord:
        return cls(
            device_id=device_id,
            zone_id=zone.id,
            zone_name=zone.name,
            sponsor_name=zone.sponsor_name,
            hourly_rate=zone.hourly_rate,
            entered_at=timestamp,
        )

    def closed_at(self, timestamp: float) -> VisitRecord:
        """Return a closed copy of this visit."""
        return self.model_copy(update={
            "exited_at": timestamp,
            "dwell_seconds": timestamp - self.entered_at,
        })

    def to_log_dict(self) -> dict[str, Any]:
        """Flat dictionary for JSONL output."""
        return {"log_version": LOG_VERSION, **self.model_dump(mode="json")}
