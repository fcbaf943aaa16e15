"""Scan and position data contracts.

A decoded QR payload resolves to exactly one ScanEvent variant:
a localization anchor, an AR reward, or an unrecognized payload.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from venue_nav.schemas.floorplan import Point
from venue_nav.schemas.results import ErrorKind


class PositionSource(str, Enum):
    """How a position was obtained."""

    QR_SCAN = "qrScan"
    MANUAL = "manual"
    UNKNOWN = "unknown"


class Position(BaseModel):
    """A device's last known location. No motion is inferred between updates."""

    x: float
    y: float
    source: PositionSource = PositionSource.UNKNOWN
    observed_at: float = Field(default_factory=time.time)

    model_config = {"frozen": True}

    @property
    def point(self) -> Point:
        return Point(x=self.x, y=self.y)


class LocalizationScan(BaseModel):
    """An anchor scan placing the device at a known coordinate."""

    kind: Literal["localization"] = "localization"
    raw: str
    x: float
    y: float
    anchor_id: str | None = None
    event_id: str | None = None
    used_fallback: bool = Field(
        default=False,
        description="True when a default coordinate replaced a missing one",
    )

    model_config = {"frozen": True}

    def to_position(self, observed_at: float | None = None) -> Position:
        return Position(
            x=self.x,
            y=self.y,
            source=PositionSource.QR_SCAN,
            observed_at=observed_at if observed_at is not None else time.time(),
        )


class RewardScan(BaseModel):
    """An AR sponsor code. Shows a reward; never moves the device."""

    kind: Literal["reward"] = "reward"
    raw: str
    reward_id: str

    model_config = {"frozen": True}


class UnrecognizedScan(BaseModel):
    """A payload matching no known format. The caller prompts a re-scan."""

    kind: Literal["unrecognized"] = "unrecognized"
    raw: str
    reason: str = "unrecognized payload"
    error: ErrorKind = ErrorKind.UNKNOWN_ANCHOR

    model_config = {"frozen": True}


ScanEvent = Annotated[
    Union[LocalizationScan, RewardScan, UnrecognizedScan],
    Field(discriminator="kind"),
]
