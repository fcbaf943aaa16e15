"""Data contracts for the wayfinding engine."""

from venue_nav.schemas.floorplan import FloorplanDocument, Node, POI, Point, Segment
from venue_nav.schemas.results import ErrorKind, RouteResult, ZoneDetection
from venue_nav.schemas.scans import (
    LocalizationScan,
    Position,
    PositionSource,
    RewardScan,
    ScanEvent,
    UnrecognizedScan,
)
from venue_nav.schemas.zones import VisitRecord, Zone

__all__ = [
    "ErrorKind",
    "FloorplanDocument",
    "LocalizationScan",
    "Node",
    "POI",
    "Point",
    "Position",
    "PositionSource",
    "RewardScan",
    "RouteResult",
    "ScanEvent",
    "Segment",
    "UnrecognizedScan",
    "VisitRecord",
    "Zone",
    "ZoneDetection",
]
