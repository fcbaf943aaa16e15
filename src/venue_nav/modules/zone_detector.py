"""Priority-ordered rectangular zone detection (geofencing)."""

from __future__ import annotations

from venue_nav.memory.zone_catalog import ZoneCatalog
from venue_nav.schemas import ErrorKind, Point, Zone, ZoneDetection
from venue_nav.utils.logging import get_logger


def detect(point: Point, catalog: ZoneCatalog, event_id: str | None = None) -> Zone | None:
    """The first active zone containing ``point`` in evaluation order.

    Evaluation order is ascending priority, then zone id. Bounds are
    inclusive on both axes, so a point on a shared edge belongs to the
    higher-priority zone.
    """
    for zone in catalog.active_zones(event_id):
        if zone.contains(point.x, point.y):
            return zone
    return None


class ZoneDetector:
    """Zone detection against whichever catalog snapshot it is handed.

    A missing catalog disables detection for that query only; the
    outcome carries ZoneCatalogUnavailable and no zone.
    """

    def detect_at(
        self,
        catalog: ZoneCatalog | None,
        x: float,
        y: float,
        event_id: str | None = None,
    ) -> ZoneDetection:
        point = Point(x=x, y=y)
        if catalog is None:
            get_logger().zone(
                f"No zone catalog for event {event_id}",
                event_id=event_id,
            )
            return ZoneDetection(
                coordinates=point,
                event_id=event_id,
                error=ErrorKind.ZONE_CATALOG_UNAVAILABLE,
            )

        zone = detect(point, catalog, event_id)
        get_logger().zone(
            f"Detect ({x}, {y}): {zone.name if zone else 'no zone'}",
            zone_id=zone.id if zone else None,
            event_id=event_id,
        )
        return ZoneDetection(zone=zone, coordinates=point, event_id=event_id)
