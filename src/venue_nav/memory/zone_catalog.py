"""Immutable zone catalog snapshot.

The evaluation order (active zones by ascending priority, equal
priorities by zone id) is computed once per snapshot, so every query
against the same snapshot sees the same order regardless of how the
source listed its zones.
"""

from __future__ import annotations

import itertools
import json
from pathlib import Path
from typing import Any, Iterable

from venue_nav.schemas import Zone
from venue_nav.utils.logging import get_logger

_version_counter = itertools.count(1)


def evaluation_order(zones: Iterable[Zone]) -> tuple[Zone, ...]:
    """Active zones sorted by (priority, id)."""
    return tuple(sorted((z for z in zones if z.active), key=lambda z: (z.priority, z.id)))


class ZoneCatalog:
    """A snapshot of organizer-authored zones for one event."""

    def __init__(self, zones: Iterable[Zone], event_id: str | None = None) -> None:
        self._zones = tuple(zones)
        self._ordered = evaluation_order(self._zones)
        self.event_id = event_id
        self.version = next(_version_counter)

    @classmethod
    def from_records(
        cls,
        records: Iterable[Zone | dict[str, Any]],
        event_id: str | None = None,
    ) -> ZoneCatalog:
        """Build a catalog from organizer records (camelCase or snake_case)."""
        zones = [r if isinstance(r, Zone) else Zone.model_validate(r) for r in records]
        catalog = cls(zones, event_id=event_id)
        get_logger().zone(
            f"Zone catalog v{catalog.version}: {len(catalog.active_zones())} active "
            f"of {len(zones)} zones",
            event_id=event_id,
        )
        return catalog

    @classmethod
    def from_file(cls, path: Path, event_id: str | None = None) -> ZoneCatalog:
        """Load a JSON list of zones, or an object with a ``zones`` list."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("zones", [])
        return cls.from_records(data, event_id=event_id)

    @property
    def zones(self) -> tuple[Zone, ...]:
        """All zones in source order, inactive included."""
        return self._zones

    def active_zones(self, event_id: str | None = None) -> tuple[Zone, ...]:
        """Active zones for an event in evaluation order."""
        return tuple(z for z in self._ordered if z.matches_event(event_id))

    def get(self, zone_id: str) -> Zone | None:
        for zone in self._zones:
            if zone.id == zone_id:
                return zone
        return None

    def __len__(self) -> int:
        return len(self._zones)
