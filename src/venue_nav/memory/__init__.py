"""Floorplan graph and zone catalog snapshots."""

from venue_nav.memory.graph_store import (
    FloorplanGraph,
    load_floorplan_document,
    load_floorplan_file,
    load_graph,
)
from venue_nav.memory.snapshots import SnapshotRegistry
from venue_nav.memory.zone_catalog import ZoneCatalog, evaluation_order

__all__ = [
    "FloorplanGraph",
    "SnapshotRegistry",
    "ZoneCatalog",
    "evaluation_order",
    "load_floorplan_document",
    "load_floorplan_file",
    "load_graph",
]
