"""Wayfinding engine facade.

Wires the components into the two flows the product runs:

1. scan -> localization -> navigation session position -> route
2. position -> zone detection -> dwell aggregation -> visit sink

Floorplan graphs and zone catalogs are published as snapshots (one per
floorplan id and event id). Each device gets its own context holding a
navigation session; work for one device is serialized by that
context's lock, while different devices proceed concurrently.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any

from venue_nav.core.errors import EmptyGraphError, ZoneCatalogUnavailableError
from venue_nav.memory.graph_store import FloorplanGraph, load_floorplan_document
from venue_nav.memory.snapshots import SnapshotRegistry
from venue_nav.memory.zone_catalog import ZoneCatalog
from venue_nav.modules.dwell import DwellAggregator, SinkLike
from venue_nav.modules.localization import LocalizationResolver
from venue_nav.modules.navigation import NavigationSession
from venue_nav.modules.router import Router
from venue_nav.modules.zone_detector import ZoneDetector
from venue_nav.schemas import (
    ErrorKind,
    FloorplanDocument,
    LocalizationScan,
    POI,
    Point,
    Position,
    PositionSource,
    RouteResult,
    ScanEvent,
    VisitRecord,
    Zone,
    ZoneDetection,
)
from venue_nav.utils.logging import LogLevel, get_logger


@dataclass
class DeviceContext:
    """Everything the engine holds for one device."""

    device_id: str
    session: NavigationSession
    floorplan_id: str | None = None
    event_id: str | None = None
    lock: threading.Lock = field(default_factory=threading.Lock)


class WayfindingEngine:
    """Routes, localizes and geofences devices over published snapshots.

    All dependencies can be injected; defaults are the standard
    components (hop-weighted router, non-strict resolver).
    """

    def __init__(
        self,
        router: Router | None = None,
        resolver: LocalizationResolver | None = None,
        detector: ZoneDetector | None = None,
        dwell: DwellAggregator | None = None,
        sink: SinkLike | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            router: Router shared by every navigation session.
            resolver: Scan payload resolver.
            detector: Zone detector.
            dwell: Dwell aggregator; built around ``sink`` if omitted.
            sink: Receiver of closed visit records (ignored when
                ``dwell`` is given).
        """
        self.router = router or Router()
        self.resolver = resolver or LocalizationResolver()
        self.detector = detector or ZoneDetector()
        self.dwell = dwell or DwellAggregator(sink)
        self.graphs: SnapshotRegistry[FloorplanGraph] = SnapshotRegistry()
        self.catalogs: SnapshotRegistry[ZoneCatalog] = SnapshotRegistry()

        self._lock = threading.Lock()
        self._devices: dict[str, DeviceContext] = {}
        # Floorplans whose latest document had no nodes
        self._empty_floorplans: set[str] = set()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def load_floorplan(
        self,
        floorplan_id: str,
        document: FloorplanDocument | dict[str, Any],
    ) -> FloorplanGraph | None:
        """Build and publish a floorplan graph.

        An empty document unpublishes the floorplan; routing over it
        then reports EmptyGraph.

        Raises:
            pydantic.ValidationError: If the document is malformed.
        """
        try:
            graph = load_floorplan_document(document, floorplan_id)
        except EmptyGraphError as e:
            get_logger().graph(str(e), level=LogLevel.WARNING, floorplan_id=floorplan_id)
            with self._lock:
                self._empty_floorplans.add(floorplan_id)
            self.graphs.remove(floorplan_id)
            self._rebind_graph(floorplan_id, None)
            return None
        self.publish_graph(floorplan_id, graph)
        return graph

    def publish_graph(self, floorplan_id: str, graph: FloorplanGraph) -> None:
        """Swap in a graph snapshot and move bound sessions onto it."""
        previous = self.graphs.publish(floorplan_id, graph)
        with self._lock:
            self._empty_floorplans.discard(floorplan_id)
        get_logger().graph(
            f"Published floorplan {floorplan_id} v{graph.version}"
            + (f" (replaces v{previous.version})" if previous else ""),
        )
        self._rebind_graph(floorplan_id, graph)

    def load_zones(
        self,
        event_id: str,
        records: list[Zone | dict[str, Any]],
    ) -> ZoneCatalog:
        """Build and publish the zone catalog of an event.

        Raises:
            pydantic.ValidationError: If a zone record is malformed.
        """
        catalog = ZoneCatalog.from_records(records, event_id=event_id)
        self.publish_catalog(event_id, catalog)
        return catalog

    def publish_catalog(self, event_id: str, catalog: ZoneCatalog) -> None:
        self.catalogs.publish(event_id, catalog)
        get_logger().zone(
            f"Published zone catalog for event {event_id} v{catalog.version}",
            level=LogLevel.INFO,
        )

    def catalog(self, event_id: str) -> ZoneCatalog:
        """The current zone catalog of an event.

        Raises:
            ZoneCatalogUnavailableError: If none has been published.
        """
        catalog = self.catalogs.get(event_id)
        if catalog is None:
            raise ZoneCatalogUnavailableError(f"no zone catalog for event {event_id}")
        return catalog

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    def join(
        self,
        device_id: str,
        floorplan_id: str | None = None,
        event_id: str | None = None,
    ) -> NavigationSession:
        """Bind a device to a floorplan and event, creating it if needed."""
        context = self._context(device_id)
        with context.lock:
            if floorplan_id is not None:
                context.floorplan_id = floorplan_id
                context.session.set_graph(self.graphs.get(floorplan_id))
            if event_id is not None:
                context.event_id = event_id
        return context.session

    def session(self, device_id: str) -> NavigationSession | None:
        with self._lock:
            context = self._devices.get(device_id)
        return context.session if context else None

    def devices(self) -> list[str]:
        with self._lock:
            return list(self._devices)

    def handle_scan(
        self,
        device_id: str,
        payload: str,
        observed_at: float | None = None,
    ) -> ScanEvent:
        """Resolve a decoded QR payload and apply it to the device.

        A localization scan moves the device, re-routes if it is
        navigating, and feeds the new position to zone detection.
        Reward and unrecognized scans leave the device where it was.
        """
        observed_at = observed_at if observed_at is not None else time.time()
        event = self.resolver.resolve(payload)
        context = self._context(device_id)
        with context.lock:
            if isinstance(event, LocalizationScan) and event.event_id:
                context.event_id = event.event_id
            context.session.apply_scan(event, observed_at)
            if isinstance(event, LocalizationScan):
                self._observe_locked(context, event.x, event.y, observed_at)
        return event

    def update_position(
        self,
        device_id: str,
        x: float,
        y: float,
        source: PositionSource = PositionSource.MANUAL,
        observed_at: float | None = None,
    ) -> RouteResult | None:
        """Move a device directly (manual pin drop)."""
        observed_at = observed_at if observed_at is not None else time.time()
        context = self._context(device_id)
        with context.lock:
            route = context.session.update_position(
                Position(x=x, y=y, source=source, observed_at=observed_at)
            )
            self._observe_locked(context, x, y, observed_at)
        return route

    def set_destination(self, device_id: str, poi: POI | str) -> RouteResult | None:
        """Start navigating a device to a POI (object or id).

        Raises:
            KeyError: If a POI id is not on the device's floorplan.
        """
        context = self._context(device_id)
        with context.lock:
            if isinstance(poi, str):
                poi = self._lookup_poi(context.session.graph, poi)
            return context.session.set_destination(poi)

    def clear_destination(self, device_id: str) -> None:
        context = self._context(device_id)
        with context.lock:
            context.session.clear_destination()

    def end_session(self, device_id: str, timestamp: float | None = None) -> VisitRecord | None:
        """Close the device's open visit and forget the device."""
        with self._lock:
            context = self._devices.pop(device_id, None)
        if context is None:
            closed = self.dwell.end_session(device_id, timestamp)
        else:
            with context.lock:
                context.session.clear_destination()
                closed = self.dwell.end_session(device_id, timestamp)
        get_logger().system("Session ended", device_id=device_id)
        return closed

    def shutdown(self) -> list[VisitRecord]:
        """Force-close every open visit."""
        with self._lock:
            self._devices.clear()
        return self.dwell.flush_all()

    # ------------------------------------------------------------------
    # Stateless queries
    # ------------------------------------------------------------------

    def route(self, floorplan_id: str, x: float, y: float, poi_id: str) -> RouteResult:
        """Route from (x, y) to a POI on a floorplan.

        Raises:
            KeyError: If the POI is not on the floorplan.
        """
        graph = self.graphs.get(floorplan_id)
        if graph is None:
            with self._lock:
                empty = floorplan_id in self._empty_floorplans
            kind = ErrorKind.EMPTY_GRAPH if empty else ErrorKind.NO_NODES_AVAILABLE
            get_logger().routing(f"No graph for floorplan {floorplan_id}", error=kind.value)
            return RouteResult.failed(kind)

        poi = self._lookup_poi(graph, poi_id)
        return self.router.plan(
            graph,
            origin=Point(x=x, y=y),
            destination=poi.point,
            destination_name=poi.name,
        )

    def detect(self, event_id: str | None, x: float, y: float) -> ZoneDetection:
        """Zone containing (x, y) in an event's current catalog."""
        return self.detector.detect_at(self.catalogs.get(event_id), x, y, event_id)

    def observe(
        self,
        device_id: str,
        event_id: str | None,
        x: float,
        y: float,
        timestamp: float | None = None,
    ) -> ZoneDetection:
        """Detect the zone at (x, y) and feed it to dwell aggregation.

        When the event has no catalog the detection reports
        ZoneCatalogUnavailable and the aggregator receives nothing.
        """
        timestamp = timestamp if timestamp is not None else time.time()
        context = self._context(device_id)
        with context.lock:
            if event_id is not None:
                context.event_id = event_id
            return self._observe_locked(context, x, y, timestamp)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _context(self, device_id: str) -> DeviceContext:
        with self._lock:
            context = self._devices.get(device_id)
            if context is None:
                context = DeviceContext(
                    device_id=device_id,
                    session=NavigationSession(device_id, router=self.router),
                )
                self._devices[device_id] = context
            return context

    def _observe_locked(self, context: DeviceContext, x: float, y: float, timestamp: float) -> ZoneDetection:
        detection = self.detect(context.event_id, x, y)
        if detection.error is None:
            self.dwell.observe(context.device_id, detection.zone, timestamp)
        return detection

    def _rebind_graph(self, floorplan_id: str, graph: FloorplanGraph | None) -> None:
        with self._lock:
            contexts = [c for c in self._devices.values() if c.floorplan_id == floorplan_id]
        for context in contexts:
            with context.lock:
                context.session.set_graph(graph)

    @staticmethod
    def _lookup_poi(graph: FloorplanGraph | None, poi_id: str) -> POI:
        poi = graph.poi(poi_id) if graph is not None else None
        if poi is None:
            raise KeyError(poi_id)
        return poi


__all__ = ["DeviceContext", "WayfindingEngine"]
