"""Per-device navigation session.

Holds the device's last known position, its destination and the live
route, and re-derives the route whenever either changes. The session
does no I/O; it is state plus router calls.

States:
    IDLE     no destination
    ROUTING  destination set, route computed (or degraded to pin-only)
    ARRIVED  the position snaps to the same node as the destination

Each routing request is stamped with the session version. Changing or
clearing the destination bumps the version, so a result computed for
an older request is discarded instead of overwriting the newer route.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from venue_nav.memory.graph_store import FloorplanGraph
from venue_nav.modules.router import Router
from venue_nav.schemas import (
    LocalizationScan,
    POI,
    Position,
    RouteResult,
    ScanEvent,
)
from venue_nav.utils.logging import get_logger


class NavigationState(str, Enum):
    """Navigation session states."""

    IDLE = "idle"
    ROUTING = "routing"
    ARRIVED = "arrived"


@dataclass(frozen=True)
class RouteRequest:
    """Inputs of one routing computation, captured at request time."""

    version: int
    graph: FloorplanGraph | None
    position: Position
    destination: POI


class NavigationSession:
    """Navigation state for a single device.

    Owned exclusively by that device's processing context; never shared.
    """

    def __init__(
        self,
        device_id: str,
        graph: FloorplanGraph | None = None,
        router: Router | None = None,
        position: Position | None = None,
    ) -> None:
        """Initialize an idle session.

        Args:
            device_id: Owning device.
            graph: Floorplan snapshot to route over (may be None).
            router: Router to use (hop weighting by default).
            position: Initial last known position, if any.
        """
        self.device_id = device_id
        self._graph = graph
        self._router = router or Router()
        self._position = position
        self._destination: POI | None = None
        self._route: RouteResult | None = None
        self._state = NavigationState.IDLE
        self._version = 0

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def position(self) -> Position | None:
        return self._position

    @property
    def destination(self) -> POI | None:
        return self._destination

    @property
    def route(self) -> RouteResult | None:
        """The live route, or None when idle or awaiting a position."""
        return self._route

    @property
    def version(self) -> int:
        return self._version

    @property
    def graph(self) -> FloorplanGraph | None:
        return self._graph

    def route_view(self) -> dict[str, Any]:
        """Routing query body for the map UI, tagged with the session state.

        Without a computed route (idle, or no position yet) the body has
        no path and ``success`` is false.
        """
        route = self._route or RouteResult(
            destination=self._destination.point if self._destination else None,
            version=self._version,
        )
        body = route.to_response()
        if self._route is None:
            body["success"] = False
            body["route"] = None
        body["device_id"] = self.device_id
        body["state"] = self._state.value
        return body

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def set_destination(self, poi: POI) -> RouteResult | None:
        """Start routing to ``poi`` from the current position.

        Returns the new route, or None if no position is known yet (the
        route is computed on the first position update).
        """
        self._destination = poi
        self._version += 1
        self._state = NavigationState.ROUTING
        self._route = None
        get_logger().navigation(
            f"Destination set: {poi.name}",
            device_id=self.device_id,
            poi_id=poi.id,
        )
        return self._reroute()

    def update_position(self, position: Position) -> RouteResult | None:
        """Record a new last known position and re-route if navigating."""
        self._position = position
        if self._destination is None:
            return None
        self._version += 1
        return self._reroute()

    def clear_destination(self) -> None:
        """Stop navigating. Any in-flight route result becomes stale."""
        self._destination = None
        self._route = None
        self._version += 1
        self._state = NavigationState.IDLE
        get_logger().navigation("Destination cleared", device_id=self.device_id)

    def set_graph(self, graph: FloorplanGraph | None) -> RouteResult | None:
        """Switch to a new floorplan snapshot, re-routing if navigating."""
        self._graph = graph
        if self._destination is None:
            return None
        self._version += 1
        return self._reroute()

    def apply_scan(self, event: ScanEvent, observed_at: float | None = None) -> ScanEvent:
        """Apply a resolved scan.

        Localization scans move the device. Reward and unrecognized scans
        leave the position untouched and are handed back to the caller,
        which shows the reward screen or a re-scan prompt.
        """
        if isinstance(event, LocalizationScan):
            self.update_position(event.to_position(observed_at))
        return event

    # ------------------------------------------------------------------
    # Versioned routing
    # ------------------------------------------------------------------

    def prepare_route(self) -> RouteRequest | None:
        """Capture the inputs for a routing computation.

        Returns None when there is nothing to route (no destination or
        no position).
        """
        if self._destination is None or self._position is None:
            return None
        return RouteRequest(
            version=self._version,
            graph=self._graph,
            position=self._position,
            destination=self._destination,
        )

    def compute(self, request: RouteRequest) -> RouteResult:
        """Run the router for a captured request (no session mutation)."""
        return self._router.plan(
            request.graph,
            origin=request.position.point,
            destination=request.destination.point,
            destination_name=request.destination.name,
            version=request.version,
        )

    def commit(self, result: RouteResult) -> bool:
        """Install a route result unless a newer request superseded it.

        Returns:
            True if the result was installed, False if it was stale.
        """
        if result.version != self._version or self._destination is None:
            get_logger().navigation(
                f"Discarding stale route v{result.version} (current v{self._version})",
                device_id=self.device_id,
            )
            return False
        self._route = result
        self._state = NavigationState.ARRIVED if result.arrived else NavigationState.ROUTING
        get_logger().navigation(
            f"Route v{result.version} installed, state={self._state.value}",
            device_id=self.device_id,
            node_id=result.end_node_id,
        )
        return True

    def _reroute(self) -> RouteResult | None:
        request = self.prepare_route()
        if request is None:
            return None
        result = self.compute(request)
        self.commit(result)
        return result

