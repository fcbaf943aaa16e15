"""Shortest-path routing over a floorplan graph.

Dijkstra from the start node with a predecessor map, stopping as soon
as the end node is settled. Segment cost is the authored weight (one
hop by default). Euclidean weighting is available but must be chosen
explicitly; hop counting is the default.

The node path is materialized for display by mapping node ids to
coordinates and appending the raw destination coordinate, so the drawn
route ends on the destination pin rather than on its snapped node.
"""

from __future__ import annotations

import heapq
import math

from venue_nav.core.errors import EngineError, NoPathFoundError
from venue_nav.memory.graph_store import FloorplanGraph
from venue_nav.modules.spatial_index import nearest_index
from venue_nav.schemas import Point, RouteResult
from venue_nav.utils.config import (
    DEFAULT_WEIGHTING,
    DIRECTION_MIN_ANNOTATED_DISTANCE,
    TURN_STRAIGHT_MAX_DEG,
    TURN_UTURN_MIN_DEG,
    WEIGHTING_EUCLIDEAN,
    WEIGHTING_HOP,
)
from venue_nav.utils.logging import get_logger

WEIGHTING_MODES = (WEIGHTING_HOP, WEIGHTING_EUCLIDEAN)


def _edge_cost(graph: FloorplanGraph, a: int, b: int, weighting: str) -> float:
    if weighting == WEIGHTING_EUCLIDEAN:
        # Coincident nodes still cost something
        return graph.segment_length(a, b) or 1.0
    return graph.segment_weight(a, b)


def find_path(
    graph: FloorplanGraph,
    start_id: str,
    end_id: str,
    weighting: str = DEFAULT_WEIGHTING,
) -> list[str]:
    """Shortest node path from ``start_id`` to ``end_id`` inclusive.

    Args:
        graph: Loaded floorplan graph.
        start_id: Start node id.
        end_id: End node id.
        weighting: ``"hop"`` (authored weights) or ``"euclidean"``.

    Returns:
        Node ids from start to end. A single element when start == end.

    Raises:
        NoPathFoundError: If either node is unknown or end is unreachable.
        ValueError: If ``weighting`` is not a known mode.
    """
    if weighting not in WEIGHTING_MODES:
        raise ValueError(f"unknown weighting mode: {weighting}")
    if start_id not in graph or end_id not in graph:
        raise NoPathFoundError(f"unknown node in route {start_id} -> {end_id}")

    start = graph.index_of(start_id)
    end = graph.index_of(end_id)
    if start == end:
        return [start_id]

    dist: dict[int, float] = {start: 0.0}
    prev: dict[int, int] = {}
    settled: set[int] = set()
    # (distance, node index); index breaks distance ties deterministically
    heap: list[tuple[float, int]] = [(0.0, start)]

    while heap:
        d, u = heapq.heappop(heap)
        if u in settled:
            continue
        settled.add(u)
        if u == end:
            break
        for v in graph.neighbor_indices(u):
            if v in settled:
                continue
            alt = d + _edge_cost(graph, u, v, weighting)
            if alt < dist.get(v, math.inf):
                dist[v] = alt
                prev[v] = u
                heapq.heappush(heap, (alt, v))

    if end not in settled:
        raise NoPathFoundError(f"{end_id} is unreachable from {start_id}")

    path = [end]
    while path[-1] != start:
        path.append(prev[path[-1]])
    path.reverse()
    return [graph.node_at(i).id for i in path]


def materialize_path(
    graph: FloorplanGraph,
    node_path: list[str],
    destination: Point | None = None,
) -> list[Point]:
    """Coordinates of a node path, ending on the raw destination if given."""
    points = [graph.node(node_id).point for node_id in node_path]
    if destination is not None:
        points.append(destination)
    return points


def path_distance(graph: FloorplanGraph, node_path: list[str]) -> float:
    """Total Euclidean length of a node path."""
    indices = [graph.index_of(node_id) for node_id in node_path]
    return sum(graph.segment_length(a, b) for a, b in zip(indices, indices[1:]))


def classify_turn(origin: Point, via: Point, target: Point) -> str:
    """Classify the heading change at ``via`` on the way to ``target``.

    Floorplan y grows downward, so a positive angle is a right turn.
    """
    heading_in = math.atan2(via.y - origin.y, via.x - origin.x)
    heading_out = math.atan2(target.y - via.y, target.x - via.x)
    diff = heading_out - heading_in
    while diff > math.pi:
        diff -= 2 * math.pi
    while diff < -math.pi:
        diff += 2 * math.pi
    degrees = math.degrees(diff)

    if abs(degrees) < TURN_STRAIGHT_MAX_DEG:
        return "straight"
    if abs(degrees) > TURN_UTURN_MIN_DEG:
        return "u-turn"
    return "right" if degrees > 0 else "left"


_TURN_TEXT = {
    "straight": "Continue straight",
    "left": "Turn left",
    "right": "Turn right",
    "u-turn": "Turn around",
}


def turn_by_turn(
    graph: FloorplanGraph,
    node_path: list[str],
    destination_name: str | None = None,
) -> list[str]:
    """Human-readable directions for a node path."""
    if not node_path:
        return []
    if len(node_path) == 1:
        return ["You have arrived"]

    nodes = [graph.node(node_id) for node_id in node_path]
    directions = [f"Start at {nodes[0].name or 'starting point'}"]

    for prev_node, node, next_node in zip(nodes, nodes[1:], nodes[2:]):
        instruction = _TURN_TEXT[classify_turn(prev_node.point, node.point, next_node.point)]
        if node.name:
            instruction += f" at {node.name}"
        leg = node.point.distance(next_node.point)
        if leg > DIRECTION_MIN_ANNOTATED_DISTANCE:
            instruction += f" ({round(leg)}m)"
        directions.append(instruction)

    directions.append(f"Arrive at {destination_name or nodes[-1].name or 'destination'}")
    return directions


class Router:
    """Plans routes from a raw position to a raw destination.

    Both endpoints are snapped to their nearest nodes, the node path is
    computed, and the result is materialized for display. Engine
    failures become a failed RouteResult rather than an exception.
    """

    def __init__(self, weighting: str = DEFAULT_WEIGHTING) -> None:
        if weighting not in WEIGHTING_MODES:
            raise ValueError(f"unknown weighting mode: {weighting}")
        self.weighting = weighting

    def route(self, graph: FloorplanGraph, start_id: str, end_id: str) -> list[str]:
        """Node path between two node ids (raises NoPathFoundError)."""
        return find_path(graph, start_id, end_id, self.weighting)

    def plan(
        self,
        graph: FloorplanGraph | None,
        origin: Point,
        destination: Point,
        destination_name: str | None = None,
        version: int = 0,
    ) -> RouteResult:
        """Route from ``origin`` to ``destination`` with snapping.

        Args:
            graph: Current floorplan snapshot, or None if none is loaded.
            origin: The device's last known position.
            destination: The destination pin (e.g. a POI's true position).
            destination_name: Label for the arrival instruction.
            version: Request stamp copied onto the result.

        Returns:
            A RouteResult; on failure ``error`` is set and only the
            destination pin is available.
        """
        log = get_logger()
        try:
            start_index = nearest_index(graph, origin.x, origin.y)
            end_index = nearest_index(graph, destination.x, destination.y)
            start = graph.node_at(start_index).id
            end = graph.node_at(end_index).id
            node_path = self.route(graph, start, end)
        except EngineError as e:
            log.routing(f"No route: {e}", error=e.kind.value)
            return RouteResult.failed(e.kind, destination=destination, version=version)

        log.routing(
            f"Route {start} -> {end}: {len(node_path)} nodes",
            node_id=end,
            weighting=self.weighting,
        )
        return RouteResult(
            node_path=node_path,
            points=materialize_path(graph, node_path, destination),
            destination=destination,
            start_node_id=start,
            end_node_id=end,
            distance=path_distance(graph, node_path),
            directions=turn_by_turn(graph, node_path, destination_name),
            version=version,
        )


__all__ = [
    "Router",
    "WEIGHTING_MODES",
    "classify_turn",
    "find_path",
    "materialize_path",
    "path_distance",
    "turn_by_turn",
]
