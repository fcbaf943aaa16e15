"""Immutable floorplan graph with a precomputed adjacency list.

Nodes live in an arena ordered by load order and are referenced by
integer index. The adjacency list and segment weights are built once
at load time; a loaded graph is never mutated, so replacing a
floorplan is a reference swap (see memory.snapshots).
"""

from __future__ import annotations

import itertools
import json
import logging
import math
from pathlib import Path
from typing import Any, Iterable

import numpy as np

from venue_nav.core.errors import EmptyGraphError
from venue_nav.schemas import FloorplanDocument, Node, POI, Segment
from venue_nav.utils.config import DEFAULT_SEGMENT_WEIGHT
from venue_nav.utils.logging import get_logger

logger = logging.getLogger(__name__)

_version_counter = itertools.count(1)


def _pair(a: int, b: int) -> tuple[int, int]:
    return (a, b) if a <= b else (b, a)


class FloorplanGraph:
    """A loaded floorplan graph version.

    Construct through ``load_graph`` rather than directly.
    """

    def __init__(
        self,
        nodes: tuple[Node, ...],
        adjacency: tuple[tuple[int, ...], ...],
        weights: dict[tuple[int, int], float],
        pois: tuple[POI, ...],
        floorplan_id: str | None = None,
    ) -> None:
        self._nodes = nodes
        self._index = {node.id: i for i, node in enumerate(nodes)}
        self._adjacency = adjacency
        self._weights = weights
        self._pois = pois
        self._poi_index = {poi.id: poi for poi in pois}
        self._coordinates = np.array([[n.x, n.y] for n in nodes], dtype=float)
        self._coordinates.setflags(write=False)
        self.floorplan_id = floorplan_id
        self.version = next(_version_counter)

    # ------------------------------------------------------------------
    # Node access
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> tuple[Node, ...]:
        """Nodes in stable load order."""
        return self._nodes

    @property
    def coordinates(self) -> np.ndarray:
        """Read-only (n, 2) array of node coordinates in load order."""
        return self._coordinates

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._index

    def node(self, node_id: str) -> Node:
        return self._nodes[self._index[node_id]]

    def node_at(self, index: int) -> Node:
        return self._nodes[index]

    def index_of(self, node_id: str) -> int:
        return self._index[node_id]

    # ------------------------------------------------------------------
    # Adjacency
    # ------------------------------------------------------------------

    def neighbors(self, node_id: str) -> list[str]:
        """Ids of nodes sharing a segment with ``node_id``.

        Raises:
            KeyError: If the node is not part of this graph.
        """
        return [self._nodes[j].id for j in self._adjacency[self._index[node_id]]]

    def neighbor_indices(self, index: int) -> tuple[int, ...]:
        return self._adjacency[index]

    def segment_weight(self, a: int, b: int) -> float:
        """Authored cost of the segment between two node indices."""
        return self._weights[_pair(a, b)]

    def segment_length(self, a: int, b: int) -> float:
        """Euclidean length of the segment between two node indices."""
        na, nb = self._nodes[a], self._nodes[b]
        return math.hypot(na.x - nb.x, na.y - nb.y)

    @property
    def segment_count(self) -> int:
        return len(self._weights)

    # ------------------------------------------------------------------
    # Points of interest
    # ------------------------------------------------------------------

    @property
    def pois(self) -> tuple[POI, ...]:
        return self._pois

    def poi(self, poi_id: str) -> POI | None:
        return self._poi_index.get(poi_id)


def _as_models(items: Iterable[Any], model: type) -> list:
    return [item if isinstance(item, model) else model.model_validate(item) for item in items]


def load_graph(
    nodes: Iterable[Node | dict[str, Any]],
    segments: Iterable[Segment | dict[str, Any]] = (),
    pois: Iterable[POI | dict[str, Any]] = (),
    floorplan_id: str | None = None,
) -> FloorplanGraph:
    """Build an immutable graph from floorplan elements.

    Segments whose endpoints are not both known nodes are dropped, as
    are self-loops; partially authored floorplans still load. When two
    segments join the same pair of nodes the cheaper one is kept.

    Args:
        nodes: Graph vertices, in the order that breaks snapping ties.
        segments: Undirected connections.
        pois: Points of interest.
        floorplan_id: Optional identifier carried for logging.

    Returns:
        The loaded FloorplanGraph.

    Raises:
        EmptyGraphError: If ``nodes`` is empty.
    """
    node_list: list[Node] = []
    seen: set[str] = set()
    for node in _as_models(nodes, Node):
        if node.id in seen:
            logger.debug("Dropping duplicate node id %s", node.id)
            continue
        seen.add(node.id)
        node_list.append(node)

    if not node_list:
        raise EmptyGraphError(f"floorplan {floorplan_id or '?'} has no nodes")

    index = {node.id: i for i, node in enumerate(node_list)}
    neighbor_lists: list[list[int]] = [[] for _ in node_list]
    weights: dict[tuple[int, int], float] = {}
    dropped = 0

    for segment in _as_models(segments, Segment):
        a = index.get(segment.start)
        b = index.get(segment.end)
        if a is None or b is None or a == b:
            dropped += 1
            continue
        weight = segment.weight if segment.weight is not None else DEFAULT_SEGMENT_WEIGHT
        key = _pair(a, b)
        if key in weights:
            weights[key] = min(weights[key], weight)
            continue
        weights[key] = weight
        neighbor_lists[a].append(b)
        neighbor_lists[b].append(a)

    graph = FloorplanGraph(
        nodes=tuple(node_list),
        adjacency=tuple(tuple(n) for n in neighbor_lists),
        weights=weights,
        pois=tuple(_as_models(pois, POI)),
        floorplan_id=floorplan_id,
    )

    get_logger().graph(
        f"Loaded floorplan graph v{graph.version}: "
        f"{len(graph)} nodes, {graph.segment_count} segments, {len(graph.pois)} POIs"
        + (f", {dropped} segments dropped" if dropped else ""),
        floorplan_id=floorplan_id,
    )
    return graph


def load_floorplan_document(
    document: FloorplanDocument | dict[str, Any],
    floorplan_id: str | None = None,
) -> FloorplanGraph:
    """Load a graph from the stored ``{nodes, segments, pois}`` document."""
    if not isinstance(document, FloorplanDocument):
        document = FloorplanDocument.model_validate(document)
    return load_graph(document.nodes, document.segments, document.pois, floorplan_id)


def load_floorplan_file(path: Path, floorplan_id: str | None = None) -> FloorplanGraph:
    """Load a graph from a floorplan JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return load_floorplan_document(data, floorplan_id or path.stem)
