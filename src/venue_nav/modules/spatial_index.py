"""Nearest-node resolution (snapping).

A linear scan over the node coordinate array is enough at floorplan
scale (tens to low hundreds of nodes). ``numpy.argmin`` returns the
first minimum, so equidistant nodes resolve to the earliest node in
load order.
"""

from __future__ import annotations

import numpy as np

from venue_nav.core.errors import NoNodesAvailableError
from venue_nav.memory.graph_store import FloorplanGraph
from venue_nav.schemas import Point


def nearest_index(graph: FloorplanGraph | None, x: float, y: float) -> int:
    """Arena index of the node closest to (x, y).

    Raises:
        NoNodesAvailableError: If no graph is loaded.
    """
    if graph is None or len(graph) == 0:
        raise NoNodesAvailableError("no floorplan graph loaded")
    coords = graph.coordinates
    squared = np.square(coords[:, 0] - x) + np.square(coords[:, 1] - y)
    return int(np.argmin(squared))


def nearest_node(point: Point, graph: FloorplanGraph | None) -> str:
    """Id of the node closest to ``point`` by squared Euclidean distance.

    Raises:
        NoNodesAvailableError: If no graph is loaded.
    """
    index = nearest_index(graph, point.x, point.y)
    return graph.node_at(index).id
