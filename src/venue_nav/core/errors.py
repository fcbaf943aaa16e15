"""Engine exception hierarchy.

Low-level functions raise these; the public surfaces (navigation
session, zone detector, engine facade, API server) catch them and
return outcomes carrying the matching ErrorKind.
"""

from __future__ import annotations

from venue_nav.schemas.results import ErrorKind


class EngineError(Exception):
    """Base class for recoverable engine conditions."""

    kind: ErrorKind

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind.value)


class EmptyGraphError(EngineError):
    """A floorplan graph was loaded without any nodes."""

    kind = ErrorKind.EMPTY_GRAPH


class NoNodesAvailableError(EngineError):
    """No graph is available to snap a point against."""

    kind = ErrorKind.NO_NODES_AVAILABLE


class NoPathFoundError(EngineError):
    """The destination node is unreachable from the start node."""

    kind = ErrorKind.NO_PATH_FOUND


class ZoneCatalogUnavailableError(EngineError):
    """No zone catalog has been published for the requested event."""

    kind = ErrorKind.ZONE_CATALOG_UNAVAILABLE
