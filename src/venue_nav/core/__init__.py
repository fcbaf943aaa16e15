"""Engine errors and collaborator interfaces.

The engine facade lives in ``venue_nav.core.engine``.
"""

from venue_nav.core.errors import (
    EmptyGraphError,
    EngineError,
    NoNodesAvailableError,
    NoPathFoundError,
    ZoneCatalogUnavailableError,
)
from venue_nav.core.interfaces import VisitSink

__all__ = [
    "EmptyGraphError",
    "EngineError",
    "NoNodesAvailableError",
    "NoPathFoundError",
    "VisitSink",
    "ZoneCatalogUnavailableError",
]
