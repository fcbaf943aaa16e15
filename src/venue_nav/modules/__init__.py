"""Engine components: snapping, routing, localization, navigation, zones, dwell."""

from venue_nav.modules.dwell import DwellAggregator
from venue_nav.modules.localization import LocalizationResolver, parse_pairs, resolve_scan
from venue_nav.modules.navigation import NavigationSession, NavigationState, RouteRequest
from venue_nav.modules.router import (
    Router,
    WEIGHTING_MODES,
    classify_turn,
    find_path,
    materialize_path,
    path_distance,
    turn_by_turn,
)
from venue_nav.modules.spatial_index import nearest_index, nearest_node
from venue_nav.modules.zone_detector import ZoneDetector, detect

__all__ = [
    "DwellAggregator",
    "LocalizationResolver",
    "NavigationSession",
    "NavigationState",
    "RouteRequest",
    "Router",
    "WEIGHTING_MODES",
    "ZoneDetector",
    "classify_turn",
    "detect",
    "find_path",
    "materialize_path",
    "nearest_index",
    "nearest_node",
    "parse_pairs",
    "path_distance",
    "resolve_scan",
    "turn_by_turn",
]
