"""Configuration constants for the wayfinding engine."""

# Log format version for JSONL records
LOG_VERSION: str = "v1"

# =============================================================================
# Floorplan Graph
# =============================================================================

# Cost of a segment that does not carry an explicit weight (one "hop")
DEFAULT_SEGMENT_WEIGHT: float = 1.0

# Edge weighting modes understood by the router
WEIGHTING_HOP: str = "hop"
WEIGHTING_EUCLIDEAN: str = "euclidean"
DEFAULT_WEIGHTING: str = WEIGHTING_HOP

# =============================================================================
# Localization (QR anchors)
# =============================================================================

# Substituted when a delimited localization payload lacks a usable coordinate
DELIMITED_FALLBACK_X: float = 50.0
DELIMITED_FALLBACK_Y: float = 50.0

# Substituted when a JSON anchor payload lacks a coordinate
JSON_FALLBACK_X: float = 0.0
JSON_FALLBACK_Y: float = 0.0

# Separators of the delimited payload format ("type:localization;x:30;y:40")
PAIR_SEPARATOR: str = ";"
KEY_VALUE_SEPARATOR: str = ":"

# =============================================================================
# Turn-by-turn Directions
# =============================================================================

# Heading change (degrees) under which a waypoint counts as "straight"
TURN_STRAIGHT_MAX_DEG: float = 30.0

# Heading change (degrees) over which a waypoint counts as a "u-turn"
TURN_UTURN_MIN_DEG: float = 150.0

# Legs shorter than this are not annotated with a distance
DIRECTION_MIN_ANNOTATED_DISTANCE: float = 5.0

# =============================================================================
# Query API Server
# =============================================================================

DEFAULT_API_HOST: str = "127.0.0.1"
DEFAULT_API_PORT: int = 8780
