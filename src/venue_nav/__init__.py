"""Indoor positioning, routing and geofencing engine for event venues."""

__version__ = "0.1.0"
