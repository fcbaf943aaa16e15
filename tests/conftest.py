"""Configuration for pytest."""

import pytest

from venue_nav.utils.logging import LogLevel, StructuredLogger, set_logger


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


@pytest.fixture(autouse=True)
def quiet_logger():
    """Install a silent structured logger that keeps its history."""
    logger = StructuredLogger(level=LogLevel.DEBUG, console_output=False)
    set_logger(logger)
    return logger


@pytest.fixture
def line_graph():
    """A(0,0) - B(10,0) - C(20,0), with POI-C beside C."""
    from venue_nav.memory.graph_store import load_graph

    return load_graph(
        nodes=[
            {"id": "A", "x": 0, "y": 0},
            {"id": "B", "x": 10, "y": 0},
            {"id": "C", "x": 20, "y": 0},
        ],
        segments=[
            {"start": "A", "end": "B"},
            {"start": "B", "end": "C"},
        ],
        pois=[
            {"id": "poi-c", "name": "Booth C", "x": 21, "y": 3},
            {"id": "poi-a", "name": "Entrance", "x": 0, "y": 1},
        ],
        floorplan_id="hall-1",
    )


@pytest.fixture
def split_graph():
    """Two disconnected components: A-B and D-E."""
    from venue_nav.memory.graph_store import load_graph

    return load_graph(
        nodes=[
            {"id": "A", "x": 0, "y": 0},
            {"id": "B", "x": 10, "y": 0},
            {"id": "D", "x": 100, "y": 100},
            {"id": "E", "x": 110, "y": 100},
        ],
        segments=[
            {"start": "A", "end": "B"},
            {"start": "D", "end": "E"},
        ],
        pois=[{"id": "island", "name": "Island Stage", "x": 112, "y": 101}],
    )


@pytest.fixture
def floorplan_document():
    """A small hall with a corridor, a turn and two booths."""
    return {
        "nodes": [
            {"id": "n1", "x": 0, "y": 0, "name": "Entrance"},
            {"id": "n2", "x": 10, "y": 0},
            {"id": "n3", "x": 20, "y": 0, "name": "Cafe"},
            {"id": "n4", "x": 20, "y": 10},
        ],
        "segments": [
            {"from": "n1", "to": "n2"},
            {"start_node_id": "n2", "end_node_id": "n3"},
            {"start": "n3", "end": "n4"},
            {"start": "n4", "end": "missing"},
        ],
        "pois": [
            {"id": "booth-1", "name": "Booth 1", "x": 22, "y": 11},
            {"id": "booth-2", "name": "Booth 2", "x": 1, "y": -1},
        ],
    }


@pytest.fixture
def overlapping_zones():
    """z1 (priority 1) and z2 (priority 2) overlapping around (150, 200)."""
    from venue_nav.schemas import Zone

    return [
        Zone(id="z1", name="Sponsor Lounge", x=100, y=150, width=80, height=60, priority=1,
             sponsor_name="Acme", hourly_rate=120.0),
        Zone(id="z2", name="Main Floor", x=120, y=160, width=100, height=80, priority=2),
    ]


@pytest.fixture
def zone_catalog(overlapping_zones):
    """Catalog of the overlapping zones for event e1."""
    from venue_nav.memory.zone_catalog import ZoneCatalog

    return ZoneCatalog(overlapping_zones, event_id="e1")
