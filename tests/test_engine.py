"""Integration tests for the wayfinding engine facade.

Covers:
- Floorplan and zone catalog publishing
- Stateless routing and detection queries
- Scan -> position -> route flow per device
- Position -> zone -> dwell flow per device
- Snapshot replacement and session end
"""

from __future__ import annotations

import threading

import pytest
from pydantic import ValidationError

from venue_nav.core.engine import WayfindingEngine
from venue_nav.core.errors import ZoneCatalogUnavailableError
from venue_nav.metrics.visit_log import InMemoryVisitSink
from venue_nav.modules.navigation import NavigationState
from venue_nav.schemas import (
    ErrorKind,
    LocalizationScan,
    Point,
    RewardScan,
    UnrecognizedScan,
)


@pytest.fixture
def sink():
    return InMemoryVisitSink()


@pytest.fixture
def engine(sink, floorplan_document, overlapping_zones):
    engine = WayfindingEngine(sink=sink)
    engine.load_floorplan("hall", floorplan_document)
    engine.load_zones("e1", overlapping_zones)
    return engine


class TestSnapshots:
    """Tests for publishing floorplans and zone catalogs."""

    def test_load_floorplan_publishes(self, engine):
        assert engine.graphs.get("hall") is not None
        assert engine.graphs.keys() == ["hall"]

    def test_malformed_floorplan_raises(self, engine):
        with pytest.raises(ValidationError):
            engine.load_floorplan("bad", {"nodes": [{"id": "n1"}]})

    def test_empty_floorplan_reports_empty_graph(self, engine):
        assert engine.load_floorplan("hall", {"nodes": []}) is None
        assert engine.graphs.get("hall") is None
        assert engine.route("hall", 0, 0, "booth-1").error == ErrorKind.EMPTY_GRAPH

    def test_republish_clears_empty_state(self, engine, floorplan_document):
        engine.load_floorplan("hall", {"nodes": []})
        engine.load_floorplan("hall", floorplan_document)
        assert engine.route("hall", 0, 0, "booth-1").success

    def test_catalog_lookup(self, engine):
        assert len(engine.catalog("e1")) == 2
        with pytest.raises(ZoneCatalogUnavailableError):
            engine.catalog("e404")


class TestQueries:
    """Tests for stateless route and detect queries."""

    def test_route(self, engine):
        result = engine.route("hall", 0, 0, "booth-1")
        assert result.success
        assert result.node_path == ["n1", "n2", "n3", "n4"]
        assert result.points[-1] == Point(x=22, y=11)
        assert result.directions[-1] == "Arrive at Booth 1"

    def test_route_unknown_floorplan(self, engine):
        assert engine.route("nowhere", 0, 0, "booth-1").error == ErrorKind.NO_NODES_AVAILABLE

    def test_route_unknown_poi(self, engine):
        with pytest.raises(KeyError):
            engine.route("hall", 0, 0, "booth-404")

    def test_detect(self, engine):
        assert engine.detect("e1", 150, 200).zone.id == "z1"

    def test_detect_without_catalog(self, engine):
        detection = engine.detect("e404", 150, 200)
        assert detection.error == ErrorKind.ZONE_CATALOG_UNAVAILABLE


class TestDwellFlow:
    """Tests for observations feeding dwell aggregation."""

    def test_observe_produces_visit(self, engine, sink):
        assert engine.observe("d1", "e1", 150, 200, 0).zone.id == "z1"
        assert engine.observe("d1", "e1", 0, 0, 30).zone is None

        assert len(sink) == 1
        record = sink.records[0]
        assert (record.zone_id, record.entered_at, record.exited_at) == ("z1", 0, 30)

    def test_no_catalog_no_visits(self, engine, sink):
        engine.observe("d1", "e404", 150, 200, 0)
        engine.observe("d1", "e404", 0, 0, 30)
        assert len(sink) == 0
        assert engine.dwell.open_visit("d1") is None

    def test_end_session_closes_open_visit(self, engine, sink):
        engine.observe("d1", "e1", 150, 200, 0)
        engine.observe("d1", "e1", 151, 200, 20)

        closed = engine.end_session("d1")

        assert closed.dwell_seconds == 20
        assert "d1" not in engine.devices()
        assert len(sink) == 1

    def test_end_session_racing_observation(self, engine, sink):
        """Ending a session while the device reports leaving bills one visit."""
        for i in range(100):
            device_id = f"d{i}"
            engine.observe(device_id, "e1", 150, 200, 0)
            barrier = threading.Barrier(2)

            def leave():
                barrier.wait()
                engine.observe(device_id, "e1", 0, 0, 20)

            def end():
                barrier.wait()
                engine.end_session(device_id)

            threads = [threading.Thread(target=leave), threading.Thread(target=end)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=5)

        assert len(sink) == 100
        assert len({r.device_id for r in sink.records}) == 100

    def test_shutdown_flushes(self, engine, sink):
        engine.observe("d1", "e1", 150, 200, 0)
        engine.observe("d2", "e1", 210, 230, 5)
        closed = engine.shutdown()
        assert sorted(r.zone_id for r in closed) == ["z1", "z2"]
        assert engine.devices() == []

    def test_concurrent_devices(self, engine, sink):
        """Devices observed from separate threads keep separate visits."""
        def walk(device_id):
            for t in range(0, 50, 10):
                engine.observe(device_id, "e1", 150, 200, t)
            engine.observe(device_id, "e1", 0, 0, 50)

        threads = [threading.Thread(target=walk, args=(f"d{i}",)) for i in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(sink) == 8
        assert all(r.dwell_seconds == 50 for r in sink.records)


class TestScanFlow:
    """Tests for scan handling on a device."""

    def test_scan_routes_to_destination(self, engine):
        engine.join("d1", floorplan_id="hall", event_id="e1")
        assert engine.set_destination("d1", "booth-1") is None

        event = engine.handle_scan("d1", "type:localization;id:p1;x:0;y:0", observed_at=5)

        session = engine.session("d1")
        assert isinstance(event, LocalizationScan)
        assert session.state == NavigationState.ROUTING
        assert session.route.node_path == ["n1", "n2", "n3", "n4"]

    def test_reward_scan_keeps_position(self, engine):
        engine.join("d1", floorplan_id="hall")
        engine.handle_scan("d1", "type:localization;x:10;y:0", observed_at=1)
        event = engine.handle_scan("d1", "type:ar;id:reward1", observed_at=2)

        assert isinstance(event, RewardScan)
        assert engine.session("d1").position.x == 10

    def test_unrecognized_scan(self, engine):
        event = engine.handle_scan("d1", "not a code")
        assert isinstance(event, UnrecognizedScan)
        assert engine.session("d1").position is None

    def test_json_scan_binds_event_and_feeds_dwell(self, engine):
        engine.handle_scan(
            "d2", '{"qr_code_id": "A1", "x": 150, "y": 200, "event_id": "e1"}', observed_at=0
        )
        assert engine.dwell.open_visit("d2").zone_id == "z1"

    def test_manual_position_update(self, engine):
        engine.join("d1", floorplan_id="hall", event_id="e1")
        engine.update_position("d1", 0, 0, observed_at=0)
        result = engine.set_destination("d1", "booth-2")
        assert result.arrived
        assert engine.session("d1").state == NavigationState.ARRIVED

    def test_unknown_destination(self, engine):
        engine.join("d1", floorplan_id="hall")
        with pytest.raises(KeyError):
            engine.set_destination("d1", "booth-404")

    def test_clear_destination(self, engine):
        engine.join("d1", floorplan_id="hall")
        engine.update_position("d1", 0, 0, observed_at=0)
        engine.set_destination("d1", "booth-1")
        engine.clear_destination("d1")
        assert engine.session("d1").state == NavigationState.IDLE

    def test_republished_floorplan_reroutes_sessions(self, engine, floorplan_document):
        engine.join("d1", floorplan_id="hall")
        engine.update_position("d1", 0, 0, observed_at=0)
        engine.set_destination("d1", "booth-1")
        old_graph = engine.session("d1").graph

        floorplan_document["segments"].append({"start": "n1", "end": "n4"})
        new_graph = engine.load_floorplan("hall", floorplan_document)

        session = engine.session("d1")
        assert session.graph is new_graph
        assert session.graph is not old_graph
        assert session.route.node_path == ["n1", "n4"]
