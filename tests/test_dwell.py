"""Tests for dwell-time aggregation into visit records."""

from __future__ import annotations

import threading

import pytest
from pydantic import ValidationError

from venue_nav.metrics.visit_log import InMemoryVisitSink
from venue_nav.modules.dwell import DwellAggregator
from venue_nav.schemas import VisitRecord


@pytest.fixture
def sink():
    return InMemoryVisitSink()


@pytest.fixture
def aggregator(sink):
    return DwellAggregator(sink)


@pytest.fixture
def z1(overlapping_zones):
    return overlapping_zones[0]


@pytest.fixture
def z2(overlapping_zones):
    return overlapping_zones[1]


class TestObserve:
    """Tests for observation handling."""

    def test_scenario_enter_then_leave(self, aggregator, sink, z1):
        assert aggregator.observe("d1", z1, 0) is None
        record = aggregator.observe("d1", None, 30)

        assert record.zone_id == "z1"
        assert record.entered_at == 0
        assert record.exited_at == 30
        assert record.dwell_seconds == 30
        assert sink.records == [record]

    def test_same_zone_does_not_emit(self, aggregator, sink, z1):
        aggregator.observe("d1", z1, 0)
        aggregator.observe("d1", z1, 10)
        aggregator.observe("d1", z1, 20)
        assert len(sink) == 0
        assert aggregator.open_visit("d1").entered_at == 0

    def test_zone_change_closes_and_opens(self, aggregator, sink, z1, z2):
        aggregator.observe("d1", z1, 0)
        closed = aggregator.observe("d1", z2, 10)

        assert closed.zone_id == "z1"
        assert closed.dwell_seconds == 10
        assert aggregator.open_visit("d1").zone_id == "z2"
        assert aggregator.open_visit("d1").entered_at == 10

    def test_no_zone_to_no_zone(self, aggregator, sink):
        assert aggregator.observe("d1", None, 0) is None
        assert aggregator.observe("d1", None, 5) is None
        assert len(sink) == 0

    def test_sponsor_metadata_carried(self, aggregator, z1):
        aggregator.observe("d1", z1, 0)
        record = aggregator.observe("d1", None, 60)
        assert record.zone_name == "Sponsor Lounge"
        assert record.sponsor_name == "Acme"
        assert record.hourly_rate == 120.0

    def test_out_of_order_ignored(self, aggregator, sink, z1):
        aggregator.observe("d1", z1, 10)
        assert aggregator.observe("d1", None, 5) is None
        assert aggregator.open_visit("d1").zone_id == "z1"
        assert aggregator.observations_ignored == 1
        assert len(sink) == 0

    def test_devices_are_independent(self, aggregator, sink, z1, z2):
        aggregator.observe("d1", z1, 0)
        aggregator.observe("d2", z2, 5)
        aggregator.observe("d1", None, 20)

        assert [r.device_id for r in sink.records] == ["d1"]
        assert aggregator.open_visit("d2").zone_id == "z2"
        assert sorted(aggregator.tracked_devices()) == ["d1", "d2"]

    def test_callable_sink(self, z1):
        received = []
        aggregator = DwellAggregator(received.append)
        aggregator.observe("d1", z1, 0)
        aggregator.observe("d1", None, 3)
        assert len(received) == 1
        assert aggregator.records_emitted == 1

    def test_no_sink(self, z1):
        aggregator = DwellAggregator()
        aggregator.observe("d1", z1, 0)
        assert aggregator.observe("d1", None, 3).dwell_seconds == 3

    def test_visits_never_overlap(self, aggregator, sink, z1, z2):
        """Closed visits of one device are disjoint and non-negative."""
        sequence = [
            (z1, 0), (z1, 4), (z2, 9), (None, 12), (z2, 12), (z1, 20),
            (z1, 18), (None, 31), (z2, 40), (z2, 41), (z1, 41), (None, 50),
        ]
        for zone, ts in sequence:
            aggregator.observe("d1", zone, ts)
        aggregator.end_session("d1")

        records = sink.records
        assert len(records) == 6
        for record in records:
            assert record.dwell_seconds >= 0
        for earlier, later in zip(records, records[1:]):
            assert later.entered_at >= earlier.exited_at


class TestEndSession:
    """Tests for forced closing at session end."""

    def test_closes_at_last_timestamp(self, aggregator, sink, z1):
        aggregator.observe("d1", z1, 0)
        aggregator.observe("d1", z1, 45)
        record = aggregator.end_session("d1")

        assert record.exited_at == 45
        assert record.dwell_seconds == 45
        assert sink.records == [record]
        assert aggregator.tracked_devices() == []

    def test_explicit_later_timestamp(self, aggregator, z1):
        aggregator.observe("d1", z1, 0)
        assert aggregator.end_session("d1", 60).dwell_seconds == 60

    def test_earlier_timestamp_clamped(self, aggregator, z1):
        aggregator.observe("d1", z1, 0)
        aggregator.observe("d1", z1, 45)
        assert aggregator.end_session("d1", 10).exited_at == 45

    def test_nothing_open(self, aggregator):
        assert aggregator.end_session("unknown") is None
        aggregator.observe("d1", None, 0)
        assert aggregator.end_session("d1") is None

    def test_flush_all(self, aggregator, sink, z1, z2):
        aggregator.observe("d1", z1, 0)
        aggregator.observe("d1", z1, 10)
        aggregator.observe("d2", z2, 5)
        aggregator.observe("d3", None, 5)

        closed = aggregator.flush_all()

        assert sorted(r.device_id for r in closed) == ["d1", "d2"]
        assert len(sink) == 2
        assert aggregator.tracked_devices() == []


class TestConcurrentClose:
    """Tests for a session close racing an observation of the same device."""

    def test_observation_and_close_emit_one_visit(self, z1):
        for _ in range(200):
            sink = InMemoryVisitSink()
            aggregator = DwellAggregator(sink)
            aggregator.observe("d1", z1, 0)
            barrier = threading.Barrier(2)

            def leave():
                barrier.wait()
                aggregator.observe("d1", None, 20)

            def close():
                barrier.wait()
                aggregator.end_session("d1")

            threads = [threading.Thread(target=leave), threading.Thread(target=close)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=5)

            assert len(sink) == 1

    def test_close_waits_for_busy_sink(self, z1):
        records = []
        entered = threading.Event()
        release = threading.Event()

        def slow_sink(record):
            records.append(record)
            entered.set()
            release.wait(timeout=5)

        aggregator = DwellAggregator(slow_sink)
        aggregator.observe("d1", z1, 0)

        leaving = threading.Thread(target=aggregator.observe, args=("d1", None, 20))
        leaving.start()
        assert entered.wait(timeout=5)
        ending = threading.Thread(target=aggregator.end_session, args=("d1",))
        ending.start()
        release.set()
        leaving.join(timeout=5)
        ending.join(timeout=5)

        assert [(r.zone_id, r.entered_at, r.exited_at) for r in records] == [("z1", 0, 20)]


class TestVisitRecord:
    """Tests for the VisitRecord schema."""

    def test_exit_before_entry_rejected(self):
        with pytest.raises(ValidationError):
            VisitRecord(device_id="d1", zone_id="z1", entered_at=10, exited_at=5, dwell_seconds=0)

    def test_open_for_and_close(self, z1):
        record = VisitRecord.open_for("d1", z1, 100)
        assert record.is_open
        closed = record.closed_at(130)
        assert not closed.is_open
        assert closed.dwell_seconds == 30
        assert record.is_open

    def test_log_dict(self, z1):
        data = VisitRecord.open_for("d1", z1, 0).closed_at(5).to_log_dict()
        assert data["log_version"] == "v1"
        assert data["zone_id"] == "z1"
        assert data["dwell_seconds"] == 5
