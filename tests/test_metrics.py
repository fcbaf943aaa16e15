"""Tests for visit sinks and engagement summaries."""

from __future__ import annotations

import json

import pytest

from venue_nav.metrics import (
    InMemoryVisitSink,
    VisitLogWriter,
    read_visit_log,
    summarize_visits,
)
from venue_nav.schemas import VisitRecord


def _visit(device_id, zone, entered, exited):
    return VisitRecord.open_for(device_id, zone, entered).closed_at(exited)


class TestVisitLogWriter:
    """Tests for the JSONL visit sink."""

    def test_writes_one_line_per_record(self, tmp_path, overlapping_zones):
        z1, z2 = overlapping_zones
        path = tmp_path / "logs" / "visits.jsonl"

        with VisitLogWriter(path) as writer:
            writer.emit(_visit("d1", z1, 0, 30))
            writer.emit(_visit("d2", z2, 5, 15))
            assert writer.count == 2

        lines = path.read_text().splitlines()
        assert len(lines) == 2
        first = json.loads(lines[0])
        assert first["log_version"] == "v1"
        assert first["device_id"] == "d1"
        assert first["sponsor_name"] == "Acme"

    def test_appends_and_reads_back(self, tmp_path, overlapping_zones):
        z1 = overlapping_zones[0]
        path = tmp_path / "visits.jsonl"
        with VisitLogWriter(path) as writer:
            writer.emit(_visit("d1", z1, 0, 30))
        with VisitLogWriter(path) as writer:
            writer.emit(_visit("d1", z1, 40, 50))

        records = read_visit_log(path)
        assert [r.dwell_seconds for r in records] == [30, 10]


class TestInMemoryVisitSink:
    """Tests for the in-memory sink."""

    def test_collects_and_clears(self, overlapping_zones):
        sink = InMemoryVisitSink()
        sink.emit(_visit("d1", overlapping_zones[0], 0, 1))
        assert len(sink) == 1
        assert sink.records[0].device_id == "d1"
        sink.clear()
        assert len(sink) == 0


class TestSummarizeVisits:
    """Tests for per-zone engagement aggregation."""

    def test_per_zone_totals(self, overlapping_zones):
        z1, z2 = overlapping_zones
        summaries = summarize_visits([
            _visit("d1", z1, 0, 30),
            _visit("d2", z1, 0, 90),
            _visit("d1", z2, 30, 40),
        ])

        assert [s.zone_id for s in summaries] == ["z1", "z2"]
        lounge = summaries[0]
        assert lounge.visits == 2
        assert lounge.unique_devices == 2
        assert lounge.total_dwell_seconds == 120
        assert lounge.average_dwell_seconds == 60
        assert lounge.revenue == pytest.approx(4.0)
        assert lounge.sponsor_name == "Acme"

        floor = summaries[1]
        assert floor.visits == 1
        assert floor.revenue == 0.0

    def test_open_visits_skipped(self, overlapping_zones):
        open_visit = VisitRecord.open_for("d1", overlapping_zones[0], 0)
        assert summarize_visits([open_visit]) == []

    def test_repeat_visits_count_one_device(self, overlapping_zones):
        z1 = overlapping_zones[0]
        summary = summarize_visits([_visit("d1", z1, 0, 10), _visit("d1", z1, 20, 30)])[0]
        assert summary.visits == 2
        assert summary.unique_devices == 1
