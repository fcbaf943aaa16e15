"""Tests for structured logging."""

from __future__ import annotations

import io
import json

from venue_nav.utils.logging import (
    LogCategory,
    LogEntry,
    LogLevel,
    SessionLogger,
    StructuredLogger,
    create_session_logger,
    get_logger,
    set_logger,
)


class TestLogEntry:
    """Tests for LogEntry rendering."""

    def test_to_dict_includes_context(self):
        entry = LogEntry(
            LogCategory.ZONE, LogLevel.INFO, "Entered",
            device_id="d1", zone_id="z1", event_id="e1",
        )
        data = entry.to_dict()
        assert data["category"] == "ZONE"
        assert data["device_id"] == "d1"
        assert data["zone_id"] == "z1"
        assert data["context"] == {"event_id": "e1"}
        assert "node_id" not in data

    def test_console_format(self):
        entry = LogEntry(LogCategory.ROUTING, LogLevel.DEBUG, "Route A -> C", node_id="C")
        line = entry.format_console()
        assert "[ROUTING]" in line
        assert "Route A -> C (node=C)" in line

    def test_to_json(self):
        entry = LogEntry(LogCategory.DWELL, LogLevel.INFO, "Visit closed", device_id="d1")
        assert json.loads(entry.to_json())["message"] == "Visit closed"


class TestStructuredLogger:
    """Tests for StructuredLogger filtering and statistics."""

    def test_level_filtering(self):
        logger = StructuredLogger(level=LogLevel.WARNING, console_output=False)
        logger.routing("hidden")
        logger.localization("shown", level=LogLevel.WARNING)
        assert [e.message for e in logger.entries()] == ["shown"]

    def test_statistics(self):
        logger = StructuredLogger(level=LogLevel.DEBUG, console_output=False)
        logger.graph("loaded")
        logger.zone("odd", level=LogLevel.WARNING)
        logger.log(LogCategory.API, LogLevel.ERROR, "boom")

        stats = logger.statistics()
        assert stats["total"] == 3
        assert stats["by_category"]["GRAPH"] == 1
        assert stats["by_category"]["ROUTING"] == 0
        assert stats["warnings"] == 1
        assert stats["errors"] == 1

    def test_category_filter(self):
        logger = StructuredLogger(
            level=LogLevel.DEBUG,
            console_output=False,
            categories=[LogCategory.DWELL, LogCategory.ROUTING],
        )
        logger.routing("kept")
        logger.zone("dropped")
        logger.dwell("kept too")
        assert [e.message for e in logger.entries()] == ["kept", "kept too"]
        assert [e.message for e in logger.entries(LogCategory.ROUTING)] == ["kept"]

    def test_history_is_bounded(self):
        logger = StructuredLogger(console_output=False, history=2)
        for i in range(5):
            logger.system(f"tick {i}")
        assert [e.message for e in logger.entries()] == ["tick 3", "tick 4"]
        assert logger.statistics()["total"] == 5

    def test_json_file_output(self):
        buffer = io.StringIO()
        logger = StructuredLogger(console_output=False, file_output=buffer, json_output=True)
        logger.system("hello", device_id="d1")
        record = json.loads(buffer.getvalue().strip())
        assert record["category"] == "SYSTEM"
        assert record["device_id"] == "d1"

    def test_console_output(self, capsys):
        logger = StructuredLogger(console_output=True)
        logger.navigation("Destination set", level=LogLevel.INFO, device_id="d1")
        assert "[NAVIGATION]" in capsys.readouterr().out


class TestGlobalLogger:
    """Tests for the process-wide logger."""

    def test_set_and_get(self):
        logger = StructuredLogger(console_output=False)
        set_logger(logger)
        assert get_logger() is logger

    def test_session_logger_writes_jsonl(self, tmp_path):
        logger = create_session_logger("run-1", runs_dir=tmp_path, console_output=False)
        assert isinstance(logger, SessionLogger)
        assert get_logger() is logger

        logger.dwell("Visit closed", device_id="d1")
        logger.close()

        lines = (tmp_path / "run-1" / "logs" / "main.jsonl").read_text().splitlines()
        records = [json.loads(line) for line in lines]
        assert records[0]["message"] == "Session started: run-1"
        assert records[1]["message"] == "Visit closed"
        assert records[-1]["context"]["statistics"]["by_category"]["DWELL"] == 1
        assert logger.session_id == "run-1"
