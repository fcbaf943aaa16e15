"""Visit record sinks.

This module provides:
- VisitLogWriter: appends closed visits to a JSONL file
- InMemoryVisitSink: keeps closed visits in a list
- read_visit_log: loads a JSONL visit log back into records
"""

from __future__ import annotations

import json
import threading
from pathlib import Path

from venue_nav.core.interfaces import VisitSink
from venue_nav.schemas import VisitRecord


class VisitLogWriter(VisitSink):
    """Writes closed visit records to a JSONL log file.

    One JSON object per line, flushed after every record.
    """

    def __init__(self, log_path: Path) -> None:
        """Initialize the log writer.

        Args:
            log_path: Path to the JSONL log file.
        """
        self._log_path = log_path
        self._log_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._file = open(self._log_path, "a", encoding="utf-8")
        self.count = 0

    def emit(self, record: VisitRecord) -> None:
        line = json.dumps(record.to_log_dict(), separators=(",", ":"))
        with self._lock:
            self._file.write(line + "\n")
            self._file.flush()
            self.count += 1

    def close(self) -> None:
        """Close the log file."""
        self._file.close()

    def __enter__(self) -> VisitLogWriter:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class InMemoryVisitSink(VisitSink):
    """Collects closed visit records in memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[VisitRecord] = []

    def emit(self, record: VisitRecord) -> None:
        with self._lock:
            self._records.append(record)

    @property
    def records(self) -> list[VisitRecord]:
        with self._lock:
            return list(self._records)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


def read_visit_log(log_path: Path) -> list[VisitRecord]:
    """Load every record from a JSONL visit log, skipping blank lines."""
    records = []
    with open(log_path, "r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            data = json.loads(line)
            data.pop("log_version", None)
            records.append(VisitRecord.model_validate(data))
    return records
