"""Structured logging for the wayfinding engine.

Routing, localization and zone decisions are logged with the device,
node and zone they concern, so a device's session can be followed
through the log afterwards. Library modules keep using
``logging.getLogger(__name__)`` for plain debug traces; this logger
carries the engine's own decisions.
"""

from __future__ import annotations

import json
from collections import Counter, deque
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, TextIO

# =============================================================================
# LOG CATEGORIES
# =============================================================================

class LogCategory(str, Enum):
    """Engine component an entry belongs to."""
    GRAPH = "GRAPH"                # Floorplan loading and snapshot swaps
    ROUTING = "ROUTING"            # Shortest paths
    LOCALIZATION = "LOCALIZATION"  # Scan payloads
    NAVIGATION = "NAVIGATION"      # Session state changes
    ZONE = "ZONE"                  # Catalogs and detection
    DWELL = "DWELL"                # Visits
    API = "API"                    # HTTP requests
    SYSTEM = "SYSTEM"              # Process lifecycle


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


_SEVERITY = {LogLevel.DEBUG: 0, LogLevel.INFO: 1, LogLevel.WARNING: 2, LogLevel.ERROR: 3}


# =============================================================================
# LOG ENTRY
# =============================================================================

class LogEntry:
    """One logged decision.

    ``device_id``, ``node_id`` and ``zone_id`` are promoted to top-level
    fields; any other keyword lands in ``context``.
    """

    def __init__(
        self,
        category: LogCategory,
        level: LogLevel,
        message: str,
        device_id: str | None = None,
        node_id: str | None = None,
        zone_id: str | None = None,
        **context: Any,
    ):
        self.timestamp = datetime.now()
        self.category = category
        self.level = level
        self.message = message
        self.device_id = device_id
        self.node_id = node_id
        self.zone_id = zone_id
        self.context = context

    def _subjects(self) -> dict[str, str]:
        subjects = {"device": self.device_id, "node": self.node_id, "zone": self.zone_id}
        return {k: v for k, v in subjects.items() if v is not None}

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "category": self.category.value,
            "level": self.level.value,
            "message": self.message,
        }
        for key, value in self._subjects().items():
            d[f"{key}_id"] = value
        if self.context:
            d["context"] = self.context
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def format_console(self) -> str:
        """``HH:MM:SS.mmm [CATEGORY] message (device=..., zone=...)``."""
        subjects = ", ".join(f"{k}={v}" for k, v in self._subjects().items())
        suffix = f" ({subjects})" if subjects else ""
        ts = self.timestamp.strftime("%H:%M:%S.%f")[:-3]
        return f"{ts} {'[' + self.category.value + ']':16} {self.message}{suffix}"


# =============================================================================
# STRUCTURED LOGGER
# =============================================================================

class StructuredLogger:
    """Category-prefixed logger with a bounded in-memory history.

    Entries below ``level``, or outside ``categories`` when that is
    given, are created but neither recorded nor written.
    """

    def __init__(
        self,
        level: LogLevel = LogLevel.INFO,
        console_output: bool = True,
        file_output: TextIO | None = None,
        json_output: bool = False,
        categories: Iterable[LogCategory] | None = None,
        history: int = 10000,
    ):
        """Initialize the logger.

        Args:
            level: Minimum level recorded.
            console_output: Print recorded entries to stdout.
            file_output: Open text stream that also receives entries.
            json_output: Write JSON lines to ``file_output`` instead of
                the console format.
            categories: Record only these categories (default: all).
            history: Number of entries kept in memory.
        """
        self._level = level
        self._console_output = console_output
        self._file_output = file_output
        self._json_output = json_output
        self._categories = frozenset(categories) if categories is not None else None
        self._entries: deque[LogEntry] = deque(maxlen=history)
        self._by_category: Counter[LogCategory] = Counter()
        self._by_level: Counter[LogLevel] = Counter()

    def log(self, category: LogCategory, level: LogLevel, message: str, **kwargs: Any) -> LogEntry:
        entry = LogEntry(category, level, message, **kwargs)
        if _SEVERITY[level] < _SEVERITY[self._level]:
            return entry
        if self._categories is not None and category not in self._categories:
            return entry

        self._by_category[category] += 1
        self._by_level[level] += 1
        self._entries.append(entry)

        if self._console_output:
            print(entry.format_console())
        if self._file_output is not None:
            line = entry.to_json() if self._json_output else entry.format_console()
            self._file_output.write(line + "\n")
            self._file_output.flush()
        return entry

    # -------------------------------------------------------------------------
    # PER-COMPONENT SHORTCUTS
    # -------------------------------------------------------------------------

    def graph(self, message: str, level: LogLevel = LogLevel.INFO, **kwargs: Any) -> LogEntry:
        return self.log(LogCategory.GRAPH, level, message, **kwargs)

    def routing(self, message: str, level: LogLevel = LogLevel.DEBUG, **kwargs: Any) -> LogEntry:
        return self.log(LogCategory.ROUTING, level, message, **kwargs)

    def localization(self, message: str, level: LogLevel = LogLevel.INFO, **kwargs: Any) -> LogEntry:
        return self.log(LogCategory.LOCALIZATION, level, message, **kwargs)

    def navigation(self, message: str, level: LogLevel = LogLevel.DEBUG, **kwargs: Any) -> LogEntry:
        return self.log(LogCategory.NAVIGATION, level, message, **kwargs)

    def zone(self, message: str, level: LogLevel = LogLevel.DEBUG, **kwargs: Any) -> LogEntry:
        return self.log(LogCategory.ZONE, level, message, **kwargs)

    def dwell(self, message: str, level: LogLevel = LogLevel.INFO, **kwargs: Any) -> LogEntry:
        return self.log(LogCategory.DWELL, level, message, **kwargs)

    def api(self, message: str, level: LogLevel = LogLevel.INFO, **kwargs: Any) -> LogEntry:
        return self.log(LogCategory.API, level, message, **kwargs)

    def system(self, message: str, level: LogLevel = LogLevel.INFO, **kwargs: Any) -> LogEntry:
        return self.log(LogCategory.SYSTEM, level, message, **kwargs)

    # -------------------------------------------------------------------------
    # HISTORY
    # -------------------------------------------------------------------------

    def entries(self, category: LogCategory | None = None) -> list[LogEntry]:
        """Recorded entries, oldest first, optionally for one category."""
        if category is None:
            return list(self._entries)
        return [e for e in self._entries if e.category == category]

    def statistics(self) -> dict[str, Any]:
        """Counts of recorded entries by category and level."""
        return {
            "total": sum(self._by_category.values()),
            "by_category": {cat.value: self._by_category[cat] for cat in LogCategory},
            "warnings": self._by_level[LogLevel.WARNING],
            "errors": self._by_level[LogLevel.ERROR],
        }


# =============================================================================
# SESSION LOGGER
# =============================================================================

class SessionLogger(StructuredLogger):
    """Logger for one server run, writing ``<runs_dir>/<session_id>/logs/main.jsonl``."""

    def __init__(
        self,
        session_id: str,
        runs_dir: str | Path = "runs",
        console_output: bool = True,
        level: LogLevel = LogLevel.INFO,
    ):
        self.session_id = session_id
        logs_dir = Path(runs_dir) / session_id / "logs"
        logs_dir.mkdir(parents=True, exist_ok=True)
        self._log_file = open(logs_dir / "main.jsonl", "a", encoding="utf-8")
        super().__init__(
            level=level,
            console_output=console_output,
            file_output=self._log_file,
            json_output=True,
        )
        self.system(f"Session started: {session_id}")

    def close(self) -> None:
        """Write the run's entry counts and close the file."""
        self.system(f"Session ended: {self.session_id}", statistics=self.statistics())
        self._file_output = None
        self._log_file.close()


# =============================================================================
# PROCESS-WIDE LOGGER
# =============================================================================

_global_logger: StructuredLogger | None = None


def get_logger() -> StructuredLogger:
    """The process-wide logger, created on first use."""
    global _global_logger
    if _global_logger is None:
        _global_logger = StructuredLogger()
    return _global_logger


def set_logger(logger: StructuredLogger) -> None:
    global _global_logger
    _global_logger = logger


def create_session_logger(
    session_id: str | None = None,
    runs_dir: str | Path = "runs",
    console_output: bool = True,
    level: LogLevel = LogLevel.INFO,
) -> SessionLogger:
    """Install a SessionLogger as the process-wide logger.

    The session id defaults to the start time (``YYYYmmdd_HHMMSS``).
    """
    if session_id is None:
        session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    logger = SessionLogger(
        session_id=session_id,
        runs_dir=runs_dir,
        console_output=console_output,
        level=level,
    )
    set_logger(logger)
    return logger


__all__ = [
    "LogCategory",
    "LogLevel",
    "LogEntry",
    "StructuredLogger",
    "SessionLogger",
    "get_logger",
    "set_logger",
    "create_session_logger",
]
