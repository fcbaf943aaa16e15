"""Utility functions and configuration."""

from venue_nav.utils.config import DEFAULT_API_PORT, DEFAULT_WEIGHTING
from venue_nav.utils.logging import (
    create_session_logger,
    get_logger,
    LogCategory,
    LogEntry,
    LogLevel,
    SessionLogger,
    set_logger,
    StructuredLogger,
)

__all__ = [
    "DEFAULT_API_PORT",
    "DEFAULT_WEIGHTING",
    "create_session_logger",
    "get_logger",
    "LogCategory",
    "LogEntry",
    "LogLevel",
    "SessionLogger",
    "set_logger",
    "StructuredLogger",
]
