"""Visit sinks and engagement summaries."""

from venue_nav.metrics.engagement import ZoneEngagement, summarize_visits
from venue_nav.metrics.visit_log import InMemoryVisitSink, VisitLogWriter, read_visit_log

__all__ = [
    "InMemoryVisitSink",
    "VisitLogWriter",
    "ZoneEngagement",
    "read_visit_log",
    "summarize_visits",
]
