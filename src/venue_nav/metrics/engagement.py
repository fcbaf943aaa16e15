"""Per-zone engagement summaries from closed visit records.

Sponsors are billed on time spent in their zones, so the summary
reports dwell totals alongside the revenue implied by each zone's
hourly rate.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable

from pydantic import BaseModel, Field

from venue_nav.schemas import VisitRecord


class ZoneEngagement(BaseModel):
    """Aggregated engagement for one zone."""

    zone_id: str
    zone_name: str | None = None
    sponsor_name: str | None = None
    visits: int = 0
    unique_devices: int = 0
    total_dwell_seconds: float = 0.0
    average_dwell_seconds: float = 0.0
    hourly_rate: float | None = None
    revenue: float = Field(default=0.0, description="Dwell hours times hourly rate")


def summarize_visits(records: Iterable[VisitRecord]) -> list[ZoneEngagement]:
    """Aggregate closed visits by zone, ordered by total dwell (desc).

    Open visits and visits without a zone are skipped.
    """
    grouped: dict[str, list[VisitRecord]] = defaultdict(list)
    for record in records:
        if record.zone_id is None or record.dwell_seconds is None:
            continue
        grouped[record.zone_id].append(record)

    summaries = []
    for zone_id, visits in grouped.items():
        first = visits[0]
        total = sum(v.dwell_seconds for v in visits)
        rate = first.hourly_rate
        summaries.append(ZoneEngagement(
            zone_id=zone_id,
            zone_name=first.zone_name,
            sponsor_name=first.sponsor_name,
            visits=len(visits),
            unique_devices=len({v.device_id for v in visits}),
            total_dwell_seconds=total,
            average_dwell_seconds=round(total / len(visits), 2),
            hourly_rate=rate,
            revenue=round(total / 3600.0 * rate, 2) if rate else 0.0,
        ))

    summaries.sort(key=lambda s: (-s.total_dwell_seconds, s.zone_id))
    return summaries
