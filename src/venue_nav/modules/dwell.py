"""Dwell-time aggregation from zone observations.

Consumes per-device ``(zone or None, timestamp)`` observations and turns
zone changes into visit records:

- a change closes the open visit (if any) at the observation time
- a change into a zone opens a new visit at the observation time
- closed visits go to the sink immediately
- ending a session force-closes the open visit at the device's last
  observed timestamp

Visits for one device therefore never overlap and never have negative
dwell. Observations older than the device's previous one are ignored.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Callable

from venue_nav.core.interfaces import VisitSink
from venue_nav.schemas import VisitRecord, Zone
from venue_nav.utils.logging import LogLevel, get_logger

SinkLike = VisitSink | Callable[[VisitRecord], None]


@dataclass
class DeviceDwellState:
    """Dwell tracking for one device.

    ``lock`` serializes observations and the session close for the
    device. ``ended`` marks a state already removed by ``end_session``.
    """

    open_visit: VisitRecord | None = None
    last_timestamp: float | None = None
    ended: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class DwellAggregator:
    """Turns zone observations into closed visit records.

    State is partitioned by device id. The aggregator lock guards the
    device map; each device's own lock is held across the read, close
    and sink call for that device.
    """

    def __init__(self, sink: SinkLike | None = None) -> None:
        """Initialize the aggregator.

        Args:
            sink: VisitSink or callable receiving each closed record.
        """
        self._sink = sink
        self._lock = threading.Lock()
        self._devices: dict[str, DeviceDwellState] = {}
        self.records_emitted = 0
        self.observations_ignored = 0

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    def observe(self, device_id: str, zone: Zone | None, timestamp: float) -> VisitRecord | None:
        """Record one observation for a device.

        Args:
            device_id: Observing device.
            zone: Detected zone, or None for "no zone".
            timestamp: Observation time in seconds.

        Returns:
            The visit closed by this observation, if any.
        """
        while True:
            state = self._state_for(device_id)
            with state.lock:
                if not state.ended:
                    return self._observe_locked(state, device_id, zone, timestamp)

    def _observe_locked(
        self,
        state: DeviceDwellState,
        device_id: str,
        zone: Zone | None,
        timestamp: float,
    ) -> VisitRecord | None:
        if state.last_timestamp is not None and timestamp < state.last_timestamp:
            self.observations_ignored += 1
            get_logger().dwell(
                f"Ignoring out-of-order observation at {timestamp} (last {state.last_timestamp})",
                level=LogLevel.WARNING,
                device_id=device_id,
            )
            return None
        state.last_timestamp = timestamp

        current_zone_id = state.open_visit.zone_id if state.open_visit else None
        new_zone_id = zone.id if zone else None
        if new_zone_id == current_zone_id:
            return None

        closed = None
        if state.open_visit is not None:
            closed = state.open_visit.closed_at(timestamp)
            state.open_visit = None
            self._emit(closed)

        if zone is not None:
            state.open_visit = VisitRecord.open_for(device_id, zone, timestamp)
            get_logger().dwell(
                f"Entered {zone.name}",
                level=LogLevel.DEBUG,
                device_id=device_id,
                zone_id=zone.id,
            )
        return closed

    def end_session(self, device_id: str, timestamp: float | None = None) -> VisitRecord | None:
        """Force-close the device's open visit and forget the device.

        Args:
            device_id: Device whose session ended.
            timestamp: Closing time; defaults to the last observed
                timestamp. Earlier values are clamped to it.

        Returns:
            The force-closed visit, if one was open.
        """
        with self._lock:
            state = self._devices.pop(device_id, None)
        if state is None:
            return None

        with state.lock:
            state.ended = True
            if state.open_visit is None:
                return None
            close_at = state.last_timestamp
            if timestamp is not None and (close_at is None or timestamp > close_at):
                close_at = timestamp
            closed = state.open_visit.closed_at(close_at)
            state.open_visit = None
            self._emit(closed)
        return closed

    def flush_all(self) -> list[VisitRecord]:
        """End every device's session at its last observed timestamp."""
        with self._lock:
            device_ids = list(self._devices)
        closed = []
        for device_id in device_ids:
            record = self.end_session(device_id)
            if record is not None:
                closed.append(record)
        return closed

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def open_visit(self, device_id: str) -> VisitRecord | None:
        with self._lock:
            state = self._devices.get(device_id)
        if state is None:
            return None
        with state.lock:
            return state.open_visit

    def tracked_devices(self) -> list[str]:
        with self._lock:
            return list(self._devices)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _state_for(self, device_id: str) -> DeviceDwellState:
        with self._lock:
            state = self._devices.get(device_id)
            if state is None:
                state = DeviceDwellState()
                self._devices[device_id] = state
            return state

    def _emit(self, record: VisitRecord) -> None:
        with self._lock:
            self.records_emitted += 1
        get_logger().dwell(
            f"Visit closed: {record.zone_name} {record.dwell_seconds:.1f}s",
            device_id=record.device_id,
            zone_id=record.zone_id,
        )
        if self._sink is None:
            return
        if isinstance(self._sink, VisitSink):
            self._sink.emit(record)
        else:
            self._sink(record)
