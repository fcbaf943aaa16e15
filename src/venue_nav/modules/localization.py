"""Scan payload resolution.

Turns a decoded QR string into exactly one ScanEvent. Two payload
families are understood:

- delimited ``key:value`` pairs, e.g. ``type:localization;id:p1;x:30;y:40``
  or ``type:ar;id:reward1``
- JSON anchors, e.g. ``{"qr_code_id": "A1", "x": 30, "y": 40, "event_id": "e1"}``

Anything else resolves to UnrecognizedScan. Resolution never raises.

Missing or unusable coordinates fall back to per-format defaults
(50/50 for delimited payloads, 0/0 for JSON anchors) and the result is
flagged with ``used_fallback``. With ``strict=True`` such payloads
resolve to UnrecognizedScan instead.
"""

from __future__ import annotations

import json
import math
from typing import Any

from venue_nav.schemas import LocalizationScan, RewardScan, ScanEvent, UnrecognizedScan
from venue_nav.utils.config import (
    DELIMITED_FALLBACK_X,
    DELIMITED_FALLBACK_Y,
    JSON_FALLBACK_X,
    JSON_FALLBACK_Y,
    KEY_VALUE_SEPARATOR,
    PAIR_SEPARATOR,
)
from venue_nav.utils.logging import LogLevel, get_logger

TYPE_LOCALIZATION = "localization"
TYPE_REWARD = "ar"


def _coordinate(value: Any) -> float | None:
    """A finite float, or None when the value is absent or unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_pairs(payload: str) -> dict[str, str] | None:
    """Split a delimited payload into lower-cased keys and stripped values.

    Returns None when any non-empty part lacks a key/value separator.
    """
    pairs: dict[str, str] = {}
    for part in payload.split(PAIR_SEPARATOR):
        part = part.strip()
        if not part:
            continue
        key, sep, value = part.partition(KEY_VALUE_SEPARATOR)
        if not sep or not key.strip():
            return None
        pairs[key.strip().lower()] = value.strip()
    return pairs or None


class LocalizationResolver:
    """Resolves decoded scan payloads into ScanEvents."""

    def __init__(
        self,
        strict: bool = False,
        delimited_fallback: tuple[float, float] = (DELIMITED_FALLBACK_X, DELIMITED_FALLBACK_Y),
        json_fallback: tuple[float, float] = (JSON_FALLBACK_X, JSON_FALLBACK_Y),
    ) -> None:
        """Initialize the resolver.

        Args:
            strict: Reject localization payloads with missing coordinates
                instead of substituting the fallback.
            delimited_fallback: (x, y) used for delimited payloads.
            json_fallback: (x, y) used for JSON anchor payloads.
        """
        self._strict = strict
        self._delimited_fallback = delimited_fallback
        self._json_fallback = json_fallback

    def resolve(self, payload: str) -> ScanEvent:
        """Resolve one decoded payload."""
        raw = payload if isinstance(payload, str) else str(payload)
        text = raw.strip()

        if not text:
            event: ScanEvent = UnrecognizedScan(raw=raw, reason="empty payload")
        elif text.startswith("{"):
            event = self._resolve_json(raw, text)
        else:
            event = self._resolve_delimited(raw, text)

        log = get_logger()
        if isinstance(event, UnrecognizedScan):
            log.localization(f"Unrecognized scan: {event.reason}", level=LogLevel.WARNING)
        elif isinstance(event, LocalizationScan) and event.used_fallback:
            log.localization(
                f"Anchor {event.anchor_id} missing coordinates, using ({event.x}, {event.y})",
                level=LogLevel.WARNING,
            )
        else:
            log.localization(f"Resolved {event.kind} scan", level=LogLevel.DEBUG)
        return event

    # ------------------------------------------------------------------
    # Formats
    # ------------------------------------------------------------------

    def _resolve_json(self, raw: str, text: str) -> ScanEvent:
        try:
            data = json.loads(text)
        except json.JSONDecodeError:
            return UnrecognizedScan(raw=raw, reason="malformed JSON")
        if not isinstance(data, dict) or not data.get("qr_code_id"):
            return UnrecognizedScan(raw=raw, reason="JSON payload without qr_code_id")

        event_id = data.get("event_id")
        return self._localization(
            raw,
            _coordinate(data.get("x")),
            _coordinate(data.get("y")),
            self._json_fallback,
            anchor_id=str(data["qr_code_id"]),
            event_id=str(event_id) if event_id is not None else None,
        )

    def _resolve_delimited(self, raw: str, text: str) -> ScanEvent:
        pairs = parse_pairs(text)
        if pairs is None:
            return UnrecognizedScan(raw=raw)

        scan_type = pairs.get("type", "").lower()
        if scan_type == TYPE_REWARD:
            reward_id = pairs.get("id")
            if not reward_id:
                return UnrecognizedScan(raw=raw, reason="reward payload without id")
            return RewardScan(raw=raw, reward_id=reward_id)

        if scan_type == TYPE_LOCALIZATION:
            return self._localization(
                raw,
                _coordinate(pairs.get("x")),
                _coordinate(pairs.get("y")),
                self._delimited_fallback,
                anchor_id=pairs.get("id") or None,
                event_id=pairs.get("event") or pairs.get("event_id") or None,
            )

        return UnrecognizedScan(raw=raw, reason=f"unknown payload type {scan_type or '(none)'}")

    def _localization(
        self,
        raw: str,
        x: float | None,
        y: float | None,
        fallback: tuple[float, float],
        anchor_id: str | None,
        event_id: str | None,
    ) -> ScanEvent:
        used_fallback = x is None or y is None
        if used_fallback and self._strict:
            return UnrecognizedScan(raw=raw, reason="localization payload without coordinates")
        return LocalizationScan(
            raw=raw,
            x=x if x is not None else fallback[0],
            y=y if y is not None else fallback[1],
            anchor_id=anchor_id,
            event_id=event_id,
            used_fallback=used_fallback,
        )


_default_resolver = LocalizationResolver()


def resolve_scan(payload: str) -> ScanEvent:
    """Resolve a payload with the default (non-strict) policy."""
    return _default_resolver.resolve(payload)
