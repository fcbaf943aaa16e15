"""Atomically swapped read-only snapshots.

Graphs and zone catalogs are published under a key (floorplan id or
event id). Publishing replaces the reference under a lock; readers take
the reference once per query and keep using that snapshot until they
finish, so they never see a partially updated one.
"""

from __future__ import annotations

import threading
from typing import Generic, TypeVar

T = TypeVar("T")


class SnapshotRegistry(Generic[T]):
    """Thread-safe mapping of key -> current immutable snapshot."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshots: dict[str, T] = {}

    def publish(self, key: str, snapshot: T) -> T | None:
        """Install a snapshot, returning the one it replaced."""
        with self._lock:
            previous = self._snapshots.get(key)
            self._snapshots[key] = snapshot
        return previous

    def get(self, key: str | None) -> T | None:
        if key is None:
            return None
        with self._lock:
            return self._snapshots.get(key)

    def remove(self, key: str) -> T | None:
        with self._lock:
            return self._snapshots.pop(key, None)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._snapshots)

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)
