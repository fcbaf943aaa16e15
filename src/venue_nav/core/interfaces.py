"""Abstract base classes for the engine's external collaborators.

The engine calls into these but does not own their lifecycle. Delivery
guarantees (retries, batching) belong to the implementation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from venue_nav.schemas import VisitRecord


class VisitSink(ABC):
    """Receives closed visit records for engagement analytics.

    Implementations might include:
    - JSONL file output
    - An in-memory buffer for tests and replay
    - A forwarder to the analytics backend
    """

    @abstractmethod
    def emit(self, record: VisitRecord) -> None:
        """Accept one closed visit record.

        Args:
            record: A VisitRecord with exited_at and dwell_seconds set.
        """
        ...

    def close(self) -> None:
        """Release any held resources.

        Optional - sinks without resources need not override.
        """
        pass
