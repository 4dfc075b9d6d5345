"""Trade records and where they are kept."""

from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


@dataclass
class Record:
    """The minimal trade record the pipeline produces.

    ``status`` is one of "open", "filled", "closed", "failed" or "dry_run".
    """

    id: int = 0
    signal_id: str = ""
    market_id: str = ""
    instrument: str = ""
    side: str = ""
    price: float = 0.0
    size: float = 0.0
    edge: float = 0.0
    status: str = ""
    order_id: str = ""
    created_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class Recorder(ABC):
    """Persists trade records; each bot supplies its own storage."""

    @abstractmethod
    def insert(self, record: Record) -> int:
        """Store ``record`` and return its id."""

    @abstractmethod
    def update_status(self, record_id: int, status: str, order_id: str = "") -> None:
        """Set the status, and the order id if given, of a stored record."""


class InMemoryRecorder(Recorder):
    """A thread-safe recorder that keeps records in memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._trades: list[Record] = []
        self._next_id = 1

    def insert(self, record: Record) -> int:
        """Assign an id (and a creation time if missing), store a copy and return the id."""
        with self._lock:
            record.id = self._next_id
            self._next_id += 1
            if record.created_at is None:
                record.created_at = datetime.now(timezone.utc)
            self._trades.append(copy.copy(record))
            return record.id

    def update_status(self, record_id: int, status: str, order_id: str = "") -> None:
        """Update a stored record; unknown ids are ignored."""
        with self._lock:
            for stored in self._trades:
                if stored.id == record_id:
                    stored.status = status
                    if order_id:
                        stored.order_id = order_id
                    return

    def trades(self) -> list[Record]:
        """Return copies of all stored records, in insertion order."""
        with self._lock:
            return [copy.copy(r) for r in self._trades]