"""Guard against entering the same instrument twice."""

from __future__ import annotations

import threading


class PositionGuard:
    """Tracks instruments with an active position; safe across threads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._positions: set[str] = set()

    def acquire(self, instrument_id: str) -> bool:
        """Mark the instrument active; return False if it already was."""
        with self._lock:
            if instrument_id in self._positions:
                return False
            self._positions.add(instrument_id)
            return True

    def release(self, instrument_id: str) -> None:
        """Clear the instrument's active position, if any."""
        with self._lock:
            self._positions.discard(instrument_id)

    def is_active(self, instrument_id: str) -> bool:
        """Return True if the instrument has an active position."""
        with self._lock:
            return instrument_id in self._positions

    def active_count(self) -> int:
        """Return the number of active positions."""
        with self._lock:
            return len(self._positions)