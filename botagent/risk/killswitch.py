"""Drawdown monitoring that halts trading past a threshold."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class KillSwitchStats:
    """A snapshot of the kill switch state."""

    triggered: bool
    triggered_at: datetime | None
    current_drawdown: float
    max_drawdown: float
    start_of_day_value: float
    current_value: float


class KillSwitch:
    """Halts trading once the day's drawdown reaches ``max_drawdown_pct``."""

    def __init__(
        self,
        max_drawdown_pct: float,
        initial_portfolio_value: float,
        logger: logging.Logger | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._max_drawdown_pct = max_drawdown_pct
        self._start_of_day_value = initial_portfolio_value
        self._current_value = initial_portfolio_value
        self._triggered = False
        self._triggered_at: datetime | None = None
        self._log = logger or logging.getLogger(__name__)

    def _raw_drawdown(self) -> float:
        return (self._start_of_day_value - self._current_value) / self._start_of_day_value

    def _clamped_drawdown(self) -> float:
        if self._start_of_day_value <= 0:
            return 0.0
        return max(self._raw_drawdown(), 0.0)

    def update_portfolio_value(self, value: float) -> bool:
        """Record a new portfolio value; return True if this update tripped the switch."""
        with self._lock:
            self._current_value = value
            if self._start_of_day_value <= 0:
                return False
            drawdown = self._raw_drawdown()
            if drawdown >= self._max_drawdown_pct and not self._triggered:
                self._triggered = True
                self._triggered_at = datetime.now(timezone.utc)
                self._log.error(
                    "KILL SWITCH TRIGGERED drawdown_pct=%s threshold_pct=%s start_of_day=%s current=%s",
                    drawdown * 100,
                    self._max_drawdown_pct * 100,
                    self._start_of_day_value,
                    value,
                )
                return True
            return False

    def trigger_silently(self) -> None:
        """Trip the switch without logging."""
        with self._lock:
            self._triggered = True
            self._triggered_at = datetime.now(timezone.utc)

    def is_triggered(self) -> bool:
        """Return whether the switch has been tripped."""
        with self._lock:
            return self._triggered

    def current_drawdown(self) -> float:
        """Return the current drawdown as a fraction, never below 0."""
        with self._lock:
            return self._clamped_drawdown()

    def reset_daily(self, new_start_value: float) -> None:
        """Start a new trading day from ``new_start_value`` and clear the trip."""
        with self._lock:
            self._start_of_day_value = new_start_value
            self._current_value = new_start_value
            self._triggered = False
            self._log.info("kill switch reset for new day start_value=%s", new_start_value)

    def risk_multiplier(self) -> float:
        """Return a position-size scale in [0, 1] that shrinks with drawdown.

        Full size up to half the maximum drawdown, then a linear ramp down to
        zero at the maximum.
        """
        with self._lock:
            if self._start_of_day_value <= 0:
                return 1.0
            drawdown = self._raw_drawdown()
            if drawdown <= 0:
                return 1.0
            scale_start = self._max_drawdown_pct * 0.5
            if drawdown <= scale_start:
                return 1.0
            if drawdown >= self._max_drawdown_pct:
                return 0.0
            return 1.0 - (drawdown - scale_start) / (self._max_drawdown_pct - scale_start)

    def stats(self) -> KillSwitchStats:
        """Return a snapshot of the current state."""
        with self._lock:
            return KillSwitchStats(
                triggered=self._triggered,
                triggered_at=self._triggered_at,
                current_drawdown=self._clamped_drawdown(),
                max_drawdown=self._max_drawdown_pct,
                start_of_day_value=self._start_of_day_value,
                current_value=self._current_value,
            )