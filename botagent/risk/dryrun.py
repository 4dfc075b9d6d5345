"""Paper-trading switch that skips execution."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from botagent.signals import Signal


@dataclass
class DryRun:
    """When enabled, execution is skipped and the signal is logged instead."""

    enabled: bool
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger(__name__))

    def should_skip(self, signal: Signal, size: float) -> bool:
        """Return True, after logging the signal, if dry-run mode is on."""
        if not self.enabled:
            return False
        details = {
            "signal_id": signal.id,
            "instrument": signal.instrument,
            "direction": str(signal.direction),
            "edge": signal.edge,
            "size": size,
        }
        self.logger.info(
            "DRY RUN: skipping execution signal_id=%s instrument=%s direction=%s edge=%s size=%s",
            details["signal_id"],
            details["instrument"],
            details["direction"],
            details["edge"],
            details["size"],
            extra=details,
        )
        return True