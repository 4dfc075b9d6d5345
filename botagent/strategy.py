"""Deciding whether a signal should be traded."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from botagent.signals import Signal


@dataclass
class Decision:
    """The outcome of evaluating a signal.

    ``position_size`` is in base currency; ``reason_skipped`` is filled in
    when the signal is not approved.
    """

    approved: bool
    signal: Signal
    position_size: float = 0.0
    reason_skipped: str = ""


class Evaluator(ABC):
    """Applies a bot's own filters and sizing to a signal."""

    @abstractmethod
    def evaluate(self, signal: Signal) -> Decision:
        """Return the decision for ``signal``."""