"""Position sizing from signal parameters."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class SizeParams:
    """Inputs for position sizing."""

    true_prob: float
    market_prob: float
    portfolio_value: float
    confidence: float = 1.0


class Sizer(ABC):
    """Computes a position size from signal parameters."""

    @abstractmethod
    def size(self, params: SizeParams) -> float:
        """Return the position size in base currency."""


def _round_cents(value: float) -> float:
    scaled = value * 100
    rounded = math.floor(abs(scaled) + 0.5)
    return math.copysign(rounded, scaled) / 100


@dataclass
class KellySizer(Sizer):
    """Fractional Kelly criterion sizing.

    ``fraction`` scales the full Kelly stake (0.25 for quarter-Kelly),
    ``max_position_pct`` caps the stake as a share of the portfolio and
    ``min_bet_size`` is the smallest stake worth placing.
    """

    fraction: float
    max_position_pct: float
    min_bet_size: float

    def size(self, params: SizeParams) -> float:
        """Return the recommended stake, rounded to cents, or 0 if none.

        With odds = 1 / market_prob and b = odds - 1, the Kelly fraction is
        (b * p - q) / b, where p is the true probability and q = 1 - p.
        """
        if (
            params.market_prob <= 0
            or params.market_prob >= 1
            or params.true_prob <= 0
            or params.portfolio_value <= 0
        ):
            return 0.0
        if params.true_prob <= params.market_prob:
            return 0.0

        b = 1.0 / params.market_prob - 1
        if b <= 0:
            return 0.0

        true_prob = min(params.true_prob, 0.99) if params.true_prob >= 1.0 else params.true_prob
        q = 1.0 - true_prob

        kelly = (b * true_prob - q) / b
        if kelly <= 0:
            return 0.0

        confidence = params.confidence if params.confidence > 0 else 1.0
        adjusted = kelly * self.fraction * confidence

        if self.max_position_pct > 0 and adjusted > self.max_position_pct:
            adjusted = self.max_position_pct

        stake = _round_cents(adjusted * params.portfolio_value)
        if stake < self.min_bet_size:
            return 0.0
        return stake