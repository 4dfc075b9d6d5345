"""Trading signals: what a bot has noticed that might be tradeable."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from typing import Any


class Direction(IntEnum):
    """Whether a signal asks to buy or to sell."""

    UNKNOWN = -1
    BUY = 0
    SELL = 1

    @classmethod
    def _missing_(cls, value: object) -> "Direction":
        return cls.UNKNOWN

    def __str__(self) -> str:
        return self.name


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Signal:
    """Something that happened and might be tradeable, on any kind of instrument.

    For prediction markets ``market_id`` is the condition id and ``instrument``
    the token id; for stocks they are the exchange and the ticker.
    ``metadata`` carries domain-specific data the framework never inspects.
    """

    id: str = ""
    timestamp: datetime = field(default_factory=_now)
    source: str = ""
    market_id: str = ""
    instrument: str = ""
    direction: Direction = Direction.BUY
    true_prob: float = 0.0
    market_prob: float = 0.0
    edge: float = 0.0
    confidence: float = 1.0
    metadata: dict[str, Any] = field(default_factory=dict)


class Generator(ABC):
    """Produces signals; each bot supplies its own."""

    @abstractmethod
    def generate(self) -> list[Signal]:
        """Return the signals found in this pass."""