"""Wire types for the Polymarket CLOB and Gamma APIs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping


class PolymarketError(Exception):
    """Raised when a Polymarket request fails or a response cannot be read."""


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise PolymarketError(f"{what}: expected a JSON object, got {type(data).__name__}")
    return data


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise PolymarketError(f"field {key!r}: expected string, got {type(value).__name__}")
    return value


def _bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise PolymarketError(f"field {key!r}: expected bool, got {type(value).__name__}")
    return value


def _float(data: Mapping[str, Any], key: str) -> float:
    value = data.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise PolymarketError(f"field {key!r}: expected number, got {type(value).__name__}")
    return float(value)


def _int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise PolymarketError(f"field {key!r}: expected integer, got {type(value).__name__}")
    return value


def _str_list(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise PolymarketError(f"field {key!r}: expected a list of strings")
    return list(value)


def _list(data: Mapping[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise PolymarketError(f"field {key!r}: expected a list, got {type(value).__name__}")
    return value


def _datetime(data: Mapping[str, Any], key: str) -> datetime | None:
    raw = _str(data, key)
    if not raw:
        return None
    text = raw[:-1] + "+00:00" if raw.endswith(("Z", "z")) else raw
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        raise PolymarketError(f"field {key!r}: invalid timestamp {raw!r}") from exc


@dataclass
class PriceLevel:
    """One price level of an order book, as the API sends it (decimal strings)."""

    price: str = ""
    size: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PriceLevel":
        data = _mapping(data, "price level")
        return cls(price=_str(data, "price"), size=_str(data, "size"))


def _levels(data: Mapping[str, Any], key: str) -> list[PriceLevel]:
    return [PriceLevel.from_dict(item) for item in _list(data, key)]


@dataclass
class OrderBook:
    """The state of the order book for one token."""

    bids: list[PriceLevel] = field(default_factory=list)
    asks: list[PriceLevel] = field(default_factory=list)
    asset_id: str = ""
    timestamp: str = ""  # Unix milliseconds, as a string

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OrderBook":
        data = _mapping(data, "order book")
        return cls(
            bids=_levels(data, "bids"),
            asks=_levels(data, "asks"),
            asset_id=_str(data, "asset_id"),
            timestamp=_str(data, "timestamp"),
        )


@dataclass
class MarketToken:
    """A token of a market; after resolution its price is 0 (lost) or 1 (won)."""

    token_id: str = ""
    outcome: str = ""
    price: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MarketToken":
        data = _mapping(data, "market token")
        return cls(
            token_id=_str(data, "token_id"),
            outcome=_str(data, "outcome"),
            price=_float(data, "price"),
        )


@dataclass
class Market:
    """A Polymarket market (condition)."""

    condition_id: str = ""
    question_id: str = ""
    question: str = ""
    active: bool = False
    closed: bool = False
    volume: str = ""
    end_date_iso: str = ""
    game_start_time: str = ""
    tokens: list[MarketToken] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Market":
        data = _mapping(data, "market")
        return cls(
            condition_id=_str(data, "condition_id"),
            question_id=_str(data, "question_id"),
            question=_str(data, "question"),
            active=_bool(data, "active"),
            closed=_bool(data, "closed"),
            volume=_str(data, "volume"),
            end_date_iso=_str(data, "end_date_iso"),
            game_start_time=_str(data, "game_start_time"),
            tokens=[MarketToken.from_dict(item) for item in _list(data, "tokens")],
        )


@dataclass
class FeeSchedule:
    """The fee structure of a market."""

    exponent: str = ""
    rate: str = ""
    taker_only: bool = False
    rebate_rate: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FeeSchedule":
        data = _mapping(data, "fee schedule")
        return cls(
            exponent=_str(data, "exponent"),
            rate=_str(data, "rate"),
            taker_only=_bool(data, "taker_only"),
            rebate_rate=_str(data, "rebate_rate"),
        )


@dataclass
class NewMarketEvent:
    """A ``new_market`` WebSocket event; ``market`` holds the condition id."""

    id: str = ""
    question: str = ""
    market: str = ""
    slug: str = ""
    description: str = ""
    assets_ids: list[str] = field(default_factory=list)
    outcomes: list[str] = field(default_factory=list)
    event_type: str = ""
    timestamp: str = ""
    tags: list[str] = field(default_factory=list)
    condition_id: str = ""
    active: bool = False
    clob_token_ids: list[str] = field(default_factory=list)
    tick_size: str = ""
    fee_schedule: FeeSchedule | None = None
    group_item_title: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NewMarketEvent":
        data = _mapping(data, "new_market event")
        fees = data.get("fee_schedule")
        return cls(
            id=_str(data, "id"),
            question=_str(data, "question"),
            market=_str(data, "market"),
            slug=_str(data, "slug"),
            description=_str(data, "description"),
            assets_ids=_str_list(data, "assets_ids"),
            outcomes=_str_list(data, "outcomes"),
            event_type=_str(data, "event_type"),
            timestamp=_str(data, "timestamp"),
            tags=_str_list(data, "tags"),
            condition_id=_str(data, "condition_id"),
            active=_bool(data, "active"),
            clob_token_ids=_str_list(data, "clob_token_ids"),
            tick_size=_str(data, "order_price_min_tick_size"),
            fee_schedule=None if fees is None else FeeSchedule.from_dict(fees),
            group_item_title=_str(data, "group_item_title"),
        )


@dataclass
class MarketResolvedEvent:
    """A ``market_resolved`` WebSocket event; ``market`` holds the condition id."""

    id: str = ""
    question: str = ""
    market: str = ""
    slug: str = ""
    assets_ids: list[str] = field(default_factory=list)
    outcomes: list[str] = field(default_factory=list)
    winning_asset_id: str = ""
    winning_outcome: str = ""
    event_type: str = ""
    timestamp: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MarketResolvedEvent":
        data = _mapping(data, "market_resolved event")
        return cls(
            id=_str(data, "id"),
            question=_str(data, "question"),
            market=_str(data, "market"),
            slug=_str(data, "slug"),
            assets_ids=_str_list(data, "assets_ids"),
            outcomes=_str_list(data, "outcomes"),
            winning_asset_id=_str(data, "winning_asset_id"),
            winning_outcome=_str(data, "winning_outcome"),
            event_type=_str(data, "event_type"),
            timestamp=_str(data, "timestamp"),
        )


class OrderSide(str, Enum):
    """Buy or sell."""

    BUY = "BUY"
    SELL = "SELL"

    def __str__(self) -> str:
        return self.value


class OrderType(str, Enum):
    """How long an order stays on the book."""

    GTC = "GTC"  # good till cancelled
    FOK = "FOK"  # fill or kill
    GTD = "GTD"  # good till date

    def __str__(self) -> str:
        return self.value


@dataclass
class OrderRequest:
    """An order as sent to the CLOB.

    ``expiration`` (Unix seconds) is needed for GTD orders; ``builder_code``
    is a 0x-prefixed bytes32 hex string attributing the order to a builder.
    """

    token_id: str
    price: float
    size: float
    side: OrderSide = OrderSide.BUY
    order_type: OrderType = OrderType.GTC
    expiration: int = 0
    neg_risk: bool = False
    builder_code: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body, leaving out unset optional fields."""
        body: dict[str, Any] = {
            "tokenID": self.token_id,
            "price": self.price,
            "size": self.size,
            "side": OrderSide(self.side).value,
            "type": OrderType(self.order_type).value,
        }
        if self.expiration:
            body["expiration"] = self.expiration
        if self.neg_risk:
            body["negRisk"] = True
        if self.builder_code:
            body["builderCode"] = self.builder_code
        return body


@dataclass
class OrderResponse:
    """What the CLOB returns for a placed order."""

    order_id: str = ""
    status: str = ""
    error_msg: str = ""
    transact_hash: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OrderResponse":
        data = _mapping(data, "order response")
        return cls(
            order_id=_str(data, "orderID"),
            status=_str(data, "status"),
            error_msg=_str(data, "errorMsg"),
            transact_hash=_str(data, "transactHash"),
        )


@dataclass
class OpenOrder:
    """An order that is still on the book."""

    order_id: str = ""
    token_id: str = ""
    side: str = ""
    price: str = ""
    original_size: str = ""
    size_matched: str = ""
    status: str = ""
    created_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OpenOrder":
        data = _mapping(data, "open order")
        return cls(
            order_id=_str(data, "id"),
            token_id=_str(data, "asset_id"),
            side=_str(data, "side"),
            price=_str(data, "price"),
            original_size=_str(data, "original_size"),
            size_matched=_str(data, "size_matched"),
            status=_str(data, "status"),
            created_at=_datetime(data, "created_at"),
        )


@dataclass
class BalanceResponse:
    """The user's USDC balance."""

    balance: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BalanceResponse":
        data = _mapping(data, "balance response")
        return cls(balance=_str(data, "balance"))


@dataclass
class GammaMarket:
    """A market inside a Gamma event.

    ``clob_token_ids``, ``outcomes`` and ``outcome_prices`` hold JSON arrays
    encoded as strings, exactly as the API sends them.
    """

    id: str = ""
    question: str = ""
    condition_id: str = ""
    slug: str = ""
    clob_token_ids: str = ""
    outcomes: str = ""
    outcome_prices: str = ""
    active: bool = False
    closed: bool = False
    end_date: str = ""
    accepting_orders: bool = False
    volume: float = 0.0
    group_item_title: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GammaMarket":
        data = _mapping(data, "gamma market")
        return cls(
            id=_str(data, "id"),
            question=_str(data, "question"),
            condition_id=_str(data, "conditionId"),
            slug=_str(data, "slug"),
            clob_token_ids=_str(data, "clobTokenIds"),
            outcomes=_str(data, "outcomes"),
            outcome_prices=_str(data, "outcomePrices"),
            active=_bool(data, "active"),
            closed=_bool(data, "closed"),
            end_date=_str(data, "endDate"),
            accepting_orders=_bool(data, "acceptingOrders"),
            volume=_float(data, "volumeNum"),
            group_item_title=_str(data, "groupItemTitle"),
        )


@dataclass
class GammaEvent:
    """An event from the Gamma API, with its markets."""

    id: str = ""
    slug: str = ""
    title: str = ""
    start_date: str = ""
    end_date: str = ""
    active: bool = False
    closed: bool = False
    volume: float = 0.0
    liquidity: float = 0.0
    markets: list[GammaMarket] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GammaEvent":
        data = _mapping(data, "gamma event")
        return cls(
            id=_str(data, "id"),
            slug=_str(data, "slug"),
            title=_str(data, "title"),
            start_date=_str(data, "startDate"),
            end_date=_str(data, "endDate"),
            active=_bool(data, "active"),
            closed=_bool(data, "closed"),
            volume=_float(data, "volume"),
            liquidity=_float(data, "liquidity"),
            markets=[GammaMarket.from_dict(item) for item in _list(data, "markets")],
        )


@dataclass
class PricePoint:
    """One historical price observation: Unix time ``t`` and probability ``p``."""

    t: int = 0
    p: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PricePoint":
        data = _mapping(data, "price point")
        return cls(t=_int(data, "t"), p=_float(data, "p"))


@dataclass
class EventQuery:
    """Filters for the Gamma events endpoint; unset filters are not sent."""

    tag_id: int = 0
    slug: str = ""
    closed: bool | None = None
    active: bool | None = None
    limit: int = 0
    offset: int = 0
    order: str = ""  # field to order by, e.g. "startDate"
    ascending: bool = False

    def to_params(self) -> dict[str, str]:
        """Return the query parameters, sorted by name."""
        params: dict[str, str] = {}
        if self.tag_id > 0:
            params["tag_id"] = str(self.tag_id)
        if self.slug:
            params["slug"] = self.slug
        if self.closed is not None:
            params["closed"] = "true" if self.closed else "false"
        if self.active is not None:
            params["active"] = "true" if self.active else "false"
        if self.limit > 0:
            params["limit"] = str(self.limit)
        if self.offset > 0:
            params["offset"] = str(self.offset)
        if self.order:
            params["order"] = self.order
            params["ascending"] = "true" if self.ascending else "false"
        return dict(sorted(params.items()))