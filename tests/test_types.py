from datetime import datetime, timezone

import pytest

from botagent.polymarket.types import (
    EventQuery,
    GammaEvent,
    GammaMarket,
    Market,
    MarketResolvedEvent,
    NewMarketEvent,
    OpenOrder,
    OrderBook,
    OrderRequest,
    OrderResponse,
    OrderSide,
    OrderType,
    PolymarketError,
    PriceLevel,
    PricePoint,
)


def test_price_level_from_dict():
    level = PriceLevel.from_dict({"price": "0.55", "size": "120"})
    assert level == PriceLevel(price="0.55", size="120")


def test_order_book_from_dict_keeps_levels_in_order():
    book = OrderBook.from_dict(
        {
            "bids": [{"price": "0.40", "size": "5"}, {"price": "0.45", "size": "7"}],
            "asks": [{"price": "0.60", "size": "3"}],
            "asset_id": "tok-1",
            "timestamp": "1700000000000",
        }
    )
    assert [lvl.price for lvl in book.bids] == ["0.40", "0.45"]
    assert book.asks == [PriceLevel("0.60", "3")]
    assert book.asset_id == "tok-1"
    assert book.timestamp == "1700000000000"


def test_null_fields_take_zero_values():
    book = OrderBook.from_dict({"bids": None, "asset_id": None})
    assert book.bids == []
    assert book.asset_id == ""


def test_wrong_field_type_raises():
    with pytest.raises(PolymarketError):
        GammaMarket.from_dict({"volumeNum": "100"})


def test_non_object_raises():
    with pytest.raises(PolymarketError):
        PriceLevel.from_dict(["0.5", "1"])


def test_market_from_dict_with_tokens():
    market = Market.from_dict(
        {
            "condition_id": "cond-1",
            "question": "Up or down?",
            "active": True,
            "tokens": [
                {"token_id": "a", "outcome": "Up", "price": 1},
                {"token_id": "b", "outcome": "Down", "price": 0},
            ],
        }
    )
    assert market.condition_id == "cond-1"
    assert market.active is True
    assert [t.outcome for t in market.tokens] == ["Up", "Down"]
    assert market.tokens[0].price == 1.0


def test_new_market_event_from_dict():
    event = NewMarketEvent.from_dict(
        {
            "event_type": "new_market",
            "condition_id": "cond-9",
            "assets_ids": ["x", "y"],
            "tags": ["Soccer"],
            "order_price_min_tick_size": "0.01",
            "fee_schedule": {"rate": "0.02", "taker_only": True},
        }
    )
    assert event.event_type == "new_market"
    assert event.assets_ids == ["x", "y"]
    assert event.tick_size == "0.01"
    assert event.fee_schedule is not None and event.fee_schedule.taker_only is True
    assert event.fee_schedule.rate == "0.02"


def test_new_market_event_without_fees():
    event = NewMarketEvent.from_dict({"event_type": "new_market"})
    assert event.fee_schedule is None
    assert event.clob_token_ids == []


def test_market_resolved_event_from_dict():
    event = MarketResolvedEvent.from_dict(
        {"market": "cond-2", "winning_outcome": "Up", "winning_asset_id": "tok-up"}
    )
    assert event.market == "cond-2"
    assert event.winning_outcome == "Up"
    assert event.winning_asset_id == "tok-up"


@pytest.mark.parametrize(
    ("side", "order_type", "wire_side", "wire_type"),
    [
        (OrderSide.BUY, OrderType.GTC, "BUY", "GTC"),
        (OrderSide.SELL, OrderType.FOK, "SELL", "FOK"),
    ],
)
def test_order_enums_serialise_to_wire_values(side, order_type, wire_side, wire_type):
    body = OrderRequest(
        token_id="tok", price=0.5, size=1, side=side, order_type=order_type
    ).to_dict()
    assert body["side"] == wire_side
    assert body["type"] == wire_type


def test_order_request_to_dict_omits_unset_optionals():
    body = OrderRequest(
        token_id="tok", price=0.55, size=100, side=OrderSide.BUY, order_type=OrderType.FOK
    ).to_dict()
    assert body == {"tokenID": "tok", "price": 0.55, "size": 100, "side": "BUY", "type": "FOK"}


def test_order_request_to_dict_includes_set_optionals():
    code = "0x000000000000000000000000000000000000000000000000000000000000beef"
    body = OrderRequest(
        token_id="tok",
        price=0.4,
        size=10,
        side=OrderSide.SELL,
        order_type=OrderType.GTD,
        expiration=1713398400,
        neg_risk=True,
        builder_code=code,
    ).to_dict()
    assert body["negRisk"] is True
    assert body["builderCode"] == code
    assert body["expiration"] == 1713398400
    assert body["type"] == "GTD"


def test_order_response_from_dict():
    resp = OrderResponse.from_dict({"orderID": "ord-123", "status": "MATCHED"})
    assert resp.order_id == "ord-123"
    assert resp.status == "MATCHED"
    assert resp.error_msg == ""


def test_open_order_parses_created_at():
    order = OpenOrder.from_dict(
        {"id": "o1", "asset_id": "t1", "created_at": "2024-01-02T03:04:05Z"}
    )
    assert order.order_id == "o1"
    assert order.token_id == "t1"
    assert order.created_at == datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_open_order_bad_timestamp_raises():
    with pytest.raises(PolymarketError):
        OpenOrder.from_dict({"created_at": "yesterday"})


def test_gamma_event_from_dict():
    event = GammaEvent.from_dict(
        {
            "slug": "btc-updown-5m-1",
            "volume": 12.5,
            "markets": [
                {
                    "conditionId": "c1",
                    "clobTokenIds": '["a","b"]',
                    "acceptingOrders": True,
                    "volumeNum": 100000,
                }
            ],
        }
    )
    assert event.slug == "btc-updown-5m-1"
    assert event.volume == 12.5
    market = event.markets[0]
    assert market.condition_id == "c1"
    assert market.clob_token_ids == '["a","b"]'
    assert market.accepting_orders is True
    assert market.volume == 100000.0


def test_price_point_from_dict():
    assert PricePoint.from_dict({"t": 1713398400, "p": 0.42}) == PricePoint(1713398400, 0.42)


def test_price_point_rejects_fractional_time():
    with pytest.raises(PolymarketError):
        PricePoint.from_dict({"t": 1.5, "p": 0.4})


def test_event_query_empty_has_no_params():
    assert EventQuery().to_params() == {}


def test_event_query_params_sorted_and_formatted():
    params = EventQuery(tag_id=100350, closed=False, limit=100, order="startDate").to_params()
    assert params == {
        "ascending": "false",
        "closed": "false",
        "limit": "100",
        "order": "startDate",
        "tag_id": "100350",
    }
    assert list(params) == sorted(params)


def test_event_query_ascending_only_with_order():
    assert "ascending" not in EventQuery(ascending=True).to_params()
    assert EventQuery(order="startDate", ascending=True).to_params()["ascending"] == "true"