import json

import pytest

from botagent.polymarket.hybridclient import HybridCLOBClient
from botagent.polymarket.types import OrderBook, PolymarketError, PriceLevel
from botagent.polymarket.wsfeed import PolymarketFeed


class FakeRest:
    def __init__(self, book=None, mid=0.0, error=None):
        self.book = book
        self.mid = mid
        self.error = error
        self.calls = []

    def get_order_book(self, token_id):
        self.calls.append(("book", token_id))
        if self.error is not None:
            raise self.error
        return self.book

    def get_mid_price(self, token_id):
        self.calls.append(("mid", token_id))
        if self.error is not None:
            raise self.error
        return self.mid


def _feed():
    return PolymarketFeed("ws://localhost/ws")


def _book_message(asset_id, bids, asks):
    return json.dumps(
        {
            "event_type": "book",
            "asset_id": asset_id,
            "market": "cond-1",
            "bids": [{"price": p, "size": s} for p, s in bids],
            "asks": [{"price": p, "size": s} for p, s in asks],
            "timestamp": "1713398400000",
        }
    )


def test_order_book_served_from_cache():
    feed = _feed()
    feed.handle_message(_book_message("tok-1", [("0.40", "10")], [("0.60", "5")]))
    rest = FakeRest()
    client = HybridCLOBClient(feed, rest)

    book = client.get_order_book("tok-1")

    assert book.asset_id == "tok-1"
    assert [(lvl.price, lvl.size) for lvl in book.bids] == [("0.40", "10")]
    assert [(lvl.price, lvl.size) for lvl in book.asks] == [("0.60", "5")]
    assert rest.calls == []


def test_order_book_falls_back_to_rest_on_miss():
    rest_book = OrderBook(
        bids=[PriceLevel(price="0.30", size="1")],
        asks=[],
        asset_id="tok-2",
        timestamp="",
    )
    rest = FakeRest(book=rest_book)
    client = HybridCLOBClient(_feed(), rest)

    assert client.get_order_book("tok-2") is rest_book
    assert rest.calls == [("book", "tok-2")]


def test_mid_price_served_from_cache():
    feed = _feed()
    feed.handle_message(_book_message("tok-1", [("0.40", "10")], [("0.60", "5")]))
    rest = FakeRest(mid=0.99)
    client = HybridCLOBClient(feed, rest)

    assert client.get_mid_price("tok-1") == pytest.approx(0.5)
    assert rest.calls == []


def test_mid_price_lies_between_cached_bid_and_ask():
    feed = _feed()
    feed.handle_message(_book_message("tok-3", [("0.21", "1")], [("0.35", "1")]))
    client = HybridCLOBClient(feed, FakeRest())

    assert 0.21 < client.get_mid_price("tok-3") < 0.35


def test_mid_price_needs_both_sides_in_cache():
    feed = _feed()
    feed.handle_message(_book_message("tok-1", [("0.40", "10")], []))
    rest = FakeRest(mid=0.47)
    client = HybridCLOBClient(feed, rest)

    assert client.get_mid_price("tok-1") == 0.47
    assert rest.calls == [("mid", "tok-1")]


def test_rest_errors_propagate():
    rest = FakeRest(error=PolymarketError("boom"))
    client = HybridCLOBClient(_feed(), rest)

    with pytest.raises(PolymarketError):
        client.get_order_book("missing")
    with pytest.raises(PolymarketError):
        client.get_mid_price("missing")
    assert rest.calls == [("book", "missing"), ("mid", "missing")]


def test_cached_book_is_a_copy():
    feed = _feed()
    feed.handle_message(_book_message("tok-1", [("0.40", "10")], [("0.60", "5")]))
    client = HybridCLOBClient(feed, FakeRest())

    first = client.get_order_book("tok-1")
    first.bids.clear()
    second = client.get_order_book("tok-1")

    assert len(second.bids) == 1
    assert second.bids[0].price == "0.40"