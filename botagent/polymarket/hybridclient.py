"""Order book access that prefers the WebSocket cache and falls back to REST."""

from __future__ import annotations

import logging
from typing import Protocol

from botagent.polymarket.types import OrderBook
from botagent.polymarket.wsfeed import PolymarketFeed


class RestBookClient(Protocol):
    """The REST calls the hybrid client falls back on."""

    def get_order_book(self, token_id: str) -> OrderBook:
        """Fetch the current order book of a token."""

    def get_mid_price(self, token_id: str) -> float:
        """Fetch the current mid price of a token."""


class HybridCLOBClient:
    """Reads order data from the WebSocket feed cache, using REST on a cache miss."""

    def __init__(
        self,
        ws_feed: PolymarketFeed,
        rest_client: RestBookClient,
        logger: logging.Logger | None = None,
    ) -> None:
        self._ws_feed = ws_feed
        self._rest_client = rest_client
        self._log = logger or logging.getLogger(__name__)

    def get_order_book(self, token_id: str) -> OrderBook:
        """Return the cached order book, or fetch it over REST if none is cached."""
        book = self._ws_feed.get_order_book(token_id)
        if book is not None:
            return book
        self._log.debug("ws cache miss for order book, REST fallback token_id=%s", token_id)
        return self._rest_client.get_order_book(token_id)

    def get_mid_price(self, token_id: str) -> float:
        """Return the mid of the cached best bid and ask, or fetch it over REST."""
        best = self._ws_feed.get_best_bid_ask(token_id)
        if best is not None:
            bid, ask = best
            return (bid + ask) / 2
        self._log.debug("ws cache miss for mid price, REST fallback token_id=%s", token_id)
        return self._rest_client.get_mid_price(token_id)