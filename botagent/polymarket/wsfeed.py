"""Real-time order book cache fed by the Polymarket market WebSocket."""

from __future__ import annotations

import json
import logging
import queue
import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping

import websocket

from botagent.polymarket.types import (
    MarketResolvedEvent,
    NewMarketEvent,
    OrderBook,
    PolymarketError,
    PriceLevel,
)

LISTENER_BUFFER = 256

_READ_TIMEOUT = 30.0
_HANDSHAKE_TIMEOUT = 10.0
_HEARTBEAT_INTERVAL = 10.0
_INITIAL_BACKOFF = 1.0
_MAX_BACKOFF = 30.0
_JOIN_TIMEOUT = 5.0
_IGNORED_EVENTS = frozenset({"last_trade_price", "tick_size_change"})
_REMOVED_SIZES = frozenset({"0", "0.0", ""})

_WS_ERRORS = (websocket.WebSocketException, OSError)

TickCallback = Callable[[str, float, datetime], None]
EventCallback = Callable[[str, bytes, datetime], None]
NewMarketCallback = Callable[[NewMarketEvent], None]
MarketResolvedCallback = Callable[[MarketResolvedEvent], None]


@dataclass(frozen=True)
class BookUpdate:
    """A change to a token's book: "book", "price_change", "best_bid_ask" or "market_resolved"."""

    token_id: str
    event_type: str
    timestamp: datetime


@dataclass(frozen=True)
class PolyFeedStats:
    """Health metrics of the feed."""

    connected: bool
    tick_count: int
    last_tick_age: timedelta
    subscribed_ids: int
    cached_books: int
    reconnect_count: int


def apply_price_changes(
    levels: list[PriceLevel], changes: list[PriceLevel]
) -> list[PriceLevel]:
    """Apply incremental changes to one side of a book.

    Levels whose new size is "0", "0.0" or empty are removed; others are
    inserted or updated. Existing levels keep their order, new ones go last.
    """
    book = {level.price: level.size for level in levels}
    for change in changes:
        if change.size in _REMOVED_SIZES:
            book.pop(change.price, None)
        else:
            book[change.price] = change.size
    return [PriceLevel(price=price, size=size) for price, size in book.items()]


def _parse_price(text: str) -> float | None:
    try:
        return float(text)
    except (TypeError, ValueError):
        return None


def _optional_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise PolymarketError(f"field {key!r}: expected string, got {type(value).__name__}")
    return value


def _level_list(data: Mapping[str, Any], key: str) -> list[PriceLevel]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise PolymarketError(f"field {key!r}: expected a list, got {type(value).__name__}")
    return [PriceLevel.from_dict(item) for item in value]


def _close_quietly(conn: Any) -> None:
    try:
        conn.close()
    except _WS_ERRORS:
        pass


class PolymarketFeed:
    """Keeps order books for subscribed tokens up to date from the WebSocket.

    ``connector`` opens a connection given the URL and a ``timeout``; it
    defaults to ``websocket.create_connection``.
    """

    def __init__(
        self,
        ws_url: str,
        logger: logging.Logger | None = None,
        *,
        connector: Callable[..., Any] | None = None,
    ) -> None:
        self.ws_url = ws_url
        self._log = logger or logging.getLogger(__name__)
        self._connector = connector or websocket.create_connection
        self._lock = threading.Lock()
        self._sub_lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._conn: Any = None
        self._books: dict[str, OrderBook] = {}
        self._best_bids: dict[str, float] = {}
        self._best_asks: dict[str, float] = {}
        self._subscribed: set[str] = set()
        self._listeners: list[queue.Queue[BookUpdate]] = []
        self._tick_cb: TickCallback | None = None
        self._event_cb: EventCallback | None = None
        self._new_market_cb: NewMarketCallback | None = None
        self._resolved_cb: MarketResolvedCallback | None = None
        self._last_tick: float | None = None
        self._tick_count = 0
        self._reconnect_count = 0
        self._done = threading.Event()
        self._threads: list[threading.Thread] = []

    # --- callbacks ---------------------------------------------------------

    def on_tick(self, fn: TickCallback) -> None:
        """Call ``fn(token_id, mid, ingested_at)`` on every full book with both sides."""
        with self._lock:
            self._tick_cb = fn

    def on_event(self, fn: EventCallback) -> None:
        """Call ``fn(event_type, raw, ingested_at)`` on every event message."""
        with self._lock:
            self._event_cb = fn

    def on_new_market(self, fn: NewMarketCallback) -> None:
        """Call ``fn`` with each ``new_market`` event."""
        with self._lock:
            self._new_market_cb = fn

    def on_market_resolved(self, fn: MarketResolvedCallback) -> None:
        """Call ``fn`` with each ``market_resolved`` event."""
        with self._lock:
            self._resolved_cb = fn

    # --- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        """Connect and start the reader and heartbeat threads."""
        self._connect()
        for target, name in (
            (self._read_loop, "polymarket-ws-read"),
            (self._heartbeat_loop, "polymarket-ws-heartbeat"),
        ):
            thread = threading.Thread(target=target, name=name, daemon=True)
            self._threads.append(thread)
            thread.start()

    def stop(self) -> None:
        """Close the connection and stop the background threads."""
        self._done.set()
        with self._lock:
            conn, self._conn = self._conn, None
        if conn is not None:
            _close_quietly(conn)
        for thread in self._threads:
            if thread is not threading.current_thread():
                thread.join(_JOIN_TIMEOUT)
        self._threads.clear()

    # --- subscriptions -----------------------------------------------------

    def subscribe(self, token_ids: list[str]) -> None:
        """Subscribe to the books of ``token_ids``."""
        if not token_ids:
            return
        with self._sub_lock:
            self._subscribed.update(token_ids)
        self._send_subscription(list(token_ids), "subscribe")

    def unsubscribe(self, token_ids: list[str]) -> None:
        """Drop subscriptions for ``token_ids`` and forget their cached books."""
        if not token_ids:
            return
        with self._sub_lock:
            self._subscribed.difference_update(token_ids)
        with self._lock:
            for token_id in token_ids:
                self._books.pop(token_id, None)
                self._best_bids.pop(token_id, None)
                self._best_asks.pop(token_id, None)
        self._send_subscription(list(token_ids), "unsubscribe")

    def update_subscriptions(self, desired: list[str]) -> None:
        """Subscribe to and unsubscribe from whatever makes the set equal ``desired``."""
        wanted = set(desired)
        with self._sub_lock:
            to_sub = sorted(wanted - self._subscribed)
            to_unsub = sorted(self._subscribed - wanted)

        if to_unsub:
            try:
                self.unsubscribe(to_unsub)
            except PolymarketError as exc:
                self._log.warning("failed to unsubscribe tokens count=%s error=%s", len(to_unsub), exc)
            else:
                self._log.info("unsubscribed tokens count=%s", len(to_unsub))
        if to_sub:
            try:
                self.subscribe(to_sub)
            except PolymarketError as exc:
                self._log.warning("failed to subscribe tokens count=%s error=%s", len(to_sub), exc)
            else:
                self._log.info("subscribed tokens count=%s", len(to_sub))

    # --- queries -----------------------------------------------------------

    def get_order_book(self, token_id: str) -> OrderBook | None:
        """Return a copy of the cached book for ``token_id``, or None."""
        with self._lock:
            book = self._books.get(token_id)
            if book is None:
                return None
            return replace(
                book,
                bids=[replace(level) for level in book.bids],
                asks=[replace(level) for level in book.asks],
            )

    def get_best_bid_ask(self, token_id: str) -> tuple[float, float] | None:
        """Return the cached (best bid, best ask), or None unless both are known."""
        with self._lock:
            bid = self._best_bids.get(token_id)
            ask = self._best_asks.get(token_id)
        if bid is None or ask is None:
            return None
        return bid, ask

    def add_listener(self) -> queue.Queue[BookUpdate]:
        """Return a bounded queue receiving book updates; updates are dropped when it is full."""
        listener: queue.Queue[BookUpdate] = queue.Queue(maxsize=LISTENER_BUFFER)
        with self._lock:
            self._listeners.append(listener)
        return listener

    def stats(self) -> PolyFeedStats:
        """Return the current health metrics."""
        with self._sub_lock:
            sub_count = len(self._subscribed)
        with self._lock:
            age = (
                timedelta(seconds=time.monotonic() - self._last_tick)
                if self._last_tick is not None
                else timedelta(0)
            )
            return PolyFeedStats(
                connected=self._conn is not None,
                tick_count=self._tick_count,
                last_tick_age=age,
                subscribed_ids=sub_count,
                cached_books=len(self._books),
                reconnect_count=self._reconnect_count,
            )

    # --- messages ----------------------------------------------------------

    def handle_message(self, raw: bytes | str) -> None:
        """Apply one WebSocket message to the cache and notify listeners."""
        payload = raw.encode("utf-8") if isinstance(raw, str) else bytes(raw)
        try:
            data = json.loads(payload)
        except ValueError as exc:
            self._log.debug("failed to parse ws message error=%s", exc)
            return
        if not isinstance(data, dict):
            self._log.debug("failed to parse ws message: not an object")
            return
        try:
            event_type = _optional_str(data, "event_type")
            asset_id = _optional_str(data, "asset_id")
            _optional_str(data, "market")
        except PolymarketError as exc:
            self._log.debug("failed to parse ws message error=%s", exc)
            return
        if not event_type:
            return

        now = datetime.now(timezone.utc)
        with self._lock:
            event_cb = self._event_cb
        if event_cb is not None:
            event_cb(event_type, payload, now)

        if event_type == "book":
            try:
                book = OrderBook.from_dict(data)
            except PolymarketError as exc:
                self._log.debug("failed to parse book event error=%s", exc)
                return
            self._handle_book(book, now)
        elif event_type == "best_bid_ask":
            try:
                best_bid = _optional_str(data, "best_bid")
                best_ask = _optional_str(data, "best_ask")
            except PolymarketError as exc:
                self._log.debug("failed to parse best_bid_ask event error=%s", exc)
                return
            self._handle_best_bid_ask(asset_id, best_bid, best_ask, now)
        elif event_type == "price_change":
            try:
                side = _optional_str(data, "side")
                changes = _level_list(data, "changes")
            except PolymarketError as exc:
                self._log.debug("failed to parse price_change event error=%s", exc)
                return
            self._handle_price_change(asset_id, side, changes, now)
        elif event_type in _IGNORED_EVENTS:
            return
        elif event_type == "new_market":
            try:
                new_market = NewMarketEvent.from_dict(data)
            except PolymarketError as exc:
                self._log.debug("failed to parse new_market event error=%s", exc)
                return
            self._log.info(
                "new_market event received condition_id=%s question=%s assets=%s tags=%s",
                new_market.condition_id,
                new_market.question,
                len(new_market.assets_ids),
                new_market.tags,
            )
            with self._lock:
                new_cb = self._new_market_cb
            if new_cb is not None:
                new_cb(new_market)
        elif event_type == "market_resolved":
            try:
                resolved = MarketResolvedEvent.from_dict(data)
            except PolymarketError as exc:
                self._log.debug("failed to parse market_resolved event error=%s", exc)
                return
            self._log.info(
                "market_resolved event received condition_id=%s winning_outcome=%s",
                resolved.market,
                resolved.winning_outcome,
            )
            self._fan_out(BookUpdate(asset_id, "market_resolved", now))
            with self._lock:
                resolved_cb = self._resolved_cb
            if resolved_cb is not None:
                resolved_cb(resolved)
        else:
            self._log.debug("unknown ws event type type=%s", event_type)

    def _mark_tick(self) -> None:
        self._last_tick = time.monotonic()
        self._tick_count += 1

    def _handle_book(self, book: OrderBook, now: datetime) -> None:
        token_id = book.asset_id
        with self._lock:
            self._books[token_id] = book
            self._mark_tick()
            # Bids run worst to best and asks likewise, so the best of each is last.
            if book.bids:
                price = _parse_price(book.bids[-1].price)
                if price is not None:
                    self._best_bids[token_id] = price
            if book.asks:
                price = _parse_price(book.asks[-1].price)
                if price is not None:
                    self._best_asks[token_id] = price
            tick_cb = self._tick_cb
            bid = self._best_bids.get(token_id, 0.0)
            ask = self._best_asks.get(token_id, 0.0)

        if tick_cb is not None and bid > 0 and ask > 0:
            tick_cb(token_id, (bid + ask) / 2, now)
        self._fan_out(BookUpdate(token_id, "book", now))

    def _handle_best_bid_ask(
        self, token_id: str, best_bid: str, best_ask: str, now: datetime
    ) -> None:
        bid = _parse_price(best_bid) or 0.0
        ask = _parse_price(best_ask) or 0.0
        if bid <= 0 and ask <= 0:
            return
        with self._lock:
            if bid > 0:
                self._best_bids[token_id] = bid
            if ask > 0:
                self._best_asks[token_id] = ask
            self._mark_tick()
        self._fan_out(BookUpdate(token_id, "best_bid_ask", now))

    def _handle_price_change(
        self, token_id: str, side: str, changes: list[PriceLevel], now: datetime
    ) -> None:
        with self._lock:
            book = self._books.get(token_id)
            if book is not None:
                if side == "BUY":
                    book.bids = apply_price_changes(book.bids, changes)
                    levels, best = book.bids, self._best_bids
                else:
                    book.asks = apply_price_changes(book.asks, changes)
                    levels, best = book.asks, self._best_asks
                if levels:
                    price = _parse_price(levels[-1].price)
                    if price is not None:
                        best[token_id] = price
            self._mark_tick()
        self._fan_out(BookUpdate(token_id, "price_change", now))

    def _fan_out(self, update: BookUpdate) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener.put_nowait(update)
            except queue.Full:
                pass

    # --- connection --------------------------------------------------------

    def _connect(self) -> None:
        try:
            conn = self._connector(self.ws_url, timeout=_HANDSHAKE_TIMEOUT)
        except _WS_ERRORS as exc:
            raise PolymarketError(f"polymarket ws connect: {exc}") from exc
        if self._done.is_set():
            _close_quietly(conn)
            return
        with self._lock:
            self._conn = conn
        self._log.info("connected to Polymarket WebSocket url=%s", self.ws_url)

    def _write(self, conn: Any, payload: str) -> None:
        with self._write_lock:
            try:
                conn.send(payload)
            except _WS_ERRORS as exc:
                raise PolymarketError(f"websocket write: {exc}") from exc

    def _send_subscription(self, token_ids: list[str], operation: str) -> None:
        with self._lock:
            conn = self._conn
        if conn is None:
            raise PolymarketError("not connected")
        message: dict[str, Any] = {
            "assets_ids": token_ids,
            "type": "market",
            "custom_feature_enabled": True,
        }
        if operation:
            message["operation"] = operation
        self._write(conn, json.dumps(message))

    def _resubscribe_all(self) -> None:
        with self._sub_lock:
            token_ids = sorted(self._subscribed)
        if not token_ids:
            return
        try:
            # Sent as an initial subscription, without an operation field.
            self._send_subscription(token_ids, "")
        except PolymarketError as exc:
            self._log.warning(
                "failed to resubscribe after reconnect error=%s count=%s", exc, len(token_ids)
            )
        else:
            self._log.info("resubscribed after reconnect count=%s", len(token_ids))

    def _read_loop(self) -> None:
        while not self._done.is_set():
            with self._lock:
                conn = self._conn
            if conn is None:
                self._reconnect()
                continue
            try:
                conn.settimeout(_READ_TIMEOUT)
                raw = conn.recv()
                if raw in ("", b""):
                    raise websocket.WebSocketConnectionClosedException("connection closed")
            except _WS_ERRORS as exc:
                if self._done.is_set():
                    return
                self._log.warning("polymarket ws read error, reconnecting error=%s", exc)
                self._reconnect()
                continue
            try:
                self.handle_message(raw)
            except Exception:  # a failing callback must not stop the reader
                self._log.exception("error while handling ws message")

    def _heartbeat_loop(self) -> None:
        while not self._done.wait(_HEARTBEAT_INTERVAL):
            with self._lock:
                conn = self._conn
            if conn is None:
                continue
            try:
                self._write(conn, "PING")
            except PolymarketError as exc:
                self._log.debug("heartbeat write failed error=%s", exc)

    def _reconnect(self) -> None:
        with self._lock:
            conn, self._conn = self._conn, None
            # Incremental updates may have been missed, so the cache is stale.
            self._books = {}
            self._best_bids = {}
            self._best_asks = {}
            self._reconnect_count += 1
        if conn is not None:
            _close_quietly(conn)

        backoff = _INITIAL_BACKOFF
        while not self._done.is_set():
            self._log.info("attempting Polymarket WS reconnect backoff=%ss", backoff)
            if self._done.wait(backoff):
                return
            try:
                self._connect()
            except PolymarketError as exc:
                self._log.warning("reconnect failed error=%s", exc)
                backoff = min(backoff * 2, _MAX_BACKOFF)
                continue
            self._log.info("reconnected to Polymarket WebSocket")
            self._resubscribe_all()
            return