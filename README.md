# botagent

Reusable pieces for automated trading bots. The core is market-agnostic:
a bot produces signals, decides which are worth trading, sizes them,
checks its risk limits and records what it did. A Polymarket layer adds
Gamma API lookups, price data, EIP-712 order signing and a live
order-book feed over WebSocket.

## Installation

```
pip install botagent
```

The test suite uses pytest and responses, available through the `test`
extra: `pip install "botagent[test]"`.

## The core

| Module | What it holds |
| --- | --- |
| `botagent.signals` | `Direction`, `Signal` and the `Generator` interface a bot implements |
| `botagent.strategy` | `Decision` and the `Evaluator` interface that approves or skips a signal |
| `botagent.sizing` | `SizeParams`, the `Sizer` interface and `KellySizer` (fractional Kelly) |
| `botagent.trade` | `Record`, the `Recorder` interface and `InMemoryRecorder` |
| `botagent.risk.guard` | `PositionGuard`, preventing double entry on one instrument |
| `botagent.risk.killswitch` | `KillSwitch` and `KillSwitchStats`, halting on daily drawdown |
| `botagent.risk.dryrun` | `DryRun`, paper trading that logs instead of executing |

`Direction` has the members `BUY`, `SELL` and `UNKNOWN`; any other value
maps to `UNKNOWN`, and `str()` gives the member name.

### Sizing a position

`KellySizer.size` applies the Kelly criterion to a true probability and a
market price, scales it by the Kelly fraction and the signal's confidence
(a confidence of 0 or less counts as 1), caps it at a share of the
portfolio, rounds to cents and returns `0` when there is no edge, the
inputs are out of range, or the stake would fall below the minimum size.
A true probability of 1 or more is treated as 0.99.

```python
from botagent.sizing import KellySizer, SizeParams

sizer = KellySizer(0.25, 0.10, 1.0)          # quarter Kelly, 10 % cap, 1.00 minimum
stake = sizer.size(SizeParams(0.65, 0.55, 1000.0, 1.0))
```

### Risk controls

- `PositionGuard.acquire(instrument_id)` returns `False` when a position on
  that instrument is already open; `release`, `is_active` and `active_count`
  complete the picture. It is safe to share between threads.
- `KillSwitch.update_portfolio_value(value)` returns `True` on the update
  that first crosses the drawdown limit. `risk_multiplier()` gives full size
  up to half of the limit and ramps linearly down to zero at the limit.
  `trigger_silently()` trips it without logging, `reset_daily(new_start_value)`
  starts a new trading day, and `stats()` returns a `KillSwitchStats`
  snapshot. With a start-of-day value of 0 or less it never trips.
- `DryRun.should_skip(signal, size)` returns `True` and logs the signal when
  dry-run mode is on, and `False` without logging otherwise.

### Recording trades

`InMemoryRecorder` assigns increasing ids from 1, stamps the creation time
when none is given, and `trades()` hands back copies, so callers cannot
alter the stored records. `update_status(record_id, status, order_id)`
leaves the order id untouched when it is empty and ignores unknown ids.

## Polymarket

| Module | What it holds |
| --- | --- |
| `botagent.polymarket.types` | Order books, markets, order requests and responses, Gamma events and markets, `EventQuery`, `PolymarketError` |
| `botagent.polymarket.gamma` | `GammaClient` for event lookup, with paging, plus `parse_token_ids`, `parse_outcomes`, `parse_outcome_prices` |
| `botagent.polymarket.prices` | `get_price_history`, `get_last_price_before_timestamp`, `get_mid_price_for_token` |
| `botagent.polymarket.signer` | `SignatureType`, `Signer`, `PrivateKeySigner`, `keccak256`, `to_checksum_address`, `hash_typed_data`, `derive_safe_wallet`, `maker_address`, `generate_salt` |
| `botagent.polymarket.signing` | `OrderV2`, `SignedOrderV2`, `build_simple_order_v2`, `sign_order_v2`, `build_order_payload`, `decode_bytes32_hex` |
| `botagent.polymarket.wsfeed` | `PolymarketFeed`, a WebSocket order-book cache with listeners and callbacks, and `apply_price_changes` |
| `botagent.polymarket.hybridclient` | `HybridCLOBClient`, reading from the feed cache before falling back to REST |

Failed requests and unreadable responses raise `PolymarketError`.

### Gamma and price data

`GammaClient(logger, base_url=..., session=..., timeout=...)` can be used
as a context manager; it closes the session it created. `get_events(query)`
sends only the filters set on the `EventQuery`; `get_event_by_slug`,
`get_events_by_tag` and `get_all_events_by_tag` (pages of 50 until a short
page) build on it.

The functions in `botagent.polymarket.prices` take a `requests.Session`,
or `None` to use plain `requests`, and query the CLOB price history and
midpoint endpoints.

### Building and signing an order

`build_simple_order_v2` turns a price, a size and a side into maker and
taker amounts in six-decimal units. `sign_order_v2` fills in a salt and a
timestamp when they are missing, signs the order with EIP-712 against the
regular or the neg-risk exchange, and `build_order_payload` produces the
body for the order endpoint. Signing is done in pure Python on secp256k1,
with deterministic nonces.

```python
from botagent.polymarket.signer import SignatureType, maker_address
from botagent.polymarket.signing import (
    build_order_payload,
    build_simple_order_v2,
    sign_order_v2,
)

api_key = "placeholder"
token_id = "12345"

maker = maker_address(signer, SignatureType.EOA, None)
order = build_simple_order_v2(token_id, 0.55, 100, "BUY", SignatureType.EOA, maker)
signed = sign_order_v2(signer, api_key, order, False)
payload = build_order_payload(signed)
```

Here `signer` is any `Signer`, such as a `PrivateKeySigner` built from a
hex private key and a chain id.

### Live order books

`PolymarketFeed` keeps the latest book and best bid and ask for every
subscribed token. `start()` connects and runs reader and heartbeat
threads; `stop()` closes them down. `update_subscriptions(desired)`
subscribes and unsubscribes the difference from the current set;
`get_order_book` returns a copy of a cached book and `get_best_bid_ask` a
`(bid, ask)` pair, or `None` when nothing is cached. `add_listener()`
returns a queue of up to 256 `BookUpdate` events, dropping updates when it
is full; `on_tick`, `on_event`, `on_new_market` and `on_market_resolved`
register callbacks, and `stats()` reports a `PolyFeedStats`. After a
dropped connection the feed clears its cache, reconnects with exponential
back-off up to 30 seconds and subscribes again to every tracked token.

`HybridCLOBClient` takes a feed and any REST client offering
`get_order_book(token_id)` and `get_mid_price(token_id)`.

## What the package does not do

- It has no REST client for the CLOB and no order executor: orders can be
  built, signed and turned into a request body, but sending them, polling
  them and cancelling them is left to the caller. `HybridCLOBClient` needs
  such a REST client to be supplied.
- It does not discover markets on its own: there is no automatic search for
  short-term up/down contracts and no background polling for new sport
  markets. `GammaClient` offers the lookups such a search would use.
- It has no command-line program and no persistent storage; trades are kept
  only by `InMemoryRecorder` or by a `Recorder` you write.