"""Price history and midpoint lookups on the Polymarket CLOB."""

from __future__ import annotations

import json
from typing import Any

import requests

from botagent.polymarket.types import PolymarketError, PricePoint

CLOB_BASE_URL = "https://clob.polymarket.com"

_TIMEOUT = 15.0


def _fetch_json(session: requests.Session | None, url: str, what: str) -> Any:
    get = session.get if session is not None else requests.get
    try:
        resp = get(url, timeout=_TIMEOUT)
    except requests.RequestException as exc:
        raise PolymarketError(f"{what} request: {exc}") from exc
    if resp.status_code != 200:
        raise PolymarketError(f"{what} HTTP {resp.status_code}: {resp.text}")
    try:
        return json.loads(resp.content)
    except ValueError as exc:
        raise PolymarketError(f"decode {what}: {exc}") from exc


def get_price_history(
    session: requests.Session | None,
    token_id: str,
    interval: str = "all",
    fidelity: int = 3600,
) -> list[PricePoint]:
    """Return the price history of a token.

    ``interval`` is "all", "1d", "1w", "1m" and so on; ``fidelity`` is the
    number of seconds between points. Resolved markets may only have hourly
    data (fidelity 3600).
    """
    url = (
        f"{CLOB_BASE_URL}/prices-history?market={token_id}"
        f"&interval={interval}&fidelity={fidelity}"
    )
    payload = _fetch_json(session, url, "price history")
    if not isinstance(payload, dict):
        raise PolymarketError("decode price history: expected a JSON object")
    history = payload.get("history")
    if history is None:
        return []
    if not isinstance(history, list):
        raise PolymarketError("decode price history: 'history' is not a list")
    try:
        return [PricePoint.from_dict(item) for item in history]
    except PolymarketError as exc:
        raise PolymarketError(f"decode price history: {exc}") from exc


def get_last_price_before_timestamp(
    session: requests.Session | None, token_id: str, before_unix: int
) -> PricePoint | None:
    """Return the last hourly price point earlier than ``before_unix``, or None."""
    best = None
    for point in get_price_history(session, token_id, "all", 3600):
        if point.t < before_unix:
            best = point
    return best


def get_mid_price_for_token(session: requests.Session | None, token_id: str) -> float:
    """Return the current midpoint price of a token."""
    url = f"{CLOB_BASE_URL}/midpoint?token_id={token_id}"
    payload = _fetch_json(session, url, "midpoint")
    if not isinstance(payload, dict):
        raise PolymarketError("decode midpoint: expected a JSON object")
    mid = payload.get("mid")
    if mid is None:
        mid = ""
    if not isinstance(mid, str):
        raise PolymarketError("decode midpoint: 'mid' is not a string")
    try:
        return float(mid)
    except ValueError as exc:
        raise PolymarketError(f"parse midpoint {mid!r}: {exc}") from exc