"""Client for the Polymarket Gamma API (event and market discovery)."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import urlencode

import requests

from botagent.polymarket.types import EventQuery, GammaEvent, GammaMarket, PolymarketError

GAMMA_API_URL = "https://gamma-api.polymarket.com"

_PAGE_SIZE = 50


class GammaClient:
    """Fetches events and markets from the Gamma API."""

    def __init__(
        self,
        logger: logging.Logger | None = None,
        *,
        base_url: str = GAMMA_API_URL,
        session: requests.Session | None = None,
        timeout: float = 15.0,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self._log = logger or logging.getLogger(__name__)
        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()

    def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "GammaClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def get_events(self, query: EventQuery | None = None) -> list[GammaEvent]:
        """Return the events matching ``query``."""
        query = query or EventQuery()
        url = f"{self.base_url}/events?{urlencode(query.to_params())}"
        try:
            resp = self._session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise PolymarketError(f"gamma request: {exc}") from exc

        if resp.status_code != 200:
            raise PolymarketError(f"gamma HTTP {resp.status_code}: {resp.text}")

        try:
            payload = json.loads(resp.content)
        except ValueError as exc:
            raise PolymarketError(f"decode events: {exc}") from exc
        if payload is None:
            return []
        if not isinstance(payload, list):
            raise PolymarketError("decode events: expected a JSON array")
        try:
            return [GammaEvent.from_dict(item) for item in payload]
        except PolymarketError as exc:
            raise PolymarketError(f"decode events: {exc}") from exc

    def get_event_by_slug(self, slug: str) -> GammaEvent:
        """Return the event with the given slug."""
        events = self.get_events(EventQuery(slug=slug, limit=1))
        if not events:
            raise PolymarketError(f"no event found for slug {slug!r}")
        return events[0]

    def get_events_by_tag(
        self, tag_id: int, closed: bool, limit: int = 0, offset: int = 0
    ) -> list[GammaEvent]:
        """Return one page of events carrying a tag."""
        return self.get_events(EventQuery(tag_id=tag_id, closed=closed, limit=limit, offset=offset))

    def get_all_events_by_tag(self, tag_id: int) -> list[GammaEvent]:
        """Return every event carrying a tag, following pagination."""
        events: list[GammaEvent] = []
        offset = 0
        while True:
            try:
                page = self.get_events(EventQuery(tag_id=tag_id, limit=_PAGE_SIZE, offset=offset))
            except PolymarketError as exc:
                raise PolymarketError(f"fetch page offset={offset}: {exc}") from exc
            events.extend(page)
            if len(page) < _PAGE_SIZE:
                break
            offset += _PAGE_SIZE
        self._log.info("fetched all events by tag tag_id=%s count=%s", tag_id, len(events))
        return events


def _parse_string_array(raw: str, what: str) -> list[str]:
    try:
        value = json.loads(raw)
    except ValueError as exc:
        raise PolymarketError(f"parse {what}: {exc}") from exc
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise PolymarketError(f"parse {what}: expected a JSON array of strings")
    return value


def parse_token_ids(market: GammaMarket) -> list[str]:
    """Return the CLOB token ids encoded in ``market.clob_token_ids``."""
    return _parse_string_array(market.clob_token_ids, "clobTokenIds")


def parse_outcomes(market: GammaMarket) -> list[str]:
    """Return the outcome labels encoded in ``market.outcomes``."""
    return _parse_string_array(market.outcomes, "outcomes")


def parse_outcome_prices(market: GammaMarket) -> list[float]:
    """Return the outcome prices encoded in ``market.outcome_prices``."""
    prices = []
    for text in _parse_string_array(market.outcome_prices, "outcomePrices"):
        try:
            prices.append(float(text))
        except ValueError as exc:
            raise PolymarketError(f"parse price {text!r}: {exc}") from exc
    return prices