import pytest
import requests
import responses
from responses import matchers

from botagent.polymarket.prices import (
    CLOB_BASE_URL,
    get_last_price_before_timestamp,
    get_mid_price_for_token,
    get_price_history,
)
from botagent.polymarket.types import PolymarketError, PricePoint

HISTORY_URL = f"{CLOB_BASE_URL}/prices-history"
MIDPOINT_URL = f"{CLOB_BASE_URL}/midpoint"


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def session():
    with requests.Session() as s:
        yield s


def test_get_price_history(mocked, session):
    mocked.add(
        responses.GET,
        HISTORY_URL,
        json={"history": [{"t": 100, "p": 0.4}, {"t": 200, "p": 0.45}]},
        match=[
            matchers.query_param_matcher(
                {"market": "tok-1", "interval": "1d", "fidelity": "60"}
            )
        ],
    )
    history = get_price_history(session, "tok-1", "1d", 60)
    assert history == [PricePoint(100, 0.4), PricePoint(200, 0.45)]


def test_get_price_history_null_history(mocked, session):
    mocked.add(responses.GET, HISTORY_URL, json={"history": None})
    assert get_price_history(session, "tok-1", "all", 3600) == []


def test_get_price_history_http_error(mocked, session):
    mocked.add(responses.GET, HISTORY_URL, status=404, body="not found")
    with pytest.raises(PolymarketError, match="price history HTTP 404: not found"):
        get_price_history(session, "tok-1", "all", 3600)


def test_get_price_history_bad_json(mocked, session):
    mocked.add(responses.GET, HISTORY_URL, body="<html>")
    with pytest.raises(PolymarketError, match="decode price history"):
        get_price_history(session, "tok-1", "all", 3600)


def test_get_price_history_without_session(mocked):
    mocked.add(responses.GET, HISTORY_URL, json={"history": [{"t": 5, "p": 0.9}]})
    assert get_price_history(None, "tok-1", "all", 3600) == [PricePoint(5, 0.9)]


def test_last_price_before_timestamp(mocked, session):
    mocked.add(
        responses.GET,
        HISTORY_URL,
        json={"history": [{"t": 100, "p": 0.4}, {"t": 200, "p": 0.45}, {"t": 300, "p": 0.5}]},
        match=[
            matchers.query_param_matcher(
                {"market": "tok-1", "interval": "all", "fidelity": "3600"}
            )
        ],
    )
    point = get_last_price_before_timestamp(session, "tok-1", 250)
    assert point == PricePoint(200, 0.45)


def test_last_price_before_timestamp_is_strict(mocked, session):
    mocked.add(responses.GET, HISTORY_URL, json={"history": [{"t": 100, "p": 0.4}]})
    assert get_last_price_before_timestamp(session, "tok-1", 100) is None


def test_get_mid_price_for_token(mocked, session):
    mocked.add(
        responses.GET,
        MIDPOINT_URL,
        json={"mid": "0.535"},
        match=[matchers.query_param_matcher({"token_id": "tok-7"})],
    )
    assert get_mid_price_for_token(session, "tok-7") == 0.535


def test_get_mid_price_http_error(mocked, session):
    mocked.add(responses.GET, MIDPOINT_URL, status=500, body="oops")
    with pytest.raises(PolymarketError, match="midpoint HTTP 500"):
        get_mid_price_for_token(session, "tok-7")


def test_get_mid_price_unparsable(mocked, session):
    mocked.add(responses.GET, MIDPOINT_URL, json={"mid": "n/a"})
    with pytest.raises(PolymarketError):
        get_mid_price_for_token(session, "tok-7")


def test_get_mid_price_connection_error(mocked, session):
    mocked.add(responses.GET, MIDPOINT_URL, body=requests.ConnectionError("down"))
    with pytest.raises(PolymarketError, match="midpoint request"):
        get_mid_price_for_token(session, "tok-7")