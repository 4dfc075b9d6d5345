import pytest
import requests
import responses
from responses import matchers

from botagent.polymarket.gamma import (
    GAMMA_API_URL,
    GammaClient,
    parse_outcome_prices,
    parse_outcomes,
    parse_token_ids,
)
from botagent.polymarket.types import EventQuery, GammaMarket, PolymarketError

EVENTS_URL = f"{GAMMA_API_URL}/events"


def _event(idx, **extra):
    data = {"id": str(idx), "slug": f"event-{idx}", "markets": []}
    data.update(extra)
    return data


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def client():
    with GammaClient(session=requests.Session()) as gamma:
        yield gamma


def test_get_events_sends_query_and_decodes(mocked, client):
    mocked.add(
        responses.GET,
        EVENTS_URL,
        json=[
            _event(
                1,
                title="Match",
                markets=[{"conditionId": "c1", "clobTokenIds": '["a","b"]', "volumeNum": 5}],
            )
        ],
        match=[matchers.query_param_matcher({"tag_id": "7", "closed": "false", "limit": "10"})],
    )
    events = client.get_events(EventQuery(tag_id=7, closed=False, limit=10))
    assert len(events) == 1
    assert events[0].title == "Match"
    assert events[0].markets[0].condition_id == "c1"


def test_get_events_http_error(mocked, client):
    mocked.add(responses.GET, EVENTS_URL, status=500, body="boom")
    with pytest.raises(PolymarketError, match="gamma HTTP 500: boom"):
        client.get_events()


def test_get_events_invalid_json(mocked, client):
    mocked.add(responses.GET, EVENTS_URL, body="not json")
    with pytest.raises(PolymarketError, match="decode events"):
        client.get_events()


def test_get_events_object_instead_of_array(mocked, client):
    mocked.add(responses.GET, EVENTS_URL, json={"error": "nope"})
    with pytest.raises(PolymarketError, match="decode events"):
        client.get_events()


def test_get_events_connection_error(mocked, client):
    mocked.add(responses.GET, EVENTS_URL, body=requests.ConnectionError("refused"))
    with pytest.raises(PolymarketError, match="gamma request"):
        client.get_events()


def test_get_event_by_slug(mocked, client):
    mocked.add(
        responses.GET,
        EVENTS_URL,
        json=[_event(3, slug="btc-updown-5m-1")],
        match=[matchers.query_param_matcher({"slug": "btc-updown-5m-1", "limit": "1"})],
    )
    event = client.get_event_by_slug("btc-updown-5m-1")
    assert event.id == "3"
    assert event.slug == "btc-updown-5m-1"


def test_get_event_by_slug_missing(mocked, client):
    mocked.add(responses.GET, EVENTS_URL, json=[])
    with pytest.raises(PolymarketError, match="no event found"):
        client.get_event_by_slug("missing")


def test_get_events_by_tag(mocked, client):
    mocked.add(
        responses.GET,
        EVENTS_URL,
        json=[_event(1), _event(2)],
        match=[
            matchers.query_param_matcher(
                {"tag_id": "1494", "closed": "true", "limit": "20", "offset": "40"}
            )
        ],
    )
    events = client.get_events_by_tag(1494, True, 20, 40)
    assert [e.id for e in events] == ["1", "2"]


def test_get_all_events_by_tag_paginates(mocked, client):
    mocked.add(
        responses.GET,
        EVENTS_URL,
        json=[_event(i) for i in range(50)],
        match=[matchers.query_param_matcher({"tag_id": "9", "limit": "50"})],
    )
    mocked.add(
        responses.GET,
        EVENTS_URL,
        json=[_event(i) for i in range(50, 53)],
        match=[matchers.query_param_matcher({"tag_id": "9", "limit": "50", "offset": "50"})],
    )
    events = client.get_all_events_by_tag(9)
    assert [e.id for e in events] == [str(i) for i in range(53)]
    assert len(mocked.calls) == 2


def test_get_all_events_by_tag_reports_failing_page(mocked, client):
    mocked.add(
        responses.GET,
        EVENTS_URL,
        json=[_event(i) for i in range(50)],
        match=[matchers.query_param_matcher({"tag_id": "9", "limit": "50"})],
    )
    mocked.add(
        responses.GET,
        EVENTS_URL,
        status=502,
        match=[matchers.query_param_matcher({"tag_id": "9", "limit": "50", "offset": "50"})],
    )
    with pytest.raises(PolymarketError, match="fetch page offset=50"):
        client.get_all_events_by_tag(9)


def test_parse_token_ids():
    market = GammaMarket(clob_token_ids='["first-token-up","second-token-down"]')
    assert parse_token_ids(market) == ["first-token-up", "second-token-down"]


def test_parse_token_ids_invalid():
    with pytest.raises(PolymarketError, match="parse clobTokenIds"):
        parse_token_ids(GammaMarket(clob_token_ids="not json"))
    with pytest.raises(PolymarketError):
        parse_token_ids(GammaMarket(clob_token_ids=""))


def test_parse_outcomes():
    assert parse_outcomes(GammaMarket(outcomes='["Up","Down"]')) == ["Up", "Down"]


def test_parse_outcome_prices():
    market = GammaMarket(outcome_prices='["0.535","0.465"]')
    assert parse_outcome_prices(market) == [0.535, 0.465]


def test_parse_outcome_prices_bad_number():
    with pytest.raises(PolymarketError, match="parse price"):
        parse_outcome_prices(GammaMarket(outcome_prices='["abc"]'))