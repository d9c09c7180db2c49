"""
Tests for the CoinGecko gateway: payload parsing, status mapping and both
transport paths (aiohttp for the sync layer, requests for the live stream).
"""

import asyncio
from unittest.mock import MagicMock, patch

import aiohttp
import pytest
import requests

from coinwatch.constants import RATE_LIMIT_MESSAGE
from coinwatch.data.gateway import (
    GatewayError,
    MarketGateway,
    RateLimitError,
    api_headers,
    check_status,
    fetch_overview_blocking,
    parse_detail,
    parse_history,
    parse_overview,
    parse_search,
)


SIMPLE_PRICE = {
    "bitcoin": {"usd": 43250.5, "usd_24h_change": 2.5},
    "ethereum": {"usd": 2250.0, "usd_24h_change": -1.2},
}


# ============================================================================
# Parsing
# ============================================================================

def test_parse_overview_keeps_requested_order_and_omits_missing():
    coins = parse_overview(SIMPLE_PRICE, ["ethereum", "dogecoin", "bitcoin"])
    assert [c.id for c in coins] == ["ethereum", "bitcoin"]
    assert coins[0].name == "Ethereum"
    assert coins[0].change_24h == -1.2
    assert coins[1].price == 43250.5


def test_parse_overview_unknown_coin_gets_derived_names():
    coins = parse_overview({"polkadot": {"usd": 7.1}}, ["polkadot"])
    assert coins[0].name == "POLKADOT"
    assert coins[0].symbol == "POLKA"
    assert coins[0].change_24h == 0.0


def test_parse_overview_rejects_non_object():
    with pytest.raises(GatewayError):
        parse_overview(["bitcoin"], ["bitcoin"])


def test_parse_detail():
    payload = {
        "name": "Solana",
        "symbol": "sol",
        "image": {"large": "https://example.test/sol.png"},
        "last_updated": "2024-01-01T00:00:00Z",
        "market_data": {
            "current_price": {"usd": 101.5},
            "price_change_percentage_24h": 4.2,
            "high_24h": {"usd": 105.0},
            "low_24h": {"usd": 97.0},
        },
    }
    detail = parse_detail(payload, "solana")
    assert detail.symbol == "SOL"
    assert detail.price == 101.5
    assert detail.high_24h == 105.0
    assert detail.image == "https://example.test/sol.png"
    assert detail.to_overview().change_24h == 4.2


def test_parse_detail_without_price():
    assert parse_detail({"name": "Ghost", "market_data": {}}, "ghost") is None
    assert parse_detail(None, "ghost") is None


def test_parse_history_sorts_and_keeps_tail():
    payload = {"prices": [[3, 30.0], [1, 10.0], [2, 20.0], [4, None], [5, 50.0], "junk"]}
    assert parse_history(payload, points=3) == (20.0, 30.0, 50.0)


def test_parse_history_single_and_empty():
    assert parse_history({"prices": [[1, 100]]}) == (100.0, 100.0)
    assert parse_history({"prices": []}) == ()
    assert parse_history({}) == ()


def test_parse_search_caps_results():
    payload = {
        "coins": [
            {"id": "Polkadot", "name": "Polkadot", "symbol": "dot", "thumb": "t.png", "market_cap_rank": 14},
            {"name": "no id"},
            {"id": "polygon", "name": "Polygon", "symbol": "matic"},
            {"id": "pepe", "name": "Pepe", "symbol": "pepe"},
        ]
    }
    results = parse_search(payload, limit=3)
    assert [r.id for r in results] == ["polkadot", "polygon"]
    assert results[0].symbol == "DOT"
    assert results[0].image == "t.png"
    assert parse_search({"coins": None}) == []


# ============================================================================
# Status mapping
# ============================================================================

def test_check_status_mapping():
    check_status(200, "ctx")
    with pytest.raises(RateLimitError) as exc:
        check_status(429, "ctx")
    assert str(exc.value) == RATE_LIMIT_MESSAGE
    assert exc.value.status == 429

    with pytest.raises(GatewayError, match="unauthorized"):
        check_status(401, "ctx")
    with pytest.raises(GatewayError) as exc:
        check_status(503, "ctx")
    assert exc.value.status == 503
    assert not isinstance(exc.value, RateLimitError)


def test_api_headers():
    assert "x-cg-pro-api-key" not in api_headers(None)
    assert api_headers("secret")["x-cg-pro-api-key"] == "secret"


# ============================================================================
# Blocking path (requests)
# ============================================================================

@patch("coinwatch.data.gateway.requests.get")
def test_fetch_overview_blocking_success(mock_get):
    mock_response = MagicMock()
    mock_response.status_code = 200
    mock_response.json.return_value = SIMPLE_PRICE
    mock_get.return_value = mock_response

    coins = fetch_overview_blocking(["Bitcoin", "ethereum"], api_base="https://api.test/v3/", api_key=None)

    assert [c.id for c in coins] == ["bitcoin", "ethereum"]
    args, kwargs = mock_get.call_args
    assert args[0] == "https://api.test/v3/simple/price"
    assert kwargs["params"]["ids"] == "bitcoin,ethereum"
    assert kwargs["params"]["include_24hr_change"] == "true"


@patch("coinwatch.data.gateway.requests.get")
def test_fetch_overview_blocking_rate_limited(mock_get):
    mock_get.return_value = MagicMock(status_code=429)
    with pytest.raises(RateLimitError):
        fetch_overview_blocking(["bitcoin"])


@patch("coinwatch.data.gateway.requests.get")
def test_fetch_overview_blocking_network_error(mock_get):
    mock_get.side_effect = requests.exceptions.ConnectionError("down")
    with pytest.raises(GatewayError):
        fetch_overview_blocking(["bitcoin"])


@patch("coinwatch.data.gateway.requests.get")
def test_fetch_overview_blocking_empty_ids(mock_get):
    assert fetch_overview_blocking(["", "  "]) == []
    mock_get.assert_not_called()


# ============================================================================
# Async path (aiohttp)
# ============================================================================

class FakeResponse:
    def __init__(self, status=200, payload=None, exc=None):
        self.status = status
        self._payload = payload
        self._exc = exc

    async def __aenter__(self):
        if self._exc is not None:
            raise self._exc
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def json(self, content_type=None):
        return self._payload


class FakeSession:
    """Records requests and replays queued responses."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []
        self.closed = False

    def get(self, url, **kwargs):
        self.requests.append((url, kwargs))
        return self.responses.pop(0)

    async def close(self):
        self.closed = True


async def test_fetch_overview_async():
    session = FakeSession(FakeResponse(payload=SIMPLE_PRICE))
    gateway = MarketGateway(session=session, api_base="https://api.test/v3", api_key=None)

    coins = await gateway.fetch_overview(["bitcoin", "ethereum"])

    assert [c.price for c in coins] == [43250.5, 2250.0]
    url, kwargs = session.requests[0]
    assert url == "https://api.test/v3/simple/price"
    assert kwargs["params"]["ids"] == "bitcoin,ethereum"


async def test_fetch_detail_404_returns_none():
    session = FakeSession(FakeResponse(status=404))
    gateway = MarketGateway(session=session, api_base="https://api.test/v3")

    assert await gateway.fetch_detail("Nope") is None
    assert session.requests[0][0] == "https://api.test/v3/coins/nope"


async def test_fetch_history_async():
    session = FakeSession(FakeResponse(payload={"prices": [[1, 1.0], [2, 2.0]]}))
    gateway = MarketGateway(session=session, api_base="https://api.test/v3")

    assert await gateway.fetch_history("bitcoin", days=7) == (1.0, 2.0)
    url, kwargs = session.requests[0]
    assert url.endswith("/coins/bitcoin/market_chart")
    assert kwargs["params"]["days"] == "7"


async def test_async_rate_limit_and_transport_errors():
    session = FakeSession(
        FakeResponse(status=429),
        FakeResponse(exc=aiohttp.ClientConnectionError("reset")),
        FakeResponse(exc=asyncio.TimeoutError()),
    )
    gateway = MarketGateway(session=session, api_base="https://api.test/v3")

    with pytest.raises(RateLimitError):
        await gateway.fetch_overview(["bitcoin"])
    with pytest.raises(GatewayError, match="reset"):
        await gateway.fetch_history("bitcoin")
    with pytest.raises(GatewayError, match="timed out"):
        await gateway.search("bit")


async def test_blank_search_skips_request():
    session = FakeSession()
    gateway = MarketGateway(session=session)
    assert await gateway.search("   ") == []
    assert session.requests == []


async def test_injected_session_is_not_closed():
    session = FakeSession()
    async with MarketGateway(session=session):
        pass
    assert not session.closed
