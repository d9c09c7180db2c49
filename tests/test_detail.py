import asyncio

import pytest

from coinwatch.constants import DETAIL_ERROR_MESSAGE, DETAIL_NOT_FOUND_MESSAGE, MARKET_CACHE_KEY, RATE_LIMIT_MESSAGE
from coinwatch.data.gateway import GatewayError, RateLimitError
from coinwatch.detail import DetailController, DetailState

from conftest import NOW


MONTH = tuple(float(p) for p in range(1, 31))


@pytest.fixture
def detail(gateway, cache):
    gateway.fetch_history.side_effect = None
    gateway.fetch_history.return_value = MONTH
    return DetailController(gateway, cache)


async def test_open_loads_detail_and_month_trend(detail, gateway):
    task = detail.open("Solana")
    assert detail.state == DetailState(coin_id="solana", loading=True)
    await task

    state = detail.state
    assert not state.loading and state.error is None
    assert state.detail.price == 10.0
    assert state.history == MONTH
    gateway.fetch_detail.assert_awaited_once_with("solana")
    gateway.fetch_history.assert_awaited_once_with("solana", days=30, points=30)


async def test_loaded_detail_is_written_to_cache(detail, cache, storage):
    await detail.open("solana")

    entry = cache.read_entry("solana")
    assert entry.overview.price == 10.0
    assert entry.overview_updated_at == NOW
    assert entry.history == MONTH[-7:]
    assert entry.history_updated_at == NOW
    assert storage.get_item(MARKET_CACHE_KEY) is not None


async def test_empty_trend_keeps_cached_history(detail, gateway, cache):
    cache.merge("solana", history=(4.0, 5.0), history_updated_at=NOW - 10)
    gateway.fetch_history.return_value = ()
    await detail.open("solana")

    assert detail.state.history == ()
    assert cache.read_entry("solana").history == (4.0, 5.0)


async def test_unknown_coin_shows_not_found(detail, gateway, cache):
    gateway.fetch_detail.side_effect = None
    gateway.fetch_detail.return_value = None
    await detail.open("nope")

    assert detail.state.error == DETAIL_NOT_FOUND_MESSAGE
    assert detail.state.detail is None
    gateway.fetch_history.assert_not_awaited()
    assert "nope" not in cache.snapshot()


async def test_gateway_failure_shows_generic_error(detail, gateway, cache):
    gateway.fetch_history.side_effect = GatewayError("solana history: HTTP 500", status=500)
    await detail.open("solana")

    assert detail.state.error == DETAIL_ERROR_MESSAGE
    assert not detail.state.loading
    assert "solana" not in cache.snapshot()


async def test_rate_limit_text_is_shown(detail, gateway):
    gateway.fetch_detail.side_effect = RateLimitError()
    await detail.open("solana")
    assert detail.state.error == RATE_LIMIT_MESSAGE


async def test_opening_another_coin_cancels_previous_load(detail, gateway):
    gate = asyncio.Event()
    original = gateway.fetch_detail.side_effect

    async def slow_bitcoin(coin_id):
        if coin_id == "bitcoin":
            await gate.wait()
        return await original(coin_id)

    gateway.fetch_detail.side_effect = slow_bitcoin

    first = detail.open("bitcoin")
    await asyncio.sleep(0)
    second = detail.open("ethereum")
    gate.set()
    await asyncio.gather(first, return_exceptions=True)
    await second

    assert first.cancelled()
    assert detail.state.coin_id == "ethereum"
    assert detail.state.detail.id == "ethereum"


async def test_close_resets_panel(detail):
    task = detail.open("solana")
    detail.close()
    await asyncio.gather(task, return_exceptions=True)

    assert task.cancelled()
    assert detail.state == DetailState()
