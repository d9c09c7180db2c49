"""
Shared pytest fixtures for the watchlist, cache and sync tests.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from coinwatch.market_cache import MarketCache
from coinwatch.models import CoinDetail, CoinOverview, SearchResult, WatchlistEntry
from coinwatch.storage import MemoryStorage
from coinwatch.sync import SyncController
from coinwatch.watchlist import WatchlistStore


NOW = 1_700_000_000_000


class FakeClock:
    """Millisecond clock the tests can move forward."""

    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


def overview(coin_id, price, change=1.5):
    return CoinOverview(id=coin_id, name=coin_id.title(), symbol=coin_id[:3].upper(), price=price, change_24h=change)


# ============================================================================
# Storage / store fixtures
# ============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def defaults():
    """Two-coin default set keeps the scenarios small."""
    return [
        WatchlistEntry("bitcoin", "Bitcoin", "BTC", None, True),
        WatchlistEntry("ethereum", "Ethereum", "ETH", None, True),
    ]


@pytest.fixture
def watchlist(storage, defaults):
    store = WatchlistStore(storage, defaults=defaults)
    store.load()
    return store


@pytest.fixture
def cache(storage, clock):
    market_cache = MarketCache(storage, clock=clock)
    market_cache.load()
    return market_cache


# ============================================================================
# Gateway fixtures
# ============================================================================

@pytest.fixture
def gateway():
    """Gateway double: every call succeeds with plausible data unless overridden."""
    gw = MagicMock()

    async def fetch_overview(ids):
        prices = {"bitcoin": 43250.5, "ethereum": 2250.0, "solana": 100.0}
        return [overview(i, prices[i]) for i in ids if i in prices]

    async def fetch_detail(coin_id):
        return CoinDetail(id=coin_id, name=coin_id.title(), symbol=coin_id[:3].upper(), price=10.0, change_24h=-2.0)

    async def fetch_history(coin_id, *args, **kwargs):
        return (1.0, 2.0, 3.0)

    async def search(query, limit=10):
        return [SearchResult(id="polkadot", name="Polkadot", symbol="DOT", image=None, market_cap_rank=14)]

    gw.fetch_overview = AsyncMock(side_effect=fetch_overview)
    gw.fetch_detail = AsyncMock(side_effect=fetch_detail)
    gw.fetch_history = AsyncMock(side_effect=fetch_history)
    gw.search = AsyncMock(side_effect=search)
    gw.close = AsyncMock()
    return gw


@pytest.fixture
def controller(watchlist, cache, gateway, clock):
    ctl = SyncController(watchlist, cache, gateway, clock=clock)
    watchlist.subscribe(lambda entries: ctl.sync())
    return ctl
