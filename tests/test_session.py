"""
Tests for the session: the sync core runs on its own loop thread and the
callbacks only talk to it through thread-safe calls.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from coinwatch.app.app import create_app
from coinwatch.config import LIVE_STREAM_PATH
from coinwatch.constants import LIVE_CONNECTING
from coinwatch.models import WatchlistEntry
from coinwatch.registry import SUPPORTED_COINS
from coinwatch.session import DashboardSession


async def _drain(session):
    task = session.controller.current_batch
    if task is not None:
        await task


@pytest.fixture
def session(storage, gateway):
    dashboard = DashboardSession(storage=storage, gateway=gateway)
    dashboard.channel = MagicMock()
    dashboard.channel.start.return_value = 1
    dashboard.channel.close = AsyncMock()
    dashboard.start()
    yield dashboard
    dashboard.stop()


def test_bootstrap_loads_syncs_and_connects(session, gateway):
    session.submit(_drain(session)).result(timeout=5)
    snapshot = session.snapshot()

    assert [e.id for e in snapshot.entries] == [c.id for c in SUPPORTED_COINS]
    assert snapshot.view.overviews["bitcoin"].price == 43250.5
    assert snapshot.view.overviews["dogecoin"].price == 10.0
    assert not snapshot.view.loading
    assert snapshot.view.live_status == LIVE_CONNECTING
    session.channel.start.assert_called_once_with([c.id for c in SUPPORTED_COINS])
    gateway.fetch_overview.assert_awaited_once()


def test_watchlist_edit_resyncs_and_reconnects(session, gateway):
    session.submit(_drain(session)).result(timeout=5)

    assert session.add_coin(WatchlistEntry("polkadot", "Polkadot", "DOT"))
    session.submit(_drain(session)).result(timeout=5)

    assert session.snapshot().view.overviews["polkadot"].price == 10.0
    assert session.channel.start.call_args[0][0][-1] == "polkadot"
    assert gateway.fetch_overview.await_args_list[-1].args[0] == ["polkadot"]

    assert not session.remove_coin("bitcoin")
    assert session.remove_coin("polkadot")
    session.reset_watchlist()
    assert [e.id for e in session.snapshot().entries] == [c.id for c in SUPPORTED_COINS]


def test_retry_live_opens_new_subscription(session):
    session.channel.start.return_value = 2
    assert session.retry_live() == 2
    assert session.channel.start.call_count == 2


def test_stop_closes_resources(storage, gateway):
    dashboard = DashboardSession(storage=storage, gateway=gateway)
    dashboard.channel = MagicMock()
    dashboard.channel.close = AsyncMock()
    dashboard.start()
    dashboard.stop()

    dashboard.channel.close.assert_awaited_once()
    gateway.close.assert_awaited_once()


def test_submit_requires_started_session(storage, gateway):
    dashboard = DashboardSession(storage=storage, gateway=gateway)
    with pytest.raises(RuntimeError):
        dashboard.call(lambda: None)


def test_create_app_mounts_live_route():
    app = create_app(MagicMock())
    rules = {rule.rule for rule in app.server.url_map.iter_rules()}
    assert LIVE_STREAM_PATH in rules


async def _drain_detail(session):
    task = session.detail.current_load
    if task is not None:
        await task


def test_detail_panel_opens_and_closes(session, gateway):
    session.open_detail("solana")
    session.submit(_drain_detail(session)).result(timeout=5)

    detail = session.snapshot().detail
    assert detail.coin_id == "solana"
    assert detail.detail.price == 10.0
    assert session.cache.read_entry("solana").overview.price == 10.0

    session.close_detail()
    assert session.snapshot().detail.coin_id is None
