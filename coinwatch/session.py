"""Dashboard session: owns the sync core and its private event loop.

Dash callbacks run in Flask worker threads. They never touch the watchlist,
cache or controller directly; every mutation is submitted to the session's
loop thread, and reads go through immutable snapshots.
"""
import asyncio
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Coroutine, Optional, Tuple

from coinwatch.config import DASH_HOST, DASH_PORT, LIVE_STREAM_PATH, STORAGE_DIR
from coinwatch.data.gateway import MarketGateway
from coinwatch.detail import DetailController, DetailState
from coinwatch.live.channel import LiveChannel
from coinwatch.market_cache import MarketCache
from coinwatch.models import WatchlistEntry
from coinwatch.search import SearchController, SearchState
from coinwatch.storage import JsonFileStorage
from coinwatch.sync import SyncController, ViewState
from coinwatch.utils import setup_logger
from coinwatch.watchlist import WatchlistStore

logger = setup_logger(__name__)

CALL_TIMEOUT = 10  # seconds a callback waits for the loop thread


@dataclass(frozen=True)
class SessionSnapshot:
    entries: Tuple[WatchlistEntry, ...]
    view: ViewState
    search: SearchState
    detail: DetailState = field(default_factory=DetailState)


class DashboardSession:
    """Constructed at startup, torn down with ``stop()``."""

    def __init__(
        self,
        storage=None,
        gateway=None,
        live_url: Optional[str] = None,
        connect_delay: float = 0.0,
    ):
        self.storage = storage if storage is not None else JsonFileStorage(STORAGE_DIR)
        self.watchlist = WatchlistStore(self.storage)
        self.cache = MarketCache(self.storage)
        self.gateway = gateway if gateway is not None else MarketGateway()
        self.controller = SyncController(self.watchlist, self.cache, self.gateway)
        self.search = SearchController(self.gateway, self.watchlist)
        self.detail = DetailController(self.gateway, self.cache)
        self.channel = LiveChannel(
            live_url or f"http://{DASH_HOST}:{DASH_PORT}{LIVE_STREAM_PATH}",
            on_message=self.controller.apply_live_message,
            on_error=self.controller.live_failed,
            on_open=self.controller.live_opened,
            connect_delay=connect_delay,
        )
        self.watchlist.subscribe(self._on_watchlist_change)
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()

    # -- lifecycle ------------------------------------------------------------

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run_loop, name="coinwatch-sync", daemon=True)
        self._thread.start()
        self._ready.wait()
        self.submit(self.bootstrap()).result(timeout=CALL_TIMEOUT)
        logger.info("Dashboard session started")

    def _run_loop(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        self._ready.set()
        try:
            self._loop.run_forever()
        finally:
            self._loop.close()

    async def bootstrap(self) -> None:
        """Load persisted state, start the first backfill and open the live channel."""
        self.watchlist.load()
        self.cache.load()
        self.controller.sync()
        self.connect_live()

    def stop(self) -> None:
        if self._loop is None or self._thread is None:
            return
        self.submit(self.shutdown()).result(timeout=CALL_TIMEOUT)
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=5)
        self._thread = None
        logger.info("Dashboard session stopped")

    async def shutdown(self) -> None:
        self.controller.cancel()
        self.search.cancel()
        self.detail.cancel()
        await self.channel.close()
        await self.gateway.close()
        self.cache.flush()

    # -- loop access ------------------------------------------------------------

    def submit(self, coro: Coroutine) -> Future:
        if self._loop is None:
            raise RuntimeError("session is not started")
        return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def call(self, fn: Callable[..., Any], *args: Any) -> Any:
        """Run a plain function on the loop thread and return its result."""

        async def _invoke():
            return fn(*args)

        return self.submit(_invoke()).result(timeout=CALL_TIMEOUT)

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            entries=self.watchlist.entries,
            view=self.controller.state,
            search=self.search.state,
            detail=self.detail.state,
        )

    # -- live channel -----------------------------------------------------------

    def connect_live(self) -> int:
        """(Re)open the live subscription for the current watchlist. Loop thread only."""
        generation = self.channel.start(self.watchlist.ids)
        self.controller.live_connecting(generation)
        return generation

    def retry_live(self) -> int:
        return self.call(self.connect_live)

    def _on_watchlist_change(self, entries) -> None:
        self.controller.sync()
        self.connect_live()

    # -- user actions -----------------------------------------------------------

    def set_search_query(self, text: Optional[str]) -> None:
        self.call(self.search.set_query, text)

    def select_search_result(self, coin_id: str) -> bool:
        def _select():
            result = self.search.find(coin_id)
            return self.search.select(result) if result is not None else False

        return self.call(_select)

    def add_coin(self, entry: WatchlistEntry) -> bool:
        return self.call(self.watchlist.add, entry)

    def remove_coin(self, coin_id: str) -> bool:
        return self.call(self.watchlist.remove, coin_id)

    def reset_watchlist(self) -> None:
        self.call(self.watchlist.reset)

    def open_detail(self, coin_id: str) -> None:
        self.call(self.detail.open, coin_id)

    def close_detail(self) -> None:
        self.call(self.detail.close)
