"""Synchronization of the watchlist view with the market cache and upstream API.

On every watchlist change the controller seeds the view from the cache, then
backfills assets whose overview or history is stale in two ordered phases:

1. one bulk overview request, repaired by sequential per-coin detail fetches
   for any coin the bulk response left out;
2. sequential per-coin history requests, falling back to a flat series.

Live stream messages are folded into the same view maps and cache entries.
All state is owned by the event loop thread and replaced wholesale on every
change; ``state`` always returns an immutable snapshot.
"""
import asyncio
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from coinwatch.config import HISTORY_CAPACITY
from coinwatch.constants import (
    HISTORY_WARNING_MESSAGE,
    LIVE_CONNECTING,
    LIVE_ERROR,
    LIVE_ERROR_MESSAGE,
    LIVE_IDLE,
    LIVE_OPEN,
    OVERVIEW_ERROR_MESSAGE,
)
from coinwatch.data.gateway import GatewayError, RateLimitError
from coinwatch.data.history import append_price, flat_series, normalize_history
from coinwatch.live.channel import LiveMessage
from coinwatch.market_cache import MarketCache
from coinwatch.models import CoinOverview, History, WatchlistEntry
from coinwatch.utils import now_ms, setup_logger
from coinwatch.watchlist import WatchlistStore

logger = setup_logger(__name__)


def _frozen(data: Dict) -> Mapping:
    return MappingProxyType(dict(data))


@dataclass(frozen=True)
class ViewState:
    overviews: Mapping[str, CoinOverview] = field(default_factory=lambda: _frozen({}))
    histories: Mapping[str, History] = field(default_factory=lambda: _frozen({}))
    loading: bool = False
    error: Optional[str] = None
    warning: Optional[str] = None
    pending_ids: Tuple[str, ...] = ()
    live_status: str = LIVE_IDLE
    live_error: Optional[str] = None
    live_updated_at: Optional[str] = None


class SyncController:
    """Keeps the in-memory view, the cache and the upstream API in step."""

    def __init__(
        self,
        watchlist: WatchlistStore,
        cache: MarketCache,
        gateway,
        clock: Callable[[], int] = now_ms,
        capacity: int = HISTORY_CAPACITY,
    ):
        self.watchlist = watchlist
        self.cache = cache
        self.gateway = gateway
        self.clock = clock
        self.capacity = capacity
        self._state = ViewState()
        # coin id -> sequence number of the batch currently fetching it
        self._in_flight: Dict[str, int] = {}
        self._batches: Dict[int, asyncio.Task] = {}
        self._batch_seq = 0
        self._batch_signature: Tuple[str, ...] = ()
        self._live_generation = 0

    @property
    def state(self) -> ViewState:
        return self._state

    @property
    def in_flight(self) -> frozenset:
        return frozenset(self._in_flight)

    @property
    def current_batch(self) -> Optional[asyncio.Task]:
        if not self._batches:
            return None
        return self._batches[max(self._batches)]

    def _update(self, **changes) -> None:
        self._state = replace(self._state, **changes)

    def _put_overviews(self, coins: Iterable[CoinOverview], now: int) -> None:
        overviews = dict(self._state.overviews)
        for coin in coins:
            overviews[coin.id] = coin
            self.cache.merge(coin.id, overview=coin, overview_updated_at=now)
        self._update(overviews=_frozen(overviews))

    def _put_history(self, coin_id: str, series: History, now: Optional[int]) -> None:
        histories = dict(self._state.histories)
        histories[coin_id] = series
        self._update(histories=_frozen(histories))
        if now is not None:
            self.cache.merge(coin_id, history=series, history_updated_at=now)

    # -- cache seeding and backfill selection -------------------------------

    def seed_from_cache(self, entries: Optional[Sequence[WatchlistEntry]] = None) -> List[str]:
        """Show whatever the cache holds, fresh or stale, for coins not yet in view."""
        entries = self.watchlist.entries if entries is None else entries
        overviews = dict(self._state.overviews)
        histories = dict(self._state.histories)
        seeded = []
        changed = False
        for entry in entries:
            cached = self.cache.read_entry(entry.id)
            if cached.overview is not None and entry.id not in overviews:
                overviews[entry.id] = cached.overview
                seeded.append(entry.id)
                changed = True
            if cached.history and not histories.get(entry.id):
                histories[entry.id] = cached.history
                changed = True
        if changed:
            self._update(overviews=_frozen(overviews), histories=_frozen(histories))
        return seeded

    def backfill_ids(self, entries: Optional[Sequence[WatchlistEntry]] = None, now: Optional[int] = None) -> List[str]:
        """Coins whose overview or history is stale, minus those already being fetched."""
        entries = self.watchlist.entries if entries is None else entries
        now = self.clock() if now is None else now
        ids: List[str] = []
        for entry in entries:
            if entry.id in self._in_flight or entry.id in ids:
                continue
            if not self.cache.is_overview_fresh(entry.id, now) or not self.cache.is_history_fresh(entry.id, now):
                ids.append(entry.id)
        return ids

    # -- backfill -----------------------------------------------------------

    def sync(self) -> Optional[asyncio.Task]:
        """Seed from the cache and start a backfill batch if anything is stale.

        A changed watchlist supersedes running batches. With an unchanged
        watchlist, coins already in flight are not requested again and the
        running batch is returned instead. Must be called on the event loop.
        """
        entries = self.watchlist.entries
        signature = tuple(e.id for e in entries)
        if self._batches and signature != self._batch_signature:
            self.cancel()

        self.seed_from_cache(entries)
        ids = self.backfill_ids(entries)
        if not ids:
            return self.current_batch

        self._batch_seq += 1
        seq = self._batch_seq
        self._batch_signature = signature
        for coin_id in ids:
            self._in_flight[coin_id] = seq
        self._update(
            loading=True,
            error=None,
            warning=None,
            pending_ids=tuple(sorted(self._in_flight)),
        )
        logger.info(f"Backfill batch {seq} started for {len(ids)} coin(s): {', '.join(ids)}")
        task = asyncio.get_running_loop().create_task(self._run_batch(seq, ids))
        self._batches[seq] = task
        return task

    def cancel(self) -> None:
        """Abort running batches; anything they already wrote is kept."""
        for seq, task in list(self._batches.items()):
            task.cancel()
            self._release(seq)
            del self._batches[seq]
            logger.info(f"Backfill batch {seq} superseded")
        self._update(loading=False, pending_ids=tuple(sorted(self._in_flight)))

    def _release(self, seq: int) -> None:
        self._in_flight = {coin_id: owner for coin_id, owner in self._in_flight.items() if owner != seq}

    async def _run_batch(self, seq: int, ids: List[str]) -> None:
        try:
            if await self._resolve_overviews(seq, ids):
                await self._resolve_histories(ids)
        except asyncio.CancelledError:
            logger.info(f"Backfill batch {seq} cancelled")
            raise
        finally:
            self.cache.flush()
            self._release(seq)
            if self._batches.get(seq) is asyncio.current_task():
                del self._batches[seq]
            if not self._batches:
                self._update(loading=False, pending_ids=())
            else:
                self._update(pending_ids=tuple(sorted(self._in_flight)))

    async def _resolve_overviews(self, seq: int, ids: List[str]) -> bool:
        """Phase 1: bulk overview, then per-coin detail for anything missing."""
        try:
            coins = await self.gateway.fetch_overview(ids)
        except GatewayError as e:
            message = str(e) if isinstance(e, RateLimitError) else OVERVIEW_ERROR_MESSAGE
            logger.error(f"Backfill batch {seq}: bulk overview failed -> {e}")
            self._release(seq)
            self._update(error=message)
            return False

        self._put_overviews(coins, self.clock())
        returned = {coin.id for coin in coins}
        for coin_id in ids:
            if coin_id in returned:
                continue
            try:
                detail = await self.gateway.fetch_detail(coin_id)
            except GatewayError as e:
                logger.warning(f"{coin_id}: detail fallback failed -> {e}")
                continue
            if detail is None or detail.price <= 0:
                logger.info(f"{coin_id}: no usable detail, leaving overview empty")
                continue
            self._put_overviews([detail.to_overview()], self.clock())
        return True

    async def _resolve_histories(self, ids: List[str]) -> None:
        """Phase 2: one history request per coin, in order."""
        for coin_id in ids:
            failure: Optional[GatewayError] = None
            try:
                series = normalize_history(await self.gateway.fetch_history(coin_id), self.capacity)
            except GatewayError as e:
                logger.warning(f"{coin_id}: history fetch failed -> {e}")
                series, failure = (), e

            if series:
                self._put_history(coin_id, series, self.clock())
                continue

            overview = self._state.overviews.get(coin_id)
            if overview is not None:
                # Shown but not cached, so the next sync retries the real history
                self._put_history(coin_id, flat_series(overview.price), None)
            if self._state.warning is None:
                warning = str(failure) if isinstance(failure, RateLimitError) else HISTORY_WARNING_MESSAGE
                self._update(warning=warning)

    # -- live stream ----------------------------------------------------------

    def live_connecting(self, generation: int) -> None:
        self._live_generation = generation
        self._update(live_status=LIVE_CONNECTING, live_error=None)

    def live_opened(self, generation: int) -> None:
        if generation == self._live_generation:
            self._update(live_status=LIVE_OPEN, live_error=None)

    def live_failed(self, error: Exception, generation: Optional[int] = None) -> None:
        """Transport-level failure of the live subscription."""
        if generation is not None and generation != self._live_generation:
            return
        message = str(error) if isinstance(error, RateLimitError) else LIVE_ERROR_MESSAGE
        self._update(live_status=LIVE_ERROR, live_error=message)

    def apply_live_message(self, message: LiveMessage) -> None:
        """Fold one live snapshot into the view and cache, then flush once.

        Coins outside the watchlist are kept too; filtering is left to the
        renderer.
        """
        if message.generation and message.generation != self._live_generation:
            logger.debug(f"Ignoring live message from stale generation {message.generation}")
            return
        if message.error:
            self._update(live_status=LIVE_ERROR, live_error=message.message or LIVE_ERROR_MESSAGE)
            return

        now = self.clock()
        overviews = dict(self._state.overviews)
        histories = dict(self._state.histories)
        for coin in message.coins:
            previous = histories.get(coin.id) or self.cache.read_entry(coin.id).history
            series = append_price(previous, coin.price, self.capacity)
            overviews[coin.id] = coin
            histories[coin.id] = series
            self.cache.merge(
                coin.id,
                overview=coin,
                overview_updated_at=now,
                history=series,
                history_updated_at=now,
            )
        self._update(
            overviews=_frozen(overviews),
            histories=_frozen(histories),
            live_status=LIVE_OPEN,
            live_error=None,
            live_updated_at=message.updated_at,
        )
        self.cache.flush()
