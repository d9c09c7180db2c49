"""Per-coin detail panel: current snapshot, 24h range and a 30-day trend."""
import asyncio
from dataclasses import dataclass
from typing import Optional

from coinwatch.config import DETAIL_HISTORY_DAYS, HISTORY_CAPACITY
from coinwatch.constants import DETAIL_ERROR_MESSAGE, DETAIL_NOT_FOUND_MESSAGE
from coinwatch.data.gateway import GatewayError, RateLimitError
from coinwatch.data.history import normalize_history
from coinwatch.market_cache import MarketCache
from coinwatch.models import CoinDetail, History, normalize_id
from coinwatch.utils import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class DetailState:
    coin_id: Optional[str] = None
    detail: Optional[CoinDetail] = None
    history: History = ()
    loading: bool = False
    error: Optional[str] = None


class DetailController:
    """Loads one coin's detail and writes it through to the market cache.

    The panel keeps the full trend window; the cache only receives the most
    recent ``capacity`` samples so its series stay within the rolling window.
    """

    def __init__(
        self,
        gateway,
        cache: MarketCache,
        days: int = DETAIL_HISTORY_DAYS,
        capacity: int = HISTORY_CAPACITY,
    ):
        self.gateway = gateway
        self.cache = cache
        self.days = days
        self.capacity = capacity
        self._state = DetailState()
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> DetailState:
        return self._state

    @property
    def current_load(self) -> Optional[asyncio.Task]:
        return self._task

    def open(self, coin_id: str) -> asyncio.Task:
        """Show ``coin_id``, replacing any panel still loading."""
        self.cancel()
        coin_id = normalize_id(coin_id)
        self._state = DetailState(coin_id=coin_id, loading=True)
        self._task = asyncio.get_running_loop().create_task(self._load(coin_id))
        return self._task

    def close(self) -> None:
        self.cancel()
        self._state = DetailState()

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _load(self, coin_id: str) -> None:
        try:
            detail = await self.gateway.fetch_detail(coin_id)
            history: History = ()
            if detail is not None:
                history = await self.gateway.fetch_history(coin_id, days=self.days, points=self.days)
        except RateLimitError as e:
            self._state = DetailState(coin_id=coin_id, error=str(e))
            return
        except GatewayError as e:
            logger.warning(f"{coin_id}: detail load failed -> {e}")
            self._state = DetailState(coin_id=coin_id, error=DETAIL_ERROR_MESSAGE)
            return

        if detail is None:
            self._state = DetailState(coin_id=coin_id, error=DETAIL_NOT_FOUND_MESSAGE)
            return

        self.cache.record_detail(detail, normalize_history(history, self.capacity))
        self._state = DetailState(coin_id=coin_id, detail=detail, history=normalize_history(history, self.days))
        logger.info(f"{coin_id}: detail loaded with {len(history)} trend point(s)")
