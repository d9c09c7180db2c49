"""Search-as-you-type for adding coins to the watchlist."""
import asyncio
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from coinwatch.config import SEARCH_DEBOUNCE_SECONDS, SEARCH_MAX_RESULTS, SEARCH_MIN_CHARS
from coinwatch.constants import SEARCH_ERROR_MESSAGE
from coinwatch.data.gateway import GatewayError, RateLimitError
from coinwatch.models import SearchResult
from coinwatch.utils import setup_logger
from coinwatch.watchlist import WatchlistStore

logger = setup_logger(__name__)


@dataclass(frozen=True)
class SearchState:
    query: str = ""
    results: Tuple[SearchResult, ...] = ()
    loading: bool = False
    error: Optional[str] = None


class SearchController:
    """Debounced search.

    Typing restarts the debounce timer. When the timer fires, any request
    still in flight is cancelled before the new one is sent, so results from
    an older query can never overwrite newer ones.
    """

    def __init__(
        self,
        gateway,
        watchlist: WatchlistStore,
        debounce: float = SEARCH_DEBOUNCE_SECONDS,
        min_chars: int = SEARCH_MIN_CHARS,
        max_results: int = SEARCH_MAX_RESULTS,
    ):
        self.gateway = gateway
        self.watchlist = watchlist
        self.debounce = debounce
        self.min_chars = min_chars
        self.max_results = max_results
        self._state = SearchState()
        self._timer: Optional[asyncio.Task] = None
        self._request: Optional[asyncio.Task] = None

    @property
    def state(self) -> SearchState:
        return self._state

    def set_query(self, text: Optional[str]) -> Optional[asyncio.Task]:
        """Record the input text and (re)arm the debounce timer."""
        text = text or ""
        self._state = replace(self._state, query=text)
        _cancel(self._timer)
        self._timer = None

        term = text.strip()
        if len(term) < self.min_chars:
            _cancel(self._request)
            self._request = None
            self._state = replace(self._state, results=(), loading=False, error=None)
            return None

        self._timer = asyncio.get_running_loop().create_task(self._fire(term))
        return self._timer

    async def _fire(self, term: str) -> None:
        await asyncio.sleep(self.debounce)
        _cancel(self._request)
        self._request = asyncio.get_running_loop().create_task(self._search(term))
        await asyncio.shield(self._request)

    async def _search(self, term: str) -> None:
        self._state = replace(self._state, loading=True)
        try:
            results = await self.gateway.search(term, self.max_results)
        except RateLimitError as e:
            self._state = replace(self._state, loading=False, error=str(e))
            return
        except GatewayError as e:
            logger.warning(f"Search for {term!r} failed: {e}")
            self._state = replace(self._state, loading=False, error=SEARCH_ERROR_MESSAGE)
            return
        self._state = replace(self._state, results=tuple(results), loading=False, error=None)
        logger.info(f"Search {term!r}: {len(results)} result(s)")

    def select(self, result: SearchResult) -> bool:
        """Add a result to the watchlist and clear the search box."""
        added = self.watchlist.add(result.to_entry())
        self.clear()
        return added

    def find(self, coin_id: str) -> Optional[SearchResult]:
        return next((r for r in self._state.results if r.id == coin_id), None)

    def clear(self) -> None:
        self.cancel()
        self._state = SearchState()

    def cancel(self) -> None:
        _cancel(self._timer)
        _cancel(self._request)
        self._timer = None
        self._request = None


def _cancel(task: Optional[asyncio.Task]) -> None:
    if task is not None and not task.done():
        task.cancel()
