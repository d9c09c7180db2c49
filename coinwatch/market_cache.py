"""Persisted per-asset cache of overview and history snapshots."""
import json
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

from coinwatch.config import HISTORY_TTL_MS, OVERVIEW_TTL_MS
from coinwatch.constants import MARKET_CACHE_KEY
from coinwatch.data.decode import decode_cache_map, decode_json
from coinwatch.models import CacheEntry, CoinDetail, History, normalize_id
from coinwatch.utils import now_ms, setup_logger

logger = setup_logger(__name__)

_EMPTY = CacheEntry()


class MarketCache:
    """In-memory cache map with an explicit write-through to storage.

    ``merge`` never persists on its own; the owner batches merges and calls
    ``flush`` once. Every merge replaces the whole map, so a reference taken
    from ``snapshot()`` never changes underneath its holder.
    """

    def __init__(
        self,
        storage,
        overview_ttl_ms: int = OVERVIEW_TTL_MS,
        history_ttl_ms: int = HISTORY_TTL_MS,
        clock: Callable[[], int] = now_ms,
    ):
        self.storage = storage
        self.overview_ttl_ms = overview_ttl_ms
        self.history_ttl_ms = history_ttl_ms
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def load(self) -> Mapping[str, CacheEntry]:
        """Read the persisted map; anything unreadable yields an empty cache."""
        try:
            raw = self.storage.get_item(MARKET_CACHE_KEY)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read market cache: {e}")
            raw = None

        entries: Dict[str, CacheEntry] = {}
        if raw:
            parsed = decode_json(raw)
            decoded = decode_cache_map(parsed.value) if parsed.ok else parsed
            if decoded.ok:
                entries = decoded.value
            else:
                logger.warning(f"Discarding persisted market cache: {decoded.error}")
        self._entries = entries
        logger.info(f"Market cache loaded with {len(entries)} entr{'y' if len(entries) == 1 else 'ies'}")
        return self.snapshot()

    def snapshot(self) -> Mapping[str, CacheEntry]:
        return MappingProxyType(self._entries)

    def read_entry(self, coin_id: str) -> CacheEntry:
        return self._entries.get(normalize_id(coin_id), _EMPTY)

    def is_overview_fresh(self, coin_id: str, now: Optional[int] = None) -> bool:
        entry = self.read_entry(coin_id)
        if entry.overview is None or entry.overview_updated_at is None:
            return False
        now = self.clock() if now is None else now
        return now - entry.overview_updated_at <= self.overview_ttl_ms

    def is_history_fresh(self, coin_id: str, now: Optional[int] = None) -> bool:
        entry = self.read_entry(coin_id)
        if not entry.history or entry.history_updated_at is None:
            return False
        now = self.clock() if now is None else now
        return now - entry.history_updated_at <= self.history_ttl_ms

    def merge(self, coin_id: str, **fields: Any) -> CacheEntry:
        """Shallow-merge ``fields`` into the entry, creating it if needed."""
        coin_id = normalize_id(coin_id)
        entry = self._entries.get(coin_id, _EMPTY).merged(**fields)
        self._entries = {**self._entries, coin_id: entry}
        return entry

    def flush(self) -> bool:
        """Serialize the whole map to storage. Returns False on failure."""
        try:
            payload = json.dumps({coin_id: entry.to_dict() for coin_id, entry in self._entries.items()})
            self.storage.set_item(MARKET_CACHE_KEY, payload)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Failed to persist market cache: {e}")
            return False
        return True

    def record_detail(self, detail: CoinDetail, history: History = (), now: Optional[int] = None) -> CacheEntry:
        """Store a detail-page fetch; an empty history keeps the cached one."""
        now = self.clock() if now is None else now
        fields: Dict[str, Any] = {"overview": detail.to_overview(), "overview_updated_at": now}
        if history:
            fields.update(history=tuple(history), history_updated_at=now)
        entry = self.merge(detail.id, **fields)
        self.flush()
        return entry
