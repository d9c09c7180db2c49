"""Persisted, ordered watchlist of asset ids."""
import json
from typing import Callable, List, Optional, Sequence, Tuple

from coinwatch.constants import WATCHLIST_STORAGE_KEY
from coinwatch.data.decode import decode_json, decode_watchlist
from coinwatch.models import WatchlistEntry, normalize_id
from coinwatch.registry import default_entries
from coinwatch.utils import setup_logger

logger = setup_logger(__name__)

Listener = Callable[[Tuple[WatchlistEntry, ...]], None]


class WatchlistStore:
    """Registry defaults followed by user-added entries, in insertion order.

    Default entries cannot be removed, only reset to. Storage failures are
    logged and the store keeps working from memory.
    """

    def __init__(self, storage, defaults: Optional[Sequence[WatchlistEntry]] = None):
        self.storage = storage
        base = default_entries() if defaults is None else defaults
        self._defaults: Tuple[WatchlistEntry, ...] = tuple(
            WatchlistEntry(e.id, e.name, e.symbol, e.image, True) for e in base
        )
        self._default_ids = frozenset(e.id for e in self._defaults)
        self._entries: Tuple[WatchlistEntry, ...] = self._defaults
        self._listeners: List[Listener] = []

    @property
    def entries(self) -> Tuple[WatchlistEntry, ...]:
        return self._entries

    @property
    def ids(self) -> List[str]:
        return [e.id for e in self._entries]

    def contains(self, coin_id: str) -> bool:
        coin_id = normalize_id(coin_id)
        return any(e.id == coin_id for e in self._entries)

    def is_default(self, coin_id: str) -> bool:
        return normalize_id(coin_id) in self._default_ids

    def subscribe(self, listener: Listener) -> None:
        """Call ``listener`` with the new entries after every change."""
        self._listeners.append(listener)

    def load(self) -> Tuple[WatchlistEntry, ...]:
        """Read the persisted watchlist, merged over the registry defaults."""
        try:
            raw = self.storage.get_item(WATCHLIST_STORAGE_KEY)
        except (OSError, ValueError) as e:
            logger.warning(f"Watchlist read failed: {e}")
            raw = None

        entries = list(self._defaults)
        if raw:
            parsed = decode_json(raw)
            decoded = decode_watchlist(parsed.value) if parsed.ok else parsed
            if decoded.ok:
                seen = set(self._default_ids)
                for entry in decoded.value:
                    if entry.id in seen:
                        continue
                    seen.add(entry.id)
                    entries.append(WatchlistEntry(entry.id, entry.name, entry.symbol, entry.image, False))
            else:
                logger.warning(f"Discarding persisted watchlist: {decoded.error}")

        self._entries = tuple(entries)
        logger.info(f"Watchlist loaded with {len(self._entries)} coin(s)")
        return self._entries

    def add(self, entry: WatchlistEntry) -> bool:
        """Append a user entry; returns False if the id is already tracked."""
        coin_id = normalize_id(entry.id)
        if not coin_id or self.contains(coin_id):
            return False
        added = WatchlistEntry(coin_id, entry.name, entry.symbol, entry.image, False)
        self._set(self._entries + (added,))
        logger.info(f"Added {coin_id} to watchlist")
        return True

    def remove(self, coin_id: str) -> bool:
        """Remove a user entry; default entries are left in place."""
        coin_id = normalize_id(coin_id)
        if coin_id in self._default_ids or not self.contains(coin_id):
            return False
        self._set(tuple(e for e in self._entries if e.id != coin_id))
        logger.info(f"Removed {coin_id} from watchlist")
        return True

    def reset(self) -> None:
        self._set(self._defaults)
        logger.info("Watchlist reset to defaults")

    def _set(self, entries: Tuple[WatchlistEntry, ...]) -> None:
        self._entries = entries
        self._persist()
        for listener in list(self._listeners):
            listener(entries)

    def _persist(self) -> None:
        try:
            payload = json.dumps([e.to_dict() for e in self._entries])
            self.storage.set_item(WATCHLIST_STORAGE_KEY, payload)
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Watchlist write failed: {e}")
