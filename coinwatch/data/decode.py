"""Validation of persisted JSON state.

Each decoder returns a ``Decoded`` result instead of raising, so a corrupt
watchlist or cache file can be swapped for safe defaults by the caller.
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar

from coinwatch.data.history import normalize_history
from coinwatch.models import CacheEntry, CoinOverview, WatchlistEntry, normalize_id

T = TypeVar("T")


@dataclass(frozen=True)
class Decoded(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: T) -> "Decoded[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "Decoded[T]":
        return cls(ok=False, error=error)


def decode_json(text: Optional[str]) -> Decoded[Any]:
    if text is None:
        return Decoded.failure("nothing stored")
    try:
        return Decoded.success(json.loads(text))
    except (TypeError, ValueError, RecursionError) as e:
        return Decoded.failure(f"invalid JSON: {e}")


def decode_entry(raw: Any) -> Decoded[WatchlistEntry]:
    """Validate one persisted watchlist entry.

    The id must be a non-empty string; name and symbol fall back to values
    derived from the id when missing or of the wrong type.
    """
    if not isinstance(raw, dict):
        return Decoded.failure("entry is not an object")
    raw_id = raw.get("id")
    if not isinstance(raw_id, str) or not raw_id.strip():
        return Decoded.failure("entry has no id")

    coin_id = normalize_id(raw_id)
    name = raw.get("name")
    symbol = raw.get("symbol")
    image = raw.get("image")
    is_default = raw.get("isDefault")
    return Decoded.success(
        WatchlistEntry(
            id=coin_id,
            name=name if isinstance(name, str) else coin_id.upper(),
            symbol=symbol if isinstance(symbol, str) else coin_id[:5].upper(),
            image=image if isinstance(image, str) else None,
            is_default=is_default if isinstance(is_default, bool) else False,
        )
    )


def decode_watchlist(raw: Any) -> Decoded[List[WatchlistEntry]]:
    """Validate a persisted watchlist; invalid items are skipped."""
    if not isinstance(raw, list):
        return Decoded.failure("watchlist is not a list")
    entries = []
    for item in raw:
        result = decode_entry(item)
        if result.ok:
            entries.append(result.value)
    return Decoded.success(entries)


def decode_cache_entry(raw: Any) -> Decoded[CacheEntry]:
    if not isinstance(raw, dict):
        return Decoded.failure("cache entry is not an object")

    overview = CoinOverview.from_dict(raw["overview"]) if "overview" in raw else None
    history = None
    if isinstance(raw.get("history"), list):
        history = normalize_history(raw["history"])
    return Decoded.success(
        CacheEntry(
            overview=overview,
            overview_updated_at=_timestamp(raw.get("overviewUpdatedAt")) if overview else None,
            history=history,
            history_updated_at=_timestamp(raw.get("historyUpdatedAt")) if history is not None else None,
        )
    )


def decode_cache_map(raw: Any) -> Decoded[Dict[str, CacheEntry]]:
    """Validate a persisted cache map; unusable entries are dropped."""
    if not isinstance(raw, dict):
        return Decoded.failure("cache is not an object")
    entries = {}
    for key, value in raw.items():
        if not isinstance(key, str) or not key.strip():
            continue
        result = decode_cache_entry(value)
        if result.ok:
            entries[normalize_id(key)] = result.value
    return Decoded.success(entries)


def _timestamp(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return int(value)
