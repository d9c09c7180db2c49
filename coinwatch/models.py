"""Value types shared by the watchlist, cache, gateway and sync layers.

All types are frozen dataclasses: updates build a new instance and replace
the old one, they never mutate in place.
"""
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional, Tuple

History = Tuple[float, ...]


def normalize_id(value: str) -> str:
    """Case-normalize an asset identifier."""
    return value.strip().lower()


@dataclass(frozen=True)
class WatchlistEntry:
    id: str
    name: str
    symbol: str
    image: Optional[str] = None
    is_default: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "image": self.image,
            "isDefault": self.is_default,
        }


@dataclass(frozen=True)
class CoinOverview:
    id: str
    name: str
    symbol: str
    price: float
    change_24h: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "price": self.price,
            "change24h": self.change_24h,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["CoinOverview"]:
        """Build an overview from its persisted/wire form, or None if unusable."""
        if not isinstance(data, dict):
            return None
        coin_id = data.get("id")
        price = data.get("price")
        if not isinstance(coin_id, str) or not coin_id.strip():
            return None
        if isinstance(price, bool) or not isinstance(price, (int, float)) or price < 0:
            return None
        change = data.get("change24h", 0)
        if isinstance(change, bool) or not isinstance(change, (int, float)):
            change = 0
        coin_id = normalize_id(coin_id)
        name = data.get("name") if isinstance(data.get("name"), str) else coin_id.upper()
        symbol = data.get("symbol") if isinstance(data.get("symbol"), str) else coin_id[:5].upper()
        return cls(id=coin_id, name=name, symbol=symbol, price=float(price), change_24h=float(change))


@dataclass(frozen=True)
class CoinDetail:
    id: str
    name: str
    symbol: str
    price: float
    change_24h: float
    high_24h: float = 0.0
    low_24h: float = 0.0
    image: Optional[str] = None
    last_updated: Optional[str] = None

    def to_overview(self) -> CoinOverview:
        return CoinOverview(
            id=self.id,
            name=self.name,
            symbol=self.symbol,
            price=self.price,
            change_24h=self.change_24h,
        )


@dataclass(frozen=True)
class SearchResult:
    id: str
    name: str
    symbol: str
    image: Optional[str] = None
    market_cap_rank: Optional[int] = None

    def to_entry(self) -> WatchlistEntry:
        return WatchlistEntry(
            id=normalize_id(self.id),
            name=self.name or self.id.upper(),
            symbol=self.symbol or self.id[:5].upper(),
            image=self.image,
            is_default=False,
        )


@dataclass(frozen=True)
class CacheEntry:
    """Last known overview and history for one asset, each with its own clock."""

    overview: Optional[CoinOverview] = None
    overview_updated_at: Optional[int] = None
    history: Optional[History] = None
    history_updated_at: Optional[int] = None

    def merged(self, **fields: Any) -> "CacheEntry":
        return replace(self, **fields)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.overview is not None:
            data["overview"] = self.overview.to_dict()
        if self.overview_updated_at is not None:
            data["overviewUpdatedAt"] = self.overview_updated_at
        if self.history is not None:
            data["history"] = list(self.history)
        if self.history_updated_at is not None:
            data["historyUpdatedAt"] = self.history_updated_at
        return data

