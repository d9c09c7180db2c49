"""Static table of the assets shipped as watchlist defaults."""
from dataclasses import dataclass
from typing import Dict, List, Optional

from coinwatch.models import WatchlistEntry, normalize_id


@dataclass(frozen=True)
class CoinMeta:
    id: str
    name: str
    symbol: str
    image: str
    accent: str
    gradient: tuple


# Coin definitions, in the order they appear on the dashboard
SUPPORTED_COINS: List[CoinMeta] = [
    CoinMeta(
        id="bitcoin",
        name="Bitcoin",
        symbol="BTC",
        image="https://assets.coingecko.com/coins/images/1/large/bitcoin.png?1547033579",
        accent="#fbbf24",
        gradient=("#f59e0b", "#d97706"),
    ),
    CoinMeta(
        id="ethereum",
        name="Ethereum",
        symbol="ETH",
        image="https://assets.coingecko.com/coins/images/279/large/ethereum.png?1696501628",
        accent="#7dd3fc",
        gradient=("#64748b", "#4f46e5"),
    ),
    CoinMeta(
        id="dogecoin",
        name="Dogecoin",
        symbol="DOGE",
        image="https://assets.coingecko.com/coins/images/5/large/dogecoin.png?1547792256",
        accent="#fde047",
        gradient=("#facc15", "#eab308"),
    ),
    CoinMeta(
        id="cardano",
        name="Cardano",
        symbol="ADA",
        image="https://assets.coingecko.com/coins/images/975/large/cardano.png?1696502090",
        accent="#bae6fd",
        gradient=("#0ea5e9", "#4f46e5"),
    ),
    CoinMeta(
        id="solana",
        name="Solana",
        symbol="SOL",
        image="https://assets.coingecko.com/coins/images/4128/large/solana.png?1696504756",
        accent="#6ee7b7",
        gradient=("#10b981", "#9333ea"),
    ),
]

_BY_ID: Dict[str, CoinMeta] = {coin.id: coin for coin in SUPPORTED_COINS}

COIN_ID_SET = frozenset(_BY_ID)


def get_coin_meta(coin_id: str) -> Optional[CoinMeta]:
    """Look up registry metadata for an asset id (case-insensitive)."""
    return _BY_ID.get(normalize_id(coin_id))


def default_entries() -> List[WatchlistEntry]:
    """Watchlist entries for every registry coin, flagged as defaults."""
    return [
        WatchlistEntry(
            id=coin.id,
            name=coin.name,
            symbol=coin.symbol,
            image=coin.image,
            is_default=True,
        )
        for coin in SUPPORTED_COINS
    ]
