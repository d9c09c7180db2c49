"""Market data fetching from the CoinGecko API.

``MarketGateway`` is the async client used by the sync layer (aiohttp).
``fetch_overview_blocking`` serves the WSGI live stream, whose generator runs
in a plain worker thread (requests). Both share the parsing helpers below so
the two paths normalize provider payloads the same way.
"""
import asyncio
from typing import Any, Dict, Iterable, List, Optional

import aiohttp
import pandas as pd
import requests

from coinwatch.config import (
    COINGECKO_API_BASE,
    COINGECKO_API_KEY,
    HISTORY_CAPACITY,
    HISTORY_DAYS,
    HISTORY_INTERVAL,
    REQUEST_TIMEOUT,
    SEARCH_MAX_RESULTS,
    VS_CURRENCY,
)
from coinwatch.constants import RATE_LIMIT_MESSAGE
from coinwatch.data.history import normalize_history
from coinwatch.models import CoinDetail, CoinOverview, History, SearchResult, normalize_id
from coinwatch.registry import get_coin_meta
from coinwatch.utils import setup_logger

logger = setup_logger(__name__)


class GatewayError(RuntimeError):
    """Upstream request failed (network, bad status or unreadable body)."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RateLimitError(GatewayError):
    """Upstream is throttling us; the message is safe to show to the user."""

    def __init__(self, message: str = RATE_LIMIT_MESSAGE):
        super().__init__(message, status=429)


def api_headers(api_key: Optional[str] = COINGECKO_API_KEY) -> Dict[str, str]:
    headers = {"accept": "application/json"}
    if api_key:
        headers["x-cg-pro-api-key"] = api_key
    return headers


def check_status(status: int, context: str) -> None:
    """Translate a provider status code into the gateway's error types."""
    if status == 429:
        logger.warning(f"{context}: HTTP 429 (rate limited)")
        raise RateLimitError()
    if status == 401:
        error_msg = f"{context}: 401 (unauthorized - check API key)"
        logger.error(error_msg)
        raise GatewayError(error_msg, status=status)
    if status < 200 or status >= 300:
        error_msg = f"{context}: HTTP {status}"
        logger.error(error_msg)
        raise GatewayError(error_msg, status=status)


def overview_params(ids: Iterable[str]) -> Dict[str, str]:
    return {
        "ids": ",".join(ids),
        "vs_currencies": VS_CURRENCY,
        "include_24hr_change": "true",
    }


def parse_overview(payload: Any, ids: Iterable[str]) -> List[CoinOverview]:
    """Normalize a ``/simple/price`` payload, preserving the requested id order.

    Ids the provider did not return (or returned without a price) are omitted.
    """
    if not isinstance(payload, dict):
        raise GatewayError("overview: unexpected payload shape")
    coins = []
    for coin_id in ids:
        entry = payload.get(coin_id)
        if not isinstance(entry, dict) or entry.get(VS_CURRENCY) is None:
            continue
        meta = get_coin_meta(coin_id)
        coins.append(
            CoinOverview(
                id=coin_id,
                name=meta.name if meta else coin_id.upper(),
                symbol=meta.symbol if meta else coin_id[:5].upper(),
                price=float(entry.get(VS_CURRENCY) or 0),
                change_24h=float(entry.get(f"{VS_CURRENCY}_24h_change") or 0),
            )
        )
    return coins


def parse_detail(payload: Any, coin_id: str) -> Optional[CoinDetail]:
    """Normalize a ``/coins/{id}`` payload; None when it carries no current price."""
    if not isinstance(payload, dict):
        return None
    market_data = payload.get("market_data") or {}
    price = (market_data.get("current_price") or {}).get(VS_CURRENCY)
    if not price:
        return None
    image = payload.get("image") or {}
    return CoinDetail(
        id=coin_id,
        name=payload.get("name") or coin_id.upper(),
        symbol=(payload.get("symbol") or coin_id).upper(),
        price=float(price),
        change_24h=float(market_data.get("price_change_percentage_24h") or 0),
        high_24h=float((market_data.get("high_24h") or {}).get(VS_CURRENCY) or 0),
        low_24h=float((market_data.get("low_24h") or {}).get(VS_CURRENCY) or 0),
        image=image.get("large") if isinstance(image, dict) else None,
        last_updated=payload.get("last_updated"),
    )


def parse_history(payload: Any, points: int = HISTORY_CAPACITY) -> History:
    """Extract the most recent ``points`` prices from a ``market_chart`` payload."""
    if not isinstance(payload, dict):
        raise GatewayError("history: unexpected payload shape")
    rows = [row for row in payload.get("prices") or [] if isinstance(row, (list, tuple)) and len(row) >= 2]
    if not rows:
        return ()
    df = pd.DataFrame([row[:2] for row in rows], columns=["ts", "price"])
    df["price"] = pd.to_numeric(df["price"], errors="coerce")
    df = df.dropna(subset=["price"]).sort_values("ts")
    return normalize_history(df["price"].tail(points).tolist(), capacity=points)


def parse_search(payload: Any, limit: int = SEARCH_MAX_RESULTS) -> List[SearchResult]:
    coins = payload.get("coins") if isinstance(payload, dict) else None
    if not isinstance(coins, list):
        return []
    results = []
    for coin in coins[:limit]:
        if not isinstance(coin, dict) or not coin.get("id"):
            continue
        results.append(
            SearchResult(
                id=normalize_id(coin["id"]),
                name=coin.get("name") or "",
                symbol=(coin.get("symbol") or "").upper(),
                image=coin.get("thumb") or coin.get("large"),
                market_cap_rank=coin.get("market_cap_rank"),
            )
        )
    return results


class MarketGateway:
    """Async CoinGecko client.

    A session may be injected (tests, shared connection pools); otherwise one
    is created lazily and closed by ``close()``.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        api_base: str = COINGECKO_API_BASE,
        api_key: Optional[str] = COINGECKO_API_KEY,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self._session = session
        self._owns_session = session is None
        self.api_base = api_base.rstrip("/")
        self.headers = api_headers(api_key)
        self.timeout = timeout

    async def __aenter__(self) -> "MarketGateway":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _get_json(self, path: str, params: Dict[str, Any], context: str, allow_404: bool = False) -> Any:
        url = f"{self.api_base}{path}"
        session = self._get_session()
        try:
            async with session.get(
                url,
                params=params,
                headers=self.headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as r:
                logger.debug(f"{context}: API request - Status: {r.status}")
                if allow_404 and r.status == 404:
                    return None
                check_status(r.status, context)
                return await r.json(content_type=None)
        except GatewayError:
            raise
        except asyncio.TimeoutError as e:
            logger.error(f"{context}: Timeout error -> {e}")
            raise GatewayError(f"{context}: request timed out") from e
        except (aiohttp.ClientError, ValueError) as e:
            logger.error(f"{context}: Request error -> {e}")
            raise GatewayError(f"{context}: {e}") from e

    async def fetch_overview(self, ids: Iterable[str]) -> List[CoinOverview]:
        """Bulk current price and 24h change for ``ids``."""
        id_list = [normalize_id(i) for i in ids if i and i.strip()]
        if not id_list:
            return []
        payload = await self._get_json("/simple/price", overview_params(id_list), "overview")
        coins = parse_overview(payload, id_list)
        logger.info(f"overview: {len(coins)}/{len(id_list)} coins returned")
        return coins

    async def fetch_detail(self, coin_id: str) -> Optional[CoinDetail]:
        """Detail snapshot for one coin; None when the provider does not know it."""
        coin_id = normalize_id(coin_id)
        params = {
            "localization": "false",
            "tickers": "false",
            "market_data": "true",
            "community_data": "false",
            "developer_data": "false",
            "sparkline": "false",
        }
        payload = await self._get_json(f"/coins/{coin_id}", params, f"{coin_id} detail", allow_404=True)
        if payload is None:
            logger.info(f"{coin_id}: 404 (unknown CoinGecko id)")
            return None
        return parse_detail(payload, coin_id)

    async def fetch_history(
        self,
        coin_id: str,
        days: int = HISTORY_DAYS,
        interval: str = HISTORY_INTERVAL,
        points: int = HISTORY_CAPACITY,
    ) -> History:
        """Recent price samples for one coin, oldest first."""
        coin_id = normalize_id(coin_id)
        params = {"vs_currency": VS_CURRENCY, "days": str(days), "interval": interval}
        payload = await self._get_json(f"/coins/{coin_id}/market_chart", params, f"{coin_id} history")
        return parse_history(payload, points)

    async def search(self, query: str, limit: int = SEARCH_MAX_RESULTS) -> List[SearchResult]:
        query = (query or "").strip()
        if not query:
            return []
        payload = await self._get_json("/search", {"query": query}, "search")
        return parse_search(payload, limit)


def fetch_overview_blocking(
    ids: Iterable[str],
    api_base: str = COINGECKO_API_BASE,
    api_key: Optional[str] = COINGECKO_API_KEY,
) -> List[CoinOverview]:
    """Synchronous bulk overview for callers outside the event loop."""
    id_list = [normalize_id(i) for i in ids if i and i.strip()]
    if not id_list:
        return []
    url = f"{api_base.rstrip('/')}/simple/price"
    try:
        r = requests.get(url, params=overview_params(id_list), headers=api_headers(api_key), timeout=REQUEST_TIMEOUT)
    except requests.exceptions.RequestException as e:
        logger.error(f"live overview: Request error -> {e}")
        raise GatewayError(f"live overview: {e}") from e
    check_status(r.status_code, "live overview")
    try:
        payload = r.json()
    except ValueError as e:
        raise GatewayError(f"live overview: unreadable body ({e})") from e
    return parse_overview(payload, id_list)
