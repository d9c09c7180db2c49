"""Data fetching, validation and history-buffer modules."""
from coinwatch.data.decode import Decoded, decode_cache_map, decode_json, decode_watchlist
from coinwatch.data.gateway import GatewayError, MarketGateway, RateLimitError, fetch_overview_blocking
from coinwatch.data.history import append_price, flat_series, normalize_history

__all__ = [
    "Decoded",
    "decode_cache_map",
    "decode_json",
    "decode_watchlist",
    "GatewayError",
    "MarketGateway",
    "RateLimitError",
    "fetch_overview_blocking",
    "append_price",
    "flat_series",
    "normalize_history",
]
