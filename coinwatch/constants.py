"""Constants and default values for the dashboard."""

# Persisted state keys
WATCHLIST_STORAGE_KEY = "crypto-dashboard:watchlist"
MARKET_CACHE_KEY = "crypto-dashboard:coin-cache"

# Live connection states
LIVE_IDLE = "idle"
LIVE_CONNECTING = "connecting"
LIVE_OPEN = "open"
LIVE_ERROR = "error"

# User-facing messages
RATE_LIMIT_MESSAGE = (
    "CoinGecko public API rate limit reached. "
    "Try again in a minute or configure your own API key."
)
OVERVIEW_ERROR_MESSAGE = "Unable to load prices for the new watchlist coins."
HISTORY_WARNING_MESSAGE = "Some price history could not be loaded; showing a flat trend instead."
LIVE_ERROR_MESSAGE = "Unable to refresh live prices."
LIVE_MALFORMED_MESSAGE = "Received an unreadable live price update."
SEARCH_ERROR_MESSAGE = "Unable to search coins right now."
DETAIL_ERROR_MESSAGE = "Unable to load the coin details."
DETAIL_NOT_FOUND_MESSAGE = "This coin is not available on CoinGecko."
