"""Configuration settings for the dashboard."""
import os
from pathlib import Path
from typing import Optional

# Project root directory
PROJECT_ROOT = Path(__file__).parent.parent

# API Configuration
VS_CURRENCY = "usd"
REQUEST_TIMEOUT = 30  # seconds per upstream request

# CoinGecko API Configuration
COINGECKO_API_KEY: Optional[str] = os.getenv("COINGECKO_API_KEY", None)
COINGECKO_API_BASE = "https://pro-api.coingecko.com/api/v3" if COINGECKO_API_KEY else "https://api.coingecko.com/api/v3"

# Cache Configuration
OVERVIEW_TTL_MS = 60 * 1000  # 1 minute
HISTORY_TTL_MS = 5 * 60 * 1000  # 5 minutes
HISTORY_CAPACITY = 7  # Rolling window per asset
HISTORY_DAYS = 7
HISTORY_INTERVAL = "daily"
DETAIL_HISTORY_DAYS = 30  # Detail panel trend window (one sample per day)

# Storage Configuration (stands in for the browser's localStorage)
STORAGE_DIR = Path(os.getenv("COINWATCH_STORAGE_DIR", str(PROJECT_ROOT / "cw_storage")))
STORAGE_DIR.mkdir(parents=True, exist_ok=True)

# Logging Configuration
LOG_DIR = PROJECT_ROOT / "logs"
LOG_DIR.mkdir(exist_ok=True)

# Live stream Configuration
LIVE_INTERVAL_SECONDS = int(os.getenv("LIVE_INTERVAL_SECONDS", "60"))
LIVE_KEEPALIVE_SECONDS = 15
LIVE_STREAM_PATH = "/api/live-prices"

# Search Configuration
SEARCH_DEBOUNCE_SECONDS = 0.25
SEARCH_MIN_CHARS = 2
SEARCH_MAX_RESULTS = 10

# Dash App Configuration
DASH_HOST = os.getenv("HOST", "127.0.0.1")
DASH_PORT = int(os.getenv("PORT", "8052"))  # Use PORT env var for cloud deployment
DASH_DEBUG = os.getenv("DASH_DEBUG", "False").lower() == "true"  # Disable debug in production
REFRESH_INTERVAL_MS = 2000  # How often the page re-reads the session snapshot
