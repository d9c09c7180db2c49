"""Producer side of the live price stream.

``/api/live-prices`` is served from the Dash app's Flask server. Each client
gets its own generator: one data frame immediately, then one per interval,
with comment frames in between to keep proxies from closing the connection.
"""
import json
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from flask import Flask, Response, request, stream_with_context

from coinwatch.config import LIVE_INTERVAL_SECONDS, LIVE_KEEPALIVE_SECONDS, LIVE_STREAM_PATH
from coinwatch.constants import LIVE_ERROR_MESSAGE
from coinwatch.data.gateway import GatewayError, RateLimitError, fetch_overview_blocking
from coinwatch.models import CoinOverview, normalize_id
from coinwatch.registry import SUPPORTED_COINS
from coinwatch.utils import setup_logger

logger = setup_logger(__name__)

KEEPALIVE_FRAME = ":keep-alive\n\n"

OverviewFetcher = Callable[[Sequence[str]], List[CoinOverview]]


def load_live_prices(ids: Sequence[str], fetch: OverviewFetcher = fetch_overview_blocking) -> Dict[str, Any]:
    """One live payload: the coins and a timestamp, or an error message."""
    try:
        coins = fetch(ids)
    except RateLimitError as e:
        return {"error": True, "message": str(e)}
    except GatewayError as e:
        logger.warning(f"Live price refresh failed: {e}")
        return {"error": True, "message": LIVE_ERROR_MESSAGE}
    return {
        "coins": [coin.to_dict() for coin in coins],
        "updatedAt": datetime.now(timezone.utc).isoformat(),
    }


def format_sse(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def sse_frames(
    ids: Sequence[str],
    interval: float = LIVE_INTERVAL_SECONDS,
    keepalive: float = LIVE_KEEPALIVE_SECONDS,
    fetch: OverviewFetcher = fetch_overview_blocking,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
    max_ticks: Optional[int] = None,
) -> Iterator[str]:
    """Yield SSE frames until the client disconnects (or ``max_ticks`` data frames)."""
    ticks = 0
    next_tick = clock()
    next_keepalive = next_tick + keepalive
    while max_ticks is None or ticks < max_ticks:
        now = clock()
        if now >= next_tick:
            yield format_sse(load_live_prices(ids, fetch))
            ticks += 1
            next_tick = now + interval
            continue
        if now >= next_keepalive:
            yield KEEPALIVE_FRAME
            next_keepalive = now + keepalive
            continue
        sleep(min(next_tick, next_keepalive) - now)


def parse_ids(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [normalize_id(part) for part in raw.split(",") if part.strip()]


def register_live_route(
    server: Flask,
    fetch: OverviewFetcher = fetch_overview_blocking,
    interval: float = LIVE_INTERVAL_SECONDS,
) -> None:
    """Mount the live price stream on ``server``."""

    @server.route(LIVE_STREAM_PATH)
    def live_prices():
        ids = parse_ids(request.args.get("ids")) or [coin.id for coin in SUPPORTED_COINS]
        logger.info(f"Live stream opened for {len(ids)} coin(s)")
        return Response(
            stream_with_context(sse_frames(ids, interval=interval, fetch=fetch)),
            mimetype="text/event-stream",
            headers={
                "Cache-Control": "no-cache, no-transform",
                "X-Accel-Buffering": "no",
            },
        )
