"""Server-sent live price stream: producer route and client channel."""
from coinwatch.live.channel import LiveChannel, LiveMessage, SSEParser, decode_live_message
from coinwatch.live.stream import KEEPALIVE_FRAME, format_sse, load_live_prices, register_live_route, sse_frames

__all__ = [
    "LiveChannel",
    "LiveMessage",
    "SSEParser",
    "decode_live_message",
    "KEEPALIVE_FRAME",
    "format_sse",
    "load_live_prices",
    "register_live_route",
    "sse_frames",
]
