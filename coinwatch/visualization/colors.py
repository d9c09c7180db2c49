"""Color utilities for chart visualization."""
import zlib

from plotly.colors import qualitative

from coinwatch.registry import get_coin_meta


# Stable color palette for coins without a registry theme
PALETTE = (
    qualitative.Dark24
    + qualitative.Light24
    + qualitative.Safe
)


def color_for(coin_id: str) -> str:
    """
    Get a stable color for a coin.

    Registry coins use their theme accent; anything else is hashed into the
    palette so the same id always gets the same color across restarts.

    Args:
        coin_id: Coin identifier (e.g., "bitcoin")

    Returns:
        Hex color string
    """
    meta = get_coin_meta(coin_id)
    if meta is not None:
        return meta.accent
    return PALETTE[zlib.crc32(coin_id.encode("utf-8")) % len(PALETTE)]


def with_alpha(hex_color: str, alpha: float) -> str:
    """Convert ``#rrggbb`` to an ``rgba()`` string (sparkline fill)."""
    value = hex_color.lstrip("#")
    if len(value) != 6:
        return hex_color
    r, g, b = (int(value[i:i + 2], 16) for i in (0, 2, 4))
    return f"rgba({r}, {g}, {b}, {alpha})"
