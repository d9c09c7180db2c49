"""Sparkline figures and the best/worst performer summary."""
from typing import Iterable, Optional, Sequence, Tuple

import plotly.graph_objects as go

from coinwatch.models import CoinOverview
from coinwatch.visualization.colors import with_alpha


def sparkline_figure(series: Optional[Sequence[float]], color: str, height: int = 48) -> Optional[go.Figure]:
    """
    Build a compact line-and-area chart for a price series.

    Returns None for series shorter than two samples; the card renders a
    "No data" placeholder instead.

    Args:
        series: Price samples, oldest first
        color: Line color
        height: Figure height in pixels

    Returns:
        Plotly figure or None
    """
    if not series or len(series) < 2:
        return None

    low = min(series)
    high = max(series)
    pad = (high - low) * 0.1 or abs(high) * 0.01 or 1

    fig = go.Figure(
        go.Scatter(
            x=list(range(len(series))),
            y=list(series),
            mode="lines",
            line={"color": color, "width": 2, "shape": "spline"},
            fill="tozeroy",
            fillcolor=with_alpha(color, 0.13),
            hoverinfo="y",
        )
    )
    fig.update_layout(
        height=height,
        margin={"l": 0, "r": 0, "t": 0, "b": 0},
        paper_bgcolor="rgba(0,0,0,0)",
        plot_bgcolor="rgba(0,0,0,0)",
        showlegend=False,
        xaxis={"visible": False, "fixedrange": True},
        yaxis={"visible": False, "fixedrange": True, "range": [low - pad, high + pad]},
    )
    return fig


def performers(coins: Iterable[CoinOverview]) -> Tuple[Optional[CoinOverview], Optional[CoinOverview]]:
    """Best and worst 24h performer, or (None, None) when nothing is loaded."""
    ranked = sorted(coins, key=lambda c: c.change_24h)
    if not ranked:
        return None, None
    return ranked[-1], ranked[0]
