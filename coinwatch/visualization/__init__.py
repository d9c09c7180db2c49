"""Visualization modules for sparklines and colors."""
from coinwatch.visualization.colors import color_for, with_alpha
from coinwatch.visualization.sparkline import performers, sparkline_figure

__all__ = [
    "color_for",
    "with_alpha",
    "performers",
    "sparkline_figure",
]
