"""Rolling price-history buffers.

A series is a tuple of floats holding at most ``capacity`` samples, oldest
first. A non-empty series always has at least two samples so that the
sparkline's two-point interpolation never works on a zero-length domain.
"""
import math
from typing import Iterable, Optional

from coinwatch.config import HISTORY_CAPACITY
from coinwatch.models import History


def normalize_history(prices: Iterable[float], capacity: int = HISTORY_CAPACITY) -> History:
    """Keep the most recent ``capacity`` finite samples, padding a lone sample to two."""
    clean = [float(p) for p in prices if _is_number(p) and math.isfinite(p)]
    if not clean:
        return ()
    clean = clean[-capacity:]
    if len(clean) == 1:
        clean = [clean[0], clean[0]]
    return tuple(clean)


def flat_series(price: float) -> History:
    """Degraded two-point series used when no real history is available."""
    return (float(price), float(price))


def append_price(series: Optional[History], price: float, capacity: int = HISTORY_CAPACITY) -> History:
    """Append a live sample, evicting the oldest once the window is full."""
    if not series:
        return flat_series(price)
    samples = list(series)
    if len(samples) == 1:
        samples.append(samples[0])
    samples.append(float(price))
    return tuple(samples[-capacity:])


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)
