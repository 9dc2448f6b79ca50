"""Realized volatility over the oracle's rolling price window."""

import math
from typing import Sequence

from shared.models import PriceSample

BASE_HOURLY_VOLATILITY = 0.003  # ~0.3% base hourly volatility
MIN_SAMPLES = 10
MIN_RETURNS = 5
MS_PER_HOUR = 3_600_000


def realized_volatility(
    history: Sequence[PriceSample],
    base_volatility: float = BASE_HOURLY_VOLATILITY,
) -> float:
    """
    Hourly volatility estimated from tick-to-tick log returns.

    The per-sample standard deviation (biased, divide-by-N) is scaled by
    the square root of the observed update rate per hour. The result never
    falls below ``base_volatility``.

    Args:
        history: Price samples, oldest first
        base_volatility: Floor and fallback value

    Returns:
        Hourly volatility as a fraction of price
    """
    if len(history) < MIN_SAMPLES:
        return base_volatility

    returns = [
        math.log(history[i].price / history[i - 1].price)
        for i in range(1, len(history))
    ]
    if len(returns) < MIN_RETURNS:
        return base_volatility

    mean = sum(returns) / len(returns)
    variance = sum((r - mean) ** 2 for r in returns) / len(returns)
    std_dev = math.sqrt(variance)

    timespan_ms = history[-1].time - history[0].time
    if timespan_ms <= 0:
        # all samples share one timestamp, no rate to scale by
        return base_volatility

    updates_per_hour = (MS_PER_HOUR / timespan_ms) * len(history)
    hourly_volatility = std_dev * math.sqrt(updates_per_hour)

    return max(hourly_volatility, base_volatility)
