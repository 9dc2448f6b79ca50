"""
Probability Oracle
Fair UP/DOWN probabilities for the live hourly candle.
"""

import logging
import math
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Deque, Dict, List, Optional, Tuple

from shared.clock import SystemClock
from shared.models import Candle, CandleTick, PriceSample, ProbabilitySnapshot
from shared.ports import Clock

from .normal import normal_cdf
from .volatility import BASE_HOURLY_VOLATILITY, realized_volatility

logger = logging.getLogger(__name__)

ProbabilityHandler = Callable[[ProbabilitySnapshot], None]

MIN_PROBABILITY = 0.01  # never go below 1%
MAX_PROBABILITY = 0.99  # never go above 99%
JUST_OPENED_FRACTION = 0.98
MIN_EXPECTED_STD_DEV = 0.01
FULL_CONFIDENCE_MOVE_PCT = 0.5


class ProbabilityOracle:
    """
    Streaming estimator of the probability that the candle closes UP.

    The model treats the remaining move until candle close as normally
    distributed with a standard deviation of ``volatility * open *
    sqrt(time_fraction_remaining)``:

        P(UP) = CDF(lead / expected_std_dev)

    where ``lead = current - open``. The market resolves UP when the
    close is strictly above the open.

    State:
    - one live Candle, replaced wholesale on every tick
    - a bounded FIFO price history used only for volatility
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        history_size: int = 300,
        base_volatility: float = BASE_HOURLY_VOLATILITY,
        log_interval_ms: int = 10_000,
    ) -> None:
        """
        Initialize the oracle.

        Args:
            clock: Wall-clock source (epoch ms)
            history_size: Maximum price samples kept for volatility
            base_volatility: Volatility floor and fallback
            log_interval_ms: Minimum spacing of status log lines
        """
        self._clock = clock or SystemClock()
        self._base_volatility = base_volatility
        self._candle = Candle()
        self._history: Deque[PriceSample] = deque(maxlen=history_size)
        self._observers: List[ProbabilityHandler] = []
        self._log_interval_ms = log_interval_ms
        self._last_log_ms = 0

    @property
    def candle(self) -> Candle:
        """Get the live candle."""
        return self._candle

    @property
    def history(self) -> Tuple[PriceSample, ...]:
        """Get price history, oldest first."""
        return tuple(self._history)

    def subscribe(self, handler: ProbabilityHandler) -> None:
        """Register a handler called with a fresh snapshot on every tick."""
        self._observers.append(handler)

    def unsubscribe(self, handler: ProbabilityHandler) -> None:
        """Remove a previously registered handler."""
        if handler in self._observers:
            self._observers.remove(handler)

    def has_data(self) -> bool:
        return self._candle.is_initialized

    def ingest(self, tick: CandleTick) -> None:
        """
        Apply a candle update from the reference feed.

        Replaces the candle, records the close in the price history and
        pushes the resulting snapshot to every observer.
        """
        now = self._clock.now_ms()

        self._candle = Candle.from_tick(tick)
        self._history.append(PriceSample(price=tick.close, time=now))

        snapshot = self.snapshot(now)
        for handler in list(self._observers):
            handler(snapshot)

        self._maybe_log(snapshot, now)

    def volatility(self) -> float:
        """Current hourly volatility estimate."""
        return realized_volatility(self._history, self._base_volatility)

    def snapshot(self, now_ms: Optional[int] = None) -> ProbabilitySnapshot:
        """
        Compute fair probabilities for the live candle.

        Args:
            now_ms: Evaluation time (default: clock time)

        Returns:
            Fresh probability snapshot
        """
        now = self._clock.now_ms() if now_ms is None else now_ms
        candle = self._candle

        duration = candle.close_time - candle.start_time
        time_remaining = max(0, candle.close_time - now)
        # uninitialized candle window: treat the whole candle as remaining
        time_fraction = time_remaining / duration if duration > 0 else 1.0

        price_change = candle.current_price - candle.open_price
        price_change_percent = (
            price_change / candle.open_price * 100 if candle.open_price > 0 else 0.0
        )

        if candle.open_price == 0 or candle.current_price == 0:
            prob_up = 0.5
        elif time_remaining <= 0:
            prob_up = 1.0 if price_change > 0 else 0.0
        elif time_fraction > JUST_OPENED_FRACTION:
            prob_up = 0.5
        else:
            volatility = self.volatility()
            expected_std_dev = volatility * candle.open_price * math.sqrt(time_fraction)

            if expected_std_dev < MIN_EXPECTED_STD_DEV:
                prob_up = MAX_PROBABILITY if price_change > 0 else MIN_PROBABILITY
            else:
                prob_up = normal_cdf(price_change / expected_std_dev)

        prob_up = max(MIN_PROBABILITY, min(MAX_PROBABILITY, prob_up))
        prob_down = 1 - prob_up

        time_confidence = 1 - time_fraction
        price_confidence = min(abs(price_change_percent) / FULL_CONFIDENCE_MOVE_PCT, 1.0)

        return ProbabilitySnapshot(
            prob_up=prob_up,
            prob_down=prob_down,
            current_price=candle.current_price,
            open_price=candle.open_price,
            price_change=price_change,
            price_change_percent=price_change_percent,
            time_remaining_ms=time_remaining,
            time_remaining_percent=time_fraction * 100,
            confidence=max(time_confidence, price_confidence),
            timestamp=datetime.fromtimestamp(now / 1000, tz=timezone.utc),
        )

    def prices(self) -> Dict[str, float]:
        """Get current/open/high/low of the live candle."""
        return {
            "current": self._candle.current_price,
            "open": self._candle.open_price,
            "high": self._candle.high_price,
            "low": self._candle.low_price,
        }

    def _maybe_log(self, snapshot: ProbabilitySnapshot, now: int) -> None:
        if now - self._last_log_ms < self._log_interval_ms:
            return
        self._last_log_ms = now

        sign = "+" if snapshot.price_change >= 0 else ""
        logger.info(
            f"BTC: ${snapshot.current_price:.2f} | Open: ${snapshot.open_price:.2f} | "
            f"{sign}{snapshot.price_change_percent:.3f}% | "
            f"UP: {snapshot.prob_up * 100:.1f}% | DOWN: {snapshot.prob_down * 100:.1f}% | "
            f"Time: {snapshot.time_remaining_ms / 60000:.1f}min"
        )
