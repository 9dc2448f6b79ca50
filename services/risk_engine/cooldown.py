"""
Trade Cooldown
Minimum spacing between trade executions.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class TradeCooldown:
    """
    Process-wide "last trade" timestamp.

    Written by the trade executor as soon as it decides to trade,
    read by the opportunity detector to gate new opportunities.
    """

    def __init__(self, duration_ms: int) -> None:
        """
        Initialize cooldown.

        Args:
            duration_ms: Minimum milliseconds between trades
        """
        self._duration_ms = duration_ms
        self._last_trade_ms: Optional[int] = None

    @property
    def duration_ms(self) -> int:
        """Get cooldown duration."""
        return self._duration_ms

    @property
    def last_trade_ms(self) -> Optional[int]:
        """Get last trade time, None before the first trade."""
        return self._last_trade_ms

    def mark(self, now_ms: int) -> None:
        """Record a trade decision at ``now_ms``."""
        self._last_trade_ms = now_ms

    def remaining_ms(self, now_ms: int) -> int:
        """Milliseconds left before the next trade is allowed."""
        if self._last_trade_ms is None:
            return 0
        return max(0, self._duration_ms - (now_ms - self._last_trade_ms))

    def is_active(self, now_ms: int) -> bool:
        if self._last_trade_ms is None:
            return False
        return now_ms - self._last_trade_ms < self._duration_ms
