"""
Binance Kline Feed
Reference price stream driving the probability oracle.
"""

import logging
from typing import Any, Callable, Optional

from shared.models import CandleTick

from .base import WebSocketFeed

logger = logging.getLogger(__name__)


def parse_kline(message: Any) -> Optional[CandleTick]:
    """
    Parse a Binance kline event into a CandleTick.

    Returns None for non-kline events and malformed payloads.
    """
    if not isinstance(message, dict) or message.get("e") != "kline":
        return None

    k = message.get("k")
    if not isinstance(k, dict):
        return None

    try:
        tick = CandleTick(
            open=float(k["o"]),
            close=float(k["c"]),
            high=float(k["h"]),
            low=float(k["l"]),
            start_time=int(k["t"]),
            close_time=int(k["T"]),
        )
    except (KeyError, TypeError, ValueError):
        logger.debug(f"Dropping malformed kline: {k}")
        return None

    if tick.open <= 0 or tick.close <= 0 or tick.close_time <= tick.start_time:
        logger.debug(f"Dropping kline with invalid values: {k}")
        return None
    return tick


class BinanceKlineFeed(WebSocketFeed):
    """
    Binance WebSocket kline stream.

    Every valid kline event (open or closed candle) is forwarded to
    ``on_tick``, normally ``ProbabilityOracle.ingest``.
    """

    def __init__(
        self,
        stream_url: str,
        on_tick: Callable[[CandleTick], None],
        reconnect_delay: float = 5.0,
    ) -> None:
        super().__init__("Binance", stream_url, reconnect_delay)
        self._on_tick = on_tick

    def handle_message(self, message: Any) -> None:
        tick = parse_kline(message)
        if tick is not None:
            self._on_tick(tick)
