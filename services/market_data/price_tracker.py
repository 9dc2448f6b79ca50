"""
Market Price Tracker
Latest mid-price per instrument from venue order-book messages.
"""

import logging
from typing import Any, Dict, Iterable, Optional

logger = logging.getLogger(__name__)


def _to_price(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _best_bid(levels: Any) -> float:
    prices = [_to_price(level.get("price")) for level in levels or [] if isinstance(level, dict)]
    return max(prices, default=0.0)


def _best_ask(levels: Any) -> float:
    prices = [_to_price(level.get("price")) for level in levels or [] if isinstance(level, dict)]
    prices = [p for p in prices if p > 0]
    return min(prices, default=0.0)


class MarketPriceTracker:
    """
    Tracks mid-prices from the Polymarket market channel.

    Accepted message shapes:
    - list of book snapshots ``[{asset_id, bids, asks}, ...]``
    - price change batch ``{"price_changes": [{asset_id, best_bid, best_ask}]}``
    - single book ``{asset_id, bids, asks}``

    Anything else is ignored. Last write wins per instrument.
    """

    def __init__(self, token_ids: Optional[Iterable[str]] = None) -> None:
        """
        Initialize tracker.

        Args:
            token_ids: Only record these instruments (default: all)
        """
        self._tracked = set(token_ids) if token_ids is not None else None
        self._prices: Dict[str, float] = {}
        self._message_count = 0

    @property
    def message_count(self) -> int:
        """Number of messages ingested."""
        return self._message_count

    def __len__(self) -> int:
        return len(self._prices)

    def track(self, token_ids: Iterable[str]) -> None:
        """Replace the tracked instrument filter."""
        self._tracked = set(token_ids)

    def ingest(self, message: Any) -> None:
        """Apply one decoded venue message."""
        self._message_count += 1

        if isinstance(message, list):
            for book in message:
                if isinstance(book, dict):
                    self._apply_book(book, initial=True)
            return

        if not isinstance(message, dict):
            return

        changes = message.get("price_changes")
        if isinstance(changes, list):
            for change in changes:
                if not isinstance(change, dict):
                    continue
                self._set_mid(
                    change.get("asset_id"),
                    _to_price(change.get("best_bid", "0")),
                    _to_price(change.get("best_ask", "0")),
                )
            return

        if message.get("asset_id"):
            self._apply_book(message)

    def price_of(self, token_id: Optional[str]) -> float:
        """Latest mid-price, 0.0 when unknown."""
        if token_id is None:
            return 0.0
        return self._prices.get(token_id, 0.0)

    def prices(self) -> Dict[str, float]:
        """Copy of the price map."""
        return dict(self._prices)

    def _apply_book(self, book: Dict[str, Any], initial: bool = False) -> None:
        bid = _best_bid(book.get("bids"))
        ask = _best_ask(book.get("asks"))
        if self._set_mid(book.get("asset_id"), bid, ask) and initial:
            logger.info(
                f"Initial book {str(book.get('asset_id'))[:16]}...: "
                f"Bid={bid:.2f}, Ask={ask:.2f}, Mid={(bid + ask) / 2:.2f}"
            )

    def _set_mid(self, token_id: Any, bid: float, ask: float) -> bool:
        if not token_id:
            return False
        token_id = str(token_id)
        if self._tracked is not None and token_id not in self._tracked:
            return False
        if bid <= 0 or ask <= 0:
            return False

        self._prices[token_id] = (bid + ask) / 2
        return True
