"""
Opportunity Detector
Compares oracle probabilities with market prices and emits trade candidates.
"""

import logging
from typing import Callable, Dict, Optional

from services.market_data.price_tracker import MarketPriceTracker
from services.oracle.probability import ProbabilityOracle
from services.risk_engine.cooldown import TradeCooldown
from shared.models import MarketInfo, OutcomeSide, ProbabilitySnapshot, TradeOpportunity

logger = logging.getLogger(__name__)


class OpportunityDetector:
    """
    Edge detector for the binary up/down market.

    Gates, in order:
    1. cooldown since the last trade
    2. oracle has candle data
    3. funds above the configured minimum

    Sides are scanned UP then DOWN and the first side whose edge
    (oracle probability - market mid) reaches the threshold wins, so
    the same inputs always yield the same opportunity.
    """

    def __init__(
        self,
        oracle: ProbabilityOracle,
        tracker: MarketPriceTracker,
        market: MarketInfo,
        cooldown: TradeCooldown,
        threshold: float,
        has_sufficient_funds: Callable[[], bool] = lambda: True,
    ) -> None:
        """
        Initialize detector.

        Args:
            oracle: Probability oracle (data gate)
            tracker: Market price tracker
            market: Token ids for each outcome side
            cooldown: Shared trade cooldown
            threshold: Minimum edge to trade
            has_sufficient_funds: Balance gate
        """
        self._oracle = oracle
        self._tracker = tracker
        self._market = market
        self._cooldown = cooldown
        self._threshold = threshold
        self._has_sufficient_funds = has_sufficient_funds
        self._oracle_prices: Dict[OutcomeSide, float] = {side: 0.0 for side in OutcomeSide}

    @property
    def threshold(self) -> float:
        """Get edge threshold."""
        return self._threshold

    @property
    def oracle_prices(self) -> Dict[OutcomeSide, float]:
        """Latest pushed oracle probability per side."""
        return dict(self._oracle_prices)

    def on_probability(self, snapshot: ProbabilitySnapshot) -> None:
        """Oracle observer: cache the latest probabilities."""
        for side in OutcomeSide:
            self._oracle_prices[side] = snapshot.probability(side)

    def evaluate(self, now_ms: int) -> Optional[TradeOpportunity]:
        """
        Look for a trade opportunity.

        Args:
            now_ms: Evaluation time (epoch ms)

        Returns:
            First qualifying opportunity, or None
        """
        if self._cooldown.is_active(now_ms):
            return None
        if not self._oracle.has_data():
            return None
        if not self._has_sufficient_funds():
            return None

        for side in OutcomeSide:
            token_id = self._market.token_id(side)
            if not token_id:
                continue

            oracle_price = self._oracle_prices[side]
            market_price = self._tracker.price_of(token_id)
            diff = oracle_price - market_price

            if diff >= self._threshold and oracle_price > 0 and market_price > 0:
                return TradeOpportunity(
                    side=side,
                    token_id=token_id,
                    oracle_price=oracle_price,
                    market_price=market_price,
                    difference=diff,
                )
        return None
