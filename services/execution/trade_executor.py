"""
Trade Executor
Turns an opportunity into a bracketed position: entry, take-profit, stop-loss.
"""

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from shared.clock import SystemClock
from shared.errors import OrderError
from shared.models import OrderKind, OrderSide, Position, TradeOpportunity
from shared.ports import Clock, OrderPlacer

from services.risk_engine.cooldown import TradeCooldown

logger = logging.getLogger(__name__)

ENTRY_MARKUP = 1.01
MIN_ORDER_PRICE = 0.01
MAX_ORDER_PRICE = 0.99


def round_to_tick(price: float, decimals: int = 2) -> float:
    """
    Round a price half-up to the venue tick.

    Idempotent: ``round_to_tick(round_to_tick(p)) == round_to_tick(p)``.
    """
    scale = 10 ** decimals
    return math.floor(price * scale + 0.5) / scale


class TradeExecutor:
    """
    Places the three orders of a trade.

    The cooldown is marked before the entry order goes out, so a slow
    or failed execution still blocks new opportunities until it expires.
    Any placement failure abandons the rest of the trade; nothing is
    retried or unwound.
    """

    def __init__(
        self,
        placer: OrderPlacer,
        cooldown: TradeCooldown,
        trade_amount: float,
        take_profit_amount: float,
        stop_loss_amount: float,
        clock: Optional[Clock] = None,
        protective_order_delay_s: float = 2.0,
    ) -> None:
        """
        Initialize executor.

        Args:
            placer: Order placement collaborator
            cooldown: Shared trade cooldown
            trade_amount: USDC budget per trade
            take_profit_amount: Take-profit distance above market price
            stop_loss_amount: Stop-loss distance below market price
            clock: Wall-clock source (epoch ms)
            protective_order_delay_s: Pause between entry and protective orders
        """
        self._placer = placer
        self._cooldown = cooldown
        self._trade_amount = trade_amount
        self._take_profit_amount = take_profit_amount
        self._stop_loss_amount = stop_loss_amount
        self._clock = clock or SystemClock()
        self._protective_order_delay_s = protective_order_delay_s
        self._positions: List[Position] = []

    @property
    def positions(self) -> Tuple[Position, ...]:
        """Get positions ledger, oldest first."""
        return tuple(self._positions)

    def bracket_prices(self, market_price: float) -> Tuple[float, float, float]:
        """Entry, take-profit and stop-loss prices for a market price."""
        entry = round_to_tick(market_price * ENTRY_MARKUP)
        target = round_to_tick(min(market_price + self._take_profit_amount, MAX_ORDER_PRICE))
        stop = round_to_tick(max(market_price - self._stop_loss_amount, MIN_ORDER_PRICE))
        return entry, target, stop

    async def execute(self, opportunity: TradeOpportunity) -> Optional[Position]:
        """
        Execute a trade opportunity.

        Args:
            opportunity: Detected opportunity

        Returns:
            The new position, or None if the trade was aborted
        """
        self._cooldown.mark(self._clock.now_ms())

        side = opportunity.side.value
        logger.info(
            f"TRADE OPPORTUNITY {side}: Oracle {opportunity.oracle_price:.4f} | "
            f"Market {opportunity.market_price:.4f} | Diff {opportunity.difference:.4f}"
        )

        entry, target, stop = self.bracket_prices(opportunity.market_price)
        if entry <= 0:
            logger.warning(f"Invalid entry price {entry:.2f}, skipping trade")
            return None

        quantity = math.floor(self._trade_amount / entry)
        if quantity < 1:
            logger.warning(
                f"Trade amount ${self._trade_amount:.2f} buys less than one share "
                f"at {entry:.2f}, skipping trade"
            )
            return None

        token_id = opportunity.token_id
        try:
            logger.info(f"Placing BUY {side}: {quantity} @ {entry:.2f}")
            entry_id = await self._placer.place_order(
                token_id, entry, quantity, OrderSide.BUY, OrderKind.GTC
            )

            if self._protective_order_delay_s > 0:
                await asyncio.sleep(self._protective_order_delay_s)

            logger.info(f"Placing take-profit SELL: {quantity} @ {target:.2f}")
            take_profit_id = await self._placer.place_order(
                token_id, target, quantity, OrderSide.SELL, OrderKind.GTC
            )

            logger.info(f"Placing stop-loss SELL: {quantity} @ {stop:.2f}")
            stop_loss_id = await self._placer.place_order(
                token_id, stop, quantity, OrderSide.SELL, OrderKind.GTC
            )
        except OrderError as e:
            logger.error(f"Trade {side} aborted: {e}")
            return None

        position = Position(
            side=opportunity.side,
            token_id=token_id,
            entry_order_id=entry_id,
            take_profit_order_id=take_profit_id,
            stop_loss_order_id=stop_loss_id,
            entry_price=entry,
            target_price=target,
            stop_price=stop,
            quantity=quantity,
            created_at=datetime.fromtimestamp(self._clock.now_ms() / 1000, tz=timezone.utc),
        )
        self._positions.append(position)

        logger.info(
            f"Position opened {side}: {quantity} @ {entry:.2f} "
            f"(TP {target:.2f}, SL {stop:.2f})"
        )
        return position
