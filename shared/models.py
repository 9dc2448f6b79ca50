"""
Shared Models for the Oracle Trader
Pydantic schemas for all core data structures.

This module is the SINGLE SOURCE OF TRUTH for all data models.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Enums
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TradingMode(str, Enum):
    """Trading mode enum."""
    PAPER = "paper"
    LIVE = "live"


class OutcomeSide(str, Enum):
    """Binary market outcome. Declaration order is the detector scan order."""
    UP = "UP"
    DOWN = "DOWN"


class OrderSide(str, Enum):
    """Order side enum."""
    BUY = "buy"
    SELL = "sell"


class OrderKind(str, Enum):
    """Time-in-force of a venue order."""
    GTC = "GTC"


class PositionStatus(str, Enum):
    """Position status enum."""
    ACTIVE = "active"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Market Data Models
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class CandleTick(BaseModel):
    """Live candle update from the reference feed (times in epoch ms)."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    open: float
    close: float
    high: float
    low: float
    start_time: int
    close_time: int


class Candle(BaseModel):
    """Current candle owned by the oracle. 0 means unknown."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    open_price: float = 0.0
    current_price: float = 0.0
    high_price: float = 0.0
    low_price: float = 0.0
    start_time: int = 0
    close_time: int = 0

    @property
    def is_initialized(self) -> bool:
        """Check if both open and current prices are known."""
        return self.open_price > 0 and self.current_price > 0

    @classmethod
    def from_tick(cls, tick: CandleTick) -> "Candle":
        return cls(
            open_price=tick.open,
            current_price=tick.close,
            high_price=tick.high,
            low_price=tick.low,
            start_time=tick.start_time,
            close_time=tick.close_time,
        )


class PriceSample(BaseModel):
    """One entry of the oracle price history."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    price: float
    time: int


class ProbabilitySnapshot(BaseModel):
    """Fair outcome probabilities for the live candle."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    prob_up: float
    prob_down: float
    current_price: float
    open_price: float
    price_change: float
    price_change_percent: float
    time_remaining_ms: int
    time_remaining_percent: float
    confidence: float
    timestamp: datetime

    def probability(self, side: OutcomeSide) -> float:
        """Get probability for an outcome side."""
        return self.prob_up if side is OutcomeSide.UP else self.prob_down


class MarketInfo(BaseModel):
    """Binary market resolved by market discovery."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    question: str
    slug: Optional[str] = None
    up_token_id: str
    down_token_id: str

    def token_id(self, side: OutcomeSide) -> str:
        """Get instrument id for an outcome side."""
        return self.up_token_id if side is OutcomeSide.UP else self.down_token_id

    @property
    def token_ids(self) -> list[str]:
        return [self.up_token_id, self.down_token_id]


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Trading Models
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class TradeOpportunity(BaseModel):
    """Edge between oracle probability and market price on one side."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    side: OutcomeSide
    token_id: str
    oracle_price: float
    market_price: float
    difference: float


class Position(BaseModel):
    """Bracketed position opened by the trade executor."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    side: OutcomeSide
    token_id: str
    entry_order_id: str
    take_profit_order_id: str
    stop_loss_order_id: str
    entry_price: float
    target_price: float
    stop_price: float
    quantity: int
    created_at: datetime = Field(default_factory=datetime.utcnow)
    status: PositionStatus = PositionStatus.ACTIVE


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Account Models
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

class AccountBalances(BaseModel):
    """Per-asset wallet balances."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    address: str
    usdc: float = 0.0
    pol: float = 0.0
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class BalanceCheck(BaseModel):
    """Result of a sufficient-balance check."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    sufficient: bool
    warnings: list[str] = Field(default_factory=list)
