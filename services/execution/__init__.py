"""Order placement adapters and the trade executor."""

from services.execution.paper_adapter import PaperOrderPlacer
from services.execution.trade_executor import TradeExecutor, round_to_tick

__all__ = ["PaperOrderPlacer", "TradeExecutor", "round_to_tick"]
