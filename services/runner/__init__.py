"""Trading bot lifecycle."""

from services.runner.orchestrator import OracleTradingBot

__all__ = ["OracleTradingBot"]
