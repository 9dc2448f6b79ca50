"""Typed errors for the oracle trader."""

from typing import Optional


class TradingBotError(Exception):
    """Base class for trader errors."""


class ConfigurationError(TradingBotError):
    """Raised when settings or credentials are missing or invalid."""


class InsufficientBalanceError(TradingBotError):
    """Raised at startup when the wallet cannot cover the minimum balance."""


class MarketNotFoundError(TradingBotError):
    """Raised when no active up/down market can be resolved."""


class OrderError(TradingBotError):
    """Exception raised by order operations."""

    def __init__(
        self,
        message: str,
        token_id: Optional[str] = None,
        broker_error_code: Optional[str] = None,
    ) -> None:
        self.token_id = token_id
        self.broker_error_code = broker_error_code
        super().__init__(message)


class BalanceCheckError(TradingBotError):
    """Raised when wallet balances cannot be fetched."""
