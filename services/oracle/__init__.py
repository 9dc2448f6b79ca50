"""Probability oracle for the hourly up/down candle."""

from services.oracle.normal import normal_cdf
from services.oracle.probability import ProbabilityOracle
from services.oracle.volatility import BASE_HOURLY_VOLATILITY, realized_volatility

__all__ = ["ProbabilityOracle", "normal_cdf", "realized_volatility", "BASE_HOURLY_VOLATILITY"]
