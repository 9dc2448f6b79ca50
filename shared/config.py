"""
Centralized Configuration for the Oracle Trader
Uses Pydantic Settings with .env loading.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.errors import ConfigurationError
from shared.models import TradingMode


class StrategySettings(BaseSettings):
    """Edge threshold, bracket and sizing settings."""
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    price_threshold: float = Field(default=0.015, alias="PRICE_DIFFERENCE_THRESHOLD")
    stop_loss_amount: float = Field(default=0.005, alias="STOP_LOSS_AMOUNT")
    take_profit_amount: float = Field(default=0.01, alias="TAKE_PROFIT_AMOUNT")
    trade_cooldown_s: int = Field(default=30, alias="TRADE_COOLDOWN")
    trade_amount: float = Field(default=5.0, alias="DEFAULT_TRADE_AMOUNT")
    minimum_balance: float = Field(default=500.0, alias="MINIMUM_BALANCE")

    @property
    def trade_cooldown_ms(self) -> int:
        """Cooldown in milliseconds."""
        return self.trade_cooldown_s * 1000


class PolymarketSettings(BaseSettings):
    """Polymarket CLOB settings."""
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", populate_by_name=True
    )

    private_key: str = Field(default="", alias="PRIVATE_KEY")
    clob_url: str = Field(default="https://clob.polymarket.com", alias="CLOB_API_URL")
    chain_id: int = Field(default=137, alias="POLYMARKET_CHAIN_ID")
    signature_type: int | None = Field(default=None, alias="POLYMARKET_SIGNATURE_TYPE")
    funder: str | None = Field(default=None, alias="POLYMARKET_FUNDER")
    gamma_url: str = Field(default="https://gamma-api.polymarket.com", alias="GAMMA_API_URL")
    ws_url: str = Field(
        default="wss://ws-subscriptions-clob.polymarket.com/ws/market",
        alias="POLYMARKET_WS_URL",
    )
    tick_size: str = "0.01"

    @property
    def has_valid_key(self) -> bool:
        """Check the private key looks like a 32-byte hex key."""
        key = self.private_key[2:] if self.private_key.startswith("0x") else self.private_key
        return len(key) >= 64


class BinanceSettings(BaseSettings):
    """Binance kline stream settings."""
    model_config = SettingsConfigDict(env_prefix="BINANCE_", extra="ignore")

    ws_url: str = "wss://stream.binance.com:9443/ws"
    symbol: str = "btcusdt"
    interval: str = "1h"

    @property
    def stream_url(self) -> str:
        """Full kline stream URL."""
        return f"{self.ws_url}/{self.symbol.lower()}@kline_{self.interval}"


class PolygonSettings(BaseSettings):
    """Polygon JSON-RPC settings for balance checks."""
    model_config = SettingsConfigDict(env_prefix="POLYGON_", extra="ignore")

    rpc_url: str = "https://polygon-rpc.com"
    usdc_address: str = "0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174"
    usdc_decimals: int = 6
    min_gas_balance: float = 0.01


class LoggingSettings(BaseSettings):
    """Logging settings."""
    model_config = SettingsConfigDict(extra="ignore")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


class TradingSettings(BaseSettings):
    """Main trader settings."""
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    mode: TradingMode = Field(default=TradingMode.PAPER, alias="TRADING_MODE")
    paper_balance: float = Field(default=1000.0, alias="PAPER_BALANCE")

    # Loop timing
    poll_interval_s: float = Field(default=1.0, alias="POLL_INTERVAL")
    reconnect_delay_s: float = Field(default=5.0, alias="RECONNECT_DELAY")
    balance_check_interval_s: float = Field(default=60.0, alias="BALANCE_CHECK_INTERVAL")
    status_interval_s: float = Field(default=30.0, alias="STATUS_INTERVAL")
    initial_data_timeout_s: float = Field(default=15.0, alias="INITIAL_DATA_TIMEOUT")
    protective_order_delay_s: float = Field(default=2.0, alias="PROTECTIVE_ORDER_DELAY")

    # Sub-settings (loaded from same .env)
    strategy: StrategySettings = Field(default_factory=StrategySettings)
    polymarket: PolymarketSettings = Field(default_factory=PolymarketSettings)
    binance: BinanceSettings = Field(default_factory=BinanceSettings)
    polygon: PolygonSettings = Field(default_factory=PolygonSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("mode", mode="before")
    @classmethod
    def validate_mode(cls, v: str) -> TradingMode:
        """Validate and convert trading mode."""
        if isinstance(v, TradingMode):
            return v
        return TradingMode(v.lower())

    def require_live_credentials(self) -> None:
        """Raise if live trading is selected without a usable private key."""
        if self.mode is TradingMode.LIVE and not self.polymarket.has_valid_key:
            raise ConfigurationError("PRIVATE_KEY not found or invalid")


@lru_cache()
def get_settings() -> TradingSettings:
    """Get cached settings instance."""
    return TradingSettings()


def reload_settings() -> TradingSettings:
    """Force reload settings (clears cache)."""
    get_settings.cache_clear()
    return get_settings()
