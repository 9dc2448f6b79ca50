"""Composition root for the BTC hourly oracle trader."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from services.execution.clob_broker import PolymarketClobBroker
from services.execution.paper_adapter import PaperOrderPlacer
from services.market_data.discovery import MarketDiscovery
from services.risk_engine.balance import PaperBalanceChecker, PolygonBalanceChecker
from services.runner.orchestrator import OracleTradingBot
from shared.config import TradingSettings, get_settings
from shared.errors import TradingBotError
from shared.models import TradingMode

logger = logging.getLogger("trader")

PAPER_ADDRESS = "paper-wallet"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_bot(settings: TradingSettings) -> OracleTradingBot:
    """
    Assemble the bot for the configured trading mode.

    Raises:
        ConfigurationError: If live mode lacks credentials
    """
    discovery = MarketDiscovery(settings.polymarket.gamma_url)
    polygon = settings.polygon

    if settings.mode is TradingMode.PAPER:
        return OracleTradingBot(
            settings=settings,
            discovery=discovery,
            balance_checker=PaperBalanceChecker(
                settings.paper_balance, min_gas_balance=polygon.min_gas_balance
            ),
            placer=PaperOrderPlacer(),
            address=PAPER_ADDRESS,
        )

    settings.require_live_credentials()

    pm = settings.polymarket
    broker = PolymarketClobBroker(
        host=pm.clob_url,
        private_key=pm.private_key,
        chain_id=pm.chain_id,
        signature_type=pm.signature_type,
        funder=pm.funder,
        tick_size=pm.tick_size,
    )
    return OracleTradingBot(
        settings=settings,
        discovery=discovery,
        balance_checker=PolygonBalanceChecker(
            rpc_url=polygon.rpc_url,
            usdc_address=polygon.usdc_address,
            usdc_decimals=polygon.usdc_decimals,
            min_gas_balance=polygon.min_gas_balance,
        ),
        placer=broker,
        address=pm.funder or broker.address,
        authenticate=broker.authenticate,
    )


async def run_async(bot: OracleTradingBot) -> int:
    try:
        await bot.run()
    except TradingBotError as e:
        logger.critical(f"Startup failed: {e}")
        return 1
    finally:
        await bot.stop()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="BTC hourly up/down oracle trader")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in TradingMode],
        help="Trading mode (default: TRADING_MODE or paper)",
    )
    parser.add_argument("--log-level", help="Log level (default: LOG_LEVEL or INFO)")
    args = parser.parse_args(argv)

    settings = get_settings()
    if args.mode:
        settings = settings.model_copy(update={"mode": TradingMode(args.mode)})

    configure_logging(args.log_level or settings.logging.log_level)

    try:
        bot = build_bot(settings)
    except TradingBotError as e:
        logger.critical(f"Configuration error: {e}")
        return 1

    try:
        return asyncio.run(run_async(bot))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
        return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
