"""
Oracle Trading Bot
Wires feeds, oracle, tracker, detector and executor, and owns the lifecycle.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

from services.data_feed.base import WebSocketFeed
from services.data_feed.binance_feed import BinanceKlineFeed
from services.data_feed.polymarket_feed import PolymarketBookFeed
from services.execution.trade_executor import TradeExecutor
from services.market_data.discovery import MarketDiscovery
from services.market_data.price_tracker import MarketPriceTracker
from services.oracle.probability import ProbabilityOracle
from services.risk_engine.balance import BalanceChecker
from services.risk_engine.cooldown import TradeCooldown
from services.signal_gen.detector import OpportunityDetector
from shared.clock import SystemClock
from shared.config import TradingSettings
from shared.errors import BalanceCheckError, InsufficientBalanceError, TradingBotError
from shared.models import MarketInfo, OutcomeSide, Position
from shared.ports import Clock, OrderPlacer

logger = logging.getLogger(__name__)

STARTUP_BALANCE_BUFFER = 0.05
MONITOR_BALANCE_BUFFER = 0.02
INITIAL_DATA_LOG_INTERVAL_S = 3.0


class OracleTradingBot:
    """
    Runs the oracle trading pipeline.

    Startup (any failure aborts):
    1. authenticate with the venue (live mode)
    2. balance check with a 5% buffer
    3. resolve the current hourly market

    Running:
    - reference and venue feeds push into the oracle and tracker
    - the trading loop polls the detector once per interval
    - the monitor loops refresh balances and log status
    """

    def __init__(
        self,
        settings: TradingSettings,
        discovery: MarketDiscovery,
        balance_checker: BalanceChecker,
        placer: OrderPlacer,
        address: str,
        clock: Optional[Clock] = None,
        authenticate: Optional[Callable[[], Awaitable[None]]] = None,
    ) -> None:
        """
        Initialize bot.

        Args:
            settings: Trader settings
            discovery: Market discovery collaborator
            balance_checker: Balance collaborator
            placer: Order placement collaborator
            address: Wallet address used for balance checks
            clock: Wall-clock source (epoch ms)
            authenticate: Venue authentication step run before anything else
        """
        self._settings = settings
        self._discovery = discovery
        self._balance_checker = balance_checker
        self._address = address
        self._clock = clock or SystemClock()
        self._authenticate = authenticate

        strategy = settings.strategy
        self._oracle = ProbabilityOracle(clock=self._clock)
        self._tracker = MarketPriceTracker()
        self._cooldown = TradeCooldown(strategy.trade_cooldown_ms)
        self._executor = TradeExecutor(
            placer=placer,
            cooldown=self._cooldown,
            trade_amount=strategy.trade_amount,
            take_profit_amount=strategy.take_profit_amount,
            stop_loss_amount=strategy.stop_loss_amount,
            clock=self._clock,
            protective_order_delay_s=settings.protective_order_delay_s,
        )

        self._market: Optional[MarketInfo] = None
        self._detector: Optional[OpportunityDetector] = None
        self._feeds: List[WebSocketFeed] = []
        self._tasks: List[asyncio.Task] = []
        self._trading_task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self._running = False
        self._usdc_balance = 0.0

    @property
    def oracle(self) -> ProbabilityOracle:
        return self._oracle

    @property
    def tracker(self) -> MarketPriceTracker:
        return self._tracker

    @property
    def executor(self) -> TradeExecutor:
        return self._executor

    @property
    def cooldown(self) -> TradeCooldown:
        return self._cooldown

    @property
    def market(self) -> Optional[MarketInfo]:
        """Get resolved market, None before startup."""
        return self._market

    @property
    def is_running(self) -> bool:
        """Check if bot is running."""
        return self._running

    def has_sufficient_funds(self) -> bool:
        """Balance gate: last known USDC balance covers the minimum."""
        return self._usdc_balance >= self._settings.strategy.minimum_balance

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # Lifecycle
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    async def start(self) -> None:
        """
        Run startup checks, connect feeds and start the loops.

        Raises:
            TradingBotError: If a startup step fails
        """
        strategy = self._settings.strategy
        logger.info("=" * 60)
        logger.info("  BTC Hourly Oracle Trader")
        logger.info(f"  Mode: {self._settings.mode.value}")
        logger.info(f"  Wallet: {self._address}")
        logger.info(f"  Threshold: {strategy.price_threshold * 100:.2f}%")
        logger.info(
            f"  TP: +{strategy.take_profit_amount:.4f} | SL: -{strategy.stop_loss_amount:.4f}"
        )
        logger.info(f"  Trade amount: ${strategy.trade_amount:.2f}")
        logger.info(f"  Cooldown: {strategy.trade_cooldown_s}s")
        logger.info("=" * 60)

        if self._authenticate is not None:
            await self._authenticate()

        await self.check_startup_balance()

        self._market = await self._discovery.find_current_market()
        self._tracker.track(self._market.token_ids)
        self._detector = OpportunityDetector(
            oracle=self._oracle,
            tracker=self._tracker,
            market=self._market,
            cooldown=self._cooldown,
            threshold=strategy.price_threshold,
            has_sufficient_funds=self.has_sufficient_funds,
        )
        self._oracle.subscribe(self._detector.on_probability)

        self._running = True
        self._stop_event.clear()
        self._feeds = self.create_feeds(self._market)
        self._tasks = [asyncio.create_task(feed.run()) for feed in self._feeds]

        await self.wait_for_initial_data()

        self._trading_task = asyncio.create_task(self._trading_loop())
        self._tasks.append(self._trading_task)
        self._tasks.append(asyncio.create_task(self._balance_loop()))
        self._tasks.append(asyncio.create_task(self._status_loop()))
        logger.info("Trading bot running (Ctrl+C to stop)")

    async def run(self) -> None:
        """Start and block until stopped."""
        await self.start()
        # asyncio.wait leaves the tasks running if this coroutine is cancelled
        await asyncio.wait(self._tasks)

    async def stop(self) -> None:
        """
        Stop loops and feeds.

        Feed and monitor tasks are cancelled. The trading loop is not: a
        trade in flight finishes placing its orders before the loop exits.
        """
        if not self._running and not self._tasks:
            return

        logger.info("Stopping trading bot...")
        self._running = False

        for feed in self._feeds:
            await feed.stop()
        self._stop_event.set()
        for task in self._tasks:
            if task is not self._trading_task:
                task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self._trading_task = None

        if self._detector is not None:
            self._oracle.unsubscribe(self._detector.on_probability)

        logger.info(f"Trading bot stopped. Positions opened: {len(self._executor.positions)}")

    def create_feeds(self, market: MarketInfo) -> List[WebSocketFeed]:
        """Build the reference and venue feeds for a market."""
        delay = self._settings.reconnect_delay_s
        return [
            BinanceKlineFeed(self._settings.binance.stream_url, self._oracle.ingest, delay),
            PolymarketBookFeed(
                self._settings.polymarket.ws_url, market.token_ids, self._tracker.ingest, delay
            ),
        ]

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # Startup steps
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    async def check_startup_balance(self) -> None:
        """
        Verify the wallet before trading.

        Raises:
            InsufficientBalanceError: If USDC is below minimum plus buffer
            BalanceCheckError: If balances cannot be fetched
        """
        minimum = self._settings.strategy.minimum_balance
        logger.info("Checking wallet balances...")

        balances = await self._balance_checker.check_balances(self._address)
        self._balance_checker.display_balances(balances)
        self._usdc_balance = balances.usdc

        check = self._balance_checker.check_sufficient_balance(
            balances, minimum, STARTUP_BALANCE_BUFFER
        )
        for warning in check.warnings:
            logger.info(f"  {warning}")

        if not check.sufficient:
            raise InsufficientBalanceError(
                f"Insufficient balance: ${balances.usdc:.2f} USDC "
                f"(minimum ${minimum:.2f} + {STARTUP_BALANCE_BUFFER * 100:.0f}% buffer)"
            )
        logger.info("Balance check passed")

    async def wait_for_initial_data(self) -> bool:
        """
        Wait until both feeds have delivered prices.

        Returns:
            True if data arrived before the timeout
        """
        timeout = self._settings.initial_data_timeout_s
        logger.info(f"Waiting for initial price data (up to {timeout:.0f}s)...")

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        next_log = loop.time() + INITIAL_DATA_LOG_INTERVAL_S

        while loop.time() < deadline:
            if self._oracle.has_data() and len(self._tracker) > 0:
                logger.info("Initial price data received")
                return True
            if loop.time() >= next_log:
                connected = sum(1 for feed in self._feeds if feed.is_connected)
                logger.info(
                    f"Still waiting... feeds connected: {connected}/{len(self._feeds)}, "
                    f"BTC: {'ok' if self._oracle.has_data() else 'pending'}, "
                    f"market prices: {len(self._tracker)}"
                )
                next_log += INITIAL_DATA_LOG_INTERVAL_S
            await asyncio.sleep(0.1)

        logger.warning("Initial data timeout, continuing with partial data")
        return False

    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
    # Loops
    # ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

    async def run_cycle(self) -> Optional[Position]:
        """
        One decision cycle: evaluate the detector and execute a hit.

        Returns:
            Position opened this cycle, if any
        """
        if self._detector is None:
            return None

        opportunity = self._detector.evaluate(self._clock.now_ms())
        if opportunity is None:
            return None
        return await self._executor.execute(opportunity)

    async def refresh_balance(self) -> None:
        """Re-read balances and log a warning below minimum plus 2%."""
        balances = await self._balance_checker.check_balances(self._address)
        self._usdc_balance = balances.usdc

        check = self._balance_checker.check_sufficient_balance(
            balances, self._settings.strategy.minimum_balance, MONITOR_BALANCE_BUFFER
        )
        if not check.sufficient:
            for warning in check.warnings:
                logger.warning(warning)

    def log_status(self) -> None:
        """Log oracle, market and position status."""
        snapshot = self._oracle.snapshot()
        logger.info("-" * 60)
        logger.info(
            f"BTC ${snapshot.current_price:.2f} (open ${snapshot.open_price:.2f}, "
            f"{snapshot.price_change_percent:+.3f}%) | "
            f"{snapshot.time_remaining_ms / 60000:.1f}min left"
        )
        if self._market is not None:
            for side in OutcomeSide:
                oracle_price = snapshot.probability(side)
                market_price = self._tracker.price_of(self._market.token_id(side))
                logger.info(
                    f"{side.value:<4} oracle {oracle_price:.4f} | market {market_price:.4f} | "
                    f"diff {oracle_price - market_price:+.4f}"
                )
        logger.info(
            f"Positions: {len(self._executor.positions)} | "
            f"Cooldown: {self._cooldown.remaining_ms(self._clock.now_ms()) / 1000:.0f}s | "
            f"USDC: ${self._usdc_balance:.2f}"
        )
        logger.info("-" * 60)

    async def _trading_loop(self) -> None:
        while self._running:
            try:
                await self.run_cycle()
            except TradingBotError as e:
                logger.error(f"Trading cycle failed: {e}")
            except Exception as e:
                logger.exception(f"Unexpected error in trading loop: {e}")
            await self._pause(self._settings.poll_interval_s)

    async def _balance_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._settings.balance_check_interval_s)
            try:
                await self.refresh_balance()
            except BalanceCheckError as e:
                logger.error(f"Balance check failed: {e}")
            except Exception as e:
                logger.exception(f"Unexpected error in balance loop: {e}")

    async def _status_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._settings.status_interval_s)
            self.log_status()

    async def _pause(self, seconds: float) -> None:
        """Sleep for ``seconds`` or until ``stop()`` is called."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
