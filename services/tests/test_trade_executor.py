import asyncio
from datetime import datetime, timezone
from typing import Optional

import pytest

from services.execution.paper_adapter import PaperOrderPlacer
from services.execution.trade_executor import TradeExecutor, round_to_tick
from services.risk_engine.cooldown import TradeCooldown
from shared.errors import OrderError
from shared.models import OrderKind, OrderSide, OutcomeSide, PositionStatus, TradeOpportunity


class _Clock:
    def __init__(self, now: int = 0) -> None:
        self.now = now

    def now_ms(self) -> int:
        return self.now


class _Placer:
    def __init__(self, fail_on: Optional[int] = None, cooldown: Optional[TradeCooldown] = None) -> None:
        self.calls: list[tuple] = []
        self.cooldown_at_first_call: Optional[int] = None
        self._fail_on = fail_on
        self._cooldown = cooldown

    async def place_order(self, token_id, price, quantity, side, kind=OrderKind.GTC) -> str:
        if not self.calls and self._cooldown is not None:
            self.cooldown_at_first_call = self._cooldown.last_trade_ms
        self.calls.append((token_id, price, quantity, side, kind))
        if self._fail_on == len(self.calls):
            raise OrderError("rejected", token_id, "400")
        return f"order-{len(self.calls)}"


def _opportunity(market_price: float, side: OutcomeSide = OutcomeSide.UP) -> TradeOpportunity:
    return TradeOpportunity(
        side=side,
        token_id="token-up",
        oracle_price=market_price + 0.05,
        market_price=market_price,
        difference=0.05,
    )


def _executor(placer, cooldown: TradeCooldown, clock: _Clock, trade_amount: float = 5.0) -> TradeExecutor:
    return TradeExecutor(
        placer=placer,
        cooldown=cooldown,
        trade_amount=trade_amount,
        take_profit_amount=0.05,
        stop_loss_amount=0.02,
        clock=clock,
        protective_order_delay_s=0,
    )


def test_round_to_tick_is_idempotent() -> None:
    for i in range(2000):
        price = i / 1997
        rounded = round_to_tick(price)
        assert round_to_tick(rounded) == rounded


def test_round_to_tick_values() -> None:
    assert round_to_tick(0.404) == pytest.approx(0.40)
    assert round_to_tick(0.9898) == pytest.approx(0.99)
    assert round_to_tick(0.126) == pytest.approx(0.13)


def test_bracket_prices_are_capped() -> None:
    executor = _executor(_Placer(), TradeCooldown(30_000), _Clock())

    _, target, _ = executor.bracket_prices(0.97)
    _, _, stop = executor.bracket_prices(0.02)

    assert target == pytest.approx(0.99)
    assert stop == pytest.approx(0.01)


def test_execute_places_bracket_and_records_position() -> None:
    cooldown = TradeCooldown(30_000)
    placer = _Placer(cooldown=cooldown)
    executor = _executor(placer, cooldown, _Clock(123_000))

    position = asyncio.run(executor.execute(_opportunity(0.40)))

    assert position is not None
    assert [c[3] for c in placer.calls] == [OrderSide.BUY, OrderSide.SELL, OrderSide.SELL]
    assert [c[2] for c in placer.calls] == [12, 12, 12]
    assert placer.calls[0][1] == pytest.approx(0.40)
    assert placer.calls[1][1] == pytest.approx(0.45)
    assert placer.calls[2][1] == pytest.approx(0.38)
    assert position.entry_order_id == "order-1"
    assert position.take_profit_order_id == "order-2"
    assert position.stop_loss_order_id == "order-3"
    assert position.status is PositionStatus.ACTIVE
    assert position.created_at == datetime(1970, 1, 1, 0, 2, 3, tzinfo=timezone.utc)
    assert executor.positions == (position,)


def test_cooldown_marked_before_first_order() -> None:
    cooldown = TradeCooldown(30_000)
    placer = _Placer(cooldown=cooldown)
    executor = _executor(placer, cooldown, _Clock(5_000))

    asyncio.run(executor.execute(_opportunity(0.40)))

    assert placer.cooldown_at_first_call == 5_000


def test_quantity_below_one_aborts_without_orders() -> None:
    cooldown = TradeCooldown(30_000)
    placer = _Placer()
    executor = _executor(placer, cooldown, _Clock(7_000), trade_amount=0.50)

    position = asyncio.run(executor.execute(_opportunity(0.98)))

    assert position is None
    assert placer.calls == []
    assert executor.positions == ()
    assert cooldown.last_trade_ms == 7_000


def test_entry_failure_aborts_remaining_orders() -> None:
    cooldown = TradeCooldown(30_000)
    placer = _Placer(fail_on=1)
    executor = _executor(placer, cooldown, _Clock(9_000))

    position = asyncio.run(executor.execute(_opportunity(0.40)))

    assert position is None
    assert len(placer.calls) == 1
    assert executor.positions == ()
    assert cooldown.is_active(10_000)


def test_protective_failure_leaves_no_position() -> None:
    placer = _Placer(fail_on=2)
    executor = _executor(placer, TradeCooldown(30_000), _Clock())

    position = asyncio.run(executor.execute(_opportunity(0.40)))

    assert position is None
    assert len(placer.calls) == 2
    assert executor.positions == ()


def test_paper_placer_returns_unique_ids() -> None:
    placer = PaperOrderPlacer()
    executor = _executor(placer, TradeCooldown(30_000), _Clock())

    position = asyncio.run(executor.execute(_opportunity(0.40, OutcomeSide.DOWN)))

    assert position is not None
    assert position.side is OutcomeSide.DOWN
    ids = {o.order_id for o in placer.orders}
    assert len(ids) == 3
    assert all(i.startswith("paper-") for i in ids)
