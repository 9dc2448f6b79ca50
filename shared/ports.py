"""Port definitions for adapters plugged into the trader."""

from __future__ import annotations

from typing import Protocol

from shared.models import OrderKind, OrderSide


class Clock(Protocol):
    def now_ms(self) -> int:
        """Return current wall-clock time in epoch milliseconds."""


class OrderPlacer(Protocol):
    async def place_order(
        self,
        token_id: str,
        price: float,
        quantity: int,
        side: OrderSide,
        kind: OrderKind = OrderKind.GTC,
    ) -> str:
        """Place an order and return the venue order id."""

