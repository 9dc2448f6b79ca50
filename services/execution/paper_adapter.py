"""Paper-trading order placer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from uuid import uuid4

from shared.models import OrderKind, OrderSide

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaperOrder:
    order_id: str
    token_id: str
    price: float
    quantity: int
    side: OrderSide
    kind: OrderKind


class PaperOrderPlacer:
    """Acknowledges every order with a synthetic id; nothing reaches the venue."""

    def __init__(self) -> None:
        self._orders: list[PaperOrder] = []

    @property
    def orders(self) -> tuple[PaperOrder, ...]:
        return tuple(self._orders)

    async def place_order(
        self,
        token_id: str,
        price: float,
        quantity: int,
        side: OrderSide,
        kind: OrderKind = OrderKind.GTC,
    ) -> str:
        order = PaperOrder(
            order_id=f"paper-{uuid4().hex[:12]}",
            token_id=token_id,
            price=price,
            quantity=quantity,
            side=side,
            kind=kind,
        )
        self._orders.append(order)
        logger.info(f"[paper] {side.value} {quantity} @ {price:.2f} -> {order.order_id}")
        return order.order_id
