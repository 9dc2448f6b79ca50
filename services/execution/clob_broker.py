"""
Polymarket CLOB Broker
Order placement via py-clob-client.
"""

import asyncio
import logging
from typing import Optional

from py_clob_client.client import ClobClient
from py_clob_client.clob_types import OrderArgs, OrderType, PartialCreateOrderOptions
from py_clob_client.order_builder.constants import BUY, SELL

from shared.errors import ConfigurationError, OrderError
from shared.models import OrderKind, OrderSide

logger = logging.getLogger(__name__)


class PolymarketClobBroker:
    """
    Limit-order placement on the Polymarket CLOB.

    The client is synchronous, so every call runs in a worker thread to
    keep both price feeds flowing while an order is in flight.
    """

    def __init__(
        self,
        host: str,
        private_key: str,
        chain_id: int = 137,
        signature_type: Optional[int] = None,
        funder: Optional[str] = None,
        tick_size: str = "0.01",
        neg_risk: bool = False,
    ) -> None:
        """
        Initialize broker.

        Args:
            host: CLOB API URL
            private_key: Wallet private key
            chain_id: Polygon chain id
            signature_type: Proxy wallet signature type, if any
            funder: Proxy wallet funder address, if any
            tick_size: Market tick size
            neg_risk: Whether the market is a neg-risk market
        """
        self._client = ClobClient(
            host,
            key=private_key,
            chain_id=chain_id,
            signature_type=signature_type,
            funder=funder,
        )
        self._tick_size = tick_size
        self._neg_risk = neg_risk
        self._authenticated = False

    @property
    def address(self) -> str:
        """Signer wallet address."""
        return self._client.get_address()

    @property
    def is_authenticated(self) -> bool:
        """Check if L2 API credentials are set."""
        return self._authenticated

    async def authenticate(self) -> None:
        """
        Create or derive API credentials for order placement.

        Raises:
            ConfigurationError: If credentials cannot be derived
        """
        logger.info("Authenticating with Polymarket CLOB...")
        try:
            creds = await asyncio.to_thread(self._client.create_or_derive_api_creds)
        except Exception as e:
            raise ConfigurationError(f"Authentication failed: {e}") from e

        self._client.set_api_creds(creds)
        self._authenticated = True
        logger.info("API credentials derived and active")

    async def place_order(
        self,
        token_id: str,
        price: float,
        quantity: int,
        side: OrderSide,
        kind: OrderKind = OrderKind.GTC,
    ) -> str:
        """
        Sign and post a limit order.

        Returns:
            Venue order id

        Raises:
            OrderError: If signing or posting fails, or the venue rejects it
        """
        if not self._authenticated:
            raise OrderError("Not authenticated with CLOB", token_id)

        args = OrderArgs(
            token_id=token_id,
            price=price,
            size=float(quantity),
            side=BUY if side is OrderSide.BUY else SELL,
        )
        options = PartialCreateOrderOptions(tick_size=self._tick_size, neg_risk=self._neg_risk)

        try:
            signed = await asyncio.to_thread(self._client.create_order, args, options)
            result = await asyncio.to_thread(
                self._client.post_order, signed, getattr(OrderType, kind.value)
            )
        except Exception as e:
            code = getattr(e, "status_code", None)
            raise OrderError(
                f"Order failed: {e}", token_id, str(code) if code is not None else None
            ) from e

        order_id = result.get("orderID") if isinstance(result, dict) else None
        if not order_id or result.get("success") is False:
            message = result.get("errorMsg") if isinstance(result, dict) else result
            raise OrderError(f"Order rejected: {message}", token_id)

        logger.info(f"Order placed: {order_id} ({side.value} {quantity} @ {price:.2f})")
        return order_id
