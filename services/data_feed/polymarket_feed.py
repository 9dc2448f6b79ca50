"""
Polymarket Market Channel Feed
Order-book stream for the two outcome tokens.
"""

import json
import logging
from typing import Any, Callable, List

from .base import WebSocketFeed

logger = logging.getLogger(__name__)


class PolymarketBookFeed(WebSocketFeed):
    """
    Polymarket CLOB market-channel WebSocket.

    Subscribes to the given asset ids on every (re)connect and forwards
    each decoded message to ``on_message``, normally
    ``MarketPriceTracker.ingest``.
    """

    def __init__(
        self,
        ws_url: str,
        token_ids: List[str],
        on_message: Callable[[Any], None],
        reconnect_delay: float = 5.0,
    ) -> None:
        super().__init__("Polymarket", ws_url, reconnect_delay)
        self._token_ids = list(token_ids)
        self._on_message = on_message

    @property
    def subscription_message(self) -> str:
        """Subscription payload sent at connect time."""
        return json.dumps({"assets_ids": self._token_ids})

    async def on_open(self, ws: Any) -> None:
        payload = self.subscription_message
        logger.info(f"Sending subscription: {payload}")
        await ws.send(payload)

    def handle_message(self, message: Any) -> None:
        self._on_message(message)
