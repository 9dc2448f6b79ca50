"""
Reconnecting WebSocket Feed
Base class for the reference and venue price streams.
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import websockets
from websockets.exceptions import WebSocketException

logger = logging.getLogger(__name__)


class WebSocketFeed(ABC):
    """
    Abstract base class for streaming feeds.

    ``run()`` connects, dispatches each decoded message to
    ``handle_message`` in arrival order and, while running, reconnects
    after a fixed delay whenever the connection drops. There is no
    backoff growth and no retry limit; ``stop()`` ends the loop.
    """

    def __init__(self, name: str, url: str, reconnect_delay: float = 5.0) -> None:
        """
        Initialize feed.

        Args:
            name: Human-readable feed name for logs
            url: WebSocket URL
            reconnect_delay: Seconds between reconnect attempts
        """
        self._name = name
        self._url = url
        self._reconnect_delay = reconnect_delay
        self._running = False
        self._ws: Optional[Any] = None
        self._connected = asyncio.Event()
        self._message_count = 0

    @property
    def name(self) -> str:
        """Get feed name."""
        return self._name

    @property
    def url(self) -> str:
        """Get WebSocket URL."""
        return self._url

    @property
    def is_running(self) -> bool:
        """Check if feed is running."""
        return self._running

    @property
    def is_connected(self) -> bool:
        """Check if a connection is open."""
        return self._connected.is_set()

    @property
    def message_count(self) -> int:
        """Number of decoded messages dispatched."""
        return self._message_count

    @abstractmethod
    def handle_message(self, message: Any) -> None:
        """
        Process one decoded message.

        Args:
            message: JSON-decoded payload
        """
        pass

    async def on_open(self, ws: Any) -> None:
        """Hook called after each successful connect."""
        pass

    async def run(self) -> None:
        """Connect and consume messages until stopped."""
        self._running = True

        while self._running:
            try:
                logger.info(f"Connecting to {self._name}: {self._url}")
                async with websockets.connect(self._url, ping_interval=20, ping_timeout=20) as ws:
                    self._ws = ws
                    self._connected.set()
                    logger.info(f"{self._name} WebSocket connected")

                    await self.on_open(ws)
                    async for raw in ws:
                        self.dispatch(raw)

                logger.info(f"{self._name} WebSocket closed")
            except (WebSocketException, OSError, asyncio.TimeoutError) as e:
                logger.error(f"{self._name} WebSocket error: {e}")
            finally:
                self._ws = None
                self._connected.clear()

            if self._running:
                logger.info(f"Reconnecting in {self._reconnect_delay}s...")
                await asyncio.sleep(self._reconnect_delay)

        logger.info(f"{self._name} feed stopped")

    def dispatch(self, raw: Any) -> None:
        """Decode a raw frame and hand it to ``handle_message``."""
        try:
            message = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            logger.warning(f"{self._name}: invalid JSON message: {str(raw)[:100]}")
            return

        self._message_count += 1
        try:
            self.handle_message(message)
        except Exception as e:
            logger.error(f"{self._name}: error processing message: {e}")

    async def stop(self) -> None:
        """Stop reconnecting and close the open connection."""
        self._running = False
        ws = self._ws
        if ws is not None:
            await ws.close()
