"""
Market Discovery
Resolves the current hourly "Bitcoin Up or Down" market on Polymarket.
"""

import asyncio
import json
import logging
from datetime import datetime
from typing import Any, List, Optional
from zoneinfo import ZoneInfo

import aiohttp

from shared.errors import MarketNotFoundError
from shared.models import MarketInfo

logger = logging.getLogger(__name__)

MARKET_TIMEZONE = ZoneInfo("America/New_York")


def market_slug(now: datetime) -> str:
    """
    Build the hourly market slug for a moment in time.

    Example: ``bitcoin-up-or-down-october-19-3pm-et``
    """
    et = now.astimezone(MARKET_TIMEZONE)
    month = et.strftime("%B").lower()
    hour = et.hour % 12 or 12
    period = "am" if et.hour < 12 else "pm"
    return f"bitcoin-up-or-down-{month}-{et.day}-{hour}{period}-et"


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return []
    return list(value) if isinstance(value, list) else []


def _markets_from(data: Any) -> List[dict]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get("data"), list):
        return data["data"]
    return []


def is_bitcoin_updown(market: dict) -> bool:
    """Keyword match for bitcoin up/down questions."""
    question = (market.get("question") or "").lower()
    return ("bitcoin" in question or "btc" in question) and (
        "up" in question or "down" in question
    )


def parse_market(market: dict) -> MarketInfo:
    """
    Map a Gamma market record onto UP/DOWN token ids.

    Raises:
        MarketNotFoundError: If the market has fewer than two tokens
    """
    token_ids = _as_list(market.get("clobTokenIds"))
    outcomes = [str(o).lower() for o in _as_list(market.get("outcomes"))]

    if len(token_ids) < 2:
        raise MarketNotFoundError("Market must have at least 2 tokens")

    up_index = next((i for i, o in enumerate(outcomes) if "up" in o or "yes" in o), 0)
    down_index = next((i for i, o in enumerate(outcomes) if "down" in o or "no" in o), 1)

    return MarketInfo(
        question=market.get("question") or "",
        slug=market.get("slug"),
        up_token_id=str(token_ids[up_index]),
        down_token_id=str(token_ids[down_index]),
    )


class MarketDiscovery:
    """Gamma API client for the current BTC hourly market."""

    def __init__(self, gamma_url: str, session: Optional[aiohttp.ClientSession] = None) -> None:
        self._gamma_url = gamma_url.rstrip("/")
        self._session = session

    async def find_current_market(self, now: Optional[datetime] = None) -> MarketInfo:
        """
        Look up the market for the current hour.

        Tries the exact slug first, then scans active markets.

        Raises:
            MarketNotFoundError: If nothing matches
        """
        slug = market_slug(now or datetime.now(tz=MARKET_TIMEZONE))
        logger.info(f"Searching for market: {slug}")

        owns_session = self._session is None
        session = self._session or aiohttp.ClientSession()
        try:
            markets = _markets_from(await self._get(session, "/markets", {"slug": slug}))
            market = markets[0] if markets else None

            if market is None:
                logger.info("Market not found by slug, searching active markets...")
                active = _markets_from(
                    await self._get(
                        session,
                        "/markets",
                        {"active": "true", "limit": "50", "closed": "false"},
                    )
                )
                market = next((m for m in active if is_bitcoin_updown(m)), None)
                if market is None:
                    raise MarketNotFoundError("No active Bitcoin UP/DOWN market found")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise MarketNotFoundError(f"Market lookup failed: {e!r}") from e
        finally:
            if owns_session:
                await session.close()

        info = parse_market(market)
        logger.info(f"Market found: {info.question}")
        logger.info(f"   UP Token: {info.up_token_id[:20]}...")
        logger.info(f"   DOWN Token: {info.down_token_id[:20]}...")
        return info

    async def _get(self, session: aiohttp.ClientSession, path: str, params: dict) -> Any:
        async with session.get(f"{self._gamma_url}{path}", params=params) as response:
            response.raise_for_status()
            return await response.json()
