"""Market discovery and venue price tracking."""

from services.market_data.discovery import MarketDiscovery, market_slug, parse_market
from services.market_data.price_tracker import MarketPriceTracker

__all__ = ["MarketDiscovery", "MarketPriceTracker", "market_slug", "parse_market"]
