import asyncio
import json

from services.data_feed import base
from services.data_feed.binance_feed import BinanceKlineFeed, parse_kline
from services.data_feed.polymarket_feed import PolymarketBookFeed
from services.market_data.price_tracker import MarketPriceTracker


def _kline(**overrides) -> dict:
    k = {"t": 1_000, "T": 3_600_999, "o": "50000.00", "c": "50100.50", "h": "50200.00", "l": "49900.00"}
    k.update(overrides)
    return {"e": "kline", "s": "BTCUSDT", "k": k}


def test_parse_kline() -> None:
    tick = parse_kline(_kline())

    assert tick is not None
    assert tick.open == 50000.0
    assert tick.close == 50100.5
    assert tick.start_time == 1_000
    assert tick.close_time == 3_600_999


def test_parse_kline_drops_bad_events() -> None:
    assert parse_kline({"e": "trade"}) is None
    assert parse_kline({"e": "kline", "k": None}) is None
    assert parse_kline(_kline(o="abc")) is None
    assert parse_kline(_kline(c="0")) is None
    assert parse_kline(_kline(T=500)) is None
    assert parse_kline(["not", "a", "dict"]) is None


def test_binance_feed_forwards_ticks() -> None:
    ticks = []
    feed = BinanceKlineFeed("wss://example/ws/btcusdt@kline_1h", ticks.append)

    feed.dispatch(json.dumps(_kline()))
    feed.dispatch(json.dumps({"e": "trade"}))
    feed.dispatch("{not json")

    assert len(ticks) == 1
    assert feed.message_count == 2


def test_polymarket_feed_subscription_and_dispatch() -> None:
    tracker = MarketPriceTracker()
    feed = PolymarketBookFeed("wss://example/ws/market", ["up", "down"], tracker.ingest)

    assert json.loads(feed.subscription_message) == {"assets_ids": ["up", "down"]}

    feed.dispatch(json.dumps({"asset_id": "up", "bids": [{"price": "0.40"}], "asks": [{"price": "0.42"}]}))
    assert abs(tracker.price_of("up") - 0.41) < 1e-9


def test_handler_errors_do_not_escape() -> None:
    def _boom(message) -> None:
        raise ValueError("bad")

    feed = PolymarketBookFeed("wss://example/ws/market", ["up"], _boom)

    feed.dispatch(json.dumps({"asset_id": "up"}))

    assert feed.message_count == 1
    assert not feed.is_running


class _Socket:
    def __init__(self, frames) -> None:
        self.sent: list[str] = []
        self._frames = list(frames)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc) -> None:
        return None

    async def send(self, payload: str) -> None:
        self.sent.append(payload)

    async def close(self) -> None:
        self._frames = []

    def __aiter__(self):
        return self

    async def __anext__(self) -> str:
        await asyncio.sleep(0)
        if not self._frames:
            raise StopAsyncIteration
        return self._frames.pop(0)


def test_feed_retries_until_stopped(monkeypatch) -> None:
    attempts = []

    def _refuse(url, **kwargs):
        attempts.append(url)
        raise OSError("connection refused")

    monkeypatch.setattr(base.websockets, "connect", _refuse)
    feed = BinanceKlineFeed("wss://example/ws/btcusdt@kline_1h", lambda tick: None, reconnect_delay=0.01)

    async def scenario() -> int:
        task = asyncio.create_task(feed.run())
        await asyncio.sleep(0.1)
        await feed.stop()
        await asyncio.wait_for(task, timeout=1.0)
        seen = len(attempts)
        await asyncio.sleep(0.05)
        return seen

    seen = asyncio.run(scenario())

    assert seen >= 3
    assert len(attempts) == seen
    assert not feed.is_running
    assert not feed.is_connected


def test_feed_resubscribes_on_every_connect(monkeypatch) -> None:
    sockets = []
    tracker = MarketPriceTracker()
    frame = json.dumps({"asset_id": "up", "bids": [{"price": "0.40"}], "asks": [{"price": "0.42"}]})

    def _connect(url, **kwargs):
        sockets.append(_Socket([frame]))
        return sockets[-1]

    monkeypatch.setattr(base.websockets, "connect", _connect)
    feed = PolymarketBookFeed("wss://example/ws/market", ["up", "down"], tracker.ingest, reconnect_delay=0.01)

    async def scenario() -> None:
        task = asyncio.create_task(feed.run())
        await asyncio.sleep(0.05)
        await feed.stop()
        await asyncio.wait_for(task, timeout=1.0)

    asyncio.run(scenario())

    assert len(sockets) >= 2
    assert all(s.sent == [feed.subscription_message] for s in sockets)
    assert 1 <= feed.message_count <= len(sockets)
    assert abs(tracker.price_of("up") - 0.41) < 1e-9
