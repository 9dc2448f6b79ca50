from typing import Optional

from services.market_data.price_tracker import MarketPriceTracker
from services.oracle.probability import ProbabilityOracle
from services.risk_engine.cooldown import TradeCooldown
from services.signal_gen.detector import OpportunityDetector
from shared.models import CandleTick, MarketInfo, OutcomeSide

HOUR_MS = 3_600_000
MARKET = MarketInfo(question="Bitcoin Up or Down?", up_token_id="up", down_token_id="down")


class _Clock:
    def __init__(self, now: int = 0) -> None:
        self.now = now

    def now_ms(self) -> int:
        return self.now


def _book(asset_id: str, mid: float) -> dict:
    return {
        "asset_id": asset_id,
        "bids": [{"price": f"{mid - 0.01:.2f}"}],
        "asks": [{"price": f"{mid + 0.01:.2f}"}],
    }


def _setup(up_price: Optional[float], down_price: float, funded: bool = True):
    # candle just opened: oracle reports 0.5 on both sides
    oracle = ProbabilityOracle(clock=_Clock(30_000))
    tracker = MarketPriceTracker()
    cooldown = TradeCooldown(30_000)
    detector = OpportunityDetector(
        oracle=oracle,
        tracker=tracker,
        market=MARKET,
        cooldown=cooldown,
        threshold=0.015,
        has_sufficient_funds=lambda: funded,
    )
    oracle.subscribe(detector.on_probability)
    oracle.ingest(
        CandleTick(open=50000.0, close=50050.0, high=50060.0, low=49990.0, start_time=0, close_time=HOUR_MS)
    )
    if up_price is not None:
        tracker.ingest(_book("up", up_price))
    tracker.ingest(_book("down", down_price))
    return detector, tracker, cooldown


def test_detects_edge_on_up_side() -> None:
    detector, _, _ = _setup(up_price=0.45, down_price=0.53)

    opportunity = detector.evaluate(0)

    assert opportunity is not None
    assert opportunity.side is OutcomeSide.UP
    assert opportunity.token_id == "up"
    assert opportunity.oracle_price == 0.5
    assert abs(opportunity.difference - 0.05) < 1e-9


def test_no_opportunity_below_threshold() -> None:
    detector, _, _ = _setup(up_price=0.49, down_price=0.50)

    assert detector.evaluate(0) is None


def test_first_listed_side_wins_when_both_qualify() -> None:
    detector, _, _ = _setup(up_price=0.45, down_price=0.30)

    opportunity = detector.evaluate(0)

    assert opportunity is not None
    assert opportunity.side is OutcomeSide.UP


def test_down_side_detected_when_up_has_no_edge() -> None:
    detector, _, _ = _setup(up_price=0.60, down_price=0.40)

    opportunity = detector.evaluate(0)

    assert opportunity is not None
    assert opportunity.side is OutcomeSide.DOWN
    assert opportunity.token_id == "down"


def test_cooldown_blocks_until_elapsed() -> None:
    detector, tracker, cooldown = _setup(up_price=0.45, down_price=0.53)

    assert detector.evaluate(0) is not None
    cooldown.mark(0)

    tracker.ingest(_book("up", 0.30))
    assert detector.evaluate(10_000) is None
    assert detector.evaluate(29_999) is None

    opportunity = detector.evaluate(31_000)
    assert opportunity is not None
    assert abs(opportunity.market_price - 0.30) < 1e-9


def test_balance_gate_blocks() -> None:
    detector, _, _ = _setup(up_price=0.45, down_price=0.53, funded=False)

    assert detector.evaluate(0) is None


def test_requires_oracle_data() -> None:
    tracker = MarketPriceTracker()
    tracker.ingest(_book("up", 0.10))
    detector = OpportunityDetector(
        oracle=ProbabilityOracle(clock=_Clock(0)),
        tracker=tracker,
        market=MARKET,
        cooldown=TradeCooldown(30_000),
        threshold=0.015,
    )

    assert detector.evaluate(0) is None


def test_missing_market_price_is_not_an_edge() -> None:
    detector, tracker, _ = _setup(up_price=None, down_price=0.60)

    assert tracker.price_of("up") == 0.0
    assert detector.oracle_prices[OutcomeSide.UP] == 0.5
    assert detector.evaluate(0) is None
