import asyncio
import json
from datetime import datetime, timezone

import pytest

from services.market_data.discovery import MarketDiscovery, market_slug, parse_market
from shared.errors import MarketNotFoundError


class _Response:
    def __init__(self, payload) -> None:
        self._payload = payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc) -> None:
        return None

    def raise_for_status(self) -> None:
        return None

    async def json(self):
        return self._payload


class _Session:
    def __init__(self, by_slug=None, active=None) -> None:
        self.requests: list[dict] = []
        self._by_slug = by_slug if by_slug is not None else []
        self._active = active if active is not None else []

    def get(self, url: str, params: dict):
        self.requests.append(params)
        if "slug" in params:
            return _Response(self._by_slug)
        return _Response(self._active)


def _market(question: str, outcomes=("Up", "Down"), tokens=("111", "222")) -> dict:
    return {
        "question": question,
        "slug": "bitcoin-up-or-down",
        "outcomes": json.dumps(list(outcomes)),
        "clobTokenIds": json.dumps(list(tokens)),
    }


def test_slug_uses_eastern_time_in_summer() -> None:
    now = datetime(2026, 10, 19, 19, 30, tzinfo=timezone.utc)

    assert market_slug(now) == "bitcoin-up-or-down-october-19-3pm-et"


def test_slug_uses_eastern_time_in_winter() -> None:
    midnight = datetime(2026, 1, 5, 5, 0, tzinfo=timezone.utc)
    noon = datetime(2026, 1, 5, 17, 0, tzinfo=timezone.utc)

    assert market_slug(midnight) == "bitcoin-up-or-down-january-5-12am-et"
    assert market_slug(noon) == "bitcoin-up-or-down-january-5-12pm-et"


def test_parse_market_maps_outcomes_to_tokens() -> None:
    info = parse_market(_market("Bitcoin Up or Down", outcomes=("Down", "Up")))

    assert info.up_token_id == "222"
    assert info.down_token_id == "111"


def test_parse_market_accepts_yes_no_lists() -> None:
    market = {"question": "BTC up?", "outcomes": ["Yes", "No"], "clobTokenIds": ["a", "b"]}

    info = parse_market(market)

    assert info.token_ids == ["a", "b"]


def test_parse_market_needs_two_tokens() -> None:
    with pytest.raises(MarketNotFoundError):
        parse_market(_market("Bitcoin Up or Down", tokens=("only",)))


def test_find_current_market_by_slug() -> None:
    session = _Session(by_slug=[_market("Bitcoin Up or Down - October 19, 3PM ET")])
    discovery = MarketDiscovery("https://gamma.example", session=session)

    info = asyncio.run(discovery.find_current_market(datetime(2026, 10, 19, 19, 0, tzinfo=timezone.utc)))

    assert info.up_token_id == "111"
    assert session.requests == [{"slug": "bitcoin-up-or-down-october-19-3pm-et"}]


def test_find_current_market_falls_back_to_active_scan() -> None:
    session = _Session(
        active=[_market("Will ETH hit 5k?"), _market("Bitcoin Up or Down - 4PM ET", tokens=("7", "8"))]
    )
    discovery = MarketDiscovery("https://gamma.example", session=session)

    info = asyncio.run(discovery.find_current_market())

    assert info.token_ids == ["7", "8"]
    assert session.requests[1]["active"] == "true"


def test_find_current_market_raises_when_nothing_matches() -> None:
    discovery = MarketDiscovery("https://gamma.example", session=_Session(active=[_market("Will ETH hit 5k?")]))

    with pytest.raises(MarketNotFoundError):
        asyncio.run(discovery.find_current_market())


def test_lookup_timeout_becomes_market_not_found() -> None:
    class _SlowSession(_Session):
        def get(self, url: str, params: dict):
            raise asyncio.TimeoutError()

    discovery = MarketDiscovery("https://gamma.example", session=_SlowSession())

    with pytest.raises(MarketNotFoundError, match="lookup failed"):
        asyncio.run(discovery.find_current_market())
