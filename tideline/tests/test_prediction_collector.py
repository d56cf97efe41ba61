"""Tests for the prediction collector (Polymarket, Metaculus fallback) using httpx.MockTransport."""

import json

import httpx
import pytest

from collectors.prediction_collector import (
    PredictionCollector,
    format_volume,
    parse_metaculus_question,
    parse_yes_price,
)

MARKETS = [
    {
        "id": "512345",
        "question": "Will China invade Taiwan in 2025?",
        "outcomePrices": json.dumps(["0.62", "0.38"]),
        "volumeNum": 2_460_000,
        "category": "Geopolitics",
    },
    {
        "id": "512346",
        "question": "Fed rate cut in March?",
        "outcomePrices": "not-json",
        "volume": "15300",
    },
    {"question": "no id, dropped"},
]

METACULUS = {
    "results": [
        {
            "id": 20001,
            "title": "Will a naval blockade of Taiwan begin before 2026? " + "x" * 60,
            "community_prediction": {"full": {"q2": 0.18}},
            "activity": 4200,
        },
        {"id": 20002, "title": "Will Iran close the Strait of Hormuz?"},
    ]
}

POLYMARKET_HOST = "gamma.test"


def collector_for(handler) -> PredictionCollector:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PredictionCollector(
        url="https://gamma.test/markets", limit=20, client=client,
        fallback_url="https://metaculus.test/api2/questions/",
    )


class TestParsing:
    def test_yes_price(self):
        assert parse_yes_price('["0.7", "0.3"]') == 70
        assert parse_yes_price(["0.1", "0.9"]) == 10
        assert parse_yes_price("garbage") == 50
        assert parse_yes_price(None) == 50
        assert parse_yes_price("[]") == 50

    def test_volume(self):
        assert format_volume(2_460_000) == "2.5M"
        assert format_volume("15300") == "15.3K"
        assert format_volume(950) == "950"
        assert format_volume(None) == "0"


class TestCollect:
    @pytest.mark.asyncio
    async def test_parses_markets_and_sends_query(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(request.url.params)
            return httpx.Response(200, json=MARKETS)

        collector = collector_for(handler)
        markets = await collector.collect()
        await collector.stop()

        assert seen == {"limit": "20", "active": "true", "closed": "false", "order": "volume", "ascending": "false"}
        assert [(m.id, m.yes) for m in markets] == [("512345", 62), ("512346", 50)]
        assert markets[0].volume == "2.5M"
        assert markets[0].category == "Geopolitics"

    @pytest.mark.asyncio
    async def test_http_error_yields_empty(self):
        collector = collector_for(lambda request: httpx.Response(503))
        assert await collector.collect() == []
        await collector.stop()

    @pytest.mark.asyncio
    async def test_transport_error_yields_empty(self):
        def handler(request):
            raise httpx.ConnectError("boom", request=request)

        collector = collector_for(handler)
        assert await collector.collect() == []
        await collector.stop()

    @pytest.mark.asyncio
    async def test_unexpected_payload_yields_empty(self):
        collector = collector_for(lambda request: httpx.Response(200, json={"error": "rate limited"}))
        assert await collector.collect() == []
        await collector.stop()

    @pytest.mark.asyncio
    async def test_polling_loop_yields_batches(self):
        collector = collector_for(lambda request: httpx.Response(200, json=MARKETS[:1]))
        collector.interval = 0
        batches = collector.start()
        first = await batches.__anext__()
        await batches.aclose()
        await collector.stop()

        assert [m.id for m in first] == ["512345"]
        assert collector.last_fetch is not None


class TestMetaculusFallback:
    def test_parse_question(self):
        market = parse_metaculus_question(METACULUS["results"][0])
        assert market.id == "mc-20001"
        assert len(market.question) == 80
        assert market.yes == 18
        assert market.volume == "4.2K"

        bare = parse_metaculus_question(METACULUS["results"][1])
        assert (bare.yes, bare.volume) == (50, "0")
        assert parse_metaculus_question({"title": "no id"}) is None

    @pytest.mark.asyncio
    async def test_used_when_polymarket_fails(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == POLYMARKET_HOST:
                return httpx.Response(502)
            seen.update(request.url.params)
            return httpx.Response(200, json=METACULUS)

        collector = collector_for(handler)
        markets = await collector.collect()
        await collector.stop()

        assert seen == {"limit": "10", "status": "open", "type": "binary", "order_by": "-activity"}
        assert [m.id for m in markets] == ["mc-20001", "mc-20002"]

    @pytest.mark.asyncio
    async def test_results_capped_at_seven(self):
        questions = {"results": [{"id": i, "title": f"Question {i}"} for i in range(10)]}

        def handler(request):
            if request.url.host == POLYMARKET_HOST:
                return httpx.Response(200, json={"error": "rate limited"})
            return httpx.Response(200, json=questions)

        collector = collector_for(handler)
        assert len(await collector.collect()) == 7
        await collector.stop()

    @pytest.mark.asyncio
    async def test_not_used_when_polymarket_answers(self):
        hosts = []

        def handler(request):
            hosts.append(request.url.host)
            return httpx.Response(200, json=[])

        collector = collector_for(handler)
        assert await collector.collect() == []
        await collector.stop()
        assert hosts == [POLYMARKET_HOST]
