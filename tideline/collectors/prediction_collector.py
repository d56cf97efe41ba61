"""Tideline — Prediction Market Collector (Polymarket Gamma API, Metaculus fallback).

Polls the public Gamma markets endpoint (no auth) for the highest-volume
open binary markets. Each market becomes a ``PredictionMarket`` with the
yes-probability expressed as a 0-100 integer. When Polymarket is
unreachable the open binary questions on Metaculus are used instead.
"""

import json
import logging
from typing import Optional

import httpx

from backend.config import settings
from backend.models import PredictionMarket
from collectors.base_collector import BaseCollector

logger = logging.getLogger("tideline.collector")

DEFAULT_YES = 50
METACULUS_TAKE = 7


def parse_yes_price(outcome_prices) -> int:
    """``outcomePrices`` is a JSON-encoded list of strings, yes first."""
    if not outcome_prices:
        return DEFAULT_YES
    try:
        prices = json.loads(outcome_prices) if isinstance(outcome_prices, str) else outcome_prices
        return round(float(prices[0]) * 100)
    except (ValueError, TypeError, IndexError, KeyError):
        return DEFAULT_YES


def format_volume(volume) -> str:
    try:
        volume = float(volume or 0)
    except (TypeError, ValueError):
        return "0"
    if volume >= 1_000_000:
        return f"{volume / 1_000_000:.1f}M"
    if volume >= 1_000:
        return f"{volume / 1_000:.1f}K"
    return f"{volume:g}"


def parse_market(market: dict) -> Optional[PredictionMarket]:
    if not isinstance(market, dict) or not market.get("id"):
        return None
    return PredictionMarket(
        id=market["id"],
        question=market.get("question") or "Unknown market",
        yes=parse_yes_price(market.get("outcomePrices")),
        category=market.get("category"),
        volume=format_volume(market.get("volumeNum") or market.get("volume")),
    )


def parse_metaculus_question(question: dict) -> Optional[PredictionMarket]:
    if not isinstance(question, dict) or question.get("id") is None:
        return None
    forecast = ((question.get("community_prediction") or {}).get("full") or {}).get("q2")
    try:
        yes = round(float(forecast or 0.5) * 100)
    except (TypeError, ValueError):
        yes = DEFAULT_YES
    return PredictionMarket(
        id=f"mc-{question['id']}",
        question=(question.get("title") or "")[:80] or "Unknown question",
        yes=yes,
        volume=format_volume(question.get("activity")),
    )


class PredictionCollector(BaseCollector):
    """Polymarket collector with Metaculus as a second source.

    A cycle where both sources fail contributes no markets.
    """

    def __init__(
        self,
        interval: int = settings.prediction_interval,
        url: str = settings.polymarket_url,
        limit: int = settings.prediction_limit,
        client: Optional[httpx.AsyncClient] = None,
        fallback_url: Optional[str] = settings.metaculus_url,
    ):
        super().__init__(name="predictions", interval=interval, client=client)
        self.url = url
        self.limit = limit
        self.fallback_url = fallback_url

    async def collect(self) -> list[PredictionMarket]:
        markets = await self._fetch_polymarket()
        if markets is None and self.fallback_url:
            markets = await self._fetch_metaculus()
        if markets is None:
            logger.warning("[%s] All prediction sources failed", self.name)
            return []
        return markets

    async def _fetch_polymarket(self) -> Optional[list[PredictionMarket]]:
        params = {
            "limit": self.limit,
            "active": "true",
            "closed": "false",
            "order": "volume",
            "ascending": "false",
        }
        try:
            data = await self.fetch_json(self.url, params=params)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("[%s] Polymarket fetch failed: %s", self.name, e)
            return None

        if not isinstance(data, list):
            logger.warning("[%s] Unexpected Polymarket payload: %s", self.name, type(data).__name__)
            return None

        markets = [m for m in (parse_market(raw) for raw in data) if m is not None]
        logger.debug("[%s] Parsed %d/%d markets", self.name, len(markets), len(data))
        return markets

    async def _fetch_metaculus(self) -> Optional[list[PredictionMarket]]:
        params = {"limit": 10, "status": "open", "type": "binary", "order_by": "-activity"}
        try:
            data = await self.fetch_json(self.fallback_url, params=params)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("[%s] Metaculus fetch failed: %s", self.name, e)
            return None

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            logger.warning("[%s] Unexpected Metaculus payload", self.name)
            return None

        markets = [m for m in (parse_metaculus_question(q) for q in results[:METACULUS_TAKE]) if m is not None]
        logger.info("[%s] Using %d Metaculus questions", self.name, len(markets))
        return markets
