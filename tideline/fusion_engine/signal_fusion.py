"""Tideline — Threat Signal Fusion.

Classifies the outputs of three independent upstream feeds into typed
threat signals and fuses them into a single ThreatAssessment.

Sources (discovery order):
  1. Correlation topics  — watch-list match on topic id, ``rising`` → high
  2. Narrative topics    — watch-list match on narrative id, ``emerging`` → high
  3. Prediction markets  — conflict keyword + yes >= 20 + known region;
                           yes >= 50 → critical, yes >= 30 → high

Overall level (first rule that applies):
  - >= 2 critical            → critical, x2.0
  - >= 1 critical or >= 3 high → high,   x1.5
  - >= 1 high                → elevated, x1.25
  - otherwise                → low,      x1.0
"""

import logging
import re
from functools import lru_cache
from typing import Iterable, Optional, TypeVar

from pydantic import BaseModel

from backend.models import (
    CorrelationTopic,
    NarrativeTopic,
    PredictionMarket,
    SignalSource,
    SignalStrength,
    ThreatAssessment,
    ThreatLevel,
    ThreatSignal,
)
from fusion_engine.watchlists import DEFAULT_TABLES, SignalTables

logger = logging.getLogger("tideline.fusion")

MAX_SIGNALS = 8

# Prediction-market yes-probability thresholds (percent)
PREDICTION_MIN_YES = 20
PREDICTION_HIGH_YES = 30
PREDICTION_CRITICAL_YES = 50

M = TypeVar("M", bound=BaseModel)


def coerce_records(records: Optional[Iterable], model: type[M]) -> list[M]:
    """Coerce raw dicts into ``model`` instances, skipping malformed records."""
    if not records:
        return []

    results = []
    for raw in records:
        if isinstance(raw, model):
            results.append(raw)
            continue
        try:
            results.append(model.model_validate(raw))
        except Exception as e:
            logger.debug("Skipping malformed %s record: %s", model.__name__, e)
    return results


def normalize_topic_id(value: str) -> str:
    """Lower-case an analyzer id and join its words with hyphens."""
    return re.sub(r"[\s_]+", "-", value.strip().lower())


def _format_topic_name(topic_id: str) -> str:
    return " ".join(part.capitalize() for part in topic_id.split("-") if part)


@lru_cache(maxsize=256)
def _keyword_pattern(keyword: str) -> re.Pattern:
    return re.compile(r"\b" + re.escape(keyword))


def _contains_keyword(text: str, keyword: str) -> bool:
    return _keyword_pattern(keyword).search(text) is not None


def tag_region(text: str, tables: SignalTables = DEFAULT_TABLES) -> Optional[str]:
    """Best-effort zone name for a piece of text, or None when unattributable."""
    if not text:
        return None
    lowered = text.lower().replace("-", " ")
    for keyword, zone in tables.region_keywords:
        if _contains_keyword(lowered, keyword):
            return zone
    return None


def _on_watchlist(topic_id: str, watchlist: tuple[str, ...]) -> bool:
    return any(stem in topic_id for stem in watchlist)


def classify_correlation(topics: Optional[Iterable], tables: SignalTables = DEFAULT_TABLES) -> list[ThreatSignal]:
    signals = []
    for topic in coerce_records(topics, CorrelationTopic):
        topic_id = normalize_topic_id(topic.id)
        if not _on_watchlist(topic_id, tables.correlation_watchlist):
            continue

        name = topic.name or _format_topic_name(topic_id)
        signals.append(ThreatSignal(
            source=SignalSource.CORRELATION,
            id=topic_id,
            name=name,
            strength=SignalStrength.HIGH if topic.momentum.lower() == "rising" else SignalStrength.MEDIUM,
            region=tag_region(f"{topic_id} {name}", tables),
        ))
    return signals


def classify_narrative(topics: Optional[Iterable], tables: SignalTables = DEFAULT_TABLES) -> list[ThreatSignal]:
    signals = []
    for topic in coerce_records(topics, NarrativeTopic):
        topic_id = normalize_topic_id(topic.id)
        if not _on_watchlist(topic_id, tables.narrative_watchlist):
            continue

        name = topic.name or _format_topic_name(topic_id)
        signals.append(ThreatSignal(
            source=SignalSource.NARRATIVE,
            id=topic_id,
            name=name,
            strength=SignalStrength.HIGH if topic.trend.lower() == "emerging" else SignalStrength.MEDIUM,
            region=tag_region(f"{topic_id} {name}", tables),
        ))
    return signals


def classify_predictions(
    markets: Optional[Iterable],
    tables: SignalTables = DEFAULT_TABLES,
    known_zones: Optional[frozenset[str]] = None,
) -> list[ThreatSignal]:
    signals = []
    for market in coerce_records(markets, PredictionMarket):
        question = market.question.lower()
        if not any(_contains_keyword(question, kw) for kw in tables.conflict_keywords):
            continue
        if market.yes < PREDICTION_MIN_YES:
            continue

        region = tag_region(market.question, tables)
        if region is None or (known_zones is not None and region not in known_zones):
            logger.debug("Discarding unattributable market %s: %s", market.id, market.question)
            continue

        if market.yes >= PREDICTION_CRITICAL_YES:
            strength = SignalStrength.CRITICAL
        elif market.yes >= PREDICTION_HIGH_YES:
            strength = SignalStrength.HIGH
        else:
            strength = SignalStrength.MEDIUM

        signals.append(ThreatSignal(
            source=SignalSource.PREDICTION,
            id=market.id,
            name=market.question,
            strength=strength,
            region=region,
        ))
    return signals


def _level_for(critical: int, high: int) -> tuple[ThreatLevel, float]:
    if critical >= 2:
        return ThreatLevel.CRITICAL, 2.0
    if critical >= 1 or high >= 3:
        return ThreatLevel.HIGH, 1.5
    if high >= 1:
        return ThreatLevel.ELEVATED, 1.25
    return ThreatLevel.LOW, 1.0


def assess_threat(
    correlation: Optional[Iterable] = None,
    narrative: Optional[Iterable] = None,
    predictions: Optional[Iterable] = None,
    tables: SignalTables = DEFAULT_TABLES,
    max_signals: int = MAX_SIGNALS,
    known_zones: Optional[Iterable[str]] = None,
) -> ThreatAssessment:
    """Fuse the three upstream feeds into a ThreatAssessment.

    A missing feed (None) contributes zero signals. Level, multiplier and
    hot zones are derived from every discovered signal; only the returned
    ``signals`` list is capped. When ``known_zones`` is given, regions outside
    it count as unattributable: such signals stay in ``signals`` but never
    reach ``hot_zones``, and such prediction markets are dropped.
    """
    zones = frozenset(known_zones) if known_zones is not None else None
    signals = (
        classify_correlation(correlation, tables)
        + classify_narrative(narrative, tables)
        + classify_predictions(predictions, tables, zones)
    )

    critical = sum(1 for s in signals if s.strength == SignalStrength.CRITICAL)
    high = sum(1 for s in signals if s.strength == SignalStrength.HIGH)
    medium = len(signals) - critical - high

    hot_zones = frozenset(
        s.region for s in signals
        if s.region and s.strength != SignalStrength.MEDIUM
        and (zones is None or s.region in zones)
    )
    level, multiplier = _level_for(critical, high)

    logger.info(
        "[threat] Assessed %s (x%.2f) from %d signals (%d critical, %d high), hot zones: %s",
        level.value, multiplier, len(signals), critical, high,
        ", ".join(sorted(hot_zones)) or "none",
    )

    return ThreatAssessment(
        level=level,
        signals=signals[:max_signals],
        hot_zones=hot_zones,
        overall_multiplier=multiplier,
        signal_counts={"critical": critical, "high": high, "medium": medium},
    )
