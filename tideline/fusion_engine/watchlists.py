"""Tideline — Keyword tables for signal classification and zone attribution.

All keyword matching in the fusion pipeline is driven by a ``SignalTables``
instance so the lists can be updated from a JSON file without code changes.

JSON override format (every key optional, missing keys keep the default):

    {
      "correlation_watchlist": ["iran", "nuclear"],
      "narrative_watchlist": ["world-war"],
      "conflict_keywords": ["war", "strike"],
      "region_keywords": [["taiwan", "Taipei"], ["iran", "Hormuz"]],
      "zone_topic_stems": {"Hormuz": ["iran"]},
      "maritime_hotspots": ["Taipei", "Tehran"]
    }
"""

import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("tideline.fusion")

# Correlation topic stems that indicate military / geopolitical pressure
CORRELATION_WATCHLIST = (
    "military-deployment",
    "china-tensions",
    "russia-ukraine",
    "israel-gaza",
    "iran",
    "north-korea",
    "nuclear",
)

NARRATIVE_WATCHLIST = (
    "china-threat",
    "nato-russia",
    "world-war",
    "energy-crisis",
    "cyber-threat",
)

# A prediction-market question must contain one of these to count
CONFLICT_KEYWORDS = ("war", "attack", "invade", "strike", "conflict", "military")

# Ordered: the first keyword found in the text wins
REGION_KEYWORDS = (
    ("china", "Taipei"),
    ("taiwan", "Taipei"),
    ("russia", "Kyiv"),
    ("ukraine", "Kyiv"),
    ("ukrainian", "Kyiv"),
    ("israel", "Tel Aviv"),
    ("gaza", "Tel Aviv"),
    ("tehran", "Tehran"),
    ("iran", "Hormuz"),
    ("korea", "Pyongyang"),
    ("houthi", "Bab el-M"),
    ("red sea", "Bab el-M"),
)

# Correlation / narrative topic stems that inflate a zone even without a region tag
ZONE_TOPIC_STEMS = {
    "Taipei": ("china-tensions", "china-threat"),
    "Kyiv": ("russia-ukraine", "nato-russia"),
    "Tel Aviv": ("israel-gaza",),
    "Tehran": ("iran", "nuclear"),
    "Pyongyang": ("north-korea", "nuclear"),
    "Hormuz": ("iran",),
    "Bab el-M": ("israel-gaza",),
    "Bosporus": ("russia-ukraine",),
    "Malacca": ("china-tensions",),
}

# Catalog hotspots that sit on or next to contested waters
MARITIME_HOTSPOTS = (
    "Taipei",
    "Tehran",
    "Tel Aviv",
    "Pyongyang",
    "Kyiv",
    "Caracas",
    "Singapore",
)


class SignalTables(BaseModel):
    """Lookup tables consumed by signal fusion and the zone builder."""
    model_config = {"frozen": True, "extra": "ignore"}

    correlation_watchlist: tuple[str, ...] = CORRELATION_WATCHLIST
    narrative_watchlist: tuple[str, ...] = NARRATIVE_WATCHLIST
    conflict_keywords: tuple[str, ...] = CONFLICT_KEYWORDS
    region_keywords: tuple[tuple[str, str], ...] = REGION_KEYWORDS
    zone_topic_stems: dict[str, tuple[str, ...]] = Field(default_factory=lambda: dict(ZONE_TOPIC_STEMS))
    maritime_hotspots: tuple[str, ...] = MARITIME_HOTSPOTS

    @field_validator("correlation_watchlist", "narrative_watchlist", "conflict_keywords")
    @classmethod
    def lower_keywords(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        return tuple(v.lower() for v in value)

    @field_validator("region_keywords", mode="before")
    @classmethod
    def pairs_from_mapping(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return list(value.items())
        return value

    @field_validator("region_keywords")
    @classmethod
    def lower_region_keys(cls, value: tuple[tuple[str, str], ...]) -> tuple[tuple[str, str], ...]:
        return tuple((keyword.lower(), zone) for keyword, zone in value)

    @field_validator("zone_topic_stems")
    @classmethod
    def lower_stems(cls, value: dict[str, tuple[str, ...]]) -> dict[str, tuple[str, ...]]:
        return {zone: tuple(s.lower() for s in stems) for zone, stems in value.items()}


DEFAULT_TABLES = SignalTables()


def load_signal_tables(path: Optional[str] = None) -> SignalTables:
    """Load keyword tables from a JSON file, or the built-in defaults."""
    if not path:
        return DEFAULT_TABLES

    try:
        tables = SignalTables.model_validate_json(Path(path).read_text(encoding="utf-8"))
        logger.info("[tables] Loaded signal tables from %s", path)
        return tables
    except (OSError, ValueError) as e:
        logger.warning("[tables] Failed to load %s (%s), using built-in tables", path, e)
        return DEFAULT_TABLES
