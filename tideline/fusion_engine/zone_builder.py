"""Tideline — Dynamic Zone Builder.

Turns the static zone catalog into monitored geofences whose radius scales
with the current threat picture.

Base radius:
  - maritime hotspots: critical 300 km, high 250, elevated 200, low 150
  - chokepoints:       flat 100 km

Zone multiplier (independent of the assessment's overall multiplier):
  - matching high signal      → 1.25
  - matching critical signal  → 1.5
  - zone listed in hot zones  → 1.5
The zone multiplier never exceeds 1.5 even when the overall assessment
reaches x2.0. The two are reported separately on purpose.
"""

import logging
from typing import Optional

from backend.models import (
    MonitoredZone,
    SignalStrength,
    ThreatAssessment,
    ThreatLevel,
    ThreatSignal,
    ZoneCatalog,
    ZoneKind,
)
from fusion_engine.watchlists import DEFAULT_TABLES, SignalTables

logger = logging.getLogger("tideline.fusion")

HOTSPOT_BASE_RADIUS_KM = {
    ThreatLevel.CRITICAL: 300,
    ThreatLevel.HIGH: 250,
    ThreatLevel.ELEVATED: 200,
    ThreatLevel.LOW: 150,
}

CHOKEPOINT_RADIUS_KM = 100

# Chokepoints carry no catalog level
CHOKEPOINT_BASE_LEVEL = ThreatLevel.ELEVATED

HIGH_SIGNAL_MULTIPLIER = 1.25
CRITICAL_SIGNAL_MULTIPLIER = 1.5
HOT_ZONE_MULTIPLIER = 1.5


def signal_matches_zone(signal: ThreatSignal, zone_name: str, tables: SignalTables = DEFAULT_TABLES) -> bool:
    """A signal bears on a zone via its region tag or a topic stem for that zone."""
    if signal.region == zone_name:
        return True
    stems = tables.zone_topic_stems.get(zone_name, ())
    return any(stem in signal.id for stem in stems)


def zone_multiplier(
    zone_name: str,
    assessment: ThreatAssessment,
    tables: SignalTables = DEFAULT_TABLES,
) -> tuple[float, list[str]]:
    """Return (multiplier, provenance) for one zone."""
    multiplier = 1.0
    provenance = []

    for signal in assessment.signals:
        if not signal_matches_zone(signal, zone_name, tables):
            continue
        provenance.append(f"{signal.source.value}: {signal.name}")
        if signal.strength == SignalStrength.CRITICAL:
            multiplier = max(multiplier, CRITICAL_SIGNAL_MULTIPLIER)
        elif signal.strength == SignalStrength.HIGH:
            multiplier = max(multiplier, HIGH_SIGNAL_MULTIPLIER)

    if zone_name in assessment.hot_zones:
        multiplier = max(multiplier, HOT_ZONE_MULTIPLIER)
        provenance.append("hot zone")

    return multiplier, provenance


def _make_zone(
    name: str,
    lat: float,
    lon: float,
    kind: ZoneKind,
    base_level: ThreatLevel,
    base_radius_km: int,
    assessment: ThreatAssessment,
    tables: SignalTables,
) -> MonitoredZone:
    multiplier, provenance = zone_multiplier(name, assessment, tables)
    return MonitoredZone(
        name=name,
        lat=lat,
        lon=lon,
        kind=kind,
        base_level=base_level,
        base_radius_km=base_radius_km,
        dynamic_radius_km=round(base_radius_km * multiplier),
        threat_multiplier=multiplier,
        active_signals=provenance,
    )


def build_zones(
    catalog: ZoneCatalog,
    assessment: Optional[ThreatAssessment] = None,
    tables: SignalTables = DEFAULT_TABLES,
) -> list[MonitoredZone]:
    """Build this tick's monitored zones from the catalog and the assessment."""
    assessment = assessment or ThreatAssessment()
    maritime = set(tables.maritime_hotspots)
    zones = []

    for hotspot in catalog.hotspots:
        if hotspot.name not in maritime:
            continue
        zones.append(_make_zone(
            hotspot.name, hotspot.lat, hotspot.lon, ZoneKind.HOTSPOT, hotspot.level,
            HOTSPOT_BASE_RADIUS_KM[hotspot.level], assessment, tables,
        ))

    for chokepoint in catalog.chokepoints:
        zones.append(_make_zone(
            chokepoint.name, chokepoint.lat, chokepoint.lon, ZoneKind.CHOKEPOINT, CHOKEPOINT_BASE_LEVEL,
            CHOKEPOINT_RADIUS_KM, assessment, tables,
        ))

    inflated = sum(1 for z in zones if z.threat_multiplier > 1.0)
    logger.debug("[zones] Built %d zones (%d inflated) from catalog %s", len(zones), inflated, catalog.version)
    return zones
