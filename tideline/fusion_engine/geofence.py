"""Tideline — Vessel Geofence Matcher.

Scans every strategic vessel against every monitored zone (O(vessels x zones)
per tick; both sets are small once non-strategic traffic is dropped).

Proximity, with R = zone.dynamic_radius_km:
  - d < 0.3R        → entered
  - d < 0.7R        → near
  - d <= R          → transiting
  - R < d <= 1.5R   → approach (privileged vessel + hot zone only):
                      transiting / medium

Priority starts low (high for military / law-enforcement vessels) and steps
up once each for: hot zone, critical base level, entered. Capped at critical.
"""

import logging
from typing import Iterable, Optional

from backend.models import (
    AlertPriority,
    AlertType,
    MonitoredZone,
    ThreatAssessment,
    ThreatLevel,
    Vessel,
    VesselAlert,
)
from fusion_engine.geo import bearing_deg, distance_km

logger = logging.getLogger("tideline.fusion")

# AIS ship type codes
MILITARY_TYPE = 35
SEARCH_AND_RESCUE_TYPE = 51
LAW_ENFORCEMENT_TYPE = 55
NONCOMBATANT_TYPE = 59  # naval auxiliary
TANKER_TYPES = frozenset(range(80, 90))

PRIVILEGED_TYPES = frozenset({MILITARY_TYPE, LAW_ENFORCEMENT_TYPE})
STRATEGIC_TYPES = PRIVILEGED_TYPES | {SEARCH_AND_RESCUE_TYPE, NONCOMBATANT_TYPE} | TANKER_TYPES

ENTERED_RATIO = 0.3
NEAR_RATIO = 0.7
APPROACH_RATIO = 1.5

# Escalation order, lowest first
PRIORITY_LADDER = [
    AlertPriority.LOW,
    AlertPriority.MEDIUM,
    AlertPriority.HIGH,
    AlertPriority.CRITICAL,
]


def is_strategic(vessel: Vessel) -> bool:
    return vessel.ship_type in STRATEGIC_TYPES


def is_privileged(vessel: Vessel) -> bool:
    """Military or law-enforcement contact."""
    return vessel.ship_type in PRIVILEGED_TYPES


def classify_proximity(distance: float, radius_km: float) -> Optional[AlertType]:
    """Alert type for a distance inside the radius, None outside it."""
    if distance > radius_km:
        return None
    if distance < ENTERED_RATIO * radius_km:
        return AlertType.ENTERED
    if distance < NEAR_RATIO * radius_km:
        return AlertType.NEAR
    return AlertType.TRANSITING


def escalate(priority: AlertPriority, steps: int = 1) -> AlertPriority:
    idx = min(PRIORITY_LADDER.index(priority) + steps, len(PRIORITY_LADDER) - 1)
    return PRIORITY_LADDER[idx]


def escalate_priority(
    vessel: Vessel,
    zone: MonitoredZone,
    alert_type: AlertType,
    hot_zones: frozenset[str],
) -> AlertPriority:
    priority = AlertPriority.HIGH if is_privileged(vessel) else AlertPriority.LOW
    if zone.name in hot_zones:
        priority = escalate(priority)
    if zone.base_level == ThreatLevel.CRITICAL:
        priority = escalate(priority)
    if alert_type == AlertType.ENTERED:
        priority = escalate(priority)
    return priority


def match_vessel(vessel: Vessel, zone: MonitoredZone, hot_zones: frozenset[str]) -> Optional[VesselAlert]:
    """Geofence one vessel against one zone. Caller guarantees a strategic, positioned vessel."""
    d = distance_km(vessel.lat, vessel.lon, zone.lat, zone.lon)
    radius = zone.dynamic_radius_km
    alert_type = classify_proximity(d, radius)
    approach = False

    if alert_type is not None:
        priority = escalate_priority(vessel, zone, alert_type, hot_zones)
    elif d <= APPROACH_RATIO * radius and is_privileged(vessel) and zone.name in hot_zones:
        alert_type = AlertType.TRANSITING
        priority = AlertPriority.MEDIUM
        approach = True
    else:
        return None

    return VesselAlert(
        id=f"{vessel.mmsi}-{zone.name}",
        vessel=vessel,
        zone=zone,
        distance_km=round(d),
        bearing_deg=round(bearing_deg(zone.lat, zone.lon, vessel.lat, vessel.lon), 1),
        type=alert_type,
        priority=priority,
        approach=approach,
        timestamp=vessel.last_update,
    )


def match_vessels(
    vessels: Iterable[Vessel],
    zones: list[MonitoredZone],
    assessment: Optional[ThreatAssessment] = None,
) -> list[VesselAlert]:
    """Geofence every strategic vessel with a position against every zone."""
    hot_zones = assessment.hot_zones if assessment else frozenset()
    alerts = []
    scanned = 0

    for vessel in vessels:
        if not vessel.has_position or not is_strategic(vessel):
            continue
        scanned += 1
        for zone in zones:
            alert = match_vessel(vessel, zone, hot_zones)
            if alert is not None:
                alerts.append(alert)

    logger.debug("[geofence] %d strategic vessels x %d zones → %d alerts", scanned, len(zones), len(alerts))
    return alerts
