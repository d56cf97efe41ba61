"""Tideline — Maritime Threat Pipeline.

One tick of the geofencing engine, recomputed from scratch:

    correlation / narrative / predictions
        → assess_threat  → ThreatAssessment
        → build_zones    → MonitoredZone[]
        → match_vessels  → VesselAlert[] (all candidates)
        → rank_alerts    → VesselAlert[] (ranked, capped)

Pure and synchronous: no I/O, inputs are never mutated, and identical
inputs give an identical result.
"""

import logging
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from backend.models import MonitoredZone, ThreatAssessment, Vessel, VesselAlert, ZoneCatalog
from fusion_engine.alert_ranker import MAX_ALERTS, rank_alerts
from fusion_engine.geofence import match_vessels
from fusion_engine.signal_fusion import MAX_SIGNALS, assess_threat, coerce_records
from fusion_engine.watchlists import DEFAULT_TABLES, SignalTables
from fusion_engine.zone_builder import build_zones

logger = logging.getLogger("tideline.fusion")


class PipelineResult(BaseModel):
    model_config = {"frozen": True}

    assessment: ThreatAssessment
    zones: list[MonitoredZone] = Field(default_factory=list)
    alerts: list[VesselAlert] = Field(default_factory=list)
    candidate_count: int = 0


def zone_names(catalog: ZoneCatalog, tables: SignalTables = DEFAULT_TABLES) -> frozenset[str]:
    """Names of every zone ``build_zones`` will emit for this catalog."""
    maritime = set(tables.maritime_hotspots)
    return frozenset(
        [h.name for h in catalog.hotspots if h.name in maritime]
        + [c.name for c in catalog.chokepoints]
    )


def run_pipeline(
    vessels: Optional[Iterable],
    correlation: Optional[Iterable],
    narrative: Optional[Iterable],
    predictions: Optional[Iterable],
    catalog: ZoneCatalog,
    *,
    tables: SignalTables = DEFAULT_TABLES,
    max_signals: int = MAX_SIGNALS,
    max_alerts: int = MAX_ALERTS,
) -> PipelineResult:
    assessment = assess_threat(
        correlation, narrative, predictions,
        tables=tables,
        max_signals=max_signals,
        known_zones=zone_names(catalog, tables),
    )
    zones = build_zones(catalog, assessment, tables)
    candidates = match_vessels(coerce_records(vessels, Vessel), zones, assessment)
    alerts = rank_alerts(candidates, limit=max_alerts)

    logger.info(
        "[pipeline] %s threat, %d zones, %d/%d alerts published",
        assessment.level.value, len(zones), len(alerts), len(candidates),
    )
    return PipelineResult(assessment=assessment, zones=zones, alerts=alerts, candidate_count=len(candidates))


def recompute(
    vessels: Optional[Iterable],
    correlation: Optional[Iterable],
    narrative: Optional[Iterable],
    predictions: Optional[Iterable],
    catalog: ZoneCatalog,
    **kwargs,
) -> tuple[ThreatAssessment, list[VesselAlert]]:
    """Run one full tick and return (assessment, ranked alerts)."""
    result = run_pipeline(vessels, correlation, narrative, predictions, catalog, **kwargs)
    return result.assessment, result.alerts
