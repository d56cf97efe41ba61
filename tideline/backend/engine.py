"""Tideline — Geofence Recompute Engine.

Holds the latest value of every pipeline input and the latest published
result. Any input change triggers a full recompute; ticks never overlap,
and triggers that arrive while a tick is running collapse into a single
follow-up tick.
"""

import logging
from datetime import datetime
from typing import Awaitable, Callable, Iterable, Optional

from backend.models import MonitoredZone, ThreatAssessment, Vessel, VesselAlert, ZoneCatalog, utcnow
from backend.zone_catalog import DEFAULT_CATALOG
from fusion_engine.alert_ranker import MAX_ALERTS, summarize_alerts
from fusion_engine.maritime_pipeline import PipelineResult, run_pipeline
from fusion_engine.signal_fusion import MAX_SIGNALS
from fusion_engine.watchlists import DEFAULT_TABLES, SignalTables
from fusion_engine.zone_builder import build_zones

logger = logging.getLogger("tideline.engine")

SOURCES = ("vessels", "correlation", "narrative", "predictions", "catalog")

ResultCallback = Callable[[PipelineResult], Awaitable[None]]


class GeofenceEngine:
    """Owns pipeline inputs and the last published tick."""

    def __init__(
        self,
        catalog: Optional[ZoneCatalog] = None,
        tables: Optional[SignalTables] = None,
        max_signals: int = MAX_SIGNALS,
        max_alerts: int = MAX_ALERTS,
        on_result: Optional[ResultCallback] = None,
    ):
        self.catalog = catalog or DEFAULT_CATALOG
        self.tables = tables or DEFAULT_TABLES
        self.max_signals = max_signals
        self.max_alerts = max_alerts
        self.on_result = on_result

        self._vessels: list = []
        self._correlation: list = []
        self._narrative: list = []
        self._predictions: list = []

        self._result = PipelineResult(
            assessment=ThreatAssessment(),
            zones=build_zones(self.catalog, tables=self.tables),
        )
        self._updated: dict[str, datetime] = {}
        self._counts: dict[str, int] = {}
        self._in_flight = False
        self._dirty = False
        self.tick_count = 0
        self.failed_ticks = 0
        self.last_tick: Optional[datetime] = None

    # ── Read-only views ─────────────────────────────────

    @property
    def assessment(self) -> ThreatAssessment:
        return self._result.assessment

    @property
    def alerts(self) -> list[VesselAlert]:
        return list(self._result.alerts)

    @property
    def zones(self) -> list[MonitoredZone]:
        return list(self._result.zones)

    @property
    def result(self) -> PipelineResult:
        return self._result

    @property
    def vessels(self) -> list:
        return list(self._vessels)

    def data_freshness(self) -> dict:
        return {
            source: {
                "count": self._counts.get(source, 0),
                "last_updated": self._updated[source].isoformat() if source in self._updated else None,
            }
            for source in SOURCES
        }

    def state(self) -> dict:
        """Payload for the alert_update WebSocket message and /api/alerts."""
        alerts = self._result.alerts
        return {
            "assessment": self._result.assessment,
            "alerts": alerts,
            "summary": summarize_alerts(alerts),
            "candidates": self._result.candidate_count,
        }

    # ── Inputs ──────────────────────────────────────────

    async def update_vessels(self, vessels: Iterable[Vessel]):
        self._vessels = list(vessels or [])
        self._touch("vessels", len(self._vessels))
        await self.request_recompute()

    async def update_correlation(self, topics: Iterable):
        self._correlation = list(topics or [])
        self._touch("correlation", len(self._correlation))
        await self.request_recompute()

    async def update_narrative(self, topics: Iterable):
        self._narrative = list(topics or [])
        self._touch("narrative", len(self._narrative))
        await self.request_recompute()

    async def update_predictions(self, markets: Iterable):
        self._predictions = list(markets or [])
        self._touch("predictions", len(self._predictions))
        await self.request_recompute()

    async def update_catalog(self, catalog: ZoneCatalog):
        self.catalog = catalog
        self._touch("catalog", len(catalog.hotspots) + len(catalog.chokepoints))
        await self.request_recompute()

    def _touch(self, source: str, count: int):
        self._updated[source] = utcnow()
        self._counts[source] = count

    # ── Recompute ───────────────────────────────────────

    async def request_recompute(self):
        """Run ticks until no trigger is outstanding. Re-entrant calls only mark dirty."""
        if self._in_flight:
            self._dirty = True
            return

        self._in_flight = True
        try:
            while True:
                self._dirty = False
                if self._tick() and self.on_result is not None:
                    await self.on_result(self._result)
                if not self._dirty:
                    break
        finally:
            self._in_flight = False

    def _tick(self) -> bool:
        try:
            result = run_pipeline(
                self._vessels,
                self._correlation,
                self._narrative,
                self._predictions,
                self.catalog,
                tables=self.tables,
                max_signals=self.max_signals,
                max_alerts=self.max_alerts,
            )
        except Exception:
            self.failed_ticks += 1
            logger.exception("[engine] Recompute failed, keeping previous result")
            return False

        self._result = result
        self.tick_count += 1
        self.last_tick = utcnow()
        return True
