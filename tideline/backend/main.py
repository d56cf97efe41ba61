"""
Tideline — Main FastAPI Application
Maritime Threat-Weighted Geofencing Backend
"""

import asyncio
import logging
import sys
import os

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from contextlib import asynccontextmanager
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from backend.config import settings
from backend.engine import GeofenceEngine
from backend.models import (
    CorrelationTopic,
    IntervalRequest,
    NarrativeTopic,
    PredictionMarket,
    utcnow,
)
from backend.websocket_manager import ConnectionManager
from backend.zone_catalog import load_zone_catalog

from fusion_engine.maritime_pipeline import PipelineResult
from fusion_engine.watchlists import load_signal_tables

from collectors.prediction_collector import PredictionCollector
from collectors.vessel_stream import VesselStream

# ─── Logging ───────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(name)-20s │ %(levelname)-7s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("tideline.main")

# ─── Globals ───────────────────────────────────────
ws_manager = ConnectionManager()


async def broadcast_result(result: PipelineResult):
    await ws_manager.broadcast("alert_update", engine.state())


engine = GeofenceEngine(
    catalog=load_zone_catalog(settings.zone_catalog_path),
    tables=load_signal_tables(settings.signal_tables_path),
    max_signals=settings.max_signals,
    max_alerts=settings.max_alerts,
    on_result=broadcast_result,
)
vessel_stream = VesselStream()
prediction_collector = PredictionCollector()


async def consume_vessels():
    """Feed every published vessel snapshot into the engine."""
    queue = vessel_stream.subscribe()
    try:
        while True:
            vessels = await queue.get()
            await engine.update_vessels(vessels)
    finally:
        vessel_stream.unsubscribe(queue)


async def run_predictions():
    """A failed fetch yields [], so the prediction source drops to zero signals."""
    async for markets in prediction_collector.start():
        await engine.update_predictions(markets)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: open the vessel feed and collectors on startup, close them on shutdown."""
    logger.info("═══════════════════════════════════════════════")
    logger.info("  TIDELINE — Maritime Threat Geofencing Engine ")
    logger.info("  Version %s", settings.app_version)
    logger.info("═══════════════════════════════════════════════")

    tasks = [
        asyncio.create_task(consume_vessels()),
        asyncio.create_task(run_predictions()),
    ]
    logger.info("Started collector: %s", prediction_collector.name)

    await vessel_stream.connect()
    logger.info("Vessel stream: %s", vessel_stream.status.value)

    yield

    # Shutdown
    logger.info("Shutting down Tideline...")
    await vessel_stream.disconnect()
    await prediction_collector.stop()
    for task in tasks:
        task.cancel()


# ─── FastAPI App ───────────────────────────────────
app = FastAPI(
    title="Tideline",
    description="Maritime threat-weighted geofencing",
    version=settings.app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── REST Endpoints ───────────────────────────────
@app.get("/")
async def root():
    return {
        "name": "Tideline",
        "version": settings.app_version,
        "status": "operational",
        "stream": vessel_stream.status.value,
        "threat_level": engine.assessment.level.value,
        "alerts": len(engine.alerts),
        "ws_clients": ws_manager.connection_count,
    }


@app.get("/api/alerts")
async def get_alerts():
    """Ranked vessel alerts from the last tick, with per-priority counts."""
    return engine.state()


@app.get("/api/threat")
async def get_threat():
    """Current fused threat assessment."""
    return engine.assessment


@app.get("/api/zones")
async def get_zones():
    """Monitored zones with this tick's dynamic radii."""
    zones = engine.zones
    return {
        "catalog_version": engine.catalog.version,
        "count": len(zones),
        "zones": zones,
    }


@app.get("/api/vessels")
async def get_vessels():
    vessels = vessel_stream.snapshot()
    return {"count": len(vessels), "vessels": vessels}


@app.get("/api/data-freshness")
async def get_data_freshness():
    """Get last-update timestamp per pipeline input."""
    return {
        "sources": engine.data_freshness(),
        "ticks": engine.tick_count,
        "failed_ticks": engine.failed_ticks,
        "last_tick": engine.last_tick,
        "timestamp": utcnow().isoformat(),
    }


# ─── Signal ingestion ─────────────────────────────
@app.post("/api/signals/correlation")
async def post_correlation(topics: list[CorrelationTopic]):
    await engine.update_correlation(topics)
    return {"accepted": len(topics), "assessment": engine.assessment}


@app.post("/api/signals/narrative")
async def post_narrative(topics: list[NarrativeTopic]):
    await engine.update_narrative(topics)
    return {"accepted": len(topics), "assessment": engine.assessment}


@app.post("/api/signals/predictions")
async def post_predictions(markets: list[PredictionMarket]):
    await engine.update_predictions(markets)
    return {"accepted": len(markets), "assessment": engine.assessment}


# ─── Stream control ───────────────────────────────
@app.get("/api/stream")
async def get_stream():
    return vessel_stream.stats()


@app.post("/api/stream/connect")
async def stream_connect():
    await vessel_stream.connect()
    return vessel_stream.stats()


@app.post("/api/stream/disconnect")
async def stream_disconnect():
    await vessel_stream.disconnect()
    await engine.update_vessels([])
    return vessel_stream.stats()


@app.post("/api/stream/pause")
async def stream_pause():
    vessel_stream.pause()
    return vessel_stream.stats()


@app.post("/api/stream/resume")
async def stream_resume():
    vessel_stream.resume()
    return vessel_stream.stats()


@app.post("/api/stream/clear")
async def stream_clear():
    vessel_stream.clear()
    await engine.update_vessels([])
    return vessel_stream.stats()


@app.post("/api/stream/interval")
async def stream_interval(body: IntervalRequest):
    vessel_stream.set_update_interval(body.interval_ms)
    return vessel_stream.stats()


# ─── WebSocket Endpoint ───────────────────────────
@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """WebSocket endpoint for real-time alert streaming."""
    await ws_manager.connect(websocket)

    # Send initial state
    await ws_manager.send_to(websocket, "initial_state", {
        **engine.state(),
        "zones": engine.zones,
        "stream": vessel_stream.stats(),
    })

    try:
        while True:
            data = await websocket.receive_text()
            logger.debug("Client message: %s", data)
    except WebSocketDisconnect:
        ws_manager.disconnect(websocket)


# ─── Run ───────────────────────────────────────────
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
    )
