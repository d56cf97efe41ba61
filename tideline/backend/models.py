"""Tideline — Maritime Geofencing Schema & Data Models."""

from pydantic import AliasChoices, BaseModel, Field, field_validator
from typing import Optional, Any
from enum import Enum
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_str(value: Any) -> Any:
    # AIS feeds and market APIs send numeric identifiers
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(int(value))
    return value


class SignalSource(str, Enum):
    """Upstream feeds that can raise a threat signal."""
    CORRELATION = "correlation"
    NARRATIVE = "narrative"
    PREDICTION = "prediction"


class SignalStrength(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"


class ThreatLevel(str, Enum):
    """Overall threat level, also used as a catalog hotspot's base level."""
    CRITICAL = "critical"
    HIGH = "high"
    ELEVATED = "elevated"
    LOW = "low"


class ZoneKind(str, Enum):
    HOTSPOT = "hotspot"
    CHOKEPOINT = "chokepoint"


class AlertType(str, Enum):
    ENTERED = "entered"
    NEAR = "near"
    TRANSITING = "transiting"


class AlertPriority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ConnectionStatus(str, Enum):
    """Vessel stream transport states."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    NO_API_KEY = "no_api_key"


# ─── Vessels ───────────────────────────────────────

class Vessel(BaseModel):
    """A tracked maritime contact, upserted by MMSI from the AIS stream."""
    mmsi: str
    name: Optional[str] = None
    imo: Optional[str] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    course: float = 0.0
    speed: float = 0.0
    heading: Optional[float] = None
    ship_type: Optional[int] = None
    ship_type_name: Optional[str] = None
    destination: Optional[str] = None
    eta: Optional[str] = None
    draught: Optional[float] = None
    length: Optional[float] = None
    width: Optional[float] = None
    callsign: Optional[str] = None
    last_update: datetime = Field(default_factory=utcnow)

    @field_validator("mmsi", mode="before")
    @classmethod
    def coerce_mmsi(cls, value: Any) -> Any:
        return _as_str(value)

    @property
    def has_position(self) -> bool:
        return self.lat is not None and self.lon is not None


# ─── Upstream signal records ───────────────────────

class CorrelationTopic(BaseModel):
    """Momentum record produced by the (external) correlation analyzer."""
    id: str = Field(validation_alias=AliasChoices("id", "topic"))
    name: str = ""
    momentum: str = "stable"

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return _as_str(value)


class NarrativeTopic(BaseModel):
    """Trend record produced by the (external) narrative analyzer."""
    id: str = Field(validation_alias=AliasChoices("id", "narrative"))
    name: str = ""
    trend: str = Field(default="", validation_alias=AliasChoices("trend", "stage"))

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return _as_str(value)


class PredictionMarket(BaseModel):
    """A binary prediction-market question with its yes-probability (0-100)."""
    id: str
    question: str
    yes: float = 50.0
    category: Optional[str] = None
    volume: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: Any) -> Any:
        return _as_str(value)


# ─── Fused assessment ──────────────────────────────

class ThreatSignal(BaseModel):
    """One detected indicator of elevated risk."""
    model_config = {"frozen": True}

    source: SignalSource
    id: str
    name: str
    strength: SignalStrength
    region: Optional[str] = None


class ThreatAssessment(BaseModel):
    """Fused summary of all threat signals for the current tick."""
    model_config = {"frozen": True}

    level: ThreatLevel = ThreatLevel.LOW
    signals: list[ThreatSignal] = Field(default_factory=list)
    hot_zones: frozenset[str] = frozenset()
    overall_multiplier: float = Field(default=1.0, ge=1.0)
    signal_counts: dict[str, int] = Field(default_factory=dict)


# ─── Zones ─────────────────────────────────────────

class CatalogHotspot(BaseModel):
    name: str
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    level: ThreatLevel
    desc: str = ""


class CatalogChokepoint(BaseModel):
    name: str
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    desc: str = ""


class ZoneCatalog(BaseModel):
    """Static, versioned table of named hotspots and chokepoints."""
    version: str
    hotspots: list[CatalogHotspot] = Field(default_factory=list)
    chokepoints: list[CatalogChokepoint] = Field(default_factory=list)


class MonitoredZone(BaseModel):
    """A catalog area with its detection radius scaled for the current tick."""
    model_config = {"frozen": True}

    name: str
    lat: float
    lon: float
    kind: ZoneKind
    base_level: ThreatLevel
    base_radius_km: int
    dynamic_radius_km: int
    threat_multiplier: float = 1.0
    active_signals: list[str] = Field(default_factory=list)


# ─── Alerts ────────────────────────────────────────

class VesselAlert(BaseModel):
    """A vessel/zone proximity event. ``id`` is unique per (vessel, zone)."""
    model_config = {"frozen": True}

    id: str
    vessel: Vessel
    zone: MonitoredZone
    distance_km: int
    bearing_deg: float = 0.0
    type: AlertType
    priority: AlertPriority
    approach: bool = False
    timestamp: datetime


class WebSocketMessage(BaseModel):
    """WebSocket message envelope."""
    action: str  # "initial_state", "alert_update", "stream_status"
    data: Any
    timestamp: datetime = Field(default_factory=utcnow)


class IntervalRequest(BaseModel):
    """Body of POST /api/stream/interval."""
    interval_ms: int = Field(gt=0)
