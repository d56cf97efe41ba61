"""Shared fixtures for Tideline tests.

Vessels get a fixed ``last_update`` so alert timestamps (and therefore
whole pipeline results) compare equal across runs.
"""

import math
from datetime import datetime, timezone

import pytest

from backend.models import MonitoredZone, ThreatLevel, Vessel, ZoneKind
from backend.zone_catalog import DEFAULT_CATALOG
from fusion_engine.geo import EARTH_RADIUS_KM

FIXED_TIME = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

MILITARY = 35
LAW_ENFORCEMENT = 55
TANKER = 80
CARGO = 70


def north_of(lat: float, km: float) -> float:
    """Latitude ``km`` due north of ``lat`` (exact for the haversine sphere)."""
    return lat + math.degrees(km / EARTH_RADIUS_KM)


@pytest.fixture()
def make_vessel():
    def _make(mmsi="366000001", lat=0.0, lon=0.0, ship_type=MILITARY, **kwargs):
        return Vessel(mmsi=mmsi, lat=lat, lon=lon, ship_type=ship_type, last_update=FIXED_TIME, **kwargs)
    return _make


@pytest.fixture()
def make_zone():
    def _make(name="Test Zone", lat=0.0, lon=0.0, radius=100, base_level=ThreatLevel.ELEVATED,
              kind=ZoneKind.HOTSPOT, multiplier=1.0):
        return MonitoredZone(
            name=name, lat=lat, lon=lon, kind=kind, base_level=base_level,
            base_radius_km=radius, dynamic_radius_km=round(radius * multiplier),
            threat_multiplier=multiplier,
        )
    return _make


@pytest.fixture()
def catalog():
    return DEFAULT_CATALOG


@pytest.fixture()
def conflict_markets():
    """Two critical prediction markets attributed to two different zones."""
    return [
        {"id": "pm-taiwan", "question": "Will China invade Taiwan in 2025?", "yes": 60},
        {"id": "pm-russia", "question": "Will Russia strike a NATO member?", "yes": 55},
    ]
