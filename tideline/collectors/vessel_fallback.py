"""Tideline — Simulated Vessel Roster.

Stand-in traffic used when no AISStream key is configured. Vessels sit on
the strategic chokepoints and shipping lanes the geofence watches, and
drift along their course between refreshes.
"""

import math
import random
from typing import Optional

from backend.models import Vessel, utcnow
from collectors.ais_types import ship_type_name

# (mmsi, name, lat, lon, course, speed, heading, type, destination, length, width)
FALLBACK_VESSELS = [
    # Strait of Hormuz
    ("212345001", "CRUDE VOYAGER", 26.5667, 56.25, 135, 12.5, 138, 80, "SINGAPORE", 333, 60),
    ("212345002", "PERSIAN GULF STAR", 26.45, 56.35, 310, 11.2, 312, 80, "RAS TANURA", 274, 48),
    # Suez Canal
    ("212345003", "EVER FORTUNE", 30.45, 32.35, 350, 8.5, 352, 70, "ROTTERDAM", 400, 59),
    ("212345004", "MAERSK TITAN", 30.25, 32.34, 170, 7.8, 172, 70, "JEDDAH", 366, 51),
    # Strait of Malacca
    ("212345005", "PACIFIC TRADER", 1.35, 103.8, 290, 14.2, 288, 70, "MUMBAI", 294, 32),
    ("212345006", "ENERGY PIONEER", 1.25, 103.65, 110, 13.1, 112, 81, "YOKOHAMA", 250, 44),
    # Taiwan Strait
    ("212345007", "GLOBAL UNITY", 24.5, 119.5, 25, 15.5, 28, 70, "SHANGHAI", 336, 46),
    ("212345008", "ORIENTAL SPIRIT", 24.8, 119.8, 205, 14.8, 202, 70, "KAOHSIUNG", 280, 40),
    # Bab el-Mandeb
    ("212345009", "RED SEA CARRIER", 12.65, 43.45, 340, 11.8, 342, 70, "SUEZ", 225, 32),
    ("212345010", "ARABIAN VOYAGER", 12.55, 43.35, 160, 10.5, 158, 80, "DJIBOUTI", 183, 32),
    # Panama Canal approaches
    ("212345011", "ATLANTIC EXPRESS", 9.38, -79.92, 315, 6.5, 318, 70, "BALBOA", 294, 32),
    ("212345012", "PACIFIC BRIDGE", 8.95, -79.55, 135, 7.2, 132, 70, "COLON", 260, 32),
    # South China Sea
    ("212345013", "DRAGON FORTUNE", 10.5, 114.2, 45, 16.2, 48, 70, "HONG KONG", 366, 51),
    # Black Sea
    ("212345014", "BLACK SEA GRAIN", 44.15, 33.45, 250, 10.8, 248, 70, "ISTANBUL", 190, 28),
    # Persian Gulf
    ("212345015", "GULF ENTERPRISE", 27.15, 52.55, 180, 9.5, 178, 80, "BANDAR ABBAS", 228, 42),
    # East China Sea
    ("212345016", "EAST WIND", 25.75, 123.5, 280, 13.5, 282, 30, "NAHA", 45, 8),
    # Korean Peninsula
    ("212345017", "KOREA STAR", 35.1, 129.5, 90, 14.2, 88, 70, "BUSAN", 320, 45),
    # Gibraltar
    ("212345018", "MEDITERRANEAN PRIDE", 35.95, -5.6, 85, 15.8, 82, 80, "ALGECIRAS", 274, 48),
    # English Channel
    ("212345019", "CHANNEL TRADER", 50.85, 1.25, 225, 12.5, 222, 70, "LE HAVRE", 185, 28),
    # Cape of Good Hope
    ("212345020", "CAPE NAVIGATOR", -34.35, 18.45, 75, 14.5, 72, 80, "DURBAN", 333, 60),
    # Naval and coast guard presence
    ("212345021", "GULF SENTINEL", 12.8, 43.2, 320, 16.0, 318, 35, "", 155, 20),
    ("212345022", "STRAIT GUARDIAN", 24.9, 120.6, 200, 18.0, 198, 55, "KEELUNG", 102, 14),
]


def fallback_vessels() -> list[Vessel]:
    """Fresh copy of the roster at its anchor positions."""
    now = utcnow()
    return [
        Vessel(
            mmsi=mmsi, name=name, lat=lat, lon=lon, course=course, speed=speed, heading=heading,
            ship_type=stype, ship_type_name=ship_type_name(stype), destination=dest or None,
            length=length, width=width, last_update=now,
        )
        for (mmsi, name, lat, lon, course, speed, heading, stype, dest, length, width) in FALLBACK_VESSELS
    ]


def drift_vessels(vessels: list[Vessel], seconds: float, rng: Optional[random.Random] = None) -> list[Vessel]:
    """Advance each vessel along its course for ``seconds`` with slight jitter."""
    rng = rng or random
    now = utcnow()
    drifted = []
    for v in vessels:
        course_rad = math.radians(v.course)
        drift_deg = v.speed * (seconds / 3600) / 60
        drifted.append(v.model_copy(update={
            "lat": round(max(-89.9, min(89.9, v.lat + drift_deg * math.cos(course_rad) + rng.uniform(-0.005, 0.005))), 4),
            "lon": round(v.lon + drift_deg * math.sin(course_rad) + rng.uniform(-0.005, 0.005), 4),
            "heading": round((v.course + rng.uniform(-2, 2)) % 360, 1),
            "speed": round(max(3.0, v.speed + rng.uniform(-0.3, 0.3)), 1),
            "last_update": now,
        }))
    return drifted
