"""Tideline — Static Zone Catalog.

Named geopolitical hotspots (with a base threat level) and strategic
maritime chokepoints. Treated as versioned configuration data; a JSON file
with the same shape as ``ZoneCatalog`` can replace the built-in table via
``TIDELINE_ZONE_CATALOG_PATH``.
"""

import logging
from pathlib import Path
from typing import Optional

from backend.models import CatalogChokepoint, CatalogHotspot, ThreatLevel, ZoneCatalog

logger = logging.getLogger("tideline.config")

CATALOG_VERSION = "2025.1"

HOTSPOTS = [
    CatalogHotspot(name="DC", lat=38.9, lon=-77.0, level=ThreatLevel.LOW,
                   desc="Washington DC — US political center, White House, Pentagon, Capitol"),
    CatalogHotspot(name="Moscow", lat=55.75, lon=37.6, level=ThreatLevel.ELEVATED,
                   desc="Moscow — Kremlin, Russian military command, sanctions hub"),
    CatalogHotspot(name="Beijing", lat=39.9, lon=116.4, level=ThreatLevel.ELEVATED,
                   desc="Beijing — CCP headquarters, US-China tensions, tech rivalry"),
    CatalogHotspot(name="Kyiv", lat=50.45, lon=30.5, level=ThreatLevel.HIGH,
                   desc="Kyiv — Active conflict zone, Russian invasion ongoing"),
    CatalogHotspot(name="Taipei", lat=25.03, lon=121.5, level=ThreatLevel.ELEVATED,
                   desc="Taipei — Taiwan Strait tensions, TSMC, China threat"),
    CatalogHotspot(name="Tehran", lat=35.7, lon=51.4, level=ThreatLevel.CRITICAL,
                   desc="Tehran — Regime instability, nuclear program, Gulf posture"),
    CatalogHotspot(name="Tel Aviv", lat=32.07, lon=34.78, level=ThreatLevel.HIGH,
                   desc="Tel Aviv — Israel-Gaza conflict, active military operations"),
    CatalogHotspot(name="London", lat=51.5, lon=-0.12, level=ThreatLevel.LOW,
                   desc="London — Financial center, Five Eyes, NATO ally"),
    CatalogHotspot(name="Brussels", lat=50.85, lon=4.35, level=ThreatLevel.LOW,
                   desc="Brussels — EU/NATO headquarters, European policy"),
    CatalogHotspot(name="Pyongyang", lat=39.03, lon=125.75, level=ThreatLevel.ELEVATED,
                   desc="Pyongyang — North Korea nuclear threat, missile tests"),
    CatalogHotspot(name="Riyadh", lat=24.7, lon=46.7, level=ThreatLevel.ELEVATED,
                   desc="Riyadh — Saudi oil, OPEC+, Yemen conflict, regional power"),
    CatalogHotspot(name="Delhi", lat=28.6, lon=77.2, level=ThreatLevel.LOW,
                   desc="Delhi — India rising power, China border tensions"),
    CatalogHotspot(name="Singapore", lat=1.35, lon=103.82, level=ThreatLevel.LOW,
                   desc="Singapore — Shipping chokepoint, Asian finance hub"),
    CatalogHotspot(name="Tokyo", lat=35.68, lon=139.76, level=ThreatLevel.LOW,
                   desc="Tokyo — US ally, regional security, economic power"),
    CatalogHotspot(name="Caracas", lat=10.5, lon=-66.9, level=ThreatLevel.HIGH,
                   desc="Caracas — Venezuela crisis, US sanctions, Caribbean naval presence"),
    CatalogHotspot(name="Nuuk", lat=64.18, lon=-51.72, level=ThreatLevel.ELEVATED,
                   desc="Nuuk — Greenland, Arctic strategy, Denmark tensions"),
]

CHOKEPOINTS = [
    CatalogChokepoint(name="Suez", lat=30.0, lon=32.5,
                      desc="Suez Canal — 12% of global trade, Europe-Asia route"),
    CatalogChokepoint(name="Panama", lat=9.1, lon=-79.7,
                      desc="Panama Canal — Americas transit, Pacific-Atlantic link"),
    CatalogChokepoint(name="Hormuz", lat=26.5, lon=56.5,
                      desc="Strait of Hormuz — 21% of global oil, Persian Gulf exit"),
    CatalogChokepoint(name="Malacca", lat=2.5, lon=101.0,
                      desc="Strait of Malacca — 25% of global trade, China supply line"),
    CatalogChokepoint(name="Bab el-M", lat=12.5, lon=43.3,
                      desc="Bab el-Mandeb — Red Sea gateway, Houthi threat zone"),
    CatalogChokepoint(name="Gibraltar", lat=36.0, lon=-5.5,
                      desc="Strait of Gibraltar — Mediterranean access"),
    CatalogChokepoint(name="Bosporus", lat=41.1, lon=29.0,
                      desc="Bosporus Strait — Black Sea access, Russia exports"),
]

DEFAULT_CATALOG = ZoneCatalog(version=CATALOG_VERSION, hotspots=HOTSPOTS, chokepoints=CHOKEPOINTS)


def load_zone_catalog(path: Optional[str] = None) -> ZoneCatalog:
    """Return the built-in catalog, or one loaded from a JSON file."""
    if not path:
        return DEFAULT_CATALOG

    try:
        catalog = ZoneCatalog.model_validate_json(Path(path).read_text(encoding="utf-8"))
        logger.info(
            "Zone catalog %s loaded from %s (%d hotspots, %d chokepoints)",
            catalog.version, path, len(catalog.hotspots), len(catalog.chokepoints),
        )
        return catalog
    except (OSError, ValueError) as e:
        logger.warning("Failed to load zone catalog %s (%s), using built-in %s", path, e, CATALOG_VERSION)
        return DEFAULT_CATALOG
