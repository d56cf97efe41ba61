"""Tests for dynamic zone construction."""

import pytest

from backend.models import ThreatAssessment, ZoneKind
from backend.zone_catalog import load_zone_catalog, DEFAULT_CATALOG
from fusion_engine.signal_fusion import assess_threat
from fusion_engine.zone_builder import build_zones, zone_multiplier


def by_name(zones):
    return {z.name: z for z in zones}


class TestBaseRadius:
    def test_maritime_hotspots_and_all_chokepoints(self, catalog):
        zones = by_name(build_zones(catalog))
        hotspots = {n for n, z in zones.items() if z.kind == ZoneKind.HOTSPOT}
        chokepoints = {n for n, z in zones.items() if z.kind == ZoneKind.CHOKEPOINT}

        assert hotspots == {"Taipei", "Tehran", "Tel Aviv", "Pyongyang", "Kyiv", "Caracas", "Singapore"}
        assert chokepoints == {c.name for c in catalog.chokepoints}
        assert "London" not in zones

    @pytest.mark.parametrize("name, radius", [
        ("Tehran", 300),     # critical
        ("Kyiv", 250),       # high
        ("Taipei", 200),     # elevated
        ("Singapore", 150),  # low
        ("Hormuz", 100),
        ("Suez", 100),
    ])
    def test_radius_by_base_level(self, catalog, name, radius):
        zone = by_name(build_zones(catalog))[name]
        assert zone.base_radius_km == radius
        assert zone.dynamic_radius_km == radius
        assert zone.threat_multiplier == 1.0


class TestMultiplier:
    def test_high_signal_via_topic_stem(self, catalog):
        assessment = assess_threat(correlation=[{"topic": "china-tensions", "momentum": "rising"}])
        zones = by_name(build_zones(catalog, assessment))

        # Malacca only matches through its topic stem
        assert zones["Malacca"].threat_multiplier == 1.25
        assert zones["Malacca"].dynamic_radius_km == 125
        # Taipei is the signal's region and therefore a hot zone
        assert zones["Taipei"].threat_multiplier == 1.5
        assert zones["Taipei"].dynamic_radius_km == 300
        assert "correlation: China Tensions" in zones["Taipei"].active_signals
        assert "hot zone" in zones["Taipei"].active_signals

    def test_medium_signal_records_provenance_only(self, catalog):
        assessment = assess_threat(correlation=[{"topic": "iran", "momentum": "stable"}])
        zones = by_name(build_zones(catalog, assessment))
        assert zones["Hormuz"].threat_multiplier == 1.0
        assert zones["Hormuz"].active_signals == ["correlation: Iran"]

    def test_zone_cap_is_independent_of_overall_multiplier(self, catalog, conflict_markets):
        assessment = assess_threat(predictions=conflict_markets)
        assert assessment.overall_multiplier == 2.0

        zones = by_name(build_zones(catalog, assessment))
        assert zones["Taipei"].dynamic_radius_km == 300
        assert zones["Kyiv"].dynamic_radius_km == 375
        assert max(z.threat_multiplier for z in zones.values()) == 1.5

    def test_hot_zone_alone_forces_one_and_a_half(self):
        multiplier, provenance = zone_multiplier("Tehran", ThreatAssessment(hot_zones=frozenset({"Tehran"})))
        assert multiplier == 1.5
        assert provenance == ["hot zone"]

    def test_radius_never_shrinks(self, catalog, conflict_markets):
        assessment = assess_threat(
            correlation=[{"topic": t, "momentum": "rising"} for t in ("iran", "nuclear", "north-korea")],
            predictions=conflict_markets,
        )
        for zone in build_zones(catalog, assessment):
            assert zone.dynamic_radius_km >= zone.base_radius_km
            assert zone.threat_multiplier in (1.0, 1.25, 1.5)


class TestCatalogLoading:
    def test_default_without_path(self):
        assert load_zone_catalog(None) is DEFAULT_CATALOG

    def test_load_from_json(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(
            '{"version": "test", "hotspots": [{"name": "Taipei", "lat": 25.0, "lon": 121.5, "level": "critical"}],'
            ' "chokepoints": []}',
            encoding="utf-8",
        )
        catalog = load_zone_catalog(str(path))
        assert catalog.version == "test"
        zones = build_zones(catalog)
        assert [(z.name, z.base_radius_km) for z in zones] == [("Taipei", 300)]

    def test_invalid_file_falls_back(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("{not json", encoding="utf-8")
        assert load_zone_catalog(str(path)) is DEFAULT_CATALOG
