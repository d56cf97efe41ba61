"""Tests for vessel/zone proximity matching and priority escalation."""

import pytest

from backend.models import AlertPriority, AlertType, ThreatAssessment, ThreatLevel
from fusion_engine.geofence import classify_proximity, escalate, match_vessel, match_vessels
from conftest import CARGO, LAW_ENFORCEMENT, MILITARY, TANKER, north_of

HOT = frozenset({"Test Zone"})
COLD = frozenset()


# ---------- Proximity bands ----------

class TestClassifyProximity:
    @pytest.mark.parametrize("distance, expected", [
        (0, AlertType.ENTERED),
        (29.9, AlertType.ENTERED),
        (30, AlertType.NEAR),
        (69.9, AlertType.NEAR),
        (70, AlertType.TRANSITING),
        (100, AlertType.TRANSITING),
        (100.1, None),
    ])
    def test_bands(self, distance, expected):
        assert classify_proximity(distance, 100) == expected


class TestEscalate:
    def test_steps_and_cap(self):
        assert escalate(AlertPriority.LOW) == AlertPriority.MEDIUM
        assert escalate(AlertPriority.HIGH, 2) == AlertPriority.CRITICAL
        assert escalate(AlertPriority.CRITICAL) == AlertPriority.CRITICAL


# ---------- Matching ----------

class TestMatchVessel:
    def test_tanker_transiting_cold_zone_is_low(self, make_vessel, make_zone):
        alert = match_vessel(make_vessel(ship_type=TANKER, lat=north_of(0, 80)), make_zone(), COLD)
        assert alert.type == AlertType.TRANSITING
        assert alert.priority == AlertPriority.LOW
        assert alert.distance_km == 80
        assert alert.approach is False

    def test_military_starts_high(self, make_vessel, make_zone):
        alert = match_vessel(make_vessel(ship_type=MILITARY, lat=north_of(0, 50)), make_zone(), COLD)
        assert alert.type == AlertType.NEAR
        assert alert.priority == AlertPriority.HIGH

    def test_each_factor_escalates_one_step(self, make_vessel, make_zone):
        tanker = make_vessel(ship_type=TANKER, lat=north_of(0, 10))
        critical_zone = make_zone(base_level=ThreatLevel.CRITICAL)
        # entered(+1) + hot(+1) + critical base(+1): low → critical
        assert match_vessel(tanker, critical_zone, HOT).priority == AlertPriority.CRITICAL
        assert match_vessel(tanker, critical_zone, COLD).priority == AlertPriority.HIGH
        assert match_vessel(tanker, make_zone(), COLD).priority == AlertPriority.MEDIUM

    def test_alert_identity_and_bearing(self, make_vessel, make_zone):
        alert = match_vessel(make_vessel(mmsi="273000111", lat=north_of(0, 50)), make_zone(), COLD)
        assert alert.id == "273000111-Test Zone"
        assert alert.bearing_deg == pytest.approx(0.0)

    def test_outside_radius_without_approach_is_none(self, make_vessel, make_zone):
        assert match_vessel(make_vessel(ship_type=TANKER, lat=north_of(0, 120)), make_zone(), HOT) is None
        assert match_vessel(make_vessel(ship_type=MILITARY, lat=north_of(0, 120)), make_zone(), COLD) is None


class TestApproach:
    def test_law_enforcement_at_1_4_radius_of_hot_zone(self, make_vessel, make_zone):
        zone = make_zone(radius=200)
        vessel = make_vessel(ship_type=LAW_ENFORCEMENT, lat=north_of(0, 280))
        alerts = match_vessels([vessel], [zone], ThreatAssessment(hot_zones=HOT))

        assert len(alerts) == 1
        assert alerts[0].type == AlertType.TRANSITING
        assert alerts[0].priority == AlertPriority.MEDIUM
        assert alerts[0].approach is True
        assert alerts[0].distance_km == 280

    def test_beyond_1_5_radius_is_silent(self, make_vessel, make_zone):
        zone = make_zone(radius=200)
        vessel = make_vessel(ship_type=LAW_ENFORCEMENT, lat=north_of(0, 301))
        assert match_vessels([vessel], [zone], ThreatAssessment(hot_zones=HOT)) == []


class TestMatchVessels:
    def test_non_strategic_vessels_are_skipped(self, make_vessel, make_zone):
        cargo = make_vessel(ship_type=CARGO)
        untyped = make_vessel(mmsi="2", ship_type=None)
        assert match_vessels([cargo, untyped], [make_zone()], ThreatAssessment(hot_zones=HOT)) == []

    def test_vessels_without_position_are_skipped(self, make_vessel, make_zone):
        assert match_vessels([make_vessel(lat=None, lon=None)], [make_zone()]) == []

    def test_one_alert_per_zone(self, make_vessel, make_zone):
        zones = [make_zone(name="A"), make_zone(name="B", lat=north_of(0, 40))]
        alerts = match_vessels([make_vessel(mmsi="9")], zones)
        assert sorted(a.id for a in alerts) == ["9-A", "9-B"]

    def test_priority_monotonic_in_hot_zone_and_vessel_type(self, make_vessel, make_zone):
        rank = {AlertPriority.LOW: 0, AlertPriority.MEDIUM: 1, AlertPriority.HIGH: 2, AlertPriority.CRITICAL: 3}
        zone = make_zone()
        for km in (5, 50, 90):
            lat = north_of(0, km)
            tanker_cold = match_vessel(make_vessel(ship_type=TANKER, lat=lat), zone, COLD)
            tanker_hot = match_vessel(make_vessel(ship_type=TANKER, lat=lat), zone, HOT)
            military_hot = match_vessel(make_vessel(ship_type=MILITARY, lat=lat), zone, HOT)
            assert rank[tanker_cold.priority] <= rank[tanker_hot.priority] <= rank[military_hot.priority]

    def test_containment(self, make_vessel, make_zone):
        zone = make_zone(radius=150)
        vessels = [make_vessel(mmsi=str(i), ship_type=MILITARY, lat=north_of(0, i * 10)) for i in range(30)]
        for alert in match_vessels(vessels, [zone], ThreatAssessment(hot_zones=HOT)):
            if not alert.approach:
                assert alert.distance_km <= zone.dynamic_radius_km
